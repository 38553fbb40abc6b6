"""Wrapper for the Flickr REST API calls this package needs. Responses are XML."""
import logging
import webbrowser
from xml.etree import ElementTree

import flickrapi
import magic

from .config import loadCredential
from .config import saveCredential
from .fetcher import RateLimitedFetcher
from .general import NO_SET_TITLE
from .general import SyncError
from .oauth import authorize
from .oauth import URLSigner
from .status import updateStatus


__all__ = ['FlickrWrapper', 'getFlickrWrapper', 'Photoset', 'RemoteItem']
logger = logging.getLogger(__name__)


# Largest page Flickr serves for listings.
PAGE_SIZE = 500
# Error code Flickr answers with when a listing is paged past its end ("Photoset not found").
NO_MORE_RESULTS_CODE = 1
# Ask for the media type and the original's URL inline, saves a getSizes() call per photo.
LISTING_EXTRAS = 'media,url_o'


class Photoset():
	"""An album. The album with an empty set_id stands for the photos that aren't in any album."""
	def __init__(self, set_id, title, date_create=0, photos=0, videos=0):
		self.set_id = set_id
		self.title = title
		self.date_create = date_create
		self.photos = photos
		self.videos = videos

	def __repr__(self):
		return 'Photoset({}, {})'.format(self.set_id, self.title)

	def __eq__(self, other):
		if not isinstance(other, Photoset):
			return NotImplemented
		return vars(self) == vars(other)

	@classmethod
	def noSet(cls):
		return cls('', NO_SET_TITLE)

	@classmethod
	def fromElement(cls, el):
		return cls(el.get('id', ''), el.findtext('title', default=''),
				date_create=int(el.get('date_create') or 0),
				photos=int(el.get('photos') or 0),
				videos=int(el.get('videos') or 0))


class RemoteItem():
	"""A photo or video as listed by Flickr. photo_url and video_url are empty when unknown."""
	def __init__(self, photo_id, title, media='photo', photo_url='', video_url=''):
		self.photo_id = photo_id
		self.title = title
		self.media = media
		self.photo_url = photo_url
		self.video_url = video_url

	def __repr__(self):
		return 'RemoteItem({}, {})'.format(self.photo_id, self.title)

	@classmethod
	def fromElement(cls, el):
		return cls(el.get('id'), el.get('title', ''), media=el.get('media', 'photo'),
				photo_url=el.get('url_o', ''))


def parseResponse(body, url, benign_codes=()):
	"""Parses a REST response and returns the <rsp> element.

	Returns None for a failure whose code is in benign_codes. Other failures raise a
	flickrapi FlickrError, unparseable bodies raise a SyncError. Both are logged with the URL
	and the body, a bad signature usually shows up here first.
	"""
	try:
		rsp = ElementTree.fromstring(body)
	except ElementTree.ParseError as e:
		logger.error('Could not parse body for "{}": {}'.format(url, e))
		logger.error(body)
		raise SyncError('Could not parse the response for {}. Check logs for body detail.'.format(
				url))
	if rsp.tag != 'rsp':
		logger.error('Unexpected response for "{}": {}'.format(url, body))
		raise SyncError('Unexpected response for {}. Check logs for body detail.'.format(url))

	if rsp.get('stat') == 'ok':
		return rsp

	err = rsp.find('err')
	code = int(err.get('code')) if err is not None and err.get('code') else None
	msg = err.get('msg', '') if err is not None else ''
	if code is not None and code in benign_codes:
		logger.debug('Flickr error {} ({}) for "{}"'.format(code, msg, url))
		return None
	logger.error('Flickr error {} for "{}": {}'.format(code, url, body))
	raise flickrapi.exceptions.FlickrError('Error: {}: {}'.format(code, msg), code=code)


class FlickrWrapper():
	"""The Flickr REST methods used for mirroring. All requests go through one fetcher so they
	share its rate limit.
	"""
	def __init__(self, fetcher, url_signer):
		self.fetcher = fetcher
		self.url_signer = url_signer

	def _call(self, method, params=None, benign_codes=()):
		urls = []

		def generateUrl(attempt):
			# Sign again on every attempt, a retry needs a new nonce and timestamp.
			urls.append(self.url_signer.restUrl(method, params))
			return urls[-1]

		body = self.fetcher.fetch(generateUrl)
		return parseResponse(body, urls[-1], benign_codes)

	def _walkPages(self, method, container_tag, item_tag, params=None):
		"""Yields each page of a listing as a list of elements. Pages are indexed from 1.

		Flickr's page count can't be trusted to end a listing, so a listing ends on the first
		page shorter than PAGE_SIZE, or when a page past the end is answered with
		NO_MORE_RESULTS_CODE. The latter is the only way out when the item count is an exact
		multiple of PAGE_SIZE.
		"""
		page_num = 1
		while True:
			query = dict(params or {})
			query['page'] = str(page_num)
			query['per_page'] = str(PAGE_SIZE)
			logger.info('Getting {} page #{}'.format(method, page_num))

			# On the first page the error means what it says, eg. the album doesn't exist.
			benign_codes = (NO_MORE_RESULTS_CODE,) if page_num > 1 else ()
			rsp = self._call(method, query, benign_codes)
			if rsp is None:
				logger.debug('{} ran out of pages at page #{}'.format(method, page_num))
				return

			container = rsp.find(container_tag)
			if container is None:
				logger.error('No <{}> in {} response: {}'.format(container_tag, method,
						ElementTree.tostring(rsp)))
				raise SyncError('Unexpected {} response, no <{}> element'.format(method,
						container_tag))
			items = container.findall(item_tag)
			yield items

			if len(items) < PAGE_SIZE:
				return
			page_num += 1

	def _collectItems(self, pages):
		items = {}
		for page in pages:
			for el in page:
				item = RemoteItem.fromElement(el)
				items[item.photo_id] = item
		return items

	def getSets(self):
		"""Lists all albums, oldest first, so local directories keep a stable order."""
		sets = []
		for page in self._walkPages('flickr.photosets.getList', 'photosets', 'photoset'):
			sets.extend(Photoset.fromElement(el) for el in page)
		return sorted(sets, key=lambda s: s.date_create)

	def getSet(self, set_id):
		"""Looks up a single album by ID."""
		rsp = self._call('flickr.photosets.getInfo', {'photoset_id': set_id})
		el = rsp.find('photoset')
		if el is None:
			raise SyncError('No album info returned for ID {}'.format(set_id))
		return Photoset.fromElement(el)

	def listSet(self, set_id):
		"""Returns the album's items as a dict, photo_id->RemoteItem."""
		return self._collectItems(self._walkPages('flickr.photosets.getPhotos', 'photoset',
				'photo', {'photoset_id': set_id, 'extras': LISTING_EXTRAS}))

	def listNotInSet(self):
		"""Returns the items that aren't in any album as a dict, photo_id->RemoteItem."""
		return self._collectItems(self._walkPages('flickr.photos.getNotInSet', 'photos',
				'photo', {'extras': LISTING_EXTRAS}))

	def listPhotoset(self, photoset):
		if photoset.set_id:
			return self.listSet(photoset.set_id)
		return self.listNotInSet()

	def getOriginalURLs(self, photo_id):
		"""Returns (photo_url, video_url) of the original resolution, either may be empty."""
		# getSizes() lists every resolution available. Property 'source' is the URL for the
		# media, property 'url' is just a web page that shows it.
		rsp = self._call('flickr.photos.getSizes', {'photo_id': photo_id})
		photo_url = ''
		video_url = ''
		for s in rsp.iter('size'):
			if s.get('label') == 'Original':
				photo_url = s.get('source', '')
			elif s.get('label') == 'Video Original':
				video_url = s.get('source', '')
		logger.debug('Original URLs for {}: photo={}, video={}'.format(photo_id, photo_url,
				video_url))
		return photo_url, video_url

	def resolveURLs(self, item):
		"""Returns (photo_url, video_url) for item. The listing never carries a video's URL, and
		may lack url_o, in those cases the sizes are looked up.
		"""
		if item.video_url or (item.photo_url and item.media != 'video'):
			return item.photo_url, item.video_url
		photo_url, video_url = self.getOriginalURLs(item.photo_id)
		return photo_url or item.photo_url, video_url

	def download(self, url):
		"""Downloads media and returns it as raw bytes."""
		logger.info('Downloading: ' + url)
		content = self.fetcher.fetch(lambda attempt: url)

		# Sanity-check the content's MIME type, a text body is an error page and not media.
		# Use magic.from_buffer() rather than from_file(), the content isn't on disk yet.
		file_type = magic.from_buffer(content[:2048], mime=True) if content else ''
		if not content or file_type.startswith('text/'):
			logger.error('Download of {} returned {!r} instead of media: {!r}'.format(url,
					file_type, content[:512]))
			raise SyncError('Download of {} returned no media (type "{}")'.format(url,
					file_type))
		return content


def getFlickrWrapper(config, fetcher=None, prompt=input, open_browser=webbrowser.open):
	"""Obtains a FlickrWrapper for the user whose credential is cached in config.dir_. Walks the
	user through authorization first if there is no cached credential.

	Returns
		FlickrWrapper
	"""
	if fetcher is None:
		fetcher = RateLimitedFetcher()

	logger.info('Obtaining Flickr API, checking credentials in: "{}"'.format(config.dir_))
	credential = loadCredential(config.dir_)
	if credential:
		updateStatus('Using credentials for user: {}'.format(credential.username))
	else:
		updateStatus('No existing OAuth credential in config path {}'.format(config.dir_))
		credential = authorize(fetcher, URLSigner(config.consumer_key, config.consumer_secret),
				prompt=prompt, open_browser=open_browser)
		saveCredential(config.dir_, credential)

	return FlickrWrapper(fetcher, URLSigner(config.consumer_key, config.consumer_secret,
			credential))
