"""Logic for mirroring Flickr albums into local directories, and for auditing the mirror."""
import datetime
import logging
import os
import urllib.parse

from .general import LEDGER_FILENAME
from .general import NO_SET_TITLE
from .flickrwrapper import Photoset
from .ledger import Ledger
from .ledger import LedgerEntry
from .status import updateStatus


__all__ = ['auditSet', 'determineSetsToProcess', 'processSet', 'sync']
logger = logging.getLogger(__name__)


# Characters that don't belong in a directory name on at least one platform.
INVALID_TITLE_CHARS = ['\\', '/', ':', '>', '<', '?', '"', '|', '*']

# Discrepancy kinds reported by auditSet().
UNRECORDED = 'unrecorded'
DOWNLOAD = 'download'
DELETE = 'delete'
UNTRACKED = 'untracked'
MISSING = 'missing'


class LocalPhoto():
	"""A file in an album's directory."""
	def __init__(self, title, path):
		self.title = title
		self.path = path

	def __repr__(self):
		return self.title

	def __eq__(self, other):
		if not isinstance(other, LocalPhoto):
			return NotImplemented
		return self.title == other.title and self.path == other.path

	def __lt__(self, other):
		if not isinstance(other, LocalPhoto):
			return NotImplemented
		return self.title < other.title

	def delete(self):
		"""Removes the file. A file that is already gone is fine."""
		f = os.path.join(self.path, self.title)
		logger.info('Deleting from local: ' + f)
		try:
			os.remove(f)
		except FileNotFoundError:
			logger.info('Nothing to delete at ' + f)


class RemotePhoto():
	"""A photo or video in a Flickr album."""
	def __init__(self, flickrwrapper, item):
		"""Args:

		flickrwrapper - FlickrWrapper API object.
		item - the RemoteItem from the album listing.
		"""
		self.flickrwrapper = flickrwrapper
		self.item = item

	def __repr__(self):
		return self.item.title

	def transfer(self, dir_path, ledger):
		"""Downloads the media into dir_path unless it's already there, and records it in the
		ledger either way. Media with no original URL is skipped and left out of the ledger.
		"""
		item = self.item
		photo_url, video_url = self.flickrwrapper.resolveURLs(item)

		if video_url:
			# Video URLs end in a directory, name the file after the photo ID.
			filename = item.photo_id + '.mov'
			source_url = video_url
			media_type = 'video'
		elif photo_url:
			filename = filenameFromUrl(photo_url)
			source_url = photo_url
			media_type = 'photo'
		else:
			filename = ''

		if not filename:
			updateStatus('Could not get original size for media: "{}" ({}). Skipping media for '
					'now.'.format(item.title, item.photo_id), logging.WARNING)
			return

		full_path = os.path.join(dir_path, filename)
		entry = LedgerEntry(item.photo_id, item.title, filename)

		# A previous run may have saved the file and stopped before recording it.
		if os.path.exists(full_path):
			logger.info('Media existed at {}. Skipping.'.format(full_path))
			self._record(dir_path, ledger, entry)
			return

		content = self.flickrwrapper.download(source_url)
		with open(full_path, 'wb') as f:
			f.write(content)
		self._record(dir_path, ledger, entry)
		updateStatus('Saved {} "{}" to {}.'.format(media_type, item.title, full_path))

	def _record(self, dir_path, ledger, entry):
		"""Puts entry in the ledger. A file saved under the item's previous filename, eg. before
		the media was replaced on Flickr, is deleted so the ledger and the directory still match.
		"""
		previous = ledger.photoIds().get(entry.photo_id)
		if previous is not None and previous.filename != entry.filename:
			updateStatus('Media ID "{}" changed from "{}" to "{}".'.format(entry.photo_id,
					previous.filename, entry.filename))
			LocalPhoto(previous.filename, dir_path).delete()
		ledger.addOrUpdate(entry)


class Discrepancy():
	"""One difference between Flickr, the ledger, and the files, found by an audit."""
	def __init__(self, kind, key, message):
		self.kind = kind
		self.key = key
		self.message = message

	def __repr__(self):
		return '({},{})'.format(self.kind, self.key)

	def __eq__(self, other):
		if not isinstance(other, Discrepancy):
			return NotImplemented
		return self.kind == other.kind and self.key == other.key


def filenameFromUrl(url):
	"""Returns the last segment of the URL's path, eg. "42_abcd_o.jpg"."""
	return urllib.parse.urlsplit(url).path.rsplit('/', 1)[-1]


def cleanTitle(title):
	for char in INVALID_TITLE_CHARS:
		title = title.replace(char, '')
	return title


def dirForSet(root, photoset):
	"""Returns the path of the album's directory. Albums are prefixed with their creation date,
	so directories sort the same way Flickr orders the albums.
	"""
	if photoset.set_id:
		created = datetime.datetime.fromtimestamp(photoset.date_create).strftime('%Y%m%d')
		dir_path = os.path.join(root, '{} {}'.format(created, cleanTitle(photoset.title)))
	else:
		dir_path = os.path.join(root, NO_SET_TITLE)
	return dir_path


def ensureDirForSet(root, photoset):
	"""Creates the album's directory if needed and returns its path."""
	dir_path = dirForSet(root, photoset)
	os.makedirs(dir_path, exist_ok=True)
	return dir_path


def loadLocalPhotos(dir_path):
	"""Returns a LocalPhoto for each file in dir_path, the ledger file included."""
	# os.listdir ordering is not guaranteed, sort it so logs read the same across runs.
	dir_listing = sorted(os.listdir(dir_path))

	# Filter only the files.
	local_files = [f for f in dir_listing if os.path.isfile(os.path.join(dir_path, f))]
	logger.debug('Local files: ' + str(local_files))
	return [LocalPhoto(f, dir_path) for f in local_files]


def auditSet(local_photos, ledger, remote_items, photoset, dir_path):
	"""Compares the album on Flickr, its ledger, and its files without changing any of them.
	Logs and returns a list of Discrepancy.
	"""
	updateStatus('Auditing set: "{}"'.format(photoset.title))
	found = []

	def report(kind, key, message):
		updateStatus(message, logging.WARNING)
		found.append(Discrepancy(kind, key, message))

	by_id = ledger.photoIds()
	by_filename = ledger.filenames()
	local_names = [p.title for p in local_photos if p.title != LEDGER_FILENAME]

	# Media on Flickr but not in the ledger needs to be downloaded, unless a file for it is
	# already there.
	for photo_id, item in remote_items.items():
		if photo_id in by_id:
			continue
		on_disk = next((name for name in local_names if name.startswith(photo_id)), None)
		if on_disk:
			report(UNRECORDED, photo_id, 'Media ID "{}" ({}) does not exist in the ledger, but '
					'appears to exist on disk with file name "{}". It needs to be added to the '
					'ledger.'.format(photo_id, item.title, on_disk))
		else:
			report(DOWNLOAD, photo_id, 'Media ID "{}" ({}) does not exist in the ledger. It needs '
					'to be downloaded and added to the ledger.'.format(photo_id, item.title))

	# Media in the ledger but gone from Flickr needs to be deleted.
	for photo_id, entry in by_id.items():
		if photo_id not in remote_items:
			report(DELETE, photo_id, 'Media ID "{}" ({}) does not exist in Flickr and needs to be '
					'deleted.'.format(photo_id, entry.title))

	for name in local_names:
		if name not in by_filename:
			report(UNTRACKED, name, 'Media exists on disk, but not in the ledger, this is an '
					'inconsistency: "{}".'.format(name))

	for filename in by_filename:
		if filename == LEDGER_FILENAME:
			continue
		full_path = os.path.join(dir_path, filename)
		if not os.path.exists(full_path):
			report(MISSING, filename, 'File exists in the ledger, but not on disk, this is an '
					'inconsistency. It was either deleted or never saved: "{}".'.format(full_path))

	logger.info('Audit of "{}" found {} discrepancies: {}'.format(photoset.title, len(found),
			found))
	return found


def isSynced(local_photos, remote_items, ledger):
	"""True when the album looks complete: one file per remote item plus the ledger file, and one
	ledger entry per remote item.
	"""
	return len(local_photos) == len(remote_items) + 1 and len(remote_items) == len(ledger)


def downloadPhotos(flickrwrapper, remote_items, dir_path, ledger):
	for item in remote_items.values():
		RemotePhoto(flickrwrapper, item).transfer(dir_path, ledger)


def removeDeleted(remote_items, dir_path, ledger):
	"""Deletes the files and ledger entries of media that no longer exists on Flickr."""
	# Collect first, removing entries changes the ledger being iterated.
	deleted = [e for e in ledger.entries if e.photo_id not in remote_items]
	for entry in deleted:
		updateStatus('Deleting media ID "{}" at "{}"'.format(entry.photo_id,
				os.path.join(dir_path, entry.filename)))
		LocalPhoto(entry.filename, dir_path).delete()
		ledger.removeById(entry.photo_id)


def processSet(config, flickrwrapper, photoset):
	"""Brings one album's directory in line with Flickr, or only audits it if config.audit is
	set. Returns nothing, errors propagate.
	"""
	# An audit changes nothing, not even by creating the directory of an album never synced.
	if config.audit:
		dir_path = dirForSet(config.path, photoset)
	else:
		dir_path = ensureDirForSet(config.path, photoset)

	remote_items = flickrwrapper.listPhotoset(photoset)
	local_photos = loadLocalPhotos(dir_path) if os.path.isdir(dir_path) else []
	# Read the existing ledger, if any, so we can pick up where we left off.
	ledger = Ledger.load(os.path.join(dir_path, LEDGER_FILENAME), photoset.set_id)

	if config.audit:
		auditSet(local_photos, ledger, remote_items, photoset, dir_path)
		return

	if not config.force:
		if isSynced(local_photos, remote_items, ledger):
			logger.info('Skipping set: "{}". Found {} existing files.'.format(photoset.title,
					len(local_photos)))
			return
		logger.info('Processing set: "{}". Found {} existing files on disk, {} files in the '
				'ledger, and {} files on Flickr.'.format(photoset.title, len(local_photos),
				len(ledger), len(remote_items)))
	else:
		logger.info('Force processing set: "{}"'.format(photoset.title))

	# Downloads come first: an entry is only removed once everything Flickr still has is
	# recorded.
	downloadPhotos(flickrwrapper, remote_items, dir_path, ledger)
	removeDeleted(remote_items, dir_path, ledger)


def determineSetsToProcess(config, flickrwrapper):
	"""Returns the Photosets selected by config, oldest album first and the photos outside of
	any album last.
	"""
	sets = []
	if not config.not_in_set:
		for s in flickrwrapper.getSets():
			if config.set_id and s.set_id != config.set_id:
				continue
			sets.append(s)

	# The album listing may not include it, eg. when it belongs to someone else.
	if not sets and config.set_id:
		sets.append(flickrwrapper.getSet(config.set_id))

	if not config.set_id:
		sets.append(Photoset.noSet())
	return sets


def sync(config, flickrwrapper):
	"""Mirrors (or audits) every album selected by config into config.path.

	Returns nothing. Raises a SyncError on failure.
	"""
	logger.info(str(config))
	# Validate the config first before acting on data. Inconsistent config could damage data.
	config.validate()

	for photoset in determineSetsToProcess(config, flickrwrapper):
		processSet(config, flickrwrapper, photoset)
