"""OAuth 1.0a request signing for Flickr, and the one-time authorization handshake.

Flickr only accepts HMAC-SHA1 signed requests where the signature travels as the
"oauth_signature" query parameter. See https://www.flickr.com/services/api/auth.oauth.html .
"""
import base64
import hashlib
import hmac
import logging
import time
import urllib.parse
import uuid
import webbrowser

from .config import Credential
from .general import SyncError
from .status import updateStatus


__all__ = ['authorize', 'percentEncode', 'sign', 'signatureBaseString', 'URLSigner']
logger = logging.getLogger(__name__)


API_BASE_URL = 'https://api.flickr.com/services/rest'
REQUEST_TOKEN_URL = 'https://www.flickr.com/services/oauth/request_token'
AUTHORIZE_URL = 'https://www.flickr.com/services/oauth/authorize'
EXCHANGE_TOKEN_URL = 'https://www.flickr.com/services/oauth/access_token'


def percentEncode(value):
	"""Percent-encodes everything outside of the RFC 3986 unreserved set. Unlike form encoding a
	space becomes "%20", never "+".
	"""
	return urllib.parse.quote(str(value), safe='~')


def canonicalQuery(params):
	"""Joins params as "k1=v1&k2=v2", both halves encoded, sorted by the encoded key."""
	pairs = sorted((percentEncode(k), percentEncode(v)) for k, v in params.items())
	return '&'.join('{}={}'.format(k, v) for k, v in pairs)


def signatureBaseString(base_url, http_method, params):
	return '&'.join([http_method.upper(), percentEncode(base_url),
			percentEncode(canonicalQuery(params))])


def sign(base_url, http_method, params, consumer_secret, token_secret=None):
	"""Computes the request signature, ready to be put in a URL.

	Args:
		base_url: URL without the query string.
		http_method: "GET" for everything this package sends.
		params: dict of every query parameter except oauth_signature.
		consumer_secret: The app's secret.
		token_secret: The user's token secret. None while requesting a token.

	Returns:
		The base64 HMAC-SHA1 digest, percent-encoded because "+", "/" and "=" aren't URL-safe.
	"""
	base_string = signatureBaseString(base_url, http_method, params)
	key = percentEncode(consumer_secret) + '&' + percentEncode(token_secret or '')
	digest = hmac.new(key.encode('utf-8'), base_string.encode('utf-8'), hashlib.sha1).digest()
	return percentEncode(base64.b64encode(digest).decode('ascii'))


def generateNonce():
	return uuid.uuid4().hex


class URLSigner():
	"""Builds complete signed URLs. Every call uses a new nonce and timestamp, so a URL that was
	rejected can simply be built again.
	"""
	def __init__(self, consumer_key, consumer_secret, credential=None, clock=time.time,
			nonce=generateNonce):
		self.consumer_key = consumer_key
		self.consumer_secret = consumer_secret
		self.credential = credential
		self.clock = clock
		self.nonce = nonce

	def _oauthParams(self):
		return {
			'oauth_consumer_key': self.consumer_key,
			'oauth_nonce': self.nonce(),
			'oauth_signature_method': 'HMAC-SHA1',
			'oauth_timestamp': str(int(self.clock())),
			'oauth_version': '1.0',
		}

	def _signedUrl(self, base_url, params, token_secret):
		signature = sign(base_url, 'GET', params, self.consumer_secret, token_secret)
		# The signature is already encoded, it must not be encoded a second time.
		return '{}?{}&oauth_signature={}'.format(base_url, canonicalQuery(params), signature)

	def restUrl(self, method, params=None):
		"""URL for calling a Flickr REST method, eg. "flickr.photosets.getList", as the user."""
		if self.credential is None:
			raise SyncError('Calling {} requires an OAuth credential'.format(method))
		query = self._oauthParams()
		query['format'] = 'rest'
		query['method'] = method
		query['oauth_token'] = self.credential.oauth_token
		if params:
			query.update(params)
		return self._signedUrl(API_BASE_URL, query, self.credential.oauth_token_secret)

	def requestTokenUrl(self):
		query = self._oauthParams()
		query['oauth_callback'] = 'oob'
		return self._signedUrl(REQUEST_TOKEN_URL, query, None)

	def exchangeUrl(self, verifier, token, token_secret):
		query = self._oauthParams()
		query['oauth_token'] = token
		query['oauth_verifier'] = verifier
		return self._signedUrl(EXCHANGE_TOKEN_URL, query, token_secret)

	def authorizeUrl(self, token):
		return '{}?perms=read&oauth_token={}'.format(AUTHORIZE_URL, percentEncode(token))


def _parseTokenResponse(body):
	"""Token endpoints answer with a form-encoded body, eg. "oauth_token=...&oauth_token_secret=...".
	"""
	text = body.decode('utf-8', errors='replace')
	return {k: v[0] for k, v in urllib.parse.parse_qs(text, keep_blank_values=True).items()}


def authorize(fetcher, url_signer, prompt=input, open_browser=webbrowser.open):
	"""Walks the user through granting read access to this app. Returns the new Credential. The
	caller is responsible for caching it.
	"""
	body = fetcher.fetch(lambda attempt: url_signer.requestTokenUrl())
	fields = _parseTokenResponse(body)
	if fields.get('oauth_callback_confirmed') != 'true':
		logger.error('Bad request token response: {}'.format(body))
		raise SyncError('Flickr did not confirm the OAuth request: {}'.format(body))
	token = fields.get('oauth_token', '')
	token_secret = fields.get('oauth_token_secret', '')
	if not token or not token_secret:
		logger.error('Request token response is missing the token or secret: {}'.format(body))
		raise SyncError('Flickr returned no request token')

	url = url_signer.authorizeUrl(token)
	updateStatus('Opening {} in a browser.'.format(url))
	open_browser(url)
	verifier = prompt("Authorize the app on Flickr's site, enter the nine digit code here and "
			"press 'Return': ").strip()

	body = fetcher.fetch(lambda attempt: url_signer.exchangeUrl(verifier, token, token_secret))
	fields = _parseTokenResponse(body)
	credential = Credential(full_name=fields.get('fullname', ''),
			oauth_token=fields.get('oauth_token', ''),
			oauth_token_secret=fields.get('oauth_token_secret', ''),
			user_nsid=fields.get('user_nsid', ''),
			username=fields.get('username', ''))
	if not credential.oauth_token:
		logger.error('Token exchange failed: {}'.format(body))
		raise SyncError('Could not exchange the verifier for an access token')

	logger.info('Authorized as {}'.format(credential))
	return credential
