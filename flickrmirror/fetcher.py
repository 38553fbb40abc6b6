"""Throttled HTTP GETs. Flickr's API terms ask for no more than one request per second, and its
OAuth layer sometimes rejects a correctly signed request, which a freshly signed retry fixes.
"""
import http.client
import logging
import time
import urllib.error
import urllib.request

from .general import SyncError


__all__ = ['RateLimitedFetcher', 'INVALID_SIGNATURE_MARKER']
logger = logging.getLogger(__name__)


INVALID_SIGNATURE_MARKER = b'oauth_problem=signature_invalid'


class RateLimitedFetcher():
	"""Issues GET requests one at a time, never faster than min_interval apart.

	One instance is shared by every caller of a run, it holds the time of the last dispatch.
	clock, sleep, and opener are injectable so tests don't wait or touch the network.
	"""
	def __init__(self, min_interval=1.0, max_retries=10, retry_backoff=1.0, clock=time.monotonic,
			sleep=time.sleep, opener=urllib.request.urlopen, timeout=60):
		self.min_interval = min_interval
		self.max_retries = max_retries
		self.retry_backoff = retry_backoff
		self.clock = clock
		self.sleep = sleep
		self.opener = opener
		self.timeout = timeout
		self.last_request_time = None

	def _throttle(self):
		now = self.clock()
		if self.last_request_time is not None:
			wait = self.min_interval - (now - self.last_request_time)
			if wait > 0:
				logger.debug('Sleeping {:.3f}s before making another request.'.format(wait))
				self.sleep(wait)
				now = self.clock()
		self.last_request_time = now

	def _get(self, url):
		"""Returns the response body. HTTP error statuses still have a body worth inspecting,
		anything else is a transport failure.
		"""
		self._throttle()
		try:
			resp = self.opener(url, timeout=self.timeout)
		except urllib.error.HTTPError as e:
			logger.debug('HTTP {} for {}'.format(e.code, url))
			return e.read()
		except OSError as e:
			# URLError, timeouts, refused connections.
			logger.error('Request failed for {}: {}'.format(url, e))
			raise SyncError('Request failed for {}: {}'.format(url, e)) from e
		try:
			return resp.read()
		except (http.client.HTTPException, OSError) as e:
			# eg. IncompleteRead when the connection drops mid-body.
			logger.error('Reading the response failed for {}: {!r}'.format(url, e))
			raise SyncError('Reading the response failed for {}: {!r}'.format(url, e)) from e
		finally:
			resp.close()

	def fetch(self, url_generator):
		"""GETs the URL produced by url_generator(attempt) and returns the body bytes.

		If Flickr reports an invalid signature, waits retry_backoff and asks url_generator for
		a new URL (new nonce and timestamp), up to max_retries times. After that the body is
		returned as-is, it's up to the caller to treat it as an error.
		"""
		retry_count = 0
		while True:
			url = url_generator(retry_count)
			body = self._get(url)
			if INVALID_SIGNATURE_MARKER not in body or retry_count >= self.max_retries:
				if retry_count and INVALID_SIGNATURE_MARKER in body:
					logger.error('Giving up after {} retries: {}'.format(retry_count, url))
				return body
			retry_count += 1
			logger.info('Invalid signature, sleeping and retrying request, retry #{}'.format(
					retry_count))
			self.sleep(self.retry_backoff)
