import http.client
import io
import unittest
import urllib.error

# Testing support.
from tests.stub_flickr import FakeClock
from tests.stub_flickr import StubReader
# Officially exported names.
from flickrmirror import RateLimitedFetcher
from flickrmirror import SyncError


invalid_signature = b'oauth_problem=signature_invalid&debug_sbs=GET&https...'


class StubOpener():
	"""Replays responses in order. An exception in the list is raised instead of returned. A
	reader in the list is returned as is.
	"""
	def __init__(self, clock, responses):
		self.clock = clock
		self.responses = list(responses)
		self.calls = []

	def __call__(self, url, timeout=None):
		self.calls.append((url, self.clock.now))
		response = self.responses.pop(0)
		if isinstance(response, Exception):
			raise response
		if hasattr(response, 'read'):
			return response
		return StubReader(response)


class TestRateLimitedFetcher(unittest.TestCase):
	def setUp(self):
		self.clock = FakeClock()
		self.attempts = []

	def _fetcher(self, responses):
		self.opener = StubOpener(self.clock, responses)
		return RateLimitedFetcher(clock=self.clock.clock, sleep=self.clock.sleep,
				opener=self.opener)

	def urlGenerator(self, attempt):
		self.attempts.append(attempt)
		return 'https://example.com/?attempt={}'.format(attempt)

	def testFirstRequestDoesNotWait(self):
		fetcher = self._fetcher([b'body'])
		self.assertEqual(fetcher.fetch(self.urlGenerator), b'body')
		self.assertEqual(self.clock.sleeps, [])
		self.assertEqual(self.attempts, [0])

	def testRequestsAreThrottled(self):
		fetcher = self._fetcher([b'one', b'two', b'three'])
		fetcher.fetch(self.urlGenerator)
		self.clock.advance(0.25)
		fetcher.fetch(self.urlGenerator)
		fetcher.fetch(self.urlGenerator)

		self.assertEqual(len(self.clock.sleeps), 2)
		self.assertAlmostEqual(self.clock.sleeps[0], 0.75)
		self.assertAlmostEqual(self.clock.sleeps[1], 1.0)
		# Dispatches are at least a second apart.
		times = [t for _, t in self.opener.calls]
		for earlier, later in zip(times, times[1:]):
			self.assertGreaterEqual(later - earlier, 1.0 - 1e-9)

	def testNoWaitAfterInterval(self):
		fetcher = self._fetcher([b'one', b'two'])
		fetcher.fetch(self.urlGenerator)
		self.clock.advance(1.5)
		fetcher.fetch(self.urlGenerator)
		self.assertEqual(self.clock.sleeps, [])

	def testRetryInvalidSignature(self):
		fetcher = self._fetcher([invalid_signature, invalid_signature, b'<rsp stat="ok"/>'])
		self.assertEqual(fetcher.fetch(self.urlGenerator), b'<rsp stat="ok"/>')
		# Each attempt asked for a new URL.
		self.assertEqual(self.attempts, [0, 1, 2])
		self.assertEqual([url for url, _ in self.opener.calls], [
			'https://example.com/?attempt=0',
			'https://example.com/?attempt=1',
			'https://example.com/?attempt=2',
		])
		# The backoff already spaces the retries out, the throttle adds nothing.
		self.assertEqual(self.clock.sleeps, [1.0, 1.0])

	def testRetryBudgetExhausted(self):
		fetcher = self._fetcher([invalid_signature] * 11)
		self.assertEqual(fetcher.fetch(self.urlGenerator), invalid_signature)
		self.assertEqual(self.attempts, list(range(11)))
		self.assertEqual(self.opener.responses, [])

	def testRetryCountIsPerCall(self):
		fetcher = self._fetcher([invalid_signature] * 10 + [b'one', invalid_signature, b'two'])
		self.assertEqual(fetcher.fetch(self.urlGenerator), b'one')
		self.assertEqual(fetcher.fetch(self.urlGenerator), b'two')

	def testNetworkErrorNotRetried(self):
		fetcher = self._fetcher([urllib.error.URLError('Connection refused'), b'never'])
		self.assertRaises(SyncError, fetcher.fetch, self.urlGenerator)
		self.assertEqual(len(self.opener.calls), 1)

	def testTimeoutNotRetried(self):
		fetcher = self._fetcher([TimeoutError('timed out'), b'never'])
		self.assertRaises(SyncError, fetcher.fetch, self.urlGenerator)
		self.assertEqual(len(self.opener.calls), 1)

	def testHTTPErrorBodyIsInspected(self):
		"""Flickr sends signature problems with a 401."""
		unauthorized = urllib.error.HTTPError('https://example.com/', 401, 'Unauthorized', {},
				io.BytesIO(invalid_signature))
		fetcher = self._fetcher([unauthorized, b'ok'])
		self.assertEqual(fetcher.fetch(self.urlGenerator), b'ok')
		self.assertEqual(self.attempts, [0, 1])


class TruncatedReader():
	"""A response whose connection drops halfway through the body."""
	def __init__(self):
		self.closed = False

	def read(self):
		raise http.client.IncompleteRead(b'<rsp stat="ok"><pho', 4096)

	def close(self):
		self.closed = True


class TestTruncatedBody(unittest.TestCase):
	def testIncompleteReadIsSyncError(self):
		clock = FakeClock()
		reader = TruncatedReader()
		opener = StubOpener(clock, [reader, b'never'])
		fetcher = RateLimitedFetcher(clock=clock.clock, sleep=clock.sleep, opener=opener)
		with self.assertLogs('flickrmirror.fetcher', level='ERROR') as logs:
			self.assertRaises(SyncError, fetcher.fetch, lambda attempt: 'https://example.com/big')
		self.assertIn('https://example.com/big', logs.output[0])
		self.assertTrue(reader.closed)
		self.assertEqual(len(opener.calls), 1)


if __name__ == '__main__':
	unittest.main()
