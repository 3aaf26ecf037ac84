""" Public key lookup by key ID.

    Keys are fetched from an HKP key server and memoized for the lifetime of
    the resolver. Lookups come from the interpreting pass and from any number
    of background verifications at once, so the cache sits behind a lock and
    each key ID has at most one fetch in flight.
"""

from concurrent.futures import Future
import collections
import logging
import threading

import httpx

from . import config
from .exceptions import ResolutionError

__all__ = ['CachedKeyLookup', 'KeyCache', 'KeyResolver']

log = logging.getLogger(__name__)

class CachedKeyLookup(collections.namedtuple('CachedKeyLookup', ['data', 'error'])):
    """ Outcome of one fetch: the raw response payload or the failure """
    __slots__ = ()

    def unwrap(self):
        if self.error is not None:
            e = self.error
            raise ResolutionError(str(e), key_id=e.key_id, status=e.status, body=e.body)
        return self.data

class KeyCache(object):
    """ Write-once map from key ID to CachedKeyLookup """
    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key_id):
        with self._lock:
            return self._entries.get(key_id)

    def put(self, key_id, lookup):
        """ Store lookup unless an entry exists, return the entry kept """
        with self._lock:
            return self._entries.setdefault(key_id, lookup)

    def __len__(self):
        with self._lock:
            return len(self._entries)

class KeyResolver(object):
    """ Fetches armored public keys from a key server, once per key ID.

        keyserver_url defaults to config.KEYSERVER_URL; pass client to reuse an
        httpx.Client (it is then not closed by close()) and cache to share
        results between resolvers.
    """
    def __init__(self, keyserver_url=None, client=None, cache=None, timeout=None):
        self.keyserver_url = keyserver_url or config.KEYSERVER_URL
        self.cache = cache if cache is not None else KeyCache()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout or config.HTTP_TIMEOUT_SECONDS,
            follow_redirects=True)
        self._lock = threading.Lock()
        self._inflight = {}
        self.fetch_count = 0

    def resolve(self, key_id):
        """ Return the key server payload for key_id.
            Raises ResolutionError if the fetch failed, now or earlier on.
        """
        owner = False
        with self._lock:
            cached = self.cache.get(key_id)
            if cached is None:
                future = self._inflight.get(key_id)
                if future is None:
                    future = Future()
                    self._inflight[key_id] = future
                    owner = True

        if cached is not None:
            log.debug("Key 0x%016X served from cache", key_id)
            return cached.unwrap()

        if not owner:
            log.debug("Waiting for in-flight fetch of key 0x%016X", key_id)
            return future.result().unwrap()

        try:
            lookup = self._fetch(key_id)
        except Exception as e:
            # Waiters on the future must get an answer
            log.exception("Unexpected error fetching key 0x%016X", key_id)
            lookup = CachedKeyLookup(None, ResolutionError(
                'error fetching key 0x%016X: %s' % (key_id, e), key_id=key_id))
        with self._lock:
            stored = self.cache.put(key_id, lookup)
            del self._inflight[key_id]
        future.set_result(stored)
        return stored.unwrap()

    def params(self, key_id):
        return {'op': 'get', 'search': '0x%016X' % key_id, 'options': 'mr'}

    def _fetch(self, key_id):
        with self._lock:
            self.fetch_count += 1
        log.info("Fetching public key 0x%016X from %s", key_id, self.keyserver_url)

        try:
            response = self._client.get(self.keyserver_url, params=self.params(key_id))
        except httpx.RequestError as e:
            log.warning("Network error fetching key 0x%016X: %s", key_id, e)
            return CachedKeyLookup(None, ResolutionError(
                'network error fetching key 0x%016X: %s' % (key_id, e), key_id=key_id))

        body = response.content
        if response.status_code >= 400:
            text = body.decode('utf-8', 'replace')
            log.warning("Key server answered %d for key 0x%016X", response.status_code, key_id)
            return CachedKeyLookup(None, ResolutionError(
                'HTTP status code indicates failure: %d %s\n%s' % (response.status_code, response.reason_phrase, text),
                key_id=key_id, status=response.status_code, body=text))
        return CachedKeyLookup(body, None)

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
