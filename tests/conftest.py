import threading

import httpx
import pytest

from OpenPGPInspector.resolver import KeyResolver

from helpers import KEYSERVER_URL

class FakeKeyServer(object):
    """ HKP lookup endpoint behind httpx.MockTransport """
    def __init__(self):
        self.keys = {}
        self.requests = []
        self.gate = None
        self._lock = threading.Lock()

    def add(self, key_id, payload):
        self.keys[key_id] = payload

    def hold(self):
        """ Make lookups block until release() """
        self.gate = threading.Event()

    def release(self):
        self.gate.set()

    def handler(self, request):
        with self._lock:
            self.requests.append(request)
        if self.gate is not None:
            self.gate.wait(5)
        key_id = int(request.url.params['search'], 16)
        if key_id in self.keys:
            return httpx.Response(200, content=self.keys[key_id])
        return httpx.Response(404, text='No results found')

@pytest.fixture
def keyserver():
    return FakeKeyServer()

@pytest.fixture
def resolver(keyserver):
    client = httpx.Client(transport=httpx.MockTransport(keyserver.handler))
    resolver = KeyResolver(KEYSERVER_URL, client=client)
    yield resolver
    client.close()
