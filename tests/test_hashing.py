import hashlib

import pytest

from OpenPGPInspector import hashing
from OpenPGPInspector.exceptions import UnsupportedError

class TestHasher:
    def test_binary(self):
        hasher = hashing.Hasher(8)
        hasher.update(b'hello ')
        hasher.update(b'world')
        assert hasher.finish(b'trailer') == hashlib.sha256(b'hello worldtrailer').digest()

    def test_ripemd160(self):
        hasher = hashing.Hasher(3)
        hasher.update(b'abc')
        assert hasher.finish().hex() == '8eb208f7e05d987a9b044a8e98c6b087f15a0bfc'

    def test_unsupported(self):
        assert not hashing.is_supported(4)
        with pytest.raises(UnsupportedError, match='unsupported hash function'):
            hashing.Hasher(4)

    def test_finish_once(self):
        hasher = hashing.Hasher(2)
        hasher.finish()
        with pytest.raises(ValueError):
            hasher.finish()

class TestCanonicalText:
    def digest(self, *chunks):
        hasher = hashing.CanonicalTextHasher(8)
        for chunk in chunks:
            hasher.update(chunk)
        return hasher.finish()

    def test_lf_becomes_crlf(self):
        assert self.digest(b'one\ntwo\n') == hashlib.sha256(b'one\r\ntwo\r\n').digest()

    def test_crlf_is_kept(self):
        assert self.digest(b'one\r\ntwo\r\n') == self.digest(b'one\ntwo\n')

    def test_crlf_split_across_updates(self):
        assert self.digest(b'one\r', b'\ntwo') == hashlib.sha256(b'one\r\ntwo').digest()
