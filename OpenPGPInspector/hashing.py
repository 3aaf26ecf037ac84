# Running hashes for signature verification
# http://tools.ietf.org/html/rfc4880#section-5.2.4

from cryptography.hazmat.primitives import hashes
import Crypto.Hash.RIPEMD160

from .exceptions import UnsupportedError

__all__ = ['Hasher', 'CanonicalTextHasher', 'hash_algorithm', 'is_supported']

# OpenPGP hash algorithm IDs, http://tools.ietf.org/html/rfc4880#section-9.4
HASH_ALGORITHMS = {
     1: hashes.MD5,
     2: hashes.SHA1,
     8: hashes.SHA256,
     9: hashes.SHA384,
    10: hashes.SHA512,
    11: hashes.SHA224,
    12: hashes.SHA3_256,
    14: hashes.SHA3_512
}

RIPEMD160 = 3

def hash_algorithm(hash_id):
    """ cryptography HashAlgorithm instance for an OpenPGP hash ID, or None """
    if hash_id in HASH_ALGORITHMS:
        return HASH_ALGORITHMS[hash_id]()
    return None

def is_supported(hash_id):
    return hash_id in HASH_ALGORITHMS or hash_id == RIPEMD160

class Hasher(object):
    """ Accumulates signed bytes, then the signature trailer """
    def __init__(self, hash_id):
        self.hash_algorithm = hash_id
        if hash_id == RIPEMD160: # cryptography dropped RIPEMD160
            self._ctx = Crypto.Hash.RIPEMD160.new()
        elif hash_id in HASH_ALGORITHMS:
            self._ctx = hashes.Hash(HASH_ALGORITHMS[hash_id]())
        else:
            raise UnsupportedError('unsupported hash function: %d' % hash_id)
        self._done = False

    def update(self, data):
        self._ctx.update(data)

    def finish(self, trailer=b''):
        """ Hash the trailer and return the digest. The hasher is spent afterwards. """
        if self._done:
            raise ValueError('hash already finished')
        self._done = True
        self._ctx.update(trailer)
        if self.hash_algorithm == RIPEMD160:
            return self._ctx.digest()
        return self._ctx.finalize()

class CanonicalTextHasher(Hasher):
    """ Hashes text with every line ending as CR LF
        http://tools.ietf.org/html/rfc4880#section-5.2.1

        Bare LF becomes CR LF, existing CR LF and bare CR pass through.
        The trailer is hashed as-is.
    """
    def __init__(self, hash_id):
        super(CanonicalTextHasher, self).__init__(hash_id)
        self._after_cr = False

    def update(self, data):
        out = bytearray()
        for byte in bytearray(data):
            if byte == 0x0A and not self._after_cr:
                out += b'\r\n'
            else:
                out.append(byte)
            self._after_cr = byte == 0x0D
        self._ctx.update(bytes(out))
