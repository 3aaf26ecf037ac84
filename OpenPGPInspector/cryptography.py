from cryptography.hazmat.primitives.asymmetric import rsa, padding, dsa, ec, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm

from . import hashing
from .exceptions import SignatureMismatchError, UnsupportedError

__all__ = ['convert_public_key', 'verify_digest', 'key_family']

# Signature algorithm families by OpenPGP public key algorithm ID
RSA = 'RSA'
DSA = 'DSA'
ECDSA = 'ECDSA'
EDDSA = 'EdDSA'

_FAMILIES = {1: RSA, 3: RSA, 17: DSA, 19: ECDSA, 22: EDDSA}

_CURVES = {
    'NIST P-256': ec.SECP256R1,
    'NIST P-384': ec.SECP384R1,
    'NIST P-521': ec.SECP521R1,
    'brainpoolP256r1': ec.BrainpoolP256R1,
    'brainpoolP384r1': ec.BrainpoolP384R1,
    'brainpoolP512r1': ec.BrainpoolP512R1
}

# EMSA-PKCS1-v1_5 DigestInfo prefix for RIPEMD160, http://tools.ietf.org/html/rfc4880#section-5.2.2
_RIPEMD160_PREFIX = b'\x30\x21\x30\x09\x06\x05\x2B\x24\x03\x02\x01\x05\x00\x04\x14'

def key_family(algorithm):
    return _FAMILIES.get(algorithm)

def convert_public_key(packet):
    """ Get a cryptography public key object for a PublicKeyPacket """
    family = key_family(packet.key_algorithm)
    try:
        if family == RSA:
            return rsa.RSAPublicNumbers(
                    _bytes_to_long(packet.key['e']),
                    _bytes_to_long(packet.key['n'])).public_key()
        elif family == DSA:
            params = dsa.DSAParameterNumbers(
                    _bytes_to_long(packet.key['p']),
                    _bytes_to_long(packet.key['q']),
                    _bytes_to_long(packet.key['g']))
            return dsa.DSAPublicNumbers(_bytes_to_long(packet.key['y']), params).public_key()
        elif family == ECDSA:
            curve = _CURVES.get(packet.curve_name())
            if not curve:
                raise UnsupportedError('unsupported curve: %s' % packet.curve_name())
            return ec.EllipticCurvePublicKey.from_encoded_point(curve(), packet.key['point'])
        elif family == EDDSA:
            if packet.curve_name() != 'Ed25519':
                raise UnsupportedError('unsupported curve: %s' % packet.curve_name())
            point = packet.key['point']
            if point[0:1] != b'\x40': # Native point format
                raise UnsupportedError('unsupported EdDSA point format')
            return ed25519.Ed25519PublicKey.from_public_bytes(point[1:])
    except (ValueError, UnsupportedAlgorithm) as e:
        raise UnsupportedError('unusable %s key: %s' % (packet.key_algorithm_name(), e))
    raise UnsupportedError('unhandled public key type: %s' % packet.key_algorithm_name())

def verify_digest(packet, sig, digest):
    """ Check sig, whose hashed data produced digest, with the key in packet.
        Raises SignatureMismatchError when the signature does not verify.
    """
    if sig.hash_tag is not None and digest[0:2] != sig.hash_tag:
        raise SignatureMismatchError("hash tag doesn't match")

    family = key_family(packet.key_algorithm)
    if family is None or family != key_family(sig.key_algorithm):
        raise SignatureMismatchError('public key and signature use different algorithms')

    key = convert_public_key(packet)
    algorithm = hashing.hash_algorithm(sig.hash_algorithm)
    if algorithm is None and family != RSA and family != EDDSA:
        raise UnsupportedError('unsupported hash function for %s: %s' % (family, sig.hash_algorithm_name()))

    try:
        if family == RSA:
            if len(sig.data) != 1:
                raise SignatureMismatchError('malformed RSA signature')
            signature = sig.data[0].rjust((key.key_size + 7) // 8, b'\0')
            if algorithm is None:
                recovered = key.recover_data_from_signature(signature, padding.PKCS1v15(), None)
                if recovered != _RIPEMD160_PREFIX + digest:
                    raise InvalidSignature()
            else:
                key.verify(signature, digest, padding.PKCS1v15(), Prehashed(algorithm))
        elif family == DSA:
            key.verify(_encode_dss(sig), digest, Prehashed(algorithm))
        elif family == ECDSA:
            key.verify(_encode_dss(sig), digest, ec.ECDSA(Prehashed(algorithm)))
        elif family == EDDSA:
            if len(sig.data) != 2:
                raise SignatureMismatchError('malformed EdDSA signature')
            key.verify(sig.data[0].rjust(32, b'\0') + sig.data[1].rjust(32, b'\0'), digest)
    except InvalidSignature:
        raise SignatureMismatchError('%s verification failure' % family)
    except ValueError as e:
        raise SignatureMismatchError('%s verification failure: %s' % (family, e))

def _encode_dss(sig):
    if len(sig.data) != 2:
        raise SignatureMismatchError('malformed %s signature' % sig.key_algorithm_name())
    return encode_dss_signature(_bytes_to_long(sig.data[0]), _bytes_to_long(sig.data[1]))

def _bytes_to_long(b):
    return int.from_bytes(b, byteorder='big', signed=False)
