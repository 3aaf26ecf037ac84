""" Signature checks against keys fetched from the key server.

    One-pass signatures are checked against the digest accumulated while the
    literal data went by. Key and identity signatures (certifications, subkey
    bindings, revocations) rebuild their hashed material from the key and
    user ID in scope and are meant to run off the interpreting thread.
    http://tools.ietf.org/html/rfc4880#section-5.2.4
"""

from struct import pack
import logging

from . import armor
from . import hashing
from .cryptography import verify_digest
from .exceptions import (InspectorException, KeyNotFoundError, MissingKeyIdError,
                         SignatureMismatchError, UnsupportedError, VerificationError)
from .packets import FLAG_SIGN, PublicKeyPacket, format_key_id
from .records import GOOD, Record
from .stream import PacketStream

__all__ = ['SignatureVerifier', 'key_packets']

log = logging.getLogger(__name__)

# Signature types whose hashed material includes a user ID
CERTIFICATION_TYPES = (0x10, 0x11, 0x12, 0x13, 0x30)
# Signature types binding a subkey to its primary key
SUBKEY_BINDING_TYPES = (0x18, 0x19, 0x28)

SUBKEY_BINDING = 0x18
PRIMARY_KEY_BINDING = 0x19

VALID = 'Signature is Valid'

def key_packets(payload):
    """ Packets of a key server response, armored or not """
    if armor.is_armored(payload):
        payload = armor.decode(payload).body
    return PacketStream(payload)

class SignatureVerifier(object):
    def __init__(self, resolver):
        self.resolver = resolver

    def find_key(self, key_id):
        """ The public key or subkey with key_id in the key server's answer """
        payload = self.resolver.resolve(key_id)
        for packet in key_packets(payload):
            if isinstance(packet, PublicKeyPacket) and packet.key_id == key_id:
                return packet
        raise KeyNotFoundError()

    def verify_one_pass(self, sig, pending):
        """ Path for a Signature closing a one-pass signed message.
            pending is the PendingHash started by the One-Pass Signature.
            Returns the verdict record.
        """
        try:
            key_id = sig.issuer_key_id
            if key_id is None:
                raise MissingKeyIdError()
            if sig.hash_algorithm != pending.hasher.hash_algorithm:
                raise SignatureMismatchError('signature hash algorithm differs from OnePassSignature')
            digest = pending.hasher.finish(sig.trailer)
            key = self.find_key(key_id)
            verify_digest(key, sig, digest)
        except InspectorException as e:
            log.debug("One-pass signature check failed: %s", e)
            return Record.error(e)
        log.debug("One-pass signature by %s verified", format_key_id(key_id))
        return Record.notice(VALID, GOOD)

    def check_bound_signature(self, sig, public_key, user_id=None):
        """ Verdict record for a signature over public_key (and user_id) """
        try:
            self.verify_bound_signature(sig, public_key, user_id)
        except InspectorException as e:
            log.debug("Signature over key %s failed: %s", format_key_id(public_key.key_id), e)
            return Record.error(e)
        return Record.notice(VALID, GOOD)

    def verify_bound_signature(self, sig, public_key, user_id=None):
        key_id = sig.issuer_key_id
        if key_id is None:
            raise MissingKeyIdError()
        if not hashing.is_supported(sig.hash_algorithm):
            raise UnsupportedError('unsupported hash function: %s' % sig.hash_algorithm_name())

        issuer = self.find_key(key_id)
        digest = self.bound_signature_digest(sig, issuer, public_key, user_id)
        verify_digest(issuer, sig, digest)

        if sig.signature_type == SUBKEY_BINDING and FLAG_SIGN & _flag_bits(sig.flags):
            self.verify_back_signature(sig, issuer, public_key)

    def verify_back_signature(self, sig, primary, subkey):
        """ A signing subkey must certify its primary key in return
            http://tools.ietf.org/html/rfc4880#section-11.1
        """
        back = sig.embedded_signature
        if back is None or back.signature_type != PRIMARY_KEY_BINDING:
            raise VerificationError('signing subkey is missing cross-signature')
        try:
            digest = self.bound_signature_digest(back, primary, subkey)
            verify_digest(subkey, back, digest)
        except SignatureMismatchError as e:
            raise SignatureMismatchError('embedded signature invalid: %s' % e)

    @classmethod
    def bound_signature_digest(cls, sig, issuer, public_key, user_id=None):
        """ Digest of what sig covers: the signed key, preceded by the
            primary key for subkey bindings, followed by the user ID for
            certifications.
        """
        hasher = hashing.Hasher(sig.hash_algorithm)
        if sig.signature_type in SUBKEY_BINDING_TYPES:
            hasher.update(issuer.signature_material())
            hasher.update(public_key.signature_material())
        else:
            hasher.update(public_key.signature_material())
            if user_id is not None and sig.signature_type in CERTIFICATION_TYPES:
                hasher.update(cls.user_id_material(sig, user_id))
        return hasher.finish(sig.trailer)

    @classmethod
    def user_id_material(cls, sig, user_id):
        text = user_id.body()
        if sig.version == 2 or sig.version == 3:
            return text
        return pack('!B', 0xB4) + pack('!L', len(text)) + text

def _flag_bits(flags):
    bits = 0
    for f in flags or []:
        bits |= f
    return bits
