""" Keys and signed messages built on the fly for the tests """

from struct import pack
import functools

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, decode_dss_signature

from OpenPGPInspector import armor, hashing
from OpenPGPInspector.packets import (EmbeddedSignaturePacket, LiteralDataPacket,
                                      OnePassSignaturePacket, PublicKeyPacket,
                                      PublicSubkeyPacket, SignaturePacket, UserIDPacket)

TIMESTAMP = 1500000000

KEYSERVER_URL = 'https://keys.example.test/pks/lookup'

ED25519_OID = b'\x2B\x06\x01\x04\x01\xDA\x47\x0F\x01'
P256_OID = b'\x2A\x86\x48\xCE\x3D\x03\x01\x07'
RIPEMD160_PREFIX = b'\x30\x21\x30\x09\x06\x05\x2B\x24\x03\x02\x01\x05\x00\x04\x14'

def long_to_bytes(n):
    return n.to_bytes((n.bit_length() + 7) // 8, 'big')

class SigningKey(object):
    """ A private key and the OpenPGP public key packet for it """
    def __init__(self, algorithm='rsa', subkey=False, timestamp=TIMESTAMP):
        self.algorithm = algorithm
        klass = subkey and PublicSubkeyPacket or PublicKeyPacket
        if algorithm == 'rsa':
            self.private = rsa.generate_private_key(public_exponent=65537, key_size=1024)
            numbers = self.private.public_key().public_numbers()
            self.packet = klass((long_to_bytes(numbers.n), long_to_bytes(numbers.e)),
                                version=4, algorithm=1, timestamp=timestamp)
        elif algorithm == 'ecdsa':
            self.private = ec.generate_private_key(ec.SECP256R1())
            point = self.private.public_key().public_bytes(
                serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint)
            self.packet = klass((P256_OID, point), version=4, algorithm=19, timestamp=timestamp)
        elif algorithm == 'ed25519':
            self.private = ed25519.Ed25519PrivateKey.generate()
            point = b'\x40' + self.private.public_key().public_bytes(
                serialization.Encoding.Raw, serialization.PublicFormat.Raw)
            self.packet = klass((ED25519_OID, point), version=4, algorithm=22, timestamp=timestamp)
        else:
            raise ValueError(algorithm)

    @property
    def key_id(self):
        return self.packet.key_id

    @property
    def key_algorithm(self):
        return self.packet.key_algorithm

    def sign_digest(self, digest, hash_id):
        """ Signature MPIs over an already computed digest """
        if self.algorithm == 'rsa' and hash_id == hashing.RIPEMD160:
            # EMSA-PKCS1-v1_5 by hand, cryptography has no RIPEMD160
            numbers = self.private.private_numbers()
            n = numbers.public_numbers.n
            t = RIPEMD160_PREFIX + digest
            em = b'\x00\x01' + b'\xff' * ((n.bit_length() + 7) // 8 - len(t) - 3) + b'\x00' + t
            return [long_to_bytes(pow(int.from_bytes(em, 'big'), numbers.d, n))]
        elif self.algorithm == 'rsa':
            return [self.private.sign(digest, padding.PKCS1v15(), Prehashed(hashing.hash_algorithm(hash_id)))]
        elif self.algorithm == 'ecdsa':
            r, s = decode_dss_signature(self.private.sign(digest, ec.ECDSA(Prehashed(hashing.hash_algorithm(hash_id)))))
            return [long_to_bytes(r), long_to_bytes(s)]
        signature = self.private.sign(digest)
        return [signature[:32], signature[32:]]

@functools.lru_cache(maxsize=None)
def shared_key(name, algorithm='rsa', subkey=False):
    """ One key per name for the whole test run, key generation is slow """
    return SigningKey(algorithm, subkey)

def sign(key, signature_type, material, hash_id=8, issuer=True, hashed_subpackets=None,
         unhashed_subpackets=None, text=False, klass=SignaturePacket):
    """ Signature by key over material, with creation time and issuer subpackets """
    sig = klass()
    sig.signature_type = signature_type
    sig.key_algorithm = key.key_algorithm
    sig.hash_algorithm = hash_id
    sig.hashed_subpackets = [SignaturePacket.SignatureCreationTimePacket(TIMESTAMP)] + list(hashed_subpackets or [])
    sig.unhashed_subpackets = list(unhashed_subpackets or [])
    if issuer:
        sig.unhashed_subpackets.append(SignaturePacket.IssuerPacket(key.key_id))

    hasher = text and hashing.CanonicalTextHasher(hash_id) or hashing.Hasher(hash_id)
    hasher.update(material)
    digest = hasher.finish(sig.trailer)
    sig.hash_tag = digest[0:2]
    sig.data = key.sign_digest(digest, hash_id)
    return sig

def one_pass_message(key, data, signature_type=0x00, hash_id=8, issuer=True, literal_format=None):
    """ One-Pass Signature, Literal Data, Signature """
    if literal_format is None:
        literal_format = signature_type == 0x01 and 't' or 'b'
    ops = OnePassSignaturePacket(signature_type, hash_id, key.key_algorithm, key.key_id, True)
    literal = LiteralDataPacket(data, literal_format, 'message.txt', TIMESTAMP)
    sig = sign(key, signature_type, literal.data, hash_id=hash_id, issuer=issuer, text=signature_type == 0x01)
    return ops.to_bytes() + literal.to_bytes() + sig.to_bytes()

def user_id_material(uid):
    text = uid.body()
    return pack('!B', 0xB4) + pack('!L', len(text)) + text

def certification(key, uid, signature_type=0x13, signer=None, **kwargs):
    """ signer (default: key itself) certifies that uid belongs to key """
    signer = signer or key
    return sign(signer, signature_type, key.packet.signature_material() + user_id_material(uid), **kwargs)

def key_message(key, uid_text='Alice <alice@example.com>', **kwargs):
    """ Public Key, User ID, self-certification """
    uid = UserIDPacket(uid_text)
    return key.packet.to_bytes() + uid.to_bytes() + certification(key, uid, **kwargs).to_bytes()

def subkey_binding(primary, subkey, flags=0x02, back_signature=True):
    """ Subkey binding by primary, with a primary key binding by subkey when asked """
    material = primary.packet.signature_material() + subkey.packet.signature_material()
    hashed = [SignaturePacket.KeyFlagsPacket([flags])]
    unhashed = []
    if back_signature:
        unhashed.append(sign(subkey, 0x19, material, klass=EmbeddedSignaturePacket))
    return sign(primary, 0x18, material, hashed_subpackets=hashed, unhashed_subpackets=unhashed)

def armored_key(*chunks):
    return armor.encode(b''.join(chunks), 'PUBLIC KEY BLOCK').encode('ascii')

def armored_message(data):
    return armor.encode(data, 'MESSAGE', {'Version': 'helpers'}).encode('ascii')
