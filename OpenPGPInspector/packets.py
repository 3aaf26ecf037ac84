# OpenPGP packets <http://tools.ietf.org/html/rfc4880#section-5>
# Decoding of packet bodies plus enough serialization to compute fingerprints
# and signature hash material.

from struct import pack, unpack
from math import floor, log
from time import time
import bz2
import hashlib
import io
import re
import struct as _struct # hide implementation details
import zlib

from .exceptions import DecodeError, UnsupportedError

def bitlength(data):
    """ http://tools.ietf.org/html/rfc4880#section-12.2 """
    data = data.lstrip(b'\0')
    if not data:
        return 0
    return (len(data) - 1) * 8 + int(floor(log(ord(data[0:1]), 2))) + 1

def mpi(data):
    """ http://tools.ietf.org/html/rfc4880#section-3.2 """
    data = data.lstrip(b'\0')
    return pack('!H', bitlength(data)) + data

def format_key_id(key_id):
    return '0x%016X' % key_id

def _key_id_from_bytes(b):
    return unpack('!Q', b)[0]

class Packet(object):
    """ OpenPGP packet.
        http://tools.ietf.org/html/rfc4880#section-4.1
        http://tools.ietf.org/html/rfc4880#section-4.3
    """

    @classmethod
    def parse_body(cls, tag, body):
        """ Decode one packet body whose header has already been consumed.
            A body in a version or format we cannot decode comes back as an
            UnknownPacket carrying the reason, the header already framed it.
        """
        packet_class = Packet.tags.get(tag, UnknownPacket)
        packet = packet_class()
        packet.tag = tag
        packet.input = io.BytesIO(body)
        packet.length = len(body)
        try:
            packet.read()
        except UnsupportedError as e:
            return UnknownPacket(body, tag, reason=str(e))
        except (_struct.error, IndexError, ValueError, UnicodeDecodeError) as e:
            raise DecodeError('invalid %s: %s' % (packet.name(), e))
        finally:
            packet.input = None
            packet.length = None
        return packet

    def __init__(self, data=None):
        for tag in Packet.tags:
            if Packet.tags[tag] == self.__class__:
                self.tag = tag
                break
        self.data = data

    def name(self):
        return Packet.tag_names.get(self.tag, 'Unknown Packet')

    def read(self):
        # Will normally be overridden by subclasses
        self.data = self.read_bytes(self.length)

    def body(self):
        return self.data # Will normally be overridden by subclasses

    def header_and_body(self):
        body = self.body() or b'' # Get body first, we will need it's length
        tag = pack('!B', self.tag | 0xC0) # First two bits are 1 for new packet format
        size = pack('!B', 255) + pack('!L', len(body)) # Use 5-octet lengths
        return {'header': tag + size, 'body': body}

    def to_bytes(self):
        data = self.header_and_body()
        return data['header'] + data['body']

    def read_timestamp(self):
        """ http://tools.ietf.org/html/rfc4880#section-3.5 """
        return self.read_unpacked(4, '!L')

    def read_mpi(self):
        """ http://tools.ietf.org/html/rfc4880#section-3.2 """
        length = self.read_unpacked(2, '!H') # length in bits
        length = (length + 7) // 8 # length in bytes
        return self.read_bytes(length)

    def read_unpacked(self, count, fmt):
        """ http://docs.python.org/library/struct.html """
        unpacked = unpack(fmt, self.read_bytes(count))
        return unpacked[0] # unpack returns tuple

    def read_byte(self):
        return self.read_bytes(1)

    def read_bytes(self, count):
        if count > self.length:
            raise DecodeError('%s is truncated' % self.name())
        chunk = self.input.read(count)
        if len(chunk) < count:
            raise DecodeError('%s is truncated' % self.name())
        self.length -= count
        return chunk

    tags = {} # Actual data at end of file
    tag_names = {}

    def __repr__(self):
        return "%s: %s" % (type(self), self.__dict__.__repr__())

    def __eq__(self, other):
        if type(other) is type(self):
            return self.__dict__ == other.__dict__
        return False

    def __ne__(self, other):
        return not self.__eq__(other)

class UnknownPacket(Packet):
    """ Any packet the interpreter does not give meaning to.
        The body is kept as-is.
    """
    def __init__(self, data=None, tag=None, reason=None):
        super(UnknownPacket, self).__init__(data)
        self.tag = tag
        self.reason = reason # set when a known packet type failed to decode

class SignaturePacket(Packet):
    """ OpenPGP Signature packet (tag 2).
        http://tools.ietf.org/html/rfc4880#section-5.2
    """
    def __init__(self, signature_type=0, key_algorithm=1, hash_algorithm=8, hashed_subpackets=None, unhashed_subpackets=None):
        super(SignaturePacket, self).__init__()
        self.version = 4 # Default to version 4 sigs
        self.signature_type = signature_type
        self.key_algorithm = key_algorithm
        self.hash_algorithm = hash_algorithm
        self.hashed_subpackets = hashed_subpackets or []
        self.unhashed_subpackets = unhashed_subpackets or []
        self.hash_suffix = None
        self.hash_tag = None
        self.data = []

    def read(self):
        self.version = ord(self.read_byte())
        if self.version == 2 or self.version == 3:
            if ord(self.read_byte()) != 5:
                raise DecodeError('invalid hashed material length in v3 signature')
            self.signature_type = ord(self.read_byte())
            creation_time = self.read_timestamp()
            keyid = self.read_bytes(8)

            self.hash_suffix = pack('!B', self.signature_type) + pack('!L', creation_time)
            self.hashed_subpackets = []
            self.unhashed_subpackets = [
                SignaturePacket.SignatureCreationTimePacket(creation_time),
                SignaturePacket.IssuerPacket(_key_id_from_bytes(keyid))
            ]

            self.key_algorithm = ord(self.read_byte())
            self.hash_algorithm = ord(self.read_byte())
        elif self.version == 4:
            self.signature_type = ord(self.read_byte())
            self.key_algorithm = ord(self.read_byte())
            self.hash_algorithm = ord(self.read_byte())

            hashed_size = self.read_unpacked(2, '!H')
            hashed_subpackets = self.read_bytes(hashed_size)
            self.hash_suffix = pack('!B', 4) + pack('!B', self.signature_type) + \
                pack('!B', self.key_algorithm) + pack('!B', self.hash_algorithm) + \
                pack('!H', hashed_size) + hashed_subpackets
            self.hashed_subpackets = self.get_subpackets(hashed_subpackets)

            unhashed_size = self.read_unpacked(2, '!H')
            self.unhashed_subpackets = self.get_subpackets(self.read_bytes(unhashed_size))
        else:
            raise UnsupportedError('unsupported signature version: %d' % self.version)

        self.hash_tag = self.read_bytes(2)
        self.data = []
        while self.length > 0:
            self.data += [self.read_mpi()]

    def calculate_hash_suffix(self):
        body = pack('!B', 4) + pack('!B', self.signature_type) + pack('!B', self.key_algorithm) + pack('!B', self.hash_algorithm)

        hashed_subpackets = b''
        for p in self.hashed_subpackets:
            hashed_subpackets += p.to_bytes()
        body += pack('!H', len(hashed_subpackets)) + hashed_subpackets

        return body

    @property
    def trailer(self):
        """ Everything hashed after the signed data
            http://tools.ietf.org/html/rfc4880#section-5.2.4
        """
        if self.hash_suffix is None:
            self.hash_suffix = self.calculate_hash_suffix()
        if self.version == 2 or self.version == 3:
            return self.hash_suffix
        return self.hash_suffix + pack('!B', 4) + pack('!B', 0xff) + pack('!L', len(self.hash_suffix))

    def body(self):
        if self.version == 2 or self.version == 3:
            body = pack('!B', self.version) + pack('!B', 5) + self.hash_suffix
            body += pack('!Q', self.issuer_key_id or 0)
            body += pack('!B', self.key_algorithm) + pack('!B', self.hash_algorithm)
        else:
            if self.hash_suffix is None:
                self.hash_suffix = self.calculate_hash_suffix()
            body = self.hash_suffix

            unhashed_subpackets = b''
            for p in self.unhashed_subpackets:
                unhashed_subpackets += p.to_bytes()
            body += pack('!H', len(unhashed_subpackets)) + unhashed_subpackets

        body += self.hash_tag or b'\0\0'
        for data in self.data:
            body += mpi(data)

        return body

    def key_algorithm_name(self):
        return PublicKeyPacket.algorithms.get(self.key_algorithm, 'unknown')

    def hash_algorithm_name(self):
        return self.hash_algorithms.get(self.hash_algorithm, 'unknown')

    def signature_type_name(self):
        return self.signature_types.get(self.signature_type, 'unknown')

    def subpacket(self, klass, hashed_only=False):
        """ First subpacket of the given class, hashed area first """
        packets = self.hashed_subpackets
        if not hashed_only:
            packets = packets + self.unhashed_subpackets
        for p in packets:
            if isinstance(p, klass):
                return p
        return None

    @property
    def issuer_key_id(self):
        p = self.subpacket(self.IssuerPacket)
        if p:
            return p.data
        p = self.subpacket(self.IssuerFingerprintPacket)
        if p and len(p.fingerprint) >= 8:
            return _key_id_from_bytes(p.fingerprint[-8:])
        return None

    @property
    def creation_time(self):
        p = self.subpacket(self.SignatureCreationTimePacket)
        return p and p.data

    @property
    def flags(self):
        p = self.subpacket(self.KeyFlagsPacket, hashed_only=True)
        return p and p.flags

    @property
    def embedded_signature(self):
        return self.subpacket(self.EmbeddedSignaturePacket)

    @classmethod
    def get_subpackets(cls, input_data):
        subpackets = []
        while len(input_data) > 0:
            subpacket, bytes_used = cls.get_subpacket(input_data)
            subpackets.append(subpacket)
            input_data = input_data[bytes_used:]
        return subpackets

    @classmethod
    def get_subpacket(cls, input_data):
        """ http://tools.ietf.org/html/rfc4880#section-5.2.3.1 """
        length = ord(input_data[0:1])
        length_of_length = 1
        # if length < 192 One octet length, no further processing
        if length > 191 and length < 255: # Two octet length
            length_of_length = 2
            length = ((length - 192) << 8) + ord(input_data[1:2]) + 192
        elif length == 255: # Five octet length
            length_of_length = 5
            length = unpack('!L', input_data[1:5])[0]
        if length < 1 or length_of_length + length > len(input_data):
            raise DecodeError('signature subpacket is truncated')
        input_data = input_data[length_of_length:] # Chop off length header
        tag = ord(input_data[0:1])

        klass = cls.subpacket_types.get(tag & 0x7F, SignaturePacket.Subpacket)

        packet = klass()
        packet.tag = tag & 0x7F
        packet.critical = tag & 0x80 == 0x80
        packet.input = io.BytesIO(input_data[1:length])
        packet.length = length - 1
        packet.read()
        packet.input = None
        packet.length = None

        return (packet, length_of_length + length)

    class Subpacket(Packet):
        def __init__(self, data=None):
            super(SignaturePacket.Subpacket, self).__init__()
            self.critical = False
            for tag in SignaturePacket.subpacket_types:
                if SignaturePacket.subpacket_types[tag] == self.__class__:
                    self.tag = tag
                    break
            if data is not None:
                self.data = data

        def name(self):
            return 'Signature Subpacket'

        def header_and_body(self):
            body = self.body() or b'' # Get body first, we'll need its length
            size = pack('!B', 255) + pack('!L', len(body) + 1) # Use 5-octet lengths + 1 for tag as first packet body octet
            tag = pack('!B', self.tag | (self.critical and 0x80 or 0))
            return {'header': size + tag, 'body': body}

    class SignatureCreationTimePacket(Subpacket):
        """ http://tools.ietf.org/html/rfc4880#section-5.2.3.4 """
        def __init__(self, time=None):
            super(SignaturePacket.SignatureCreationTimePacket, self).__init__(time)

        def read(self):
            self.data = self.read_timestamp()

        def body(self):
            return pack('!L', int(self.data))

    class SignatureExpirationTimePacket(Subpacket):
        def read(self):
            self.data = self.read_timestamp()

        def body(self):
            return pack('!L', self.data)

    class KeyExpirationTimePacket(Subpacket):
        def read(self):
            self.data = self.read_timestamp()

        def body(self):
            return pack('!L', self.data)

    class PreferredSymmetricAlgorithmsPacket(Subpacket):
        def read(self):
            self.data = []
            while self.length > 0:
                self.data += [ord(self.read_byte())]

        def body(self):
            body = b''
            for algo in self.data:
                body += pack('!B', algo)
            return body

    class IssuerPacket(Subpacket):
        """ http://tools.ietf.org/html/rfc4880#section-5.2.3.5 """
        def read(self):
            self.data = _key_id_from_bytes(self.read_bytes(8))

        def body(self):
            return pack('!Q', self.data)

    class PreferredHashAlgorithmsPacket(PreferredSymmetricAlgorithmsPacket):
        pass # All implemented in parent

    class PreferredCompressionAlgorithmsPacket(PreferredSymmetricAlgorithmsPacket):
        pass # All implemented in parent

    class PrimaryUserIDPacket(Subpacket):
        def read(self):
            self.data = ord(self.read_byte()) != 0

        def body(self):
            return pack('!B', self.data and 1 or 0)

    class KeyFlagsPacket(Subpacket):
        """ http://tools.ietf.org/html/rfc4880#section-5.2.3.21 """
        def __init__(self, flags=None):
            super(SignaturePacket.KeyFlagsPacket, self).__init__()
            self.flags = flags or []

        def read(self):
            self.flags = []
            while self.length > 0:
                self.flags.append(ord(self.read_byte()))

        def body(self):
            b = b''
            for f in self.flags:
                b += pack('!B', f)
            return b

    class ReasonforRevocationPacket(Subpacket):
        def read(self):
            self.code = ord(self.read_byte())
            self.data = self.read_bytes(self.length).decode('utf-8', 'replace')

        def body(self):
            return pack('!B', self.code) + self.data.encode('utf-8')

    class IssuerFingerprintPacket(Subpacket):
        """ https://tools.ietf.org/html/draft-ietf-openpgp-rfc4880bis-10#section-5.2.3.28 """
        def read(self):
            self.version = ord(self.read_byte())
            self.fingerprint = self.read_bytes(self.length)

        def body(self):
            return pack('!B', self.version) + self.fingerprint

    hash_algorithms = {
        1: 'MD5',
        2: 'SHA1',
        3: 'RIPEMD160',
        8: 'SHA256',
        9: 'SHA384',
       10: 'SHA512',
       11: 'SHA224',
       12: 'SHA3-256',
       14: 'SHA3-512'
    }

    # http://tools.ietf.org/html/rfc4880#section-5.2.1
    signature_types = {
        0x00: 'binary',
        0x01: 'text',
        0x02: 'standalone',
        0x10: 'generic cert',
        0x11: 'persona cert',
        0x12: 'casual cert',
        0x13: 'positive cert',
        0x18: 'subkey binding',
        0x19: 'primary key binding',
        0x1F: 'direct signature',
        0x20: 'key revocation',
        0x28: 'subkey revocation',
        0x30: 'certification revocation',
        0x40: 'timestamp',
        0x50: 'third-party confirmation'
    }

    subpacket_types = {
        2: SignatureCreationTimePacket,
        3: SignatureExpirationTimePacket,
        9: KeyExpirationTimePacket,
        11: PreferredSymmetricAlgorithmsPacket,
        16: IssuerPacket,
        21: PreferredHashAlgorithmsPacket,
        22: PreferredCompressionAlgorithmsPacket,
        25: PrimaryUserIDPacket,
        27: KeyFlagsPacket,
        29: ReasonforRevocationPacket,
        33: IssuerFingerprintPacket
    }

class EmbeddedSignaturePacket(SignaturePacket.Subpacket, SignaturePacket):
    """ http://tools.ietf.org/html/rfc4880#section-5.2.3.26 """
    def name(self):
        return 'Embedded Signature'

SignaturePacket.subpacket_types[32] = SignaturePacket.EmbeddedSignaturePacket = EmbeddedSignaturePacket

# Key flag bits, http://tools.ietf.org/html/rfc4880#section-5.2.3.21
FLAG_CERTIFY = 0x01
FLAG_SIGN = 0x02
FLAG_ENCRYPT_COMMUNICATIONS = 0x04
FLAG_ENCRYPT_STORAGE = 0x08

class OnePassSignaturePacket(Packet):
    """ OpenPGP One-Pass Signature packet (tag 4).
        http://tools.ietf.org/html/rfc4880#section-5.4
    """
    def __init__(self, signature_type=0, hash_algorithm=8, key_algorithm=1, key_id=0, is_last=True):
        super(OnePassSignaturePacket, self).__init__()
        self.version = 3
        self.signature_type = signature_type
        self.hash_algorithm = hash_algorithm
        self.key_algorithm = key_algorithm
        self.key_id = key_id
        self.is_last = is_last

    def read(self):
        self.version = ord(self.read_byte())
        if self.version != 3:
            raise UnsupportedError('unsupported one-pass signature version: %d' % self.version)
        self.signature_type = ord(self.read_byte())
        self.hash_algorithm = ord(self.read_byte())
        self.key_algorithm = ord(self.read_byte())
        self.key_id = _key_id_from_bytes(self.read_bytes(8))
        self.is_last = ord(self.read_byte()) != 0

    def body(self):
        return pack('!B', self.version) + pack('!B', self.signature_type) + \
            pack('!B', self.hash_algorithm) + pack('!B', self.key_algorithm) + \
            pack('!Q', self.key_id) + pack('!B', self.is_last and 1 or 0)

class PublicKeyPacket(Packet):
    """ OpenPGP Public-Key packet (tag 6).
        http://tools.ietf.org/html/rfc4880#section-5.5.1.1
        http://tools.ietf.org/html/rfc4880#section-5.5.2
        http://tools.ietf.org/html/rfc4880#section-11.1
        http://tools.ietf.org/html/rfc4880#section-12
    """
    def __init__(self, keydata=None, version=4, algorithm=1, timestamp=None):
        super(PublicKeyPacket, self).__init__()
        self._fingerprint = None
        self._raw = None
        self.version = version
        self.key_algorithm = algorithm
        self.timestamp = int(timestamp is None and time() or timestamp)
        self.v3_days_of_validity = 0
        if isinstance(keydata, tuple) or isinstance(keydata, list):
            self.key = {}
            fields = self.key_fields.get(self.key_algorithm, [])
            for i in range(0, min(len(keydata), len(fields))):
                self.key[fields[i]] = keydata[i]
        else:
            self.key = keydata or {}

    @property
    def is_subkey(self):
        return isinstance(self, PublicSubkeyPacket)

    def key_algorithm_name(self):
        return self.__class__.algorithms.get(self.key_algorithm, 'unknown')

    def curve_name(self):
        oid = self.key.get('oid')
        if oid is None:
            return None
        return self.curves.get(oid, 'unknown curve')

    def read(self):
        """ http://tools.ietf.org/html/rfc4880#section-5.5.2 """
        self.version = ord(self.read_byte())
        if self.version == 2 or self.version == 3:
            self.timestamp = self.read_timestamp()
            self.v3_days_of_validity = self.read_unpacked(2, '!H')
            self.key_algorithm = ord(self.read_byte())
        elif self.version == 4:
            self.timestamp = self.read_timestamp()
            self.key_algorithm = ord(self.read_byte())
        else:
            raise UnsupportedError('unsupported public key version: %d' % self.version)
        self._raw = self.input.getvalue()
        self.read_key_material()

    def read_key_material(self):
        self.key = {}
        if self.key_algorithm not in self.key_fields:
            self.read_bytes(self.length) # Opaque, only the fingerprint is known
            return
        for field in self.key_fields[self.key_algorithm]:
            if field == 'oid' or field == 'kdf':
                self.key[field] = self.read_bytes(ord(self.read_byte()))
            else:
                self.key[field] = self.read_mpi()

    def key_material(self):
        material = b''
        for field in self.key_fields.get(self.key_algorithm, []):
            if field == 'oid' or field == 'kdf':
                material += pack('!B', len(self.key[field])) + self.key[field]
            else:
                material += mpi(self.key[field])
        return material

    def fingerprint_material(self):
        if self.version == 2 or self.version == 3:
            return [self.key['n'].lstrip(b'\0'), self.key['e'].lstrip(b'\0')]
        body = self.body()
        return [pack('!B', 0x99), pack('!H', len(body)), body]

    def fingerprint(self):
        """ http://tools.ietf.org/html/rfc4880#section-12.2
            http://tools.ietf.org/html/rfc4880#section-3.3
        """
        if self._fingerprint:
            return self._fingerprint
        if self.version == 2 or self.version == 3:
            self._fingerprint = hashlib.md5(b''.join(self.fingerprint_material())).hexdigest().upper()
        else:
            self._fingerprint = hashlib.sha1(b''.join(self.fingerprint_material())).hexdigest().upper()
        return self._fingerprint

    @property
    def key_id(self):
        """ http://tools.ietf.org/html/rfc4880#section-12.2 """
        if self.version == 2 or self.version == 3:
            return _key_id_from_bytes(self.key.get('n', b'')[-8:].rjust(8, b'\0'))
        return int(self.fingerprint()[-16:], 16)

    def body(self):
        if self._raw is not None:
            return self._raw
        if self.version == 2 or self.version == 3:
            return b''.join([
                pack('!B', self.version), pack('!L', self.timestamp),
                pack('!H', self.v3_days_of_validity), pack('!B', self.key_algorithm),
                self.key_material()
            ])
        return b''.join([
            pack('!B', self.version), pack('!L', self.timestamp),
            pack('!B', self.key_algorithm), self.key_material()
        ])

    def signature_material(self):
        """ The key as it is hashed into certifications and key signatures
            http://tools.ietf.org/html/rfc4880#section-5.2.4
        """
        body = self.body()
        if self.version == 2 or self.version == 3:
            return pack('!B', 0x99) + pack('!H', len(body)) + body
        return b''.join(self.fingerprint_material())

    key_fields = {
        1: ['n', 'e'],              # RSA
        2: ['n', 'e'],              # RSA encrypt-only
        3: ['n', 'e'],              # RSA sign-only
       16: ['p', 'g', 'y'],         # ELG-E
       17: ['p', 'q', 'g', 'y'],    # DSA
       18: ['oid', 'point', 'kdf'], # ECDH
       19: ['oid', 'point'],        # ECDSA
       22: ['oid', 'point']         # EdDSA
    }

    algorithms = {
        1: 'RSA',
        2: 'RSA - encrypt only',
        3: 'RSA - sign only',
       16: 'ElGamal',
       17: 'DSA',
       18: 'ECDH',
       19: 'ECDSA',
       22: 'EdDSA'
    }

    # http://tools.ietf.org/html/rfc6637#section-11
    curves = {
        b'\x2A\x86\x48\xCE\x3D\x03\x01\x07': 'NIST P-256',
        b'\x2B\x81\x04\x00\x22': 'NIST P-384',
        b'\x2B\x81\x04\x00\x23': 'NIST P-521',
        b'\x2B\x24\x03\x03\x02\x08\x01\x01\x07': 'brainpoolP256r1',
        b'\x2B\x24\x03\x03\x02\x08\x01\x01\x0B': 'brainpoolP384r1',
        b'\x2B\x24\x03\x03\x02\x08\x01\x01\x0D': 'brainpoolP512r1',
        b'\x2B\x06\x01\x04\x01\xDA\x47\x0F\x01': 'Ed25519',
        b'\x2B\x06\x01\x04\x01\x97\x55\x01\x05\x01': 'Curve25519'
    }

class PublicSubkeyPacket(PublicKeyPacket):
    """ OpenPGP Public-Subkey packet (tag 14).
        http://tools.ietf.org/html/rfc4880#section-5.5.1.2
    """
    pass

class CompressedDataPacket(Packet):
    """ OpenPGP Compressed Data packet (tag 8).
        http://tools.ietf.org/html/rfc4880#section-5.6

        data holds the uncompressed packets, compressed the body as read.
    """
    # http://tools.ietf.org/html/rfc4880#section-9.3
    algorithms = {0: 'Uncompressed', 1: 'ZIP', 2: 'ZLIB', 3: 'BZip2'}

    def __init__(self, data=b'', algorithm=1):
        super(CompressedDataPacket, self).__init__(data)
        self.algorithm = algorithm
        self.compressed = None

    def read(self):
        self.algorithm = ord(self.read_byte())
        self.compressed = self.read_bytes(self.length)
        self.data = None

    def decompress(self):
        if self.data is not None:
            return self.data
        try:
            if self.algorithm == 0:
                self.data = self.compressed
            elif self.algorithm == 1:
                self.data = zlib.decompress(self.compressed, -15)
            elif self.algorithm == 2:
                self.data = zlib.decompress(self.compressed)
            elif self.algorithm == 3:
                self.data = bz2.decompress(self.compressed)
            else:
                raise DecodeError('unsupported compression algorithm: %d' % self.algorithm)
        except (zlib.error, OSError, ValueError) as e:
            raise DecodeError('invalid compressed data: %s' % e)
        return self.data

    def body(self):
        body = pack('!B', self.algorithm)
        if self.compressed is not None:
            return body + self.compressed
        if self.algorithm == 0:
            body += self.data
        elif self.algorithm == 1:
            compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -15)
            body += compressor.compress(self.data)
            body += compressor.flush()
        elif self.algorithm == 2:
            body += zlib.compress(self.data)
        elif self.algorithm == 3:
            body += bz2.compress(self.data)
        return body

class LiteralDataPacket(Packet):
    """ OpenPGP Literal Data packet (tag 11).
        http://tools.ietf.org/html/rfc4880#section-5.9
    """
    def __init__(self, data=b'', format='b', filename='', timestamp=0):
        super(LiteralDataPacket, self).__init__()
        if hasattr(data, 'encode'):
            data = data.encode('utf-8')
        self.data = data
        self.format = format
        self.filename = filename
        self.timestamp = timestamp

    @property
    def is_binary(self):
        return self.format == 'b'

    def read(self):
        self.format = self.read_byte().decode('ascii', 'replace')
        filename_length = ord(self.read_byte())
        self.filename = self.read_bytes(filename_length).decode('utf-8', 'replace')
        self.timestamp = self.read_timestamp()
        self.data = self.read_bytes(self.length)

    def body(self):
        filename = self.filename.encode('utf-8')
        return self.format.encode('ascii') + pack('!B', len(filename)) + filename + pack('!L', int(self.timestamp)) + self.data

class UserIDPacket(Packet):
    """ OpenPGP User ID packet (tag 13).
        http://tools.ietf.org/html/rfc4880#section-5.11
        http://tools.ietf.org/html/rfc2822
    """
    def __init__(self, name='', comment=None, email=None):
        super(UserIDPacket, self).__init__()
        self.name = self.comment = self.email = None
        self.text = ''
        if (not comment) and (not email):
            self.text = name
            self.parse_text()
        else:
            self.name = name
            self.comment = comment
            self.email = email
            self.text = self.__str__()

    def read(self):
        self.text = self.read_bytes(self.length).decode('utf-8', 'replace')
        self.parse_text()

    def parse_text(self):
        # User IDs of the form: "name (comment) <email>"
        parts = re.findall(r'^([^\(<]*)\(([^\)]*)\)\s*<([^>]+)>$', self.text)
        if len(parts) > 0:
            self.name = parts[0][0].strip() or None
            self.comment = parts[0][1].strip() or None
            self.email = parts[0][2].strip()
            return
        # User IDs of the form: "name <email>"
        parts = re.findall(r'^([^<]*)<([^>]+)>$', self.text)
        if len(parts) > 0:
            self.name = parts[0][0].strip() or None
            self.email = parts[0][1].strip()
            return
        # User IDs of the form: "name"
        if self.text.strip():
            self.name = self.text.strip()

    def __str__(self):
        text = []
        if self.name:
            text.append(self.name)
        if self.comment:
            text.append('(' + self.comment + ')')
        if self.email:
            text.append('<' + self.email + '>')
        if len(text) < 1:
            text = [self.text]
        return ' '.join(text)

    def body(self):
        return self.text.encode('utf-8')

Packet.tags = {
     2: SignaturePacket, # Signature Packet
     4: OnePassSignaturePacket, # One-Pass Signature Packet
     6: PublicKeyPacket, # Public-Key Packet
     8: CompressedDataPacket, # Compressed Data Packet
    11: LiteralDataPacket, # Literal Data Packet
    13: UserIDPacket, # User ID Packet
    14: PublicSubkeyPacket, # Public-Subkey Packet
}

Packet.tag_names = {
     1: 'Public-Key Encrypted Session Key Packet',
     2: 'Signature Packet',
     3: 'Symmetric-Key Encrypted Session Key Packet',
     4: 'One-Pass Signature Packet',
     5: 'Secret-Key Packet',
     6: 'Public-Key Packet',
     7: 'Secret-Subkey Packet',
     8: 'Compressed Data Packet',
     9: 'Symmetrically Encrypted Data Packet',
    10: 'Marker Packet',
    11: 'Literal Data Packet',
    12: 'Trust Packet',
    13: 'User ID Packet',
    14: 'Public-Subkey Packet',
    17: 'User Attribute Packet',
    18: 'Sym. Encrypted and Integrity Protected Data Packet',
    19: 'Modification Detection Code Packet',
    60: 'Private or Experimental Packet',
    61: 'Private or Experimental Packet',
    62: 'Private or Experimental Packet',
    63: 'Private or Experimental Packet',
}
