# ASCII Armor <http://tools.ietf.org/html/rfc4880#section-6>

from struct import pack, unpack
import base64
import binascii
import struct as _struct # hide implementation details
import collections
import re
import textwrap as _textwrap # hide implementation details

from .exceptions import DecodeError

__all__ = ['Armored', 'decode', 'encode', 'crc24', 'is_armored']

Armored = collections.namedtuple('Armored', ['type', 'headers', 'body'])

_BEGIN = re.compile(r'^-----BEGIN (PGP [^-]+)-----\s*$')
_END = re.compile(r'^-----END (PGP [^-]+)-----\s*$')
_HEADER = re.compile(r'^([!-9;-~]+): ?(.*)$')

def is_armored(data):
    if hasattr(data, 'decode'):
        return b'-----BEGIN PGP ' in data
    return '-----BEGIN PGP ' in data

def decode(data):
    """ Convert the first ASCII-armored block in data into binary
        http://tools.ietf.org/html/rfc4880#section-6.2
        http://tools.ietf.org/html/rfc2045

        Returns Armored(type, headers, body). The checksum line is optional,
        but when present it has to match.
    """
    if hasattr(data, 'decode'):
        data = data.decode('utf-8', 'replace')
    lines = data.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    i = 0
    while i < len(lines) and not _BEGIN.match(lines[i].strip()):
        i += 1
    if i >= len(lines):
        raise DecodeError('armor start not found')
    armor_type = _BEGIN.match(lines[i].strip()).group(1)
    i += 1

    headers = collections.OrderedDict()
    while i < len(lines):
        line = lines[i].strip()
        match = _HEADER.match(line)
        if not line:
            i += 1
            break
        if not match:
            break # No blank line after the headers, tolerate it
        headers[match.group(1)] = match.group(2)
        i += 1

    data_lines = []
    crc = None
    while i < len(lines):
        line = lines[i].strip()
        end = _END.match(line)
        if end:
            if end.group(1) != armor_type:
                raise DecodeError('armor end does not match start: ' + end.group(1))
            break
        if line.startswith('=') and len(line) == 5:
            crc = line[1:]
        elif line:
            data_lines.append(line)
        i += 1
    else:
        raise DecodeError('armor end not found')

    try:
        body = base64.b64decode(''.join(data_lines).encode('ascii'), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError('invalid base64 in armor: ' + str(e))

    if crc is not None:
        try:
            expected = unpack('!L', b'\0' + base64.b64decode(crc.encode('ascii'), validate=True))[0]
        except (binascii.Error, ValueError, _struct.error):
            raise DecodeError('CRC24 check failed')
        if crc24(body) != expected:
            raise DecodeError('CRC24 check failed')

    return Armored(armor_type, headers, body)

def crc24(data):
    """
        http://tools.ietf.org/html/rfc4880#section-6
        http://tools.ietf.org/html/rfc4880#section-6.1
    """
    crc = 0x00b704ce
    for byte in bytearray(data):
        crc ^= byte << 16
        for j in range(0, 8):
            crc <<= 1
            if (crc & 0x01000000):
                crc ^= 0x01864cfb
    return crc & 0x00ffffff

def encode(data, marker='PUBLIC KEY BLOCK', headers=None, lineWidth=64):
    """
    @see http://tools.ietf.org/html/rfc4880#section-6.2 OpenPGP Message Format / Ascii Armor

    @param data: binary data to encode
    @type  data: bytes

    @param marker: MESSAGE, PUBLIC KEY BLOCK, SIGNATURE, ...
    @type  marker: str

    @param headers: key value, e.g {'Version' : 'GnuPG v2.0.22 (MingW32)'}
    @type  headers: None | dict | [(str, str)]

    @param lineWidth: GnuPG uses 64, RFC4880 limits to 76
    @type  lineWidth: int

    @rtype: str
    """

    def _iter_encode():
        yield '-----BEGIN PGP ' + str(marker).upper() + '-----'
        if hasattr(headers, 'items'):
            headerItems = sorted(headers.items())
        else:
            headerItems = list(headers or []) # already list of key-value pairs
        for (key, value) in headerItems:
            yield "%s: %s" % (key, value)
        yield '' # empty line

        text = base64.b64encode(data).decode('ascii')
        for line in _textwrap.wrap(text, width=lineWidth):
            yield line
        # take only the last 3 bytes of the big-endian 32 bit sum
        crc_bytes = pack('>L', crc24(data))[1:]
        yield '=' + base64.b64encode(crc_bytes).decode('ascii')
        yield '-----END PGP ' + str(marker).upper() + '-----'
        yield '' # final line break

    return "\n".join(_iter_encode())
