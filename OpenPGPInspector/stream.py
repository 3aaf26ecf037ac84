# Packet stream <http://tools.ietf.org/html/rfc4880#section-4.2>

from struct import unpack
import io
import logging

from . import config
from .exceptions import DecodeError
from .packets import Packet, CompressedDataPacket

__all__ = ['PacketStream']

log = logging.getLogger(__name__)

class PacketStream(object):
    """ Forward-only sequence of packets read from a byte source.

        Compressed Data packets are never yielded: their decompressed body is
        pushed on top of the reader stack and iteration continues from it.
        When the innermost reader runs dry it is popped and the one below it
        resumes. A malformed packet raises DecodeError and ends the stream.
    """

    def __init__(self, source, max_nesting=None):
        if max_nesting is None:
            max_nesting = config.MAX_NESTING
        self.max_nesting = max_nesting
        self._readers = [_as_reader(source)]
        self._failed = False

    @property
    def depth(self):
        """ Number of nested compressed sources currently open """
        return max(len(self._readers) - 1, 0)

    def push(self, data):
        if len(self._readers) > self.max_nesting:
            raise DecodeError('compressed packets nested more than %d deep' % self.max_nesting)
        self._readers.append(_as_reader(data))
        log.debug("Entering compressed data, depth %d", self.depth)

    def __iter__(self):
        return self

    def __next__(self):
        while self._readers and not self._failed:
            reader = self._readers[-1]
            first = reader.read(1)
            if not first:
                self._readers.pop()
                if self._readers:
                    log.debug("Resuming outer stream, depth %d", self.depth)
                continue

            try:
                tag, body = self.read_packet(ord(first), reader)
                packet = Packet.parse_body(tag, body)
                if isinstance(packet, CompressedDataPacket):
                    self.push(packet.decompress())
                    continue
            except DecodeError:
                self._failed = True
                self._readers = []
                raise
            return packet
        raise StopIteration

    next = __next__

    @classmethod
    def read_packet(cls, header, reader):
        """ Returns (tag, body) for the packet whose first header octet is header """
        if not header & 0x80:
            raise DecodeError('tag byte does not have MSB set')
        if header & 0x40:
            tag = header & 63
            body = cls.read_new_format_body(reader)
        else:
            tag = (header >> 2) & 15
            body = cls.read_old_format_body(header & 3, reader)
        if tag == 0:
            raise DecodeError('packet with reserved tag 0')
        return (tag, body)

    @classmethod
    def read_new_format_body(cls, reader):
        """ Parses a new-format (RFC 4880) packet length and body.
            http://tools.ietf.org/html/rfc4880#section-4.2.2
        """
        chunks = []
        while True:
            length = ord(_read_exactly(reader, 1))
            if length < 192: # One octet length
                chunks.append(_read_exactly(reader, length))
                break
            elif length < 224: # Two octet length
                length = ((length - 192) << 8) + ord(_read_exactly(reader, 1)) + 192
                chunks.append(_read_exactly(reader, length))
                break
            elif length == 255: # Five octet length
                length = unpack('!L', _read_exactly(reader, 4))[0]
                chunks.append(_read_exactly(reader, length))
                break
            else: # Partial body length, more lengths follow
                chunks.append(_read_exactly(reader, 1 << (length & 0x1F)))
        return b''.join(chunks)

    @classmethod
    def read_old_format_body(cls, length_type, reader):
        """ Parses an old-format (PGP 2.6.x) packet length and body.
            http://tools.ietf.org/html/rfc4880#section-4.2.1
        """
        if length_type == 0: # The packet has a one-octet length.
            length = ord(_read_exactly(reader, 1))
        elif length_type == 1: # The packet has a two-octet length.
            length = unpack('!H', _read_exactly(reader, 2))[0]
        elif length_type == 2: # The packet has a four-octet length.
            length = unpack('!L', _read_exactly(reader, 4))[0]
        else: # The packet is of indeterminate length, it runs to the end of the source.
            return reader.read()
        return _read_exactly(reader, length)

def _as_reader(source):
    if hasattr(source, 'read'):
        return source
    return io.BytesIO(source)

def _read_exactly(reader, count):
    chunk = reader.read(count)
    if len(chunk) < count:
        raise DecodeError('unexpected end of packet data')
    return chunk
