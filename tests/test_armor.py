import pytest

from OpenPGPInspector import armor
from OpenPGPInspector.exceptions import DecodeError

MESSAGE = """-----BEGIN PGP MESSAGE-----
Version: Test 1.0
Comment: two headers

aGVsbG8gd29ybGQ=
=%s
-----END PGP MESSAGE-----
"""

def crc_line(data):
    return armor.encode(data).splitlines()[-2][1:]

class TestDecode:
    def test_body_type_and_headers(self):
        decoded = armor.decode(MESSAGE % crc_line(b'hello world'))
        assert decoded.type == 'PGP MESSAGE'
        assert decoded.body == b'hello world'
        assert list(decoded.headers.items()) == [('Version', 'Test 1.0'), ('Comment', 'two headers')]

    def test_bytes_and_crlf(self):
        text = (MESSAGE % crc_line(b'hello world')).replace('\n', '\r\n').encode('ascii')
        assert armor.decode(text).body == b'hello world'

    def test_crc_mismatch(self):
        with pytest.raises(DecodeError, match='CRC24'):
            armor.decode(MESSAGE % crc_line(b'hello there'))

    def test_checksum_is_optional(self):
        text = "-----BEGIN PGP SIGNATURE-----\n\naGVsbG8=\n-----END PGP SIGNATURE-----\n"
        assert armor.decode(text).body == b'hello'

    def test_text_around_block(self):
        text = "leading text\n" + armor.encode(b'\x01\x02\x03', 'PUBLIC KEY BLOCK') + "trailing text\n"
        decoded = armor.decode(text)
        assert decoded.type == 'PGP PUBLIC KEY BLOCK'
        assert decoded.body == b'\x01\x02\x03'

    def test_missing_end(self):
        with pytest.raises(DecodeError, match='end not found'):
            armor.decode("-----BEGIN PGP MESSAGE-----\n\naGVsbG8=\n")

    def test_mismatched_end(self):
        with pytest.raises(DecodeError, match='does not match'):
            armor.decode("-----BEGIN PGP MESSAGE-----\n\naGVsbG8=\n-----END PGP SIGNATURE-----\n")

    def test_not_armored(self):
        assert not armor.is_armored(b'\x99\x01\x0d')
        with pytest.raises(DecodeError, match='start not found'):
            armor.decode('just text')

    def test_invalid_base64(self):
        with pytest.raises(DecodeError, match='base64'):
            armor.decode("-----BEGIN PGP MESSAGE-----\n\naGV*sbG8\n-----END PGP MESSAGE-----\n")

class TestEncode:
    def test_crc24(self):
        # Checksum of the empty string is the initial value
        assert armor.crc24(b'') == 0xB704CE

    def test_long_body_wraps(self):
        data = bytes(bytearray(range(256)))
        text = armor.encode(data, 'MESSAGE', {'Version': 'x'})
        body_lines = text.split('\n\n', 1)[1].splitlines()
        assert all(len(line) <= 64 for line in body_lines)
        assert armor.decode(text).body == data
