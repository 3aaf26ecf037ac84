from datetime import datetime, timezone

from OpenPGPInspector.exceptions import SignatureMismatchError
from OpenPGPInspector.records import Named, Record, RecordKind
from OpenPGPInspector.render import format_value, hexdump, render

class TestFormatValue:
    def test_values(self):
        assert format_value(Named(8, 'SHA256')) == '8 (SHA256)'
        assert format_value(True) == 'true'
        assert format_value(65537) == '65,537'
        assert format_value(b'\xab\x01') == 'AB 01'
        assert format_value(datetime(2017, 7, 14, 2, 40, tzinfo=timezone.utc)) == '2017-07-14 02:40:00 UTC'
        assert format_value('0x0000000000ABCDEF') == '0x0000000000ABCDEF'

    def test_hexdump(self):
        assert hexdump(b'Hello, OpenPGP!\n\x00') == (
            '00000000  48 65 6c 6c 6f 2c 20 4f  70 65 6e 50 47 50 21 0a  |Hello, OpenPGP!.|\n'
            '00000010  00' + ' ' * 48 + '|.|')

class TestRender:
    def test_tree(self):
        root = Record(RecordKind.SECTION, 'Packets')
        sig = Record(RecordKind.SIGNATURE, 'Signature', fields=[('Hash Algorithm', Named(8, 'SHA256'))])
        sig.add(Record(RecordKind.KEY_LOOKUP, 'Retrieve Public Key', key_id=0x1122334455667788))
        root.add(Record.error(SignatureMismatchError('RSA verification failure')))
        root.add(Record.notice('warning: signature was not verified'))
        root.add(sig)
        assert render(root) == '\n'.join([
            'Packets',
            '  Error (SignatureMismatchError): RSA verification failure',
            '  [warning] warning: signature was not verified',
            '  Signature',
            '    Hash Algorithm: 8 (SHA256)',
            '    [Retrieve Public Key 0x1122334455667788]',
            ''])

    def test_content(self):
        data = Record(RecordKind.DATA, 'Raw Text', content='one\ntwo')
        assert render([data]) == 'Raw Text\n  one\n  two\n'
