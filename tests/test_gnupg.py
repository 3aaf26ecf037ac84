import io
import os.path

from OpenPGPInspector import armor
from OpenPGPInspector.interpreter import Interpreter
from OpenPGPInspector.packets import PublicKeyPacket
from OpenPGPInspector.records import RecordKind
from OpenPGPInspector.stream import PacketStream
from OpenPGPInspector.verifier import SignatureVerifier

RITA = 0xAEA9BE45BC7905AE
EDDIE = 0x4746DA4E2B83F4A0
EDDIE_SIGNING = 0x9CC28055B2DCA161

# Well framed Signature packet in version 5, which is not decoded
V5_SIGNATURE = b'\xc2\x08\x05\x13\x16\x0a\x00\x00\x00\x00'

def data(path):
    return open(os.path.dirname(__file__) + '/data/' + path, 'rb').read()

def publish(keyserver, payload):
    """ Serve payload under the ID of every key in it """
    body = armor.is_armored(payload) and armor.decode(payload).body or payload
    for packet in PacketStream(body):
        if isinstance(packet, PublicKeyPacket):
            keyserver.add(packet.key_id, payload)

def verdicts(root):
    found = []
    for r in root.walk():
        if r.kind == RecordKind.NOTICE:
            found.append(r.heading)
        elif r.kind == RecordKind.ERROR:
            found.append(r.error_class)
    return found

def with_v5_signature(path):
    """ The key in path with a version 5 signature right after the primary key """
    body = armor.decode(data(path)).body
    reader = io.BytesIO(body)
    next(PacketStream(reader))
    split = reader.tell()
    return body[:split] + V5_SIGNATURE + body[split:]

class TestGnuPGMessages:
    def oneMessage(self, keyserver, resolver, key, path):
        publish(keyserver, data(key))
        root = Interpreter(SignatureVerifier(resolver)).read_input(data(path))
        assert verdicts(root) == ['Signature is Valid']
        return root

    def test_compressed_rsa(self, keyserver, resolver):
        root = self.oneMessage(keyserver, resolver, 'rsa.key.asc', 'rsa-binary.gpg')
        assert root.find(lambda r: r.kind == RecordKind.ONE_PASS_SIGNATURE).field('Key ID') == '0x%016X' % RITA

    def test_textmode_signed_by_subkey(self, keyserver, resolver):
        root = self.oneMessage(keyserver, resolver, 'ed25519-subkey.key.asc', 'ed25519-textmode.asc')
        assert root.heading == 'ASCII Armor'
        assert root.find(lambda r: r.heading == 'Raw Text').content == 'first line\r\nsecond line\r\n\r\nlast line\r\n'
        assert [r.url.params['search'] for r in keyserver.requests] == ['0x%016X' % EDDIE_SIGNING]

    def test_uncompressed_ed25519(self, keyserver, resolver):
        self.oneMessage(keyserver, resolver, 'ed25519-subkey.key.asc', 'ed25519-uncompressed.gpg')

    def test_tampered_message(self, keyserver, resolver):
        publish(keyserver, data('ed25519-subkey.key.asc'))
        message = data('ed25519-uncompressed.gpg').replace(b'Binary message', b'Binary massage')
        root = Interpreter(SignatureVerifier(resolver)).read_input(message)
        assert verdicts(root) == ['SignatureMismatchError']

class TestGnuPGKeys:
    def test_rsa_key(self, keyserver, resolver):
        publish(keyserver, data('rsa.key.asc'))
        root = Interpreter(SignatureVerifier(resolver)).read_input(data('rsa.key.asc'))
        assert verdicts(root) == ['Signature is Valid']
        user_id = root.find(lambda r: r.kind == RecordKind.USER_ID)
        assert user_id.field('Email') == 'rita@example.com'

    def test_key_with_signing_subkey(self, keyserver, resolver):
        publish(keyserver, data('ed25519-subkey.key.asc'))
        root = Interpreter(SignatureVerifier(resolver)).read_input(data('ed25519-subkey.key.asc'))
        # Certification, subkey binding with its back signature, and the embedded notice
        assert verdicts(root) == ['Signature is Valid', 'Signature is Valid',
                                  'warning: signature was not verified']
        subkey = root.find(lambda r: r.kind == RecordKind.PUBLIC_KEY and r.field('Is Subkey'))
        assert subkey.field('Key ID') == '0x%016X' % EDDIE_SIGNING
        assert subkey.children[0].field('Curve') == 'Ed25519'

class TestUnsupportedVersions:
    def test_pass_continues_after_v5_signature(self, keyserver, resolver):
        publish(keyserver, data('ed25519-subkey.key.asc'))
        root = Interpreter(SignatureVerifier(resolver)).read_input(with_v5_signature('ed25519-subkey.key.asc'))
        assert [r.kind for r in root.children] == [
            RecordKind.PUBLIC_KEY, RecordKind.ERROR, RecordKind.DATA, RecordKind.USER_ID,
            RecordKind.NOTICE, RecordKind.SIGNATURE, RecordKind.PUBLIC_KEY,
            RecordKind.NOTICE, RecordKind.SIGNATURE]
        error = root.children[1]
        assert error.error_class == 'UnsupportedError'
        assert error.heading == 'unhandled Signature Packet (tag 2): unsupported signature version: 5'
        assert verdicts(root)[1:] == ['Signature is Valid', 'Signature is Valid',
                                      'warning: signature was not verified']

    def test_subkey_found_past_v5_signature(self, keyserver, resolver):
        payload = with_v5_signature('ed25519-subkey.key.asc')
        keyserver.add(EDDIE_SIGNING, payload)
        verifier = SignatureVerifier(resolver)
        assert verifier.find_key(EDDIE_SIGNING).is_subkey
        root = Interpreter(verifier).read_input(data('ed25519-textmode.asc'))
        assert verdicts(root) == ['Signature is Valid']
