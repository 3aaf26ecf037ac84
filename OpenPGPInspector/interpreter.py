""" Packet-stream interpreter.

    One pass over the packets of a message, in arrival order. Every packet
    becomes a record; along the way the interpreter keeps track of which
    hash is accumulating signed data and which key and user ID a signature
    would be about, and asks the SignatureVerifier for a verdict.

    An Analysis is one such pass bound to an output sink. It owns the
    cancellation signal that background verifications check before they
    write into the sink. The Inspector is the session: resolver, verifier
    and the thread pool those background verifications run on.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
import collections
import concurrent.futures
import functools
import logging
import threading
import time
import weakref

from . import armor
from . import config
from . import hashing
from .exceptions import (DecodeError, MissingKeyIdError, ResolutionError,
                         StructuralError, UnsupportedError)
from .packets import (FLAG_CERTIFY, FLAG_ENCRYPT_COMMUNICATIONS, FLAG_ENCRYPT_STORAGE, FLAG_SIGN,
                      CompressedDataPacket, LiteralDataPacket, OnePassSignaturePacket,
                      Packet, PublicKeyPacket, PublicSubkeyPacket, SignaturePacket,
                      UnknownPacket, UserIDPacket, format_key_id)
from .records import WARNING, Named, Record, RecordKind
from .resolver import KeyResolver
from .stream import PacketStream
from .verifier import SignatureVerifier

__all__ = ['VerificationContext', 'PendingHash', 'Interpreter', 'Analysis', 'Inspector']

log = logging.getLogger(__name__)

BINARY = 0x00
TEXT = 0x01

# A running one-pass hash and the One-Pass Signature packet that started it
PendingHash = collections.namedtuple('PendingHash', ['hasher', 'one_pass'])

class VerificationContext(object):
    """ What the next Signature packet would be checked against.
        A pending one-pass hash and a public key in scope exclude each other.
    """
    def __init__(self):
        self.pending_hash = None
        self.current_public_key = None
        self.current_user_id = None

class Interpreter(object):
    """ Turns packets into records and signatures into verdicts.

        With an analysis, key and identity signatures are checked in the
        background and answered with a placeholder; without one they are
        checked on the spot.
    """
    def __init__(self, verifier, analysis=None):
        self.verifier = verifier
        self.analysis = analysis
        self.context = VerificationContext()

    def read_input(self, data, heading=None):
        """ Root record for armored or binary data """
        if armor.is_armored(data):
            return self.read_armored(data, heading or 'ASCII Armor')
        if hasattr(data, 'encode'):
            data = data.encode('utf-8')
        return self.read_body(data, heading or 'Packets')

    def read_armored(self, data, heading):
        outer = Record(RecordKind.SECTION, heading)
        try:
            armored = armor.decode(data)
        except DecodeError as e:
            outer.add(Record.error(e))
            return outer

        outer.row('Type', armored.type)
        if armored.headers:
            outer.add(Record(RecordKind.SECTION, 'Headers', fields=armored.headers.items()))
        outer.add(self.read_body(armored.body, 'Packets'))
        return outer

    def read_body(self, source, heading):
        outer = Record(RecordKind.SECTION, heading)
        try:
            for packet in PacketStream(source):
                for record in self.interpret(packet):
                    outer.add(record)
        except DecodeError as e:
            outer.add(Record.error(e))
        return outer

    def interpret(self, packet):
        """ Records for one packet: verdicts and diagnostics, then the packet itself """
        return self.handlers[type(packet)](self, packet)

    def on_literal_data(self, p):
        if self.context.pending_hash is not None:
            self.context.pending_hash.hasher.update(p.data)
        return [self.literal_data_record(p)]

    def on_one_pass_signature(self, p):
        records = []
        ctx = self.context
        if ctx.current_public_key is not None:
            records.append(Record.error(StructuralError('unexpected OnePassSignature')))
            ctx.current_public_key = None
            ctx.current_user_id = None
        elif ctx.pending_hash is not None:
            records.append(Record.error(StructuralError('already processing OnePassSignature')))
        elif p.signature_type != BINARY and p.signature_type != TEXT:
            records.append(Record.error(StructuralError('unhandled OnePassSignature type: %d' % p.signature_type)))
        else:
            try:
                if p.signature_type == TEXT:
                    hasher = hashing.CanonicalTextHasher(p.hash_algorithm)
                else:
                    hasher = hashing.Hasher(p.hash_algorithm)
            except UnsupportedError as e:
                records.append(Record.error(e))
            else:
                ctx.pending_hash = PendingHash(hasher, p)
        records.append(self.one_pass_signature_record(p))
        return records

    def on_public_key(self, p):
        records = []
        if self.context.pending_hash is not None:
            records.append(Record.error(StructuralError('unexpected public key')))
        else:
            self.context.current_public_key = p
            self.context.current_user_id = None
        records.append(self.public_key_record(p))
        return records

    def on_signature(self, p):
        ctx = self.context
        if ctx.pending_hash is not None:
            pending, ctx.pending_hash = ctx.pending_hash, None
            verdict = self.verifier.verify_one_pass(p, pending)
        elif ctx.current_public_key is not None:
            verdict = self.check_bound_signature(p, ctx.current_public_key, ctx.current_user_id)
        else:
            verdict = self.unbound_verdict(p)
        return [verdict, self.signature_record(p)]

    def on_user_id(self, p):
        if self.context.current_public_key is not None:
            self.context.current_user_id = p
        return [self.user_id_record(p)]

    def on_unknown(self, p):
        if p.reason:
            e = UnsupportedError('unhandled %s (tag %d): %s' % (p.name(), p.tag, p.reason))
            if Packet.tags.get(p.tag) in (PublicKeyPacket, PublicSubkeyPacket):
                # Signatures that follow belong to the key we could not read
                self.context.current_public_key = None
                self.context.current_user_id = None
        else:
            e = StructuralError('unhandled packet type: %s (tag %d)' % (p.name(), p.tag))
        return [Record.error(e), Record(RecordKind.DATA, p.name(), content=p.data)]

    def check_bound_signature(self, sig, public_key, user_id):
        if sig.issuer_key_id is None:
            return Record.error(MissingKeyIdError())
        if self.analysis is None:
            return self.verifier.check_bound_signature(sig, public_key, user_id)
        placeholder = Record.pending('Checking signature...')
        self.analysis.submit(placeholder.id, self.verifier.check_bound_signature, sig, public_key, user_id)
        return placeholder

    @classmethod
    def unbound_verdict(cls, sig):
        """ A signature with nothing in scope to check it against """
        if sig.issuer_key_id is None:
            return Record.error(MissingKeyIdError())
        return Record.notice('warning: signature was not verified', WARNING)

    def key_lookup_record(self, key_id):
        record = Record(RecordKind.KEY_LOOKUP, 'Retrieve Public Key', key_id=key_id)
        if self.analysis is not None:
            self.analysis.register_lookup(record)
        return record

    def literal_data_record(self, p):
        outer = Record(RecordKind.LITERAL_DATA, 'Literal Data')
        if p.filename:
            outer.row('File Name', p.filename)
        if p.timestamp:
            outer.row('Timestamp', _utc(p.timestamp))
        if p.is_binary:
            outer.add(Record(RecordKind.DATA, 'Binary Data', content=p.data))
        else:
            outer.add(Record(RecordKind.DATA, 'Raw Text', content=p.data.decode('utf-8', 'replace')))
        return outer

    def one_pass_signature_record(self, p):
        outer = Record(RecordKind.ONE_PASS_SIGNATURE, 'One Pass Signature')
        outer.row('Signature Type', Named(p.signature_type, SignaturePacket.signature_types.get(p.signature_type, 'unknown')))
        outer.row('Hash Algorithm', Named(p.hash_algorithm, SignaturePacket.hash_algorithms.get(p.hash_algorithm, 'unknown')))
        outer.row('Public Key Algorithm', Named(p.key_algorithm, PublicKeyPacket.algorithms.get(p.key_algorithm, 'unknown')))
        outer.row('Key ID', format_key_id(p.key_id))
        outer.row('Is Last', p.is_last)
        outer.add(self.key_lookup_record(p.key_id))
        return outer

    def public_key_record(self, p):
        outer = Record(RecordKind.PUBLIC_KEY, 'Public Key')
        outer.row('Creation Time', _utc(p.timestamp))
        outer.row('Public Key Algorithm', Named(p.key_algorithm, p.key_algorithm_name()))
        outer.row('Fingerprint', bytes.fromhex(p.fingerprint()))
        outer.row('Key ID', format_key_id(p.key_id))
        outer.row('Is Subkey', p.is_subkey)
        outer.add(self.key_parameters_record(p))
        return outer

    def key_parameters_record(self, p):
        key = p.key
        if p.key_algorithm in (1, 2, 3):
            return Record(RecordKind.KEY_PARAMETERS, 'RSA Key', fields=[
                ('Modulus', _int(key['n'])),
                ('Exponent', _int(key['e']))])
        elif p.key_algorithm == 17:
            return Record(RecordKind.KEY_PARAMETERS, 'DSA Key', fields=[
                ('P', _int(key['p'])), ('Q', _int(key['q'])),
                ('G', _int(key['g'])), ('Y', _int(key['y']))])
        elif p.key_algorithm == 16:
            return Record(RecordKind.KEY_PARAMETERS, 'ElGamal Key', fields=[
                ('P', _int(key['p'])), ('G', _int(key['g'])), ('Y', _int(key['y']))])
        elif p.key_algorithm in (18, 19, 22):
            return Record(RecordKind.KEY_PARAMETERS, '%s Key' % p.key_algorithm_name(), fields=[
                ('Curve', p.curve_name()),
                ('Point', key['point'])])
        return Record.error(UnsupportedError('unhandled public key type: %s' % p.key_algorithm_name()))

    def signature_record(self, p, heading='Signature'):
        outer = Record(RecordKind.SIGNATURE, heading)
        outer.row('Signature Type', Named(p.signature_type, p.signature_type_name()))
        outer.row('Public Key Algorithm', Named(p.key_algorithm, p.key_algorithm_name()))
        outer.row('Hash Algorithm', Named(p.hash_algorithm, p.hash_algorithm_name()))
        if p.hash_suffix:
            outer.add(Record(RecordKind.DATA, 'Extra Data to Hash', content=p.hash_suffix))
        outer.row('First Two Bytes of Hash', p.hash_tag)
        if p.creation_time is not None:
            outer.row('Creation Time', _utc(p.creation_time))
        if p.issuer_key_id is not None:
            outer.row('Issuer Key ID', format_key_id(p.issuer_key_id))
            outer.add(self.key_lookup_record(p.issuer_key_id))

        if p.flags is not None:
            outer.row('Flags', ', '.join(_flag_names(p.flags)))

        self.add_optional_rows(outer, p)

        embedded = p.embedded_signature
        if embedded is not None:
            inner = self.signature_record(embedded, 'Embedded Signature')
            inner.children.insert(0, self.unbound_verdict(embedded))
            outer.add(inner)
        return outer

    def add_optional_rows(self, outer, p):
        sub = p.subpacket(SignaturePacket.SignatureExpirationTimePacket)
        if sub is not None:
            outer.row('Signature Lifetime', '%d seconds' % sub.data)
        sub = p.subpacket(SignaturePacket.KeyExpirationTimePacket)
        if sub is not None:
            outer.row('Key Lifetime', '%d seconds' % sub.data)
        sub = p.subpacket(SignaturePacket.PreferredSymmetricAlgorithmsPacket)
        if sub is not None:
            outer.row('Preferred Symmetric Algorithms', ', '.join(str(a) for a in sub.data))
        sub = p.subpacket(SignaturePacket.PreferredHashAlgorithmsPacket)
        if sub is not None:
            outer.row('Preferred Hash Algorithms', ', '.join(
                SignaturePacket.hash_algorithms.get(a, str(a)) for a in sub.data))
        sub = p.subpacket(SignaturePacket.PreferredCompressionAlgorithmsPacket)
        if sub is not None:
            outer.row('Preferred Compression Algorithms', ', '.join(
                CompressedDataPacket.algorithms.get(a, str(a)) for a in sub.data))
        sub = p.subpacket(SignaturePacket.PrimaryUserIDPacket)
        if sub is not None:
            outer.row('Is Primary ID', sub.data)
        sub = p.subpacket(SignaturePacket.ReasonforRevocationPacket)
        if sub is not None:
            outer.row('Revocation Reason', sub.code)
            if sub.data:
                outer.row('Revocation Reason Text', sub.data)
        sub = p.subpacket(SignaturePacket.IssuerFingerprintPacket)
        if sub is not None:
            outer.row('Issuer Fingerprint', sub.fingerprint)

    def user_id_record(self, p):
        outer = Record(RecordKind.USER_ID, 'User ID')
        if p.text != str(UserIDPacket(p.name or '', p.comment, p.email)):
            outer.row('ID', p.text)
        if p.name:
            outer.row('Name', p.name)
        if p.comment:
            outer.row('Comment', p.comment)
        if p.email:
            outer.row('Email', p.email)
        return outer

    handlers = {
        LiteralDataPacket: on_literal_data,
        OnePassSignaturePacket: on_one_pass_signature,
        PublicKeyPacket: on_public_key,
        PublicSubkeyPacket: on_public_key,
        SignaturePacket: on_signature,
        UserIDPacket: on_user_id,
        UnknownPacket: on_unknown
    }

def _check_handlers():
    # Compressed Data is expanded by PacketStream and never reaches the interpreter
    expected = set(Packet.tags.values()) | set([UnknownPacket])
    expected.discard(CompressedDataPacket)
    missing = expected - set(Interpreter.handlers)
    if missing:
        raise TypeError('no interpreter handler for %s' % ', '.join(sorted(c.__name__ for c in missing)))

_check_handlers()

_FLAG_NAMES = [(FLAG_CERTIFY, 'certify'), (FLAG_SIGN, 'sign'),
               (FLAG_ENCRYPT_COMMUNICATIONS, 'encrypt communications'), (FLAG_ENCRYPT_STORAGE, 'encrypt storage')]

def _flag_names(flags):
    bits = 0
    for f in flags:
        bits |= f
    return [name for bit, name in _FLAG_NAMES if bits & bit]

def _utc(timestamp):
    return datetime.fromtimestamp(timestamp, timezone.utc)

def _int(b):
    return int.from_bytes(b, byteorder='big', signed=False)

class Analysis(object):
    """ One interpreting pass over one input, writing into sink.

        Records are built first and handed to the sink by publish().
        Background verdicts that finish before that are held and flushed
        on publish; after cancel() they are dropped.
    """
    def __init__(self, inspector, sink):
        self.sink = sink
        self.verifier = inspector.verifier
        self.cancelled = threading.Event()
        self.records = []
        self._inspector = inspector
        self._lock = threading.Lock()
        self._published = False
        self._held = []
        self._lookups = {}

    def run(self, data, heading=None):
        interpreter = Interpreter(self.verifier, self)
        self.records.append(interpreter.read_input(data, heading))
        self.publish()
        return self.records[0]

    def publish(self):
        with self._lock:
            if self.cancelled.is_set() or self._published:
                return
            for record in self.records:
                self.sink.emit(record)
            self._published = True
            held, self._held = self._held, []
            for placeholder_id, record in held:
                self._replace(placeholder_id, record)

    def cancel(self):
        with self._lock:
            self.cancelled.set()
            self._held = []

    def attach(self, placeholder_id, record):
        """ Deliver a background result for the placeholder record.
            Returns False when the result was dropped.
        """
        with self._lock:
            if self.cancelled.is_set():
                log.debug("Dropping result for record %d, analysis cancelled", placeholder_id)
                return False
            if not self._published:
                self._held.append((placeholder_id, record))
                return True
            return self._replace(placeholder_id, record)

    def _replace(self, placeholder_id, record):
        if not self.sink.replace(placeholder_id, record):
            log.debug("Record %d is no longer in the output", placeholder_id)
            return False
        return True

    def submit(self, placeholder_id, fn, *args):
        """ Run fn(*args) in the background and attach the record it returns """
        ref = weakref.ref(self)
        cancelled = self.cancelled

        def task():
            if cancelled.is_set():
                log.debug("Skipping work for record %d, analysis cancelled", placeholder_id)
                return
            record = fn(*args)
            analysis = ref()
            if analysis is None:
                log.debug("Dropping result for record %d, analysis is gone", placeholder_id)
                return
            analysis.attach(placeholder_id, record)

        return self._inspector.submit(task)

    def register_lookup(self, record):
        with self._lock:
            self._lookups[record.id] = record.key_id

    def lookups(self):
        with self._lock:
            return dict(self._lookups)

    def retrieve_public_key(self, record_id):
        """ Fetch the key behind a KEY_LOOKUP record and show it in its place """
        with self._lock:
            key_id = self._lookups.pop(record_id, None)
        if key_id is None:
            raise KeyError('no key lookup with record id %d' % record_id)
        log.debug("Retrieving public key %s", format_key_id(key_id))
        return self.submit(record_id, functools.partial(_retrieved_key_record, self.verifier, key_id))

def _retrieved_key_record(verifier, key_id):
    try:
        payload = verifier.resolver.resolve(key_id)
    except ResolutionError as e:
        return Record.error(e)
    return Interpreter(verifier).read_input(payload, 'Retrieved Public Key')

class Inspector(object):
    """ Analyses messages, one at a time, into an output sink.

        >>> with Inspector() as inspector:
        ...     inspector.analyze(message, document)
        ...     inspector.wait()
    """
    def __init__(self, resolver=None, max_workers=None):
        self._owns_resolver = resolver is None
        self.resolver = resolver or KeyResolver()
        self.verifier = SignatureVerifier(self.resolver)
        self._executor = ThreadPoolExecutor(max_workers=max_workers or config.BACKGROUND_WORKERS,
                                            thread_name_prefix='openpgp-inspector')
        self._lock = threading.Lock()
        self._futures = set()
        self.current = None

    def analyze(self, data, sink, heading=None):
        """ Start a new analysis of data, abandoning the previous one """
        analysis = Analysis(self, sink)
        with self._lock:
            previous, self.current = self.current, analysis
        if previous is not None:
            previous.cancel()
        analysis.run(data, heading)
        return analysis

    def submit(self, fn):
        future = self._executor.submit(fn)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._done)
        return future

    def _done(self, future):
        with self._lock:
            self._futures.discard(future)
        if not future.cancelled() and future.exception() is not None:
            log.error("Background verification failed", exc_info=future.exception())

    def wait(self, timeout=None):
        """ Block until background work is finished.
            Returns False if some was still running after timeout seconds.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = set(f for f in self._futures if not f.done())
            if not pending:
                return True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            concurrent.futures.wait(pending, timeout=remaining)

    def close(self):
        if self.current is not None:
            self.current.cancel()
        self._executor.shutdown(wait=True)
        if self._owns_resolver:
            self.resolver.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
