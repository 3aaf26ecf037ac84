""" Semantic output of an analysis.

    The interpreter writes Records into an OutputSink and never looks at how
    they are shown. A Record is a heading, a list of (label, value) rows and
    child records; background verification later swaps a PENDING record for
    its verdict with OutputSink.replace.
"""

from abc import ABC, abstractmethod
import collections
import enum
import itertools
import threading

__all__ = ['RecordKind', 'Record', 'Named', 'OutputSink', 'Document']

_ids = itertools.count(1)

class RecordKind(enum.Enum):
    SECTION = 'section'
    LITERAL_DATA = 'literal data'
    DATA = 'data'
    ONE_PASS_SIGNATURE = 'one-pass signature'
    PUBLIC_KEY = 'public key'
    KEY_PARAMETERS = 'key parameters'
    SIGNATURE = 'signature'
    USER_ID = 'user id'
    NOTICE = 'notice'
    ERROR = 'error'
    PENDING = 'pending'
    KEY_LOOKUP = 'key lookup'

# A numeric field value with its meaning, shown as "8 (SHA256)"
Named = collections.namedtuple('Named', ['value', 'name'])

# NOTICE statuses
GOOD = 'good'
WARNING = 'warning'

class Record(object):
    def __init__(self, kind, heading, fields=None, children=None, status=None, error_class=None, key_id=None, content=None):
        self.id = next(_ids)
        self.kind = kind
        self.heading = heading
        self.fields = list(fields or [])
        self.children = list(children or [])
        self.status = status
        self.error_class = error_class
        self.key_id = key_id
        self.content = content # bytes for hex dumps, str for text blocks

    @classmethod
    def error(cls, exc):
        """ ERROR record for an exception, tagged with its class name """
        return cls(RecordKind.ERROR, str(exc), error_class=type(exc).__name__)

    @classmethod
    def notice(cls, message, status=WARNING):
        return cls(RecordKind.NOTICE, message, status=status)

    @classmethod
    def pending(cls, message):
        return cls(RecordKind.PENDING, message)

    def row(self, label, value):
        self.fields.append((label, value))
        return self

    def add(self, record):
        self.children.append(record)
        return record

    def field(self, label):
        for l, value in self.fields:
            if l == label:
                return value
        return None

    def walk(self):
        """ This record and all its descendants, depth first """
        yield self
        for child in self.children:
            for r in child.walk():
                yield r

    def find(self, predicate):
        for r in self.walk():
            if predicate(r):
                return r
        return None

    def __repr__(self):
        return '<Record %d %s %r>' % (self.id, self.kind.name, self.heading)

class OutputSink(ABC):
    @abstractmethod
    def emit(self, record):
        """ Append a top-level record """

    @abstractmethod
    def replace(self, placeholder_id, record):
        """ Put record where the record with id placeholder_id is.
            Returns False when that record is not (or no longer) present.
        """

class Document(OutputSink):
    """ In-memory sink holding the record tree of the latest analysis """
    def __init__(self):
        self.records = []
        self._lock = threading.RLock()

    def emit(self, record):
        with self._lock:
            self.records.append(record)

    def replace(self, placeholder_id, record):
        with self._lock:
            return _replace_in(self.records, placeholder_id, record)

    def clear(self):
        with self._lock:
            self.records = []

    def walk(self):
        with self._lock:
            records = list(self.records)
        for record in records:
            for r in record.walk():
                yield r

    def find(self, predicate):
        for r in self.walk():
            if predicate(r):
                return r
        return None

    def find_all(self, predicate):
        return [r for r in self.walk() if predicate(r)]

def _replace_in(records, placeholder_id, record):
    for i, r in enumerate(records):
        if r.id == placeholder_id:
            records[i] = record
            return True
        if _replace_in(r.children, placeholder_id, record):
            return True
    return False
