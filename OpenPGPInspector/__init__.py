""" Inspect OpenPGP messages and verify the signatures in them.

    >>> from OpenPGPInspector import Inspector, Document, render
    >>> document = Document()
    >>> with Inspector() as inspector:
    ...     inspector.analyze(open('message.asc', 'rb').read(), document)
    ...     inspector.wait()
    >>> print(render(document.records))
"""

from .exceptions import (InspectorException, DecodeError, StructuralError, ResolutionError,
                         VerificationError, MissingKeyIdError, KeyNotFoundError,
                         SignatureMismatchError, UnsupportedError)
from .interpreter import Analysis, Inspector, Interpreter, VerificationContext
from .records import Document, OutputSink, Record, RecordKind
from .render import render
from .resolver import KeyCache, KeyResolver
from .stream import PacketStream
from .verifier import SignatureVerifier

__version__ = '0.1.0'
