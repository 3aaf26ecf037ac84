""" Plain text rendering of analysis records """

from datetime import datetime

from .records import Named, RecordKind

__all__ = ['render', 'hexdump', 'format_value']

INDENT = '  '

def render(records):
    """ Indented text for a record or a list of records """
    if not isinstance(records, (list, tuple)):
        records = [records]
    lines = []
    for record in records:
        _render(record, 0, lines)
    return '\n'.join(lines) + '\n'

def _render(record, depth, lines):
    pad = INDENT * depth
    lines.append(pad + _heading(record))
    for label, value in record.fields:
        lines.append('%s%s%s: %s' % (pad, INDENT, label, format_value(value)))
    if record.content is not None:
        if isinstance(record.content, bytes):
            text = hexdump(record.content)
        else:
            text = record.content
        for line in text.splitlines():
            lines.append(pad + INDENT + line)
    for child in record.children:
        _render(child, depth + 1, lines)

def _heading(record):
    if record.kind == RecordKind.ERROR:
        return 'Error (%s): %s' % (record.error_class, record.heading)
    elif record.kind == RecordKind.NOTICE:
        return '[%s] %s' % (record.status, record.heading)
    elif record.kind == RecordKind.PENDING:
        return '[pending] %s' % record.heading
    elif record.kind == RecordKind.KEY_LOOKUP:
        return '[%s 0x%016X]' % (record.heading, record.key_id)
    return record.heading

def format_value(value):
    if isinstance(value, Named):
        return '%d (%s)' % (value.value, value.name)
    elif isinstance(value, bool):
        return value and 'true' or 'false'
    elif isinstance(value, int):
        return '{:,}'.format(value)
    elif isinstance(value, bytes):
        return ' '.join('%02X' % b for b in bytearray(value))
    elif isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M:%S %Z')
    return str(value)

def hexdump(data):
    """ Offset, sixteen hex bytes and their printable characters per line """
    lines = []
    for offset in range(0, len(data), 16):
        chunk = bytearray(data[offset:offset + 16])
        hex_bytes = ['%02x' % b for b in chunk]
        left = ' '.join(hex_bytes[:8])
        right = ' '.join(hex_bytes[8:])
        text = ''.join(chr(b) if 32 <= b < 127 else '.' for b in chunk)
        lines.append('%08x  %-23s  %-23s  |%s|' % (offset, left, right, text))
    return '\n'.join(lines)
