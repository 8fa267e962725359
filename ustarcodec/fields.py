"""Field layout and low level field codecs for USTAR header blocks.

Every header field is described once in LAYOUT. The header codec walks that
table rather than slicing the block by hand, so offsets and widths live in
exactly one place.
"""

from collections import namedtuple

from ustarcodec import constants


# kind is one of 'str' or 'oct'. digits is only meaningful for 'oct' fields
# and is the number of significant octal digits written.
Field = namedtuple('Field', ['name', 'offset', 'length', 'kind', 'digits'])

STR = 'str'
OCT = 'oct'

LAYOUT = (
    Field('suffix', 0, 100, STR, None),
    Field('mode', 100, 8, OCT, 7),
    Field('uid', 108, 8, OCT, 7),
    Field('gid', 116, 8, OCT, 7),
    Field('size', 124, 12, OCT, 12),
    Field('mtime', 136, 12, OCT, 12),
    Field('checksum', 148, 8, OCT, 7),
    Field('linktype', 156, 1, OCT, 1),
    Field('linkdest', 157, 100, STR, None),
    Field('magic', 257, 6, STR, None),
    Field('version', 263, 2, STR, None),
    Field('user', 265, 32, STR, None),
    Field('group', 297, 32, STR, None),
    Field('major', 329, 8, OCT, 7),
    Field('minor', 337, 8, OCT, 7),
    Field('prefix', 345, 155, STR, None),
)

FIELDS = {field.name: field for field in LAYOUT}
CHECKSUM = FIELDS['checksum']
CHECKSUM_BLANK = b' ' * CHECKSUM.length


class HeaderError(Exception):
    """Base class for header encoding and decoding failures."""
    pass


class CorruptBlockError(HeaderError):
    """Raised when a block's stored checksum does not match its contents."""
    pass


class FieldOverflowError(HeaderError):
    """Raised when a string is too wide for its header field."""
    pass


class NumericOverflowError(HeaderError):
    """Raised when an integer does not fit in its octal field."""
    pass


class InvalidFieldError(HeaderError):
    """Raised when a numeric field does not contain octal text."""
    pass


def _terminate(block, field):
    raw = bytes(block[field.offset:field.offset + field.length])
    end = raw.find(b'\0')
    if end != -1:
        raw = raw[:end]
    return raw


def read_str(block, field):
    return _terminate(block, field).decode(
        constants.ENCODING, constants.ENCODING_ERRORS)


def write_str(block, field, value):
    data = value.encode(constants.ENCODING, constants.ENCODING_ERRORS)
    if len(data) > field.length:
        raise FieldOverflowError(
            '%s is %d bytes, field is %d bytes wide: %r'
            % (field.name, len(data), field.length, value))

    # A value which exactly fills the field is written without a terminator
    block[field.offset:field.offset + field.length] = \
        data.ljust(field.length, b'\0')


def read_oct(block, field):
    # Leading and trailing spaces or NULs are padding, so a checksum with
    # its leading zero or terminator blanked reads as the same value
    text = _terminate(block, field).strip(b' \0')
    if not text:
        return 0
    try:
        return int(text, 8)
    except ValueError:
        raise InvalidFieldError(
            '%s is not an octal number: %r' % (field.name, text))


def write_oct(block, field, value):
    if value < 0:
        raise NumericOverflowError(
            '%s cannot be negative: %d' % (field.name, value))

    text = '%0*o' % (field.digits, value)
    if len(text) > field.digits:
        raise NumericOverflowError(
            '%s value %d does not fit in %d octal digits'
            % (field.name, value, field.digits))

    block[field.offset:field.offset + field.length] = \
        text.encode('ascii').ljust(field.length, b'\0')


def checksum(block):
    """Sum the block's bytes with the checksum field blanked to spaces.

    The caller's block is not modified.
    """
    copy = bytearray(block)
    copy[CHECKSUM.offset:CHECKSUM.offset + CHECKSUM.length] = CHECKSUM_BLANK
    return sum(copy)
