"""Optional gzip or zstd wrapping of an archive stream.

Archives are written and read a chunk at a time, so both directions are
exposed as stream objects with the same compress/decompress plus flush
shape as zlib's.
"""

import zlib

import zstandard as zstd

from ustarcodec import constants


GZIP_MAGIC = b'\x1f\x8b'
ZSTD_MAGIC = b'\x28\xb5\x2f\xfd'

# The USTAR magic sits inside the first header block
USTAR_MAGIC_OFFSET = 257
USTAR_MAGIC_BYTES = constants.USTAR_MAGIC.encode('ascii')
PROBE_LENGTH = USTAR_MAGIC_OFFSET + len(USTAR_MAGIC_BYTES)

SUPPORTED = (constants.COMPRESSION_GZIP, constants.COMPRESSION_ZSTD,
             constants.COMPRESSION_NONE)

DEFAULT_LEVELS = {
    constants.COMPRESSION_GZIP: 9,
    constants.COMPRESSION_ZSTD: 3,
}

# zlib writes and expects a gzip wrapper with this window size
GZIP_WBITS = 16 + zlib.MAX_WBITS


def detect_compression(data):
    """Work out how an archive is wrapped from its leading bytes.

    Args:
        data: Bytes, or a seekable file-like object whose position is left
            unchanged.

    Returns:
        COMPRESSION_GZIP or COMPRESSION_ZSTD for their magic numbers,
        COMPRESSION_NONE if a USTAR header is visible, otherwise
        COMPRESSION_UNKNOWN.
    """
    if hasattr(data, 'read'):
        if not (hasattr(data, 'seek') and data.seekable()):
            raise ValueError('Cannot detect compression on non-seekable stream')
        start = data.tell()
        head = data.read(PROBE_LENGTH)
        data.seek(start)
    else:
        head = data[:PROBE_LENGTH]

    if head.startswith(GZIP_MAGIC):
        return constants.COMPRESSION_GZIP
    if head.startswith(ZSTD_MAGIC):
        return constants.COMPRESSION_ZSTD
    if head[USTAR_MAGIC_OFFSET:] == USTAR_MAGIC_BYTES:
        return constants.COMPRESSION_NONE
    return constants.COMPRESSION_UNKNOWN


def _unsupported(compression_type):
    return ValueError('Unsupported compression type: %s' % compression_type)


class StreamingCompressor(object):
    """Compress an archive as it is written.

    With COMPRESSION_NONE chunks are passed through untouched. level
    defaults to 9 for gzip and 3 for zstd.
    """

    def __init__(self, compression_type, level=None):
        if compression_type not in SUPPORTED:
            raise _unsupported(compression_type)

        self.compression_type = compression_type
        self._level = level
        if self._level is None:
            self._level = DEFAULT_LEVELS.get(compression_type)

        self._compressor = None
        if compression_type == constants.COMPRESSION_GZIP:
            self._compressor = zlib.compressobj(
                self._level, zlib.DEFLATED, GZIP_WBITS)
        elif compression_type == constants.COMPRESSION_ZSTD:
            self._compressor = zstd.ZstdCompressor(
                level=self._level).compressobj()

    def compress(self, chunk):
        """Returns whatever compressed output is ready, possibly b''."""
        if self._compressor is None:
            return chunk
        return self._compressor.compress(chunk)

    def flush(self):
        """End the compressed stream, returning its final bytes."""
        if self._compressor is None:
            return b''
        return self._compressor.flush()


class StreamingDecompressor(object):
    """Decompress an archive as it is read."""

    def __init__(self, compression_type):
        if compression_type not in SUPPORTED:
            raise _unsupported(compression_type)

        self.compression_type = compression_type
        self._decompressor = None
        if compression_type == constants.COMPRESSION_GZIP:
            self._decompressor = zlib.decompressobj(GZIP_WBITS)
        elif compression_type == constants.COMPRESSION_ZSTD:
            self._decompressor = zstd.ZstdDecompressor().decompressobj()

    def decompress(self, chunk):
        if self._decompressor is None:
            return chunk
        return self._decompressor.decompress(chunk)

    def flush(self):
        # zstd decompression objects emit everything from decompress()
        if self.compression_type != constants.COMPRESSION_GZIP:
            return b''
        return self._decompressor.flush()


def compress_data(data, compression_type, level=None):
    compressor = StreamingCompressor(compression_type, level=level)
    return compressor.compress(data) + compressor.flush()


def decompress_data(data, compression_type):
    decompressor = StreamingDecompressor(compression_type)
    return decompressor.decompress(data) + decompressor.flush()
