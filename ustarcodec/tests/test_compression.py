"""Tests for stream compression and its detection."""

import gzip
import io
import unittest

import zstandard as zstd

from ustarcodec import compression
from ustarcodec import constants
from ustarcodec.header import TarHeader


def _plain_archive():
    return TarHeader('file.txt').encode() + constants.END_OF_ARCHIVE


class TestDetectCompression(unittest.TestCase):

    def test_gzip(self):
        """gzip is recognised by its magic number."""
        self.assertEqual(
            constants.COMPRESSION_GZIP,
            compression.detect_compression(gzip.compress(_plain_archive())))

    def test_zstd(self):
        """zstd is recognised by its magic number."""
        packed = zstd.ZstdCompressor().compress(_plain_archive())
        self.assertEqual(constants.COMPRESSION_ZSTD,
                         compression.detect_compression(packed))

    def test_uncompressed_archive(self):
        """A plain archive is recognised by its USTAR magic."""
        self.assertEqual(constants.COMPRESSION_NONE,
                         compression.detect_compression(_plain_archive()))

    def test_file_position_is_kept(self):
        """Detection reads from and restores the current position."""
        buf = io.BytesIO(b'junk' + gzip.compress(b'payload'))
        buf.seek(4)
        self.assertEqual(constants.COMPRESSION_GZIP,
                         compression.detect_compression(buf))
        self.assertEqual(4, buf.tell())

    def test_uncompressed_archive_file(self):
        """A plain archive file is detected and rewound."""
        buf = io.BytesIO(_plain_archive())
        self.assertEqual(constants.COMPRESSION_NONE,
                         compression.detect_compression(buf))
        self.assertEqual(0, buf.tell())

    def test_unrecognised(self):
        """Short or unrelated data is reported as unknown."""
        for data in (b'', b'x', b'plain text, not an archive'):
            self.assertEqual(constants.COMPRESSION_UNKNOWN,
                             compression.detect_compression(data))

    def test_header_without_magic(self):
        """A block without the USTAR magic is not assumed to be tar."""
        block = bytearray(_plain_archive())
        block[257:262] = b'gnutr'
        self.assertEqual(constants.COMPRESSION_UNKNOWN,
                         compression.detect_compression(bytes(block)))

    def test_unseekable_stream(self):
        """Detection needs to be able to rewind the stream."""
        class Pipe(object):
            def read(self, size=-1):
                return b''

        self.assertRaises(
            ValueError, compression.detect_compression, Pipe())


class TestStreams(unittest.TestCase):

    def test_gzip_output_is_standard(self):
        """Streamed gzip output is readable by the gzip module."""
        compressor = compression.StreamingCompressor(
            constants.COMPRESSION_GZIP)
        packed = b''.join(
            compressor.compress(block)
            for block in (b'a' * 512, b'b' * 512, b'\0' * 1024))
        packed += compressor.flush()
        self.assertEqual(b'a' * 512 + b'b' * 512 + b'\0' * 1024,
                         gzip.decompress(packed))

    def test_gzip_input_in_small_chunks(self):
        """gzip input may arrive in arbitrarily small pieces."""
        payload = _plain_archive()
        packed = gzip.compress(payload)

        decompressor = compression.StreamingDecompressor(
            constants.COMPRESSION_GZIP)
        out = b''
        for i in range(0, len(packed), 5):
            out += decompressor.decompress(packed[i:i + 5])
        out += decompressor.flush()
        self.assertEqual(payload, out)

    def test_zstd_output_is_standard(self):
        """Streamed zstd output is a standard zstd frame."""
        payload = _plain_archive()
        packed = compression.compress_data(
            payload, constants.COMPRESSION_ZSTD)
        self.assertEqual(
            payload,
            zstd.ZstdDecompressor().decompress(
                packed, max_output_size=len(payload)))
        self.assertEqual(
            payload,
            compression.decompress_data(packed, constants.COMPRESSION_ZSTD))

    def test_none_is_passthrough(self):
        """No compression returns data unchanged."""
        self.assertEqual(
            b'abc',
            compression.compress_data(b'abc', constants.COMPRESSION_NONE))
        self.assertEqual(
            b'abc',
            compression.decompress_data(b'abc', constants.COMPRESSION_NONE))

    def test_default_levels(self):
        """Levels default to 9 for gzip and 3 for zstd."""
        self.assertEqual(9, compression.StreamingCompressor(
            constants.COMPRESSION_GZIP)._level)
        self.assertEqual(3, compression.StreamingCompressor(
            constants.COMPRESSION_ZSTD)._level)
        self.assertEqual(1, compression.StreamingCompressor(
            constants.COMPRESSION_GZIP, level=1)._level)

    def test_unsupported(self):
        """Unknown compression types are rejected."""
        self.assertRaises(
            ValueError, compression.StreamingCompressor, 'lzma')
        self.assertRaises(
            ValueError, compression.StreamingDecompressor,
            constants.COMPRESSION_UNKNOWN)


if __name__ == '__main__':
    unittest.main()
