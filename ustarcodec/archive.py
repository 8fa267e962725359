"""Write and read sequences of USTAR header blocks and file bodies.

An archive is a run of 512 byte header blocks, each followed by the entry's
content padded out to a whole number of blocks, and terminated by two blocks
of zeros. The stream may optionally be wrapped in gzip or zstd compression.
"""

import logging
import os

from ustarcodec import compression
from ustarcodec import constants
from ustarcodec import fields
from ustarcodec import util
from ustarcodec.header import TarHeader
from ustarcodec.inode import Inode


LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

CHUNK_SIZE = 64 * 1024
ZERO_BLOCK = b'\0' * constants.BLOCK_SIZE


class ArchiveError(Exception):
    pass


def padding(size):
    remainder = size % constants.BLOCK_SIZE
    if remainder:
        return constants.BLOCK_SIZE - remainder
    return 0


def _name_fits(name, width):
    return len(name.encode(constants.ENCODING,
                           constants.ENCODING_ERRORS)) <= width


class ArchiveWriter(object):
    def __init__(self, fileobj, compression_type=constants.COMPRESSION_NONE,
                 numeric_owner=False):
        self.fileobj = fileobj
        self.numeric_owner = numeric_owner
        self.closed = False

        self._compressor = compression.StreamingCompressor(compression_type)
        self._hardlinks = {}
        self._users = {}
        self._groups = {}
        self._stripped_root = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        # A failed archive is left without an end marker so that it is not
        # mistaken for a complete one
        if exc_type is None:
            self.close()

    def _write(self, data):
        out = self._compressor.compress(data)
        if out:
            self.fileobj.write(out)

    def _user(self, uid):
        if self.numeric_owner:
            return ''
        if uid not in self._users:
            name = util.lookup_user(uid)
            if not _name_fits(name, fields.FIELDS['user'].length):
                name = ''
            self._users[uid] = name
        return self._users[uid]

    def _group(self, gid):
        if self.numeric_owner:
            return ''
        if gid not in self._groups:
            name = util.lookup_group(gid)
            if not _name_fits(name, fields.FIELDS['group'].length):
                name = ''
            self._groups[gid] = name
        return self._groups[gid]

    def _member_name(self, arcname):
        if arcname.startswith('/'):
            if not self._stripped_root:
                LOG.info('Removing leading "/" from member names')
                self._stripped_root = True
            # The root directory itself is stored as ./
            arcname = arcname.lstrip('/') or '.'
        return arcname

    def _hardlink_target(self, inode, header):
        """Return the member an inode was already archived as, if any.

        Returns None the first time a multiply linked inode is seen, and
        remembers the name it was archived under for later links.
        """
        if inode.isdir() or inode.nlink < 2:
            return None

        key = (inode.dev, inode.ino)
        target = self._hardlinks.get(key)
        if target is None:
            self._hardlinks[key] = header.path
            return None

        if not _name_fits(target, fields.FIELDS['linkdest'].length):
            LOG.warning('Hard link target %s is too long, archiving %s as '
                        'a copy' % (target, header.path))
            return None
        return target

    def add(self, path, arcname=None, recursive=True):
        """Archive a file or directory from the local filesystem.

        Args:
            path: The path to read.
            arcname: The member name to store, defaults to path.
            recursive: If True, archive the contents of directories too.
        """
        if arcname is None:
            arcname = path

        inode = Inode.from_path(path)
        if inode.issock():
            LOG.warning('%s: socket ignored' % path)
            return

        if inode.isfile():
            with open(path, 'rb') as f:
                self.add_inode(inode, arcname, data=f)
        else:
            self.add_inode(inode, arcname)

        if recursive and inode.isdir():
            for entry in sorted(os.listdir(path)):
                self.add(os.path.join(path, entry),
                         '%s/%s' % (arcname.rstrip('/'), entry),
                         recursive=recursive)

    def add_inode(self, inode, arcname, data=None):
        """Write the header for an inode, followed by its content.

        Args:
            inode: An Inode describing the entry.
            arcname: The member name to store.
            data: File-like object supplying inode.size bytes of content for
                regular files. Ignored for every other type.

        Returns:
            The TarHeader which was written.
        """
        if self.closed:
            raise ArchiveError('Archive is already closed')

        name = self._member_name(arcname)
        user = self._user(inode.uid)
        group = self._group(inode.gid)

        header = TarHeader.from_inode(inode, name, user=user, group=group)
        target = self._hardlink_target(inode, header)
        if target is not None:
            header = TarHeader.from_inode(inode, name, user=user, group=group,
                                          hardlink_target=target)

        LOG.debug('Adding %s (linktype %d)' % (header.path, header.linktype))
        self._write(header.encode())

        if header.isfile() and header.size:
            if data is None:
                raise ArchiveError('No content supplied for %s' % header.path)
            self._copy(data, header)
        return header

    def _copy(self, data, header):
        remaining = header.size
        while remaining > 0:
            chunk = data.read(min(CHUNK_SIZE, remaining))
            if not chunk:
                raise ArchiveError(
                    '%s: file shrank by %d bytes while being archived'
                    % (header.path, remaining))
            self._write(chunk)
            remaining -= len(chunk)
        self._write(b'\0' * padding(header.size))

    def close(self):
        if self.closed:
            return
        self._write(constants.END_OF_ARCHIVE)
        tail = self._compressor.flush()
        if tail:
            self.fileobj.write(tail)
        self.fileobj.flush()
        self.closed = True


class ArchiveReader(object):
    """Iterate over the (header, data) pairs in an archive.

    Only regular and contiguous files carry data; every other entry is
    paired with b''. Iteration stops at the end of archive marker.
    """

    def __init__(self, fileobj, compression_type=None):
        self.fileobj = fileobj

        if compression_type is None:
            compression_type = compression.detect_compression(fileobj)
            if compression_type == constants.COMPRESSION_UNKNOWN:
                compression_type = constants.COMPRESSION_NONE
        LOG.debug('Reading archive with compression %s' % compression_type)

        self._decompressor = compression.StreamingDecompressor(
            compression_type)
        self._buffer = bytearray()
        self._eof = False
        self._offset = 0

    def _read(self, length):
        while len(self._buffer) < length and not self._eof:
            chunk = self.fileobj.read(CHUNK_SIZE)
            if chunk:
                self._buffer += self._decompressor.decompress(chunk)
            else:
                self._buffer += self._decompressor.flush()
                self._eof = True

        data = bytes(self._buffer[:length])
        del self._buffer[:length]
        self._offset += len(data)
        return data

    def __iter__(self):
        while True:
            offset = self._offset
            block = self._read(constants.BLOCK_SIZE)
            if not block:
                LOG.debug('Archive ended without an end marker')
                return
            if len(block) < constants.BLOCK_SIZE:
                raise ArchiveError(
                    'Unexpected end of archive in header at offset %d'
                    % offset)
            if block == ZERO_BLOCK:
                LOG.debug('End of archive marker at offset %d' % offset)
                return

            header = TarHeader.decode(block)
            LOG.debug('Read header for %s at offset %d'
                      % (header.path, offset))

            size = 0
            if header.isfile() or header.iscontig():
                size = header.size

            data = self._read(size)
            if len(data) < size:
                raise ArchiveError(
                    'Unexpected end of archive in %s, expected %d bytes '
                    'and got %d' % (header.path, size, len(data)))
            self._read(padding(size))

            yield header, data
