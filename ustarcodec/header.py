"""Encode and decode 512 byte USTAR header blocks.

A TarHeader is built either from an inode (when writing an archive) or from
a raw block (when reading one). Paths longer than the USTAR name fields
allow are split between the prefix and suffix fields, and shortened with a
SHA1 fingerprint when even that is not enough. See split_path_components()
for the details.
"""

import enum
import hashlib
import stat
import types

from ustarcodec import constants
from ustarcodec import fields
from ustarcodec.path import Path


class LinkType(enum.IntEnum):
    REGULAR = 0
    HARDLINK = 1
    SYMLINK = 2
    CHAR = 3
    BLOCK = 4
    DIRECTORY = 5
    FIFO = 6
    CONTIGUOUS = 7


# Hard links and contiguous files have no file type bits of their own and
# are absent here.
TYPES = types.MappingProxyType({
    LinkType.REGULAR: stat.S_IFREG,
    LinkType.SYMLINK: stat.S_IFLNK,
    LinkType.CHAR: stat.S_IFCHR,
    LinkType.BLOCK: stat.S_IFBLK,
    LinkType.DIRECTORY: stat.S_IFDIR,
    LinkType.FIFO: stat.S_IFIFO,
})


def inode_linktype(inode):
    """Return the linktype for an inode's file type bits.

    File types USTAR cannot describe (sockets) fall back to REGULAR.
    """
    file_type = stat.S_IFMT(inode.mode)
    for linktype, type_bits in TYPES.items():
        if file_type == type_bits:
            return linktype
    return LinkType.REGULAR


def _encoded(value):
    return value.encode(constants.ENCODING, constants.ENCODING_ERRORS)


def _decoded(data):
    return data.decode(constants.ENCODING, constants.ENCODING_ERRORS)


def fingerprint(value):
    return hashlib.sha1(_encoded(value)).hexdigest()[
        :constants.FINGERPRINT_LENGTH]


def truncate_with_hash(value, length, hash_source):
    """Cut value down to length bytes and append a fingerprint.

    The fingerprint is the first few hex digits of the SHA1 of hash_source,
    which is not necessarily value itself.
    """
    return _decoded(_encoded(value)[:length]) + fingerprint(hash_source)


def split_path_components(path, is_dir=False):
    """Split a path into (prefix, suffix) for the USTAR name fields.

    Components are allocated to the suffix from the leaf upwards until it
    would exceed 100 bytes; the remainder become the prefix. A leaf which is
    too long on its own is shortened and fingerprinted with a hash of the
    whole path, so leaves that only differ higher up do not collide. A
    prefix longer than 155 bytes is shortened and fingerprinted with a hash
    of the prefix alone, so every file below the same long directory shares
    one shortened prefix.

    Args:
        path: The path being archived.
        is_dir: True if the path names a directory, in which case the suffix
            carries a trailing slash.

    Returns:
        Tuple of (prefix, suffix) strings.
    """
    parts = Path(path).components
    if is_dir:
        parts[-1] += '/'

    got = 0
    prefix_items = []
    suffix_items = []

    for index, item in enumerate(reversed(parts)):
        length = len(_encoded(item))

        if index == 0 and length > constants.USTAR_MAX_SUFFIX:
            if is_dir:
                item = truncate_with_hash(
                    item, constants.SUFFIX_TRUNCATE_DIR, path) + '/'
            else:
                item = truncate_with_hash(
                    item, constants.SUFFIX_TRUNCATE_FILE, path)
            length = constants.USTAR_MAX_SUFFIX

        # Count the separator joining this component to the previous one
        if got:
            got += 1
        got += length

        if got <= constants.USTAR_MAX_SUFFIX:
            suffix_items.append(item)
        else:
            prefix_items.append(item)

    prefix = '/'.join(reversed(prefix_items))
    suffix = '/'.join(reversed(suffix_items))

    if len(_encoded(prefix)) > constants.USTAR_MAX_PREFIX:
        prefix = truncate_with_hash(prefix, constants.PREFIX_TRUNCATE, prefix)

    return prefix, suffix


class TarHeader(object):
    FIELDS = ('prefix', 'suffix', 'mode', 'uid', 'gid', 'size', 'mtime',
              'linktype', 'linkdest', 'user', 'group', 'major', 'minor')

    def __init__(self, suffix, prefix='', mode=0, uid=0, gid=0, size=0,
                 mtime=0, linktype=LinkType.REGULAR, linkdest='', user='',
                 group='', major=0, minor=0):
        self.prefix = prefix
        self.suffix = suffix
        self.mode = mode & constants.MODE_PERMISSION_BITS
        self.uid = uid
        self.gid = gid
        self.size = size
        self.mtime = mtime
        self.linktype = LinkType(linktype)
        self.linkdest = linkdest
        self.user = user
        self.group = group
        self.major = major
        self.minor = minor

    @classmethod
    def from_inode(cls, inode, path, user='', group='', hardlink_target=None):
        """Build a header describing inode, archived under path.

        Args:
            inode: An Inode (or anything with the same interface).
            path: The member name to record.
            user: Owning user name, or '' to store only the numeric uid.
            group: Owning group name, or '' to store only the numeric gid.
            hardlink_target: If set, record a hard link to this member name
                instead of the inode's own type and content.
        """
        prefix, suffix = split_path_components(path, is_dir=inode.isdir())

        size = inode.size if inode.isfile() else 0
        major = 0
        minor = 0
        if inode.ischr() or inode.isblk():
            major = inode.major()
            minor = inode.minor()

        linktype = inode_linktype(inode)
        linkdest = inode.readlink() if inode.issym() else ''
        if hardlink_target is not None:
            linktype = LinkType.HARDLINK
            linkdest = hardlink_target
            size = 0

        return cls(suffix, prefix=prefix, mode=inode.mode, uid=inode.uid,
                   gid=inode.gid, size=size, mtime=inode.mtime,
                   linktype=linktype, linkdest=linkdest, user=user,
                   group=group, major=major, minor=minor)

    @classmethod
    def decode(cls, block):
        """Decode a 512 byte block, validating its checksum first.

        Raises:
            CorruptBlockError: if the stored checksum is wrong or unreadable.
            InvalidFieldError: if a numeric field is not octal text.
        """
        if len(block) != constants.HEADER_SIZE:
            raise fields.HeaderError(
                'Header blocks are %d bytes, not %d'
                % (constants.HEADER_SIZE, len(block)))

        suffix = fields.read_str(block, fields.FIELDS['suffix'])
        prefix = fields.read_str(block, fields.FIELDS['prefix'])
        try:
            stored = fields.read_oct(block, fields.CHECKSUM)
        except fields.InvalidFieldError:
            raise fields.CorruptBlockError(
                'Unreadable checksum in header for %r' % suffix)

        calculated = fields.checksum(block)
        if stored != calculated:
            raise fields.CorruptBlockError(
                'Invalid block: checksum %o does not match calculated %o'
                % (stored, calculated))

        values = {'suffix': suffix, 'prefix': prefix}
        for name in cls.FIELDS:
            if name in values:
                continue
            field = fields.FIELDS[name]
            if field.kind == fields.STR:
                values[name] = fields.read_str(block, field)
            else:
                values[name] = fields.read_oct(block, field)

        return cls(**values)

    def encode(self):
        block = bytearray(constants.HEADER_SIZE)

        # Phase one: everything except the checksum
        values = self.as_dict()
        values['magic'] = constants.USTAR_MAGIC
        values['version'] = constants.USTAR_VERSION
        for field in fields.LAYOUT:
            if field is fields.CHECKSUM:
                continue
            if field.kind == fields.STR:
                fields.write_str(block, field, values[field.name])
            else:
                fields.write_oct(block, field, values[field.name])

        # Phase two: blank the checksum field and sum the block
        block[fields.CHECKSUM.offset:
              fields.CHECKSUM.offset + fields.CHECKSUM.length] = \
            fields.CHECKSUM_BLANK
        checksum = sum(block)

        # Phase three: store the sum
        fields.write_oct(block, fields.CHECKSUM, checksum)
        return bytes(block)

    @property
    def path(self):
        if self.prefix:
            return self.prefix + '/' + self.suffix
        return self.suffix

    def as_dict(self):
        values = {name: getattr(self, name) for name in self.FIELDS}
        values['linktype'] = int(self.linktype)
        return values

    def _lookup(self):
        return TYPES.get(self.linktype)

    def isfile(self):
        return self._lookup() == stat.S_IFREG

    def islnk(self):
        return self.linktype == LinkType.HARDLINK

    def issym(self):
        return self._lookup() == stat.S_IFLNK

    def ischr(self):
        return self._lookup() == stat.S_IFCHR

    def isblk(self):
        return self._lookup() == stat.S_IFBLK

    def isdir(self):
        return self._lookup() == stat.S_IFDIR

    def isfifo(self):
        return self._lookup() == stat.S_IFIFO

    def iscontig(self):
        return self.linktype == LinkType.CONTIGUOUS

    def __eq__(self, other):
        if not isinstance(other, TarHeader):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        return '<TarHeader %r linktype=%d size=%d>' % (
            self.path, self.linktype, self.size)
