import logging
import os

from ustarcodec.header import TYPES
from ustarcodec.path import Path


LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)


class UnsafePathError(Exception):
    """Raised when a member would be written outside the destination."""
    pass


def _safe_relative(name):
    """Return the member name as components below the destination."""
    components = Path(name).components
    if components[0] in ('', '/'):
        raise UnsafePathError('Absolute member name: %s' % name)
    if '..' in components:
        raise UnsafePathError('Member name escapes destination: %s' % name)
    return components


def _check_inside(path, dest, name):
    """Raise UnsafePathError if path resolves to somewhere outside dest."""
    root = os.path.realpath(dest)
    resolved = os.path.realpath(path)
    if os.path.commonpath([root, resolved]) != root:
        raise UnsafePathError(
            'Member %s resolves outside destination: %s' % (name, resolved))


def _apply_attributes(path, header, restore_owner):
    if restore_owner:
        os.lchown(path, header.uid, header.gid)

    times = (header.mtime, header.mtime)
    if header.issym():
        if os.utime in os.supports_follow_symlinks:
            os.utime(path, times, follow_symlinks=False)
        return

    os.chmod(path, header.mode)
    os.utime(path, times)


def extract_member(header, data, dest, restore_owner=False):
    """Materialize a single decoded member below dest.

    Returns:
        The path written, or None if the member was skipped.
    """
    components = _safe_relative(header.path)
    if components == ['.']:
        return None
    target = os.path.join(dest, *components)

    # An earlier member may have left a symlink in place of a parent
    parent = os.path.dirname(target)
    _check_inside(parent, dest, header.path)
    if not os.path.isdir(parent):
        os.makedirs(parent)

    if header.isdir():
        _check_inside(target, dest, header.path)
        if not os.path.isdir(target):
            os.mkdir(target)
        # Directory attributes are applied by the caller once their
        # contents have been written
        return target

    if os.path.lexists(target):
        os.unlink(target)

    if header.isfile() or header.iscontig():
        with open(target, 'wb') as f:
            f.write(data)

    elif header.issym():
        os.symlink(header.linkdest, target)

    elif header.islnk():
        source = os.path.join(dest, *_safe_relative(header.linkdest))
        _check_inside(source, dest, header.path)
        os.link(source, target)
        return target

    elif header.isfifo():
        os.mkfifo(target)

    elif header.ischr() or header.isblk():
        if not hasattr(os, 'mknod') or os.geteuid() != 0:
            LOG.warning('Skipping device %s, creating devices requires root'
                        % header.path)
            return None
        os.mknod(target, header.mode | TYPES[header.linktype],
                 os.makedev(header.major, header.minor))

    _apply_attributes(target, header, restore_owner)
    return target


def extract_all(reader, dest, restore_owner=None):
    """Extract every member of an archive below dest.

    Args:
        reader: An ArchiveReader, or any iterable of (header, data) pairs.
        dest: The destination directory, created if needed.
        restore_owner: Restore uid and gid. Defaults to True when running
            as root.

    Returns:
        The number of members extracted.
    """
    if restore_owner is None:
        restore_owner = os.geteuid() == 0

    if not os.path.exists(dest):
        os.makedirs(dest)

    directories = []
    count = 0
    for header, data in reader:
        LOG.debug('Extracting %s' % header.path)
        target = extract_member(header, data, dest,
                                restore_owner=restore_owner)
        if target is None:
            continue
        if header.isdir():
            directories.append((target, header))
        count += 1

    # Deepest first, so setting a parent's mtime is not undone by its
    # children
    for target, header in sorted(directories, key=lambda d: d[0],
                                 reverse=True):
        _apply_attributes(target, header, restore_owner)

    LOG.info('Extracted %d members to %s' % (count, dest))
    return count
