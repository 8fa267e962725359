import grp
import pwd
import stat

from pbr.version import VersionInfo

from ustarcodec.header import LinkType


LINKTYPE_CHARS = {
    LinkType.REGULAR: '-',
    LinkType.HARDLINK: 'h',
    LinkType.SYMLINK: 'l',
    LinkType.CHAR: 'c',
    LinkType.BLOCK: 'b',
    LinkType.DIRECTORY: 'd',
    LinkType.FIFO: 'p',
    LinkType.CONTIGUOUS: 'C',
}


def get_version():
    try:
        return VersionInfo('ustarcodec').version_string()
    except Exception:
        return '0.0.0'


def mode_string(header):
    """Render a header's type and permissions the way ls -l does."""
    return LINKTYPE_CHARS[header.linktype] + stat.filemode(header.mode)[1:]


def owner_string(header):
    user = header.user or str(header.uid)
    group = header.group or str(header.gid)
    return '%s/%s' % (user, group)


def lookup_user(uid):
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return ''


def lookup_group(gid):
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return ''
