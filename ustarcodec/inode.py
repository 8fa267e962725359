import os
import stat


class Inode(object):
    """Metadata for a single filesystem entry.

    Inodes are normally read from disk with from_path(), but can be built
    directly when the metadata comes from somewhere other than the local
    filesystem.
    """

    def __init__(self, mode, uid=0, gid=0, size=0, mtime=0, rdev=0, dev=0,
                 ino=0, nlink=1, link_target=None):
        self.mode = mode
        self.uid = uid
        self.gid = gid
        self.size = size
        self.mtime = mtime
        self.rdev = rdev
        self.dev = dev
        self.ino = ino
        self.nlink = nlink
        self._link_target = link_target

    @classmethod
    def from_path(cls, path):
        st = os.lstat(path)
        link_target = None
        if stat.S_ISLNK(st.st_mode):
            link_target = os.readlink(path)

        return cls(st.st_mode, uid=st.st_uid, gid=st.st_gid,
                   size=st.st_size, mtime=int(st.st_mtime),
                   rdev=st.st_rdev, dev=st.st_dev, ino=st.st_ino,
                   nlink=st.st_nlink, link_target=link_target)

    def isfile(self):
        return stat.S_ISREG(self.mode)

    def isdir(self):
        return stat.S_ISDIR(self.mode)

    def issym(self):
        return stat.S_ISLNK(self.mode)

    def ischr(self):
        return stat.S_ISCHR(self.mode)

    def isblk(self):
        return stat.S_ISBLK(self.mode)

    def isfifo(self):
        return stat.S_ISFIFO(self.mode)

    def issock(self):
        return stat.S_ISSOCK(self.mode)

    def major(self):
        return os.major(self.rdev)

    def minor(self):
        return os.minor(self.rdev)

    def readlink(self):
        if not self.issym():
            raise ValueError('Not a symbolic link')
        return self._link_target or ''
