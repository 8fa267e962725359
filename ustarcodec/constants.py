# USTAR format limits (POSIX.1-1988)
#
# USTAR stores paths using two fields:
#   - name: 100 bytes for the leaf end of the path (the "suffix")
#   - prefix: 155 bytes for the directory path
#
# Paths which do not fit are shortened, with a short SHA1 fingerprint
# appended so that shortened names stay unique.
HEADER_SIZE = 512
BLOCK_SIZE = 512
END_OF_ARCHIVE = b'\0' * (BLOCK_SIZE * 2)

USTAR_MAGIC = 'ustar'
USTAR_VERSION = '00'

USTAR_MAX_SUFFIX = 100
USTAR_MAX_PREFIX = 155

# Truncated leaves and prefixes keep this many characters, leaving room for
# the fingerprint (and a trailing slash for directories).
SUFFIX_TRUNCATE_FILE = 93
SUFFIX_TRUNCATE_DIR = 92
PREFIX_TRUNCATE = 148
FINGERPRINT_LENGTH = 7

# Permission bits stored in the mode field. File type is carried by the
# linktype field instead.
MODE_PERMISSION_BITS = 0o7777

# Header strings are converted to bytes the same way tarfile does
ENCODING = 'utf-8'
ENCODING_ERRORS = 'surrogateescape'

# Compression type constants
COMPRESSION_GZIP = 'gzip'
COMPRESSION_ZSTD = 'zstd'
COMPRESSION_NONE = 'none'
COMPRESSION_UNKNOWN = 'unknown'
