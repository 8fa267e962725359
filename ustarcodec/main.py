import click
import json
import logging
from shakenfist_utilities import logs
import sys
import time

from ustarcodec import archive
from ustarcodec import compression
from ustarcodec import constants
from ustarcodec import extract
from ustarcodec import fields
from ustarcodec.header import split_path_components
from ustarcodec import util


LOG = logs.setup_console(__name__)

ERRORS = (fields.HeaderError, archive.ArchiveError, extract.UnsafePathError,
          OSError)


@click.group()
@click.option('--verbose', is_flag=True)
@click.pass_context
def cli(ctx, verbose=None):
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
        LOG.setLevel(logging.DEBUG)

    if not ctx.obj:
        ctx.obj = {}
    ctx.obj['VERBOSE'] = verbose


def _fail(e):
    click.echo('Error: %s' % e, err=True)
    sys.exit(1)


@click.command('create')
@click.argument('archive_path', metavar='ARCHIVE')
@click.argument('paths', nargs=-1, required=True)
@click.option('--compression', 'compression_type',
              envvar='USTARCODEC_COMPRESSION',
              type=click.Choice(compression.SUPPORTED),
              default=constants.COMPRESSION_NONE,
              help='Compress the archive with gzip or zstd')
@click.option('--numeric-owner', is_flag=True, default=False,
              envvar='USTARCODEC_NUMERIC_OWNER',
              help='Store only numeric uids and gids, not names')
@click.option('--no-recursion', is_flag=True, default=False,
              help='Do not descend into directories')
@click.pass_context
def create_cmd(ctx, archive_path, paths, compression_type, numeric_owner,
               no_recursion):
    """Create a USTAR archive from files and directories.

    \b
    Examples:
      ustarcodec create backup.tar /etc/hosts ./project
      ustarcodec create --compression zstd backup.tar.zst ./project
    """
    try:
        with open(archive_path, 'wb') as f:
            with archive.ArchiveWriter(
                    f, compression_type=compression_type,
                    numeric_owner=numeric_owner) as writer:
                for path in paths:
                    LOG.info('Archiving %s' % path)
                    writer.add(path, recursive=not no_recursion)
    except ERRORS as e:
        _fail(e)


cli.add_command(create_cmd)


@click.command('list')
@click.argument('archive_path', metavar='ARCHIVE')
@click.option('--long', '-l', 'long_format', is_flag=True, default=False,
              help='Show permissions, ownership, size and mtime')
@click.pass_context
def list_cmd(ctx, archive_path, long_format):
    """List the members of an archive."""
    try:
        with open(archive_path, 'rb') as f:
            for header, _ in archive.ArchiveReader(f):
                name = header.path
                if header.issym():
                    name += ' -> %s' % header.linkdest
                elif header.islnk():
                    name += ' link to %s' % header.linkdest

                if not long_format:
                    click.echo(name)
                    continue

                if header.ischr() or header.isblk():
                    size = '%d,%d' % (header.major, header.minor)
                else:
                    size = str(header.size)
                click.echo('%s %s %8s %s %s' % (
                    util.mode_string(header), util.owner_string(header), size,
                    time.strftime('%Y-%m-%d %H:%M',
                                  time.gmtime(header.mtime)),
                    name))
    except ERRORS as e:
        _fail(e)


cli.add_command(list_cmd)


@click.command('extract')
@click.argument('archive_path', metavar='ARCHIVE')
@click.argument('destination')
@click.option('--same-owner/--no-same-owner', default=None,
              help='Restore ownership (default: only when run as root)')
@click.pass_context
def extract_cmd(ctx, archive_path, destination, same_owner):
    """Extract an archive into DESTINATION."""
    try:
        with open(archive_path, 'rb') as f:
            extract.extract_all(archive.ArchiveReader(f), destination,
                                restore_owner=same_owner)
    except ERRORS as e:
        _fail(e)


cli.add_command(extract_cmd)


@click.command('inspect')
@click.argument('archive_path', metavar='ARCHIVE')
@click.pass_context
def inspect_cmd(ctx, archive_path):
    """Print every header in an archive as a line of JSON."""
    try:
        with open(archive_path, 'rb') as f:
            for header, _ in archive.ArchiveReader(f):
                values = header.as_dict()
                values['path'] = header.path
                click.echo(json.dumps(values, sort_keys=True))
    except ERRORS as e:
        _fail(e)


cli.add_command(inspect_cmd)


@click.command('split')
@click.argument('path')
@click.option('--directory', is_flag=True, default=False,
              help='Treat PATH as a directory')
@click.pass_context
def split_cmd(ctx, path, directory):
    """Show how PATH is stored in the USTAR prefix and name fields."""
    try:
        prefix, suffix = split_path_components(path, is_dir=directory)
    except ValueError as e:
        _fail(e)
    click.echo('prefix: %s' % prefix)
    click.echo('suffix: %s' % suffix)


cli.add_command(split_cmd)


@click.command('version')
def version_cmd():
    """Print the installed version."""
    click.echo(util.get_version())


cli.add_command(version_cmd)
