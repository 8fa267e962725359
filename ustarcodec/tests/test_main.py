import json
import os
import tarfile

from click.testing import CliRunner
import testtools

from ustarcodec import compression
from ustarcodec import constants
from ustarcodec import main


class CliTestCase(testtools.TestCase):
    def setUp(self):
        super(CliTestCase, self).setUp()
        self.runner = CliRunner()

    def _make_tree(self):
        os.makedirs('tree/sub')
        with open('tree/sub/hello.txt', 'w') as f:
            f.write('hello world\n')
        os.symlink('hello.txt', 'tree/sub/link')

    def _create(self, *args):
        result = self.runner.invoke(main.cli, ['create'] + list(args))
        self.assertEqual(0, result.exit_code, result.output)
        return result

    def test_create_and_list(self):
        """create archives a tree which list then prints."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            self._create('out.tar', 'tree')

            with tarfile.open('out.tar') as tf:
                self.assertEqual(
                    ['tree', 'tree/sub', 'tree/sub/hello.txt',
                     'tree/sub/link'],
                    tf.getnames())

            result = self.runner.invoke(main.cli, ['list', 'out.tar'])
            self.assertEqual(0, result.exit_code, result.output)
            self.assertEqual(
                ['tree/', 'tree/sub/', 'tree/sub/hello.txt',
                 'tree/sub/link -> hello.txt'],
                result.output.splitlines())

    def test_list_long(self):
        """list -l shows type, permissions, owner and size."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            self._create('--numeric-owner', 'out.tar', 'tree/sub/hello.txt')

            result = self.runner.invoke(main.cli, ['list', '-l', 'out.tar'])
            self.assertEqual(0, result.exit_code, result.output)
            line = result.output.strip()
            self.assertTrue(line.startswith('-'))
            self.assertIn('%d/%d' % (os.getuid(), os.getgid()), line)
            self.assertIn(' 12 ', line)
            self.assertTrue(line.endswith('tree/sub/hello.txt'))

    def test_no_recursion(self):
        """--no-recursion archives only the named directory."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            self._create('--no-recursion', 'out.tar', 'tree')

            result = self.runner.invoke(main.cli, ['list', 'out.tar'])
            self.assertEqual(['tree/'], result.output.splitlines())

    def test_create_zstd(self):
        """create can write a zstd compressed archive."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            self._create('--compression', 'zstd', 'out.tar.zst', 'tree')

            with open('out.tar.zst', 'rb') as f:
                self.assertEqual(constants.COMPRESSION_ZSTD,
                                 compression.detect_compression(f))

            result = self.runner.invoke(main.cli, ['list', 'out.tar.zst'])
            self.assertEqual(0, result.exit_code, result.output)
            self.assertIn('tree/sub/hello.txt', result.output.splitlines())

    def test_compression_from_environment(self):
        """Compression can be set from the environment."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            result = self.runner.invoke(
                main.cli, ['create', 'out.tgz', 'tree'],
                env={'USTARCODEC_COMPRESSION': 'gzip'})
            self.assertEqual(0, result.exit_code, result.output)

            with tarfile.open('out.tgz', 'r:gz') as tf:
                self.assertIn('tree/sub/hello.txt', tf.getnames())

    def test_inspect(self):
        """inspect prints each header as JSON."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            self._create('out.tar', 'tree/sub/hello.txt')

            result = self.runner.invoke(main.cli, ['inspect', 'out.tar'])
            self.assertEqual(0, result.exit_code, result.output)
            lines = result.output.splitlines()
            self.assertEqual(1, len(lines))

            values = json.loads(lines[0])
            self.assertEqual('tree/sub/hello.txt', values['path'])
            self.assertEqual('tree/sub/hello.txt', values['suffix'])
            self.assertEqual('', values['prefix'])
            self.assertEqual(12, values['size'])
            self.assertEqual(0, values['linktype'])

    def test_extract(self):
        """extract recreates the archived tree."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            self._create('out.tar', 'tree')

            result = self.runner.invoke(
                main.cli, ['extract', '--no-same-owner', 'out.tar', 'dest'])
            self.assertEqual(0, result.exit_code, result.output)
            with open('dest/tree/sub/hello.txt') as f:
                self.assertEqual('hello world\n', f.read())
            self.assertEqual('hello.txt', os.readlink('dest/tree/sub/link'))

    def test_split(self):
        """split prints the prefix and suffix of a short path."""
        result = self.runner.invoke(main.cli, ['split', 'a/b/c'])
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual(['prefix: ', 'suffix: a/b/c'],
                         result.output.splitlines())

    def test_split_long_path(self):
        """split moves leading components into the prefix."""
        path = '/'.join(['d' * 60] * 3)
        result = self.runner.invoke(
            main.cli, ['split', '--directory', path])
        self.assertEqual(0, result.exit_code, result.output)
        self.assertEqual(
            ['prefix: %s/%s' % ('d' * 60, 'd' * 60),
             'suffix: %s/' % ('d' * 60)],
            result.output.splitlines())

    def test_split_empty_path(self):
        """An empty path is reported as an error, not a traceback."""
        result = self.runner.invoke(main.cli, ['split', ''])
        self.assertEqual(1, result.exit_code)
        self.assertIn('Error: Empty path', result.output)
        self.assertIsInstance(result.exception, SystemExit)

    def test_version(self):
        """version prints something."""
        result = self.runner.invoke(main.cli, ['version'])
        self.assertEqual(0, result.exit_code, result.output)
        self.assertNotEqual('', result.output.strip())

    def test_corrupt_archive(self):
        """A corrupt archive is reported as an error."""
        with self.runner.isolated_filesystem():
            self._make_tree()
            self._create('out.tar', 'tree/sub/hello.txt')

            with open('out.tar', 'r+b') as f:
                f.write(b'X')

            result = self.runner.invoke(main.cli, ['list', 'out.tar'])
            self.assertEqual(1, result.exit_code)
            self.assertIn('Error:', result.output)

    def test_missing_input(self):
        """A missing input path is reported as an error."""
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(
                main.cli, ['create', 'out.tar', 'does-not-exist'])
            self.assertEqual(1, result.exit_code)
            self.assertIn('Error:', result.output)
