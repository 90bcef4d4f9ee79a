# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - filesystem storage

Values are written to a temporary file first and then renamed into place, so
a concurrent reader either sees the old value or the complete new one.
"""


import os, errno, shutil, tempfile

from gitwiki.storage import MutableStorageBase, BytesMutableStorageBase, FileMutableStorageBase


class _Storage(MutableStorageBase):
    """
    A simple filesystem-based storage.

    keys are required to be valid filenames.
    """
    def __init__(self, path):
        self.path = path

    def create(self):
        os.makedirs(self.path)

    def destroy(self):
        shutil.rmtree(self.path)

    def open(self):
        if not os.path.isdir(self.path):
            raise IOError(errno.ENOENT, "storage directory does not exist", self.path)

    def close(self):
        pass

    def _mkpath(self, key):
        if not key or os.sep in key or key.startswith('.'):
            raise KeyError(key)
        return os.path.join(self.path, key)

    def filename(self, key):
        """
        return the name of the file holding the value for key (it may not exist yet)
        """
        return self._mkpath(key)

    def __iter__(self):
        for key in os.listdir(self.path):
            if not key.startswith('.'): # skip temporary files
                yield key

    def __contains__(self, key):
        try:
            return os.path.isfile(self._mkpath(key))
        except KeyError:
            return False

    def __delitem__(self, key):
        try:
            os.remove(self._mkpath(key))
        except OSError as e:
            if e.errno == errno.ENOENT:
                raise KeyError(key)
            raise

    def _write(self, key, write_func):
        path = self._mkpath(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.path, prefix='.tmp-')
        try:
            with os.fdopen(fd, 'wb') as f:
                write_func(f)
            os.replace(tmp_path, path)
        except Exception:
            os.remove(tmp_path)
            raise


class BytesStorage(_Storage, BytesMutableStorageBase):
    def __getitem__(self, key):
        try:
            with open(self._mkpath(key), 'rb') as f:
                return f.read() # better use get_file() and read smaller blocks for big files
        except IOError as e:
            if e.errno == errno.ENOENT:
                raise KeyError(key)
            raise

    def __setitem__(self, key, value):
        self._write(key, lambda f: f.write(value))


class FileStorage(_Storage, FileMutableStorageBase):
    def __getitem__(self, key):
        try:
            return open(self._mkpath(key), 'rb')
        except IOError as e:
            if e.errno == errno.ENOENT:
                raise KeyError(key)
            raise

    def __setitem__(self, key, stream):
        def copy(f):
            blocksize = 64 * 1024
            data = stream.read(blocksize)
            while data:
                f.write(data)
                data = stream.read(blocksize)
        try:
            self._write(key, copy)
        finally:
            stream.close()
