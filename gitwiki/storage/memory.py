# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - memory storage (based on a dict)

Good for tests and throw-away wikis, everything is lost on destroy (or when
the process ends).
"""


from io import BytesIO

from gitwiki.storage import MutableStorageBase, BytesMutableStorageBase, FileMutableStorageBase


class _Storage(MutableStorageBase):
    def __init__(self):
        self._st = None

    def create(self):
        self._st = {}

    def destroy(self):
        self._st = None

    def open(self):
        if self._st is None:
            raise IOError("memory storage was not created")

    def close(self):
        pass

    def __iter__(self):
        # snapshot of the keys, writers may add keys meanwhile
        return iter(list(self._st))

    def __contains__(self, key):
        return key in self._st

    def __len__(self):
        return len(self._st)

    def __delitem__(self, key):
        del self._st[key]


class BytesStorage(_Storage, BytesMutableStorageBase):
    def __getitem__(self, key):
        return self._st[key]

    def __setitem__(self, key, value):
        if not isinstance(value, bytes):
            raise TypeError("value must be bytes, not %s" % type(value).__name__)
        self._st[key] = value


class FileStorage(_Storage, FileMutableStorageBase):
    def __getitem__(self, key):
        return BytesIO(self._st[key])

    def __setitem__(self, key, stream):
        try:
            self._st[key] = stream.read()
        finally:
            stream.close()
