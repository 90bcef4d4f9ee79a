# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - storages backend tests

Note: theoretically, it should be enough to test with one kind of storage,
      but we better test with a fs AND a memory AND a sqlite storage.
"""


import os, tempfile, shutil

from gitwiki.backend.storages import MutableBackend
from gitwiki.backend._tests import BackendTestBase

from gitwiki.storage.memory import BytesStorage as MemoryBytesStorage
from gitwiki.storage.fs import BytesStorage as FSBytesStorage
from gitwiki.storage.sqlite import BytesStorage as SqliteBytesStorage


class TestMemoryBackend(BackendTestBase):
    def setup_method(self, method):
        object_store = MemoryBytesStorage()
        ref_store = MemoryBytesStorage()
        self.be = MutableBackend(object_store, ref_store)
        self.be.create()
        self.be.open()


class TestFSBackend(BackendTestBase):
    def setup_method(self, method):
        self.tmpdir = tempfile.mkdtemp()
        object_store = FSBytesStorage(os.path.join(self.tmpdir, 'objects'))
        ref_store = FSBytesStorage(os.path.join(self.tmpdir, 'refs'))
        self.be = MutableBackend(object_store, ref_store)
        self.be.create()
        self.be.open()

    def teardown_method(self, method):
        super().teardown_method(method)
        shutil.rmtree(self.tmpdir)


class TestSqliteBackend(BackendTestBase):
    def setup_method(self, method):
        self.tmpdir = tempfile.mkdtemp()
        db_name = os.path.join(self.tmpdir, 'wiki.sqlite')
        object_store = SqliteBytesStorage(db_name, 'objects')
        ref_store = SqliteBytesStorage(db_name, 'refs')
        self.be = MutableBackend(object_store, ref_store)
        self.be.create()
        self.be.open()

    def teardown_method(self, method):
        super().teardown_method(method)
        shutil.rmtree(self.tmpdir)
