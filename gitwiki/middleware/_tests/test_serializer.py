# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - serializer tests
"""


import io
import struct

import pytest

from gitwiki.config import HEAD
from gitwiki.backend.storages import MutableBackend
from gitwiki.middleware.serializer import serialize, deserialize
from gitwiki.middleware.versioning import VersionStore

from gitwiki.storage.memory import BytesStorage as MemoryBytesStorage

AUTHOR = "Author1 <author1@localhorst>"


def make_backend():
    be = MutableBackend(MemoryBytesStorage(), MemoryBytesStorage())
    be.create()
    be.open()
    return be


class TestSerializer(object):
    def setup_method(self, method):
        self.source = make_backend()
        self.target = make_backend()

    def teardown_method(self, method):
        for be in self.source, self.target:
            be.close()
            be.destroy()

    def test_empty(self):
        f = io.BytesIO()
        serialize(self.source, f)
        assert f.getvalue() == struct.pack('!i', 0)
        f.seek(0)
        deserialize(f, self.target)
        assert list(self.target) == []
        assert self.target.get_ref(HEAD) is None

    def test_dump_load(self):
        vs = VersionStore(self.source)
        first = vs.write('Home', 'old content', None, 'message1\ntext', AUTHOR)
        vs.write('Home', 'new content', first.sha, 'message2', AUTHOR)
        vs.write('A/B', b'\x00binary', None, 'upload', AUTHOR)
        f = io.BytesIO()
        serialize(self.source, f)
        f.seek(0)
        deserialize(f, self.target)
        assert sorted(self.target) == sorted(self.source)
        assert self.target.get_ref(HEAD) == self.source.get_ref(HEAD)
        restored = VersionStore(self.target)
        assert restored.resolve('Home').content == 'new content'
        assert restored.resolve('Home', first.sha).content == 'old content'
        assert restored.resolve('A/B').data == b'\x00binary'
        assert restored.history('') == vs.history('')

    def test_truncated(self):
        VersionStore(self.source).write('Home', 'content', None, 'msg', AUTHOR)
        f = io.BytesIO()
        serialize(self.source, f)
        value = f.getvalue()
        meta_size = struct.unpack('!i', value[:4])[0]
        # stream ends within the data of the first object
        f = io.BytesIO(value[:4 + meta_size + 3])
        with pytest.raises(IOError):
            deserialize(f, self.target)

    @pytest.mark.parametrize('cut', [0, 2, 4 + 3])
    def test_truncated_in_header(self, cut):
        VersionStore(self.source).write('Home', 'content', None, 'msg', AUTHOR)
        f = io.BytesIO()
        serialize(self.source, f)
        # stream ends within the size header or within the meta data
        f = io.BytesIO(f.getvalue()[:cut])
        with pytest.raises(IOError):
            deserialize(f, self.target)

    def test_corrupted(self):
        sha = self.source.store_blob(b'content')
        f = io.BytesIO()
        serialize(self.source, f)
        data = f.getvalue().replace(b'content', b'CONTENT')
        assert sha.encode('ascii') in data
        with pytest.raises(IOError):
            deserialize(io.BytesIO(data), self.target)
