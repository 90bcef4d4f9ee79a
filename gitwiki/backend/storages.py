# Copyright: 2011 MoinMoin:RonnyPfannschmidt
# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - backend using 2 storages

A BytesStorage for objects (zlib compressed, keyed by object id) and a
BytesStorage for refs (ascii object id, keyed by ref name).

Objects are immutable and content-addressed: storing the same object twice
gives the same id and does not change anything. Only refs are ever updated.
"""


import zlib

from gitwiki.config import BLOB, TREE, COMMIT
from gitwiki.backend import BackendBase, MutableBackendBase
from gitwiki.backend.objects import object_id, encode_object, decode_object, \
                                    ObjectFormatError, ENCODERS, DECODERS


class Backend(BackendBase):
    """
    ties together a store for objects and a store for refs, readonly
    """
    def __init__(self, object_store, ref_store):
        self.object_store = object_store
        self.ref_store = ref_store

    def open(self):
        self.object_store.open()
        self.ref_store.open()

    def close(self):
        self.object_store.close()
        self.ref_store.close()

    def __iter__(self):
        for sha in self.object_store:
            yield sha

    def __contains__(self, sha):
        return sha in self.object_store

    def find_objects(self, prefix):
        """
        return sorted list of object ids starting with prefix
        """
        return sorted(sha for sha in self.object_store if sha.startswith(prefix))

    def get_raw(self, sha):
        """
        return the raw (uncompressed, with header) object bytes, raise KeyError if it does not exist
        """
        return zlib.decompress(self.object_store[sha])

    def get_object(self, sha):
        obj_type, body = decode_object(self.get_raw(sha))
        return obj_type, DECODERS[obj_type](body)

    def _get_typed(self, sha, wanted_type):
        obj_type, obj = self.get_object(sha)
        if obj_type != wanted_type:
            raise ObjectFormatError("object %s is a %s, not a %s" % (sha, obj_type, wanted_type))
        return obj

    def get_blob(self, sha):
        return self._get_typed(sha, BLOB)

    def get_tree(self, sha):
        return self._get_typed(sha, TREE)

    def get_commit(self, sha):
        return self._get_typed(sha, COMMIT)

    def get_type(self, sha):
        obj_type, _ = decode_object(self.get_raw(sha))
        return obj_type

    def get_ref(self, name):
        try:
            return self.ref_store[name].decode('ascii')
        except KeyError:
            return None


class MutableBackend(Backend, MutableBackendBase):
    """
    same as Backend, but read/write
    """
    def create(self):
        self.object_store.create()
        self.ref_store.create()

    def destroy(self):
        self.object_store.destroy()
        self.ref_store.destroy()

    def store_raw(self, raw):
        """
        store raw object bytes (with header), return the object id
        """
        obj_type, body = decode_object(raw)
        sha = object_id(obj_type, body)
        if sha not in self.object_store:
            self.object_store[sha] = zlib.compress(raw)
        return sha

    def store_object(self, obj_type, obj):
        body = ENCODERS[obj_type](obj)
        return self.store_raw(encode_object(obj_type, body))

    def store_blob(self, data):
        return self.store_object(BLOB, data)

    def store_tree(self, entries):
        return self.store_object(TREE, entries)

    def store_commit(self, commit):
        return self.store_object(COMMIT, commit)

    def set_ref(self, name, sha):
        self.ref_store[name] = sha.encode('ascii')

    def del_ref(self, name):
        del self.ref_store[name]
