# Copyright: 2011 MoinMoin:RonnyPfannschmidt
# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - storage base classes

A storage is the simplest thing in the stack: store, get, destroy and iterate
over key/value pairs. BytesStorages take and give bytes values, FileStorages
take and give file-like objects.
"""


from abc import abstractmethod, ABCMeta
from collections.abc import Mapping, MutableMapping


class StorageBase(Mapping, metaclass=ABCMeta):
    """
    A simple read-only storage.
    """
    @abstractmethod
    def open(self):
        """
        open the storage, allocate resources
        """

    @abstractmethod
    def close(self):
        """
        close the storage, free resources (except the stored data!)
        """

    @abstractmethod
    def __iter__(self):
        """
        iterate over keys
        """

    @abstractmethod
    def __getitem__(self, key):
        """
        return data stored for key, raise KeyError if there is nothing
        """

    def __len__(self):
        return len([key for key in self])


class MutableStorageBase(StorageBase, MutableMapping):
    """
    A simple read/write storage.
    """
    @abstractmethod
    def create(self):
        """
        create the storage
        """

    @abstractmethod
    def destroy(self):
        """
        destroy the storage, erase all data it contains
        """

    @abstractmethod
    def __setitem__(self, key, value):
        """
        store value under key, overwrite existing value
        """

    @abstractmethod
    def __delitem__(self, key):
        """
        delete the value stored under key
        """


class BytesMutableStorageBase(MutableStorageBase):
    """
    mutable storage for bytes values
    """


class FileMutableStorageBase(MutableStorageBase):
    """
    mutable storage for file-like values
    """
