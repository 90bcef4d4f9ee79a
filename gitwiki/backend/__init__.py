# Copyright: 2011 MoinMoin:RonnyPfannschmidt
# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - backend base classes
"""


from abc import abstractmethod, ABCMeta


class BackendBase(object, metaclass=ABCMeta):
    """
    ties together a store for objects and a store for refs, readonly
    """
    @abstractmethod
    def open(self):
        """
        open the backend, allocate resources
        """

    @abstractmethod
    def close(self):
        """
        close the backend, free resources (except the stored objects/refs!)
        """

    @abstractmethod
    def __iter__(self):
        """
        iterate over object ids
        """

    @abstractmethod
    def get_object(self, sha):
        """
        return type, decoded object related to sha
        """

    @abstractmethod
    def get_ref(self, name):
        """
        return the object id the ref points to (None if the ref does not exist)
        """


class MutableBackendBase(BackendBase):
    """
    same as Backend, but read/write
    """
    @abstractmethod
    def create(self):
        """
        create the backend
        """

    @abstractmethod
    def destroy(self):
        """
        destroy the backend, erase all objects/refs it contains
        """

    @abstractmethod
    def store_object(self, obj_type, obj):
        """
        encode and store obj into the backend, return the object id
        """

    @abstractmethod
    def set_ref(self, name, sha):
        """
        let ref <name> point to object id <sha>
        """
