# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - exceptions
"""


class WikiError(Exception):
    """
    base class of all wiki errors
    """


class NotFoundError(WikiError):
    """
    nothing exists at path (at revision, or at head if revision is None)
    """
    def __init__(self, path, revision=None):
        self.path = path
        self.revision = revision
        if revision:
            msg = "%s not found (revision %s)" % (path or '/', revision)
        else:
            msg = "%s not found" % (path or '/', )
        super().__init__(msg)


class MessageError(WikiError):
    """
    error caused by user input, the message is meant to be shown to the user.
    the store is left unchanged.
    """


class ValidationError(MessageError):
    """
    invalid input (empty commit message, malformed author, bad path, ...)
    """


class DuplicateError(MessageError):
    """
    a new page was written, but the path already has content
    """


class ConflictError(MessageError):
    """
    the page was changed by someone else since the baseline revision
    """


class ForbiddenError(MessageError):
    """
    the path collides with a reserved route
    """
