# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - documents: pages, trees and commits

Documents are snapshots: a Page or a Tree as of one revision. They are built
per request by the VersionStore (or as a "new" placeholder page) and never
change once built.
"""


import re
import mimetypes
import posixpath
from collections import namedtuple
from datetime import datetime, timezone

from gitwiki.config import DEFAULT_MIME
from gitwiki.errors import ValidationError

AUTHOR_RE = re.compile(r'^\s*(?P<name>[^<>\n]*?)\s*<(?P<email>[^<>\s]+)>\s*$')
CONTROL_RE = re.compile(r'[\x00-\x1f\x7f]')


def clean_path(path):
    """
    Return the canonical form of path: segments joined by '/', no leading or
    trailing separator. The root is ''.

    Raises ValidationError for empty, '.' or '..' segments and for control
    characters (a NUL would end the name inside a tree entry).
    """
    path = (path or '').strip('/')
    if not path:
        return ''
    if CONTROL_RE.search(path):
        raise ValidationError("Path %r contains control characters" % path)
    for segment in path.split('/'):
        if segment in ('', '.', '..'):
            raise ValidationError("Path %r is not allowed" % path)
    return path


def split_path(path):
    path = clean_path(path)
    return path.split('/') if path else []


def join_path(*parts):
    return '/'.join(part for part in parts if part)


def safe_name(path):
    """
    name usable as a file name (e.g. for archives), 'root' for the root tree
    """
    return re.sub(r'[^\w.-]+', '_', path) or 'root'


class Author(namedtuple('Author', 'name email')):
    def __str__(self):
        return '%s <%s>' % (self.name, self.email)


def parse_author(author):
    """
    parse "Name <email>" into an Author, raise ValidationError if it is malformed
    """
    m = AUTHOR_RE.match(author or '')
    if not m or not m.group('name'):
        raise ValidationError("Author %r is not of the form 'Name <email>'" % (author, ))
    return Author(m.group('name'), m.group('email'))


class Commit(object):
    """
    A commit: one immutable revision of the whole wiki.
    """
    def __init__(self, sha, message, author, date, parent_sha=None, tree_id=None):
        self.sha = sha
        self.message = message
        self.author = author
        self.date = date
        self.parent_sha = parent_sha
        self.tree_id = tree_id

    @classmethod
    def from_object(cls, sha, obj):
        """
        build a Commit from a decoded backend commit object
        """
        name, email, timestamp, tz = obj['author']
        date = datetime.fromtimestamp(timestamp, timezone.utc)
        return cls(sha, obj['message'], Author(name, email), date, obj['parent'], obj['tree'])

    @property
    def short_sha(self):
        return self.sha[:7]

    def __eq__(self, other):
        return isinstance(other, Commit) and self.sha == other.sha

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash(self.sha)

    def __repr__(self):
        return '<Commit %s %r>' % (self.short_sha, self.message.split('\n', 1)[0])


class Document(object):
    """
    base class of Page and Tree
    """
    def __init__(self, path, revision=None):
        self.path = clean_path(path)
        self.revision = revision

    @property
    def name(self):
        return posixpath.basename(self.path)

    @property
    def safe_name(self):
        return safe_name(self.path)

    def __str__(self):
        return self.path

    def __repr__(self):
        return '<%s %r @ %s>' % (self.__class__.__name__, self.path, (self.revision or 'new')[:7])


class Page(Document):
    """
    A page (blob) as of one revision, or a new page that was not committed yet.

    baseline_revision is the revision the page was read at, None for new pages.
    """
    def __init__(self, path, data=None, revision=None, mime=None, blob_id=None, loader=None):
        super().__init__(path, revision)
        if not self.path:
            raise ValidationError("A page needs a path")
        self._data = data
        self._mime = mime
        self.blob_id = blob_id
        self._loader = loader

    @property
    def baseline_revision(self):
        return self.revision

    @property
    def is_new(self):
        return self.revision is None

    @property
    def data(self):
        """
        raw content (bytes), loaded from the backend on first access
        """
        if self._data is None:
            if self._loader is not None:
                self._data = self._loader(self.blob_id)
            else:
                self._data = b''
        return self._data

    @property
    def content(self):
        """
        content as text
        """
        return self.data.decode('utf-8', 'replace')

    @property
    def mime(self):
        if self._mime is None:
            mime, _ = mimetypes.guess_type(self.name)
            self._mime = mime or DEFAULT_MIME
        return self._mime

    @property
    def is_text(self):
        return self.mime.startswith('text/')


class Tree(Document):
    """
    A tree (directory listing) as of one revision.

    children are built on first access from the tree entries, in stored order.
    """
    def __init__(self, path, revision, tree_id, entries=(), factory=None):
        super().__init__(path, revision)
        self.tree_id = tree_id
        self._entries = list(entries)
        self._factory = factory
        self._children = None

    @property
    def sha(self):
        return self.tree_id

    @property
    def children(self):
        if self._children is None:
            self._children = [self._factory(self, entry) for entry in self._entries]
        return self._children

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self.children)


def splice_content(content, fragment, pos=None, length=None):
    """
    Replace a range of content by fragment.

    :param content: current content
    :param fragment: replacement
    :param pos: start of the replaced range (clamped to [0, len(content)]),
                None replaces everything
    :param length: length of the replaced range (clamped to [0, rest]),
                   None replaces until the end
    :returns: content[0:pos] + fragment + content[pos+length:]
    """
    if pos is None:
        return fragment
    pos = min(max(0, pos), len(content))
    rest = len(content) - pos
    length = rest if length is None else min(max(0, length), rest)
    return content[:pos] + fragment + content[pos + length:]
