# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - constants and configuration
"""


# we need a specific hash algorithm to compute object ids (same as git),
# revision ids are hex digests of commit objects.
HASH_ALGORITHM = 'sha1'
SHA_LENGTH = 40
# abbreviated revision ids shorter than this are not accepted
SHA_MIN_LENGTH = 5

SHA_PATTERN = '[0-9a-f]{%d,%d}' % (SHA_MIN_LENGTH, SHA_LENGTH)
STRICT_SHA_PATTERN = '[0-9a-f]{%d}' % SHA_LENGTH

# object types
BLOB = 'blob'
TREE = 'tree'
COMMIT = 'commit'
OBJECT_TYPES = [BLOB, TREE, COMMIT, ]

# tree entry modes
MODE_BLOB = '100644'
MODE_TREE = '40000'

# the only ref we need: first-parent history, no branches
HEAD = 'HEAD'

# time zone offset written into commit objects
TZ_OFFSET = '+0000'

DEFAULT_MIME = 'text/x-markdown'
MAIN_PAGE = 'Home'
MAIN_PAGE_CONTENT = 'This is the main page of the wiki.'
INIT_MESSAGE = 'Initialize Repository'

# some field names for whoosh index schema / documents in index:
PATH = "path"
NAME = "name"
REVID = "revid"
MTIME = "mtime"
CONTENTTYPE = "contenttype"
SIZE = "size"
COMMENT = "comment"
AUTHOR = "author"
CONTENT = "content"


class WikiConfig(object):
    """
    configuration of one wiki instance (fixed set of fields)

    :param repository: directory (fs), database file (sqlite), unused (memory)
    :param store: kind of stores for objects and refs: 'fs', 'sqlite' or 'memory'
    :param extension: appended to page paths to get blob names, e.g. '.md'
    :param main_page: path of the page created when initializing the repository
    :param index_dir: whoosh index directory (None: no search index)
    :param archive_dir: directory for cached archives (None: no archives)
    """
    __slots__ = ('repository', 'store', 'extension', 'main_page', 'index_dir', 'archive_dir', )

    STORES = ('fs', 'sqlite', 'memory', )

    def __init__(self, repository=None, store='fs', extension=None, main_page=MAIN_PAGE,
                 index_dir=None, archive_dir=None):
        if store not in self.STORES:
            raise ValueError("unknown store kind %r, use one of %s" % (store, ', '.join(self.STORES)))
        if repository is None and store != 'memory':
            raise ValueError("store kind %r needs a repository location" % store)
        self.repository = repository
        self.store = store
        self.extension = extension
        self.main_page = main_page
        self.index_dir = index_dir
        self.archive_dir = archive_dir

    @classmethod
    def from_dict(cls, d):
        """
        build a config from a (e.g. yaml/json loaded) dict, unknown keys are a TypeError
        """
        return cls(**d)

    def __repr__(self):
        return '<WikiConfig %s>' % ' '.join('%s=%r' % (key, getattr(self, key)) for key in self.__slots__)
