# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - the wiki: everything the web layer needs, in one object

    cfg = WikiConfig(repository='/srv/wiki', index_dir='/srv/wiki-index',
                     archive_dir='/srv/wiki-archives')
    wiki = Wiki.open_or_create(cfg)
    page = wiki.find('Home')
    wiki.write('Home', 'new text', page.baseline_revision, 'typo', 'Joe <joe@example.org>')
"""


import os
import logging

from gitwiki.config import HEAD, MAIN_PAGE_CONTENT, INIT_MESSAGE
from gitwiki.errors import NotFoundError, ForbiddenError
from gitwiki.backend.storages import MutableBackend
from gitwiki.middleware.items import Tree, clean_path, split_path, splice_content
from gitwiki.middleware.versioning import VersionStore, read_content
from gitwiki.middleware.routing import PathResolver
from gitwiki.middleware.walking import walk_tree
from gitwiki.middleware.archiving import ArchiveExporter
from gitwiki.middleware.indexing import IndexingMiddleware
from gitwiki.middleware.serializer import serialize, deserialize
from gitwiki.storage import fs, sqlite, memory

INIT_AUTHOR = 'GitWiki <gitwiki@localhost>'


def make_backend(cfg):
    """
    build a (not yet created/opened) backend as configured
    """
    if cfg.store == 'fs':
        object_store = fs.BytesStorage(os.path.join(cfg.repository, 'objects'))
        ref_store = fs.BytesStorage(os.path.join(cfg.repository, 'refs'))
    elif cfg.store == 'sqlite':
        object_store = sqlite.BytesStorage(cfg.repository, 'objects')
        ref_store = sqlite.BytesStorage(cfg.repository, 'refs')
    else:
        object_store = memory.BytesStorage()
        ref_store = memory.BytesStorage()
    return MutableBackend(object_store, ref_store)


def repository_exists(cfg):
    if cfg.store == 'fs':
        return os.path.isdir(os.path.join(cfg.repository, 'objects'))
    if cfg.store == 'sqlite':
        return os.path.isfile(cfg.repository)
    return False


class Wiki(object):
    def __init__(self, cfg, resolver=None):
        """
        :param cfg: WikiConfig
        :param resolver: PathResolver knowing the routes of the web layer
                         (default: the standard wiki routes)
        """
        self.cfg = cfg
        self.backend = make_backend(cfg)
        self.store = VersionStore(self.backend, cfg.extension)
        self.resolver = resolver or PathResolver()
        self.indexer = IndexingMiddleware(cfg.index_dir) if cfg.index_dir else None
        if cfg.archive_dir:
            self.archive_store = fs.FileStorage(cfg.archive_dir)
            self.exporter = ArchiveExporter(self.archive_store)
        else:
            self.archive_store = self.exporter = None

    @classmethod
    def open_or_create(cls, cfg):
        """
        Open the wiki, create and initialize it first if it does not exist yet.
        """
        wiki = cls(cfg)
        if repository_exists(cfg):
            logging.info("Opening repository")
            wiki.open()
        else:
            logging.info("Initializing repository")
            wiki.create()
            wiki.open()
            wiki.initialize()
            logging.info("Repository initialized")
        return wiki

    # ------------------------------------------------------------------
    # lifecycle

    def create(self):
        self.backend.create()
        if self.archive_store is not None:
            self.archive_store.create()
        if self.indexer is not None:
            self.indexer.create()

    def open(self):
        self.backend.open()
        if self.archive_store is not None:
            self.archive_store.open()
        if self.indexer is not None:
            self.indexer.open()

    def close(self):
        if self.indexer is not None:
            self.indexer.close()
        if self.archive_store is not None:
            self.archive_store.close()
        self.backend.close()

    def destroy(self):
        if self.indexer is not None:
            self.indexer.destroy()
        if self.archive_store is not None:
            self.archive_store.destroy()
        self.backend.destroy()

    def initialize(self, author=INIT_AUTHOR):
        """
        Write the main page if the repository is empty.
        """
        if self.store.head_revision() is None:
            self.write(self.cfg.main_page, MAIN_PAGE_CONTENT, None, INIT_MESSAGE, author)

    # ------------------------------------------------------------------
    # reading

    def find(self, request_path):
        """
        Return the Page or Tree a request path refers to.

        The request path may end with a revision (see PathResolver.split).
        """
        for path, revision in self.resolver.split(request_path):
            try:
                return self.store.resolve(path, revision)
            except NotFoundError:
                continue
        raise NotFoundError(clean_path(request_path))

    def resolve(self, path, revision=None):
        return self.store.resolve(path, revision)

    def find_or_create(self, path):
        return self.store.find_or_create(path)

    def pages(self, revision=None):
        return self.store.pages(revision)

    def walk(self, path='', revision=None):
        """
        Return [(depth, child, is_open), ...] for the tree listing of path:
        the root tree with the directories along path opened.
        """
        root = self.store.resolve('', revision)
        return list(walk_tree(root, split_path(path)))

    def history(self, path='', revision=None):
        return self.store.history(path, revision)

    def diff(self, path=None, from_revision=None, to_revision=None):
        return self.store.diff(path, from_revision, to_revision)

    def commit(self, revision=None):
        return self.store.commit(revision)

    def commit_diff(self, revision):
        return self.store.commit_diff(revision)

    def is_reserved_path(self, path):
        return self.resolver.is_reserved_path(path)

    def archive(self, path='', revision=None):
        """
        Return the name of a .tar.gz file with the tree at path (as of revision).
        """
        if self.exporter is None:
            raise ValueError("no archive_dir configured")
        tree = self.store.resolve(path, revision)
        if not isinstance(tree, Tree):
            raise NotFoundError(clean_path(path), revision)
        mtime = int(self.store.latest_commit(path, revision).date.timestamp())
        return self.exporter.archive(tree, mtime)

    def search(self, q, **kw):
        """
        Search the latest revisions of all pages, return list of stored fields.
        """
        if self.indexer is None:
            raise ValueError("no index_dir configured")
        return list(self.indexer.search(q, **kw))

    # ------------------------------------------------------------------
    # writing

    def write(self, path, content, baseline_revision=None, message=None, author=None):
        """
        Write a page (see VersionStore.write), new pages must not collide
        with a system route.
        """
        if baseline_revision is None and self.resolver.is_reserved_path(path):
            raise ForbiddenError("Path is not allowed")
        commit, created = self.store.save(path, content, baseline_revision, message, author)
        if self.indexer is not None and created:
            self.indexer.index_commit(self.store, commit)
        return commit

    def edit(self, path, fragment, baseline_revision, pos=None, length=None, message=None, author=None):
        """
        Replace a part of the page content as seen at baseline_revision (see
        splice_content) and write the result.
        """
        page = self.store.resolve(path, baseline_revision)
        if isinstance(page, Tree):
            raise NotFoundError(clean_path(path), baseline_revision)
        fragment = read_content(fragment).decode('utf-8')
        content = splice_content(page.content, fragment, pos, length)
        return self.write(path, content, page.baseline_revision, message, author)

    def rebuild_index(self):
        """
        Build a fresh index at a temporary location and switch to it.
        """
        self.indexer.create(tmp=True)
        self.indexer.rebuild(self.store, tmp=True)
        self.indexer.close()
        self.indexer.move_index()
        self.indexer.open()

    # ------------------------------------------------------------------
    # backup

    def dump(self, targetfile):
        serialize(self.backend, targetfile, refs=(HEAD, ))

    def load(self, sourcefile):
        """
        Restore a dump into this (empty) wiki and rebuild the index.
        """
        deserialize(sourcefile, self.backend)
        if self.indexer is not None:
            self.rebuild_index()
