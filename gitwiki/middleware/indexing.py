# Copyright: 2011 MoinMoin:RonnyPfannschmidt
# Copyright: 2011 MoinMoin:ThomasWaldmann
# Copyright: 2011 MoinMoin:MichaelMayorov
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - indexing middleware

The version store finds pages by walking trees, which is fine for paths, but
not for searching. The indexer keeps a whoosh index of the pages:

* latest_revs: one document per page as of head (for searching / listing)
* all_revs: one document per page revision (commit that changed the page)

The index can always be rebuilt from the version store, it holds no data
of its own.
"""


import os
import shutil
import logging

from whoosh.fields import Schema, TEXT, ID, NUMERIC, DATETIME
from whoosh.index import open_dir, create_in, EmptyIndexError
from whoosh.writing import AsyncWriter
from whoosh.qparser import QueryParser, MultifieldParser

from gitwiki.config import PATH, NAME, REVID, MTIME, CONTENTTYPE, SIZE, COMMENT, AUTHOR, CONTENT
from gitwiki.errors import NotFoundError

LATEST_REVS = 'latest_revs'
ALL_REVS = 'all_revs'
INDEXES = [LATEST_REVS, ALL_REVS, ]

# query strings search these fields
SEARCH_FIELDS = [NAME, CONTENT, ]


def page_to_index(page, commit, schema):
    """
    Convert a page revision to a whoosh document.

    :param page: Page as of commit
    :param commit: Commit that changed the page
    :param schema: whoosh schema
    :returns: document to put into whoosh index
    """
    data = page.data
    doc = {
        PATH: page.path,
        NAME: page.name,
        REVID: commit.sha,
        # whoosh wants naive UTC datetimes
        MTIME: commit.date.replace(tzinfo=None),
        CONTENTTYPE: page.mime,
        SIZE: len(data),
        AUTHOR: str(commit.author),
        COMMENT: commit.message,
        CONTENT: page.content if page.is_text else u'',
    }
    return dict((key, value) for key, value in doc.items() if key in schema)


def make_schemas():
    """
    return dict index name -> whoosh Schema
    """
    def fields(path_field):
        return {
            PATH: path_field,
            # last path segment, tokenized and boosted for searching
            NAME: TEXT(stored=True, field_boost=2.0),
            REVID: ID(stored=True),
            # commit date (naive UTC)
            MTIME: DATETIME(stored=True),
            CONTENTTYPE: ID(stored=True),
            SIZE: NUMERIC(stored=True),
            # "Name <email>"
            AUTHOR: ID(stored=True),
            COMMENT: TEXT(stored=True),
            # empty for binary pages
            CONTENT: TEXT(stored=True),
        }

    return {
        # only one document per page here, so the path identifies it
        LATEST_REVS: Schema(**fields(ID(unique=True, stored=True))),
        ALL_REVS: Schema(**fields(ID(stored=True))),
    }


class IndexingMiddleware(object):
    def __init__(self, index_dir):
        """
        :param index_dir: directory of the whoosh indexes, a rebuild
                          happens in index_dir + '.temp'
        """
        self.index_dir = index_dir
        self.index_dir_tmp = index_dir + '.temp'
        self.schemas = make_schemas()
        self.ix = {}

    def _dir(self, tmp):
        return self.index_dir_tmp if tmp else self.index_dir

    def _name(self, all_revs):
        return ALL_REVS if all_revs else LATEST_REVS

    def open(self):
        for name in INDEXES:
            try:
                self.ix[name] = open_dir(self.index_dir, indexname=name)
            except (IOError, OSError, EmptyIndexError) as err:
                logging.error(u"%s [while trying to open index '%s' in '%s']" % (str(err), name, self.index_dir))
                self.close()
                raise

    def close(self):
        for ix in self.ix.values():
            ix.close()
        self.ix = {}

    def create(self, tmp=False):
        """
        create empty indexes (in the temporary location if tmp is True)
        """
        index_dir = self._dir(tmp)
        try:
            os.makedirs(index_dir, exist_ok=True)
            for name in INDEXES:
                create_in(index_dir, self.schemas[name], indexname=name)
        except (IOError, OSError) as err:
            logging.error(u"%s [while trying to create indexes in '%s']" % (str(err), index_dir))
            raise

    def destroy(self, tmp=False):
        index_dir = self._dir(tmp)
        if os.path.exists(index_dir):
            shutil.rmtree(index_dir)

    def move_index(self):
        """
        Replace the indexes by the ones built in the temporary location.
        """
        self.destroy()
        os.rename(self.index_dir_tmp, self.index_dir)

    def _changed_pages(self, store, commit):
        for path in store.changed_paths(commit):
            try:
                page = store.resolve(path, commit.sha)
            except NotFoundError:
                yield path, None
            else:
                yield path, page

    def index_commit(self, store, commit):
        """
        Index the pages changed by commit: add them to all-revs and update latest-revs.
        """
        changes = list(self._changed_pages(store, commit))
        with AsyncWriter(self.ix[ALL_REVS]) as writer:
            for path, page in changes:
                if page is not None:
                    writer.add_document(**page_to_index(page, commit, self.schemas[ALL_REVS]))
        with AsyncWriter(self.ix[LATEST_REVS]) as writer:
            for path, page in changes:
                if page is not None:
                    writer.update_document(**page_to_index(page, commit, self.schemas[LATEST_REVS]))
                else:
                    writer.delete_by_term(PATH, path)

    def rebuild(self, store, tmp=False):
        """
        Index all page revisions of the version store (the index is expected
        to be empty).
        """
        index_dir = self._dir(tmp)
        try:
            commits = store.history('')
        except NotFoundError:
            commits = [] # empty repository
        logging.info("rebuilding index in '%s' from %d commits" % (index_dir, len(commits)))

        ix = open_dir(index_dir, indexname=ALL_REVS)
        with ix.writer() as writer:
            for commit in reversed(commits):
                for path, page in self._changed_pages(store, commit):
                    if page is not None:
                        writer.add_document(**page_to_index(page, commit, self.schemas[ALL_REVS]))
        ix.close()

        ix = open_dir(index_dir, indexname=LATEST_REVS)
        with ix.writer() as writer:
            for page in store.pages():
                commit = store.latest_commit(page.path)
                writer.add_document(**page_to_index(page, commit, self.schemas[LATEST_REVS]))
        ix.close()

    def get_schema(self, all_revs=False):
        return self.schemas[self._name(all_revs)]

    def get_index(self, all_revs=False):
        return self.ix[self._name(all_revs)]

    def query_parser(self, default_fields, all_revs=False):
        """
        whoosh query parser searching default_fields (a non-empty list of field names)
        """
        if not default_fields:
            raise ValueError("need at least one default field")
        schema = self.get_schema(all_revs)
        if len(default_fields) == 1:
            return QueryParser(default_fields[0], schema=schema)
        return MultifieldParser(default_fields, schema=schema)

    def search(self, q, all_revs=False, **kw):
        """
        Search with query q (query string or whoosh query), yield stored fields.

        Query strings search in page names and contents. kw is passed on to
        whoosh (e.g. limit).
        """
        if isinstance(q, str):
            q = self.query_parser(SEARCH_FIELDS, all_revs).parse(q)
        # the generator must be consumed, so the searcher gets closed
        with self.get_index(all_revs).searcher() as searcher:
            for hit in searcher.search(q, **kw):
                yield hit.fields()

    def documents(self, all_revs=False, **kw):
        """
        yield stored fields of all documents matching kw (all documents without kw)
        """
        with self.get_index(all_revs).searcher() as searcher:
            docs = searcher.documents(**kw) if kw else searcher.all_stored_fields()
            for doc in docs:
                yield doc

    def document(self, all_revs=False, **kw):
        """
        stored fields of the document matching kw, None if there is none
        """
        with self.get_index(all_revs).searcher() as searcher:
            return searcher.document(**kw)
