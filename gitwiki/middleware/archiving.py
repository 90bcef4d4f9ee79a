# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - archive export

Exports a tree snapshot as .tar.gz file. Trees never change, so an archive
depends only on the tree id (and the name of the top directory inside the
archive): it is generated once and then served from the cache storage.
"""


import io
import gzip
import logging
import tarfile
import tempfile

from gitwiki.middleware.items import Page, Tree


class ArchiveExporter(object):
    def __init__(self, cache_store):
        """
        :param cache_store: created/opened filesystem FileStorage keeping the archives
        """
        self.cache_store = cache_store

    def cache_key(self, tree):
        """
        cache key (and etag) for the archive of tree
        """
        return '%s-%s.tar.gz' % (tree.safe_name, tree.tree_id)

    def archive(self, tree, mtime=0):
        """
        Return the name of a .tar.gz file containing tree.

        :param tree: Tree to export
        :param mtime: modification time of the archive members (use the
                      commit date to get the same archive bytes every time)
        """
        key = self.cache_key(tree)
        filename = self.cache_store.filename(key)
        if key in self.cache_store:
            logging.debug("archive %s served from cache" % key)
            return filename
        logging.info("generating archive %s" % key)
        with tempfile.TemporaryFile() as f:
            self._write_archive(f, tree, mtime)
            f.seek(0)
            self.cache_store[key] = f
        return filename

    def _write_archive(self, fileobj, tree, mtime):
        # fixed gzip header mtime, so the bytes only depend on the tree
        with gzip.GzipFile(fileobj=fileobj, mode='wb', mtime=mtime) as gz:
            with tarfile.open(fileobj=gz, mode='w', format=tarfile.PAX_FORMAT) as tar:
                self._add_tree(tar, tree, tree.safe_name, mtime)

    def _add_tree(self, tar, tree, name, mtime):
        info = tarfile.TarInfo(name)
        info.type = tarfile.DIRTYPE
        info.mode = 0o755
        info.mtime = mtime
        tar.addfile(info)
        for child in tree.children:
            child_name = '%s/%s' % (name, child.name)
            if isinstance(child, Tree):
                self._add_tree(tar, child, child_name, mtime)
            elif isinstance(child, Page):
                data = child.data
                info = tarfile.TarInfo(child_name)
                info.size = len(data)
                info.mode = 0o644
                info.mtime = mtime
                tar.addfile(info, io.BytesIO(data))
            else:
                raise TypeError("unknown document type %s" % type(child).__name__)
