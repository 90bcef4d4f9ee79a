# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - backend tests
"""


import pytest

from gitwiki.config import BLOB, TREE, COMMIT, MODE_BLOB, MODE_TREE, HEAD


class BackendTestBase(object):
    def setup_method(self, method):
        """
        self.be needs to be an created/opened backend
        """
        raise NotImplementedError

    def teardown_method(self, method):
        """
        close and destroy self.be
        """
        self.be.close()
        self.be.destroy()

    def test_getobject_raises(self):
        with pytest.raises(KeyError):
            self.be.get_object('0' * 40)

    def test_iter_empty(self):
        assert list(self.be) == []

    def test_store_get_blob(self):
        data = b'baz'
        sha = self.be.store_blob(data)
        assert self.be.get_object(sha) == (BLOB, data)
        assert self.be.get_blob(sha) == data
        # same content, same id, nothing new stored
        assert self.be.store_blob(data) == sha
        assert list(self.be) == [sha]

    def test_store_get_tree(self):
        blob = self.be.store_blob(b'content')
        sub = self.be.store_tree([(MODE_BLOB, 'page', blob)])
        entries = [(MODE_TREE, 'sub', sub), (MODE_BLOB, 'Home', blob), ]
        sha = self.be.store_tree(entries)
        assert self.be.get_type(sha) == TREE
        # stored sorted by name
        assert self.be.get_tree(sha) == [(MODE_BLOB, 'Home', blob), (MODE_TREE, 'sub', sub)]

    def test_store_get_commit(self):
        tree = self.be.store_tree([])
        commit = dict(tree=tree, parent=None, message="message1\ntext",
                      author=('Author1', 'author1@localhorst', 1300000000, '+0000'))
        sha = self.be.store_commit(commit)
        assert self.be.get_type(sha) == COMMIT
        got = self.be.get_commit(sha)
        assert got['tree'] == tree
        assert got['parent'] is None
        assert got['message'] == "message1\ntext"
        assert got['author'] == ('Author1', 'author1@localhorst', 1300000000, '+0000')
        assert got['committer'] == got['author']

    def test_wrong_type_raises(self):
        sha = self.be.store_blob(b'not a tree')
        with pytest.raises(ValueError):
            self.be.get_tree(sha)

    def test_find_objects(self):
        shas = [self.be.store_blob(data) for data in [b'one', b'two', b'three']]
        for sha in shas:
            assert self.be.find_objects(sha[:10]) == [sha]
        assert self.be.find_objects('') == sorted(shas)
        assert self.be.find_objects('x') == []

    def test_refs(self):
        assert self.be.get_ref(HEAD) is None
        sha1 = self.be.store_blob(b'1')
        sha2 = self.be.store_blob(b'2')
        self.be.set_ref(HEAD, sha1)
        assert self.be.get_ref(HEAD) == sha1
        self.be.set_ref(HEAD, sha2)
        assert self.be.get_ref(HEAD) == sha2
        self.be.del_ref(HEAD)
        assert self.be.get_ref(HEAD) is None

    def test_iter(self):
        expected_result = set()
        for data in [b'ONE', b'TWO', b'THREE']:
            sha = self.be.store_blob(data)
            expected_result.add((sha, data))
        result = set()
        for sha in self.be:
            result.add((sha, self.be.get_blob(sha)))
        assert result == expected_result
