# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - wiki tests
"""


import io
import os
import tarfile

import pytest

from gitwiki.config import WikiConfig, MAIN_PAGE, MAIN_PAGE_CONTENT, INIT_MESSAGE, PATH
from gitwiki.errors import NotFoundError, DuplicateError, ForbiddenError, ConflictError, ValidationError
from gitwiki.middleware.items import Page, Tree
from gitwiki.wiki import Wiki, INIT_AUTHOR

AUTHOR1 = "Author1 <author1@localhorst>"
AUTHOR2 = "Author2 <author2@localhorst>"


def make_config(tmpdir, store='fs', **kw):
    if store == 'fs':
        repository = str(tmpdir.join('repository'))
    elif store == 'sqlite':
        repository = str(tmpdir.join('repository.sqlite'))
    else:
        repository = None
    return WikiConfig(repository=repository, store=store,
                      index_dir=str(tmpdir.join('index')),
                      archive_dir=str(tmpdir.join('archives')), **kw)


@pytest.fixture(params=['fs', 'sqlite', 'memory'])
def wiki(request, tmpdir):
    wiki = Wiki.open_or_create(make_config(tmpdir, request.param))
    yield wiki
    wiki.close()
    wiki.destroy()


def test_initialized(wiki):
    page = wiki.find(MAIN_PAGE)
    assert page.content == MAIN_PAGE_CONTENT
    commit = wiki.commit()
    assert commit.message == INIT_MESSAGE
    assert str(commit.author) == INIT_AUTHOR
    assert [doc[PATH] for doc in wiki.search(u'main page')] == [MAIN_PAGE]


def test_reopen(tmpdir):
    cfg = make_config(tmpdir)
    wiki = Wiki.open_or_create(cfg)
    commit = wiki.write('FooBar', 'old content', None, 'message1', AUTHOR1)
    wiki.close()
    wiki = Wiki.open_or_create(cfg)
    try:
        # not initialized again
        assert wiki.commit() == commit
        assert len(wiki.history()) == 2
    finally:
        wiki.close()
        wiki.destroy()


def test_not_found(wiki):
    with pytest.raises(NotFoundError):
        wiki.find('FooBar')
    with pytest.raises(NotFoundError):
        wiki.resolve('FooBar')


def test_write_read_history(wiki):
    first = wiki.write('FooBar', 'old content', None, 'message1\ntext', AUTHOR1)
    assert wiki.find('FooBar').content == 'old content'
    assert wiki.resolve('FooBar').baseline_revision == first.sha
    with pytest.raises(DuplicateError):
        wiki.write('FooBar', 'other content', None, 'message2', AUTHOR2)
    second = wiki.write('FooBar', 'new content', first.sha, 'message2', AUTHOR2)
    assert wiki.find('FooBar').content == 'new content'
    assert wiki.resolve('FooBar', first.sha).content == 'old content'
    # no-op write: nothing committed
    assert wiki.write('FooBar', 'new content', second.sha, 'message3', AUTHOR2) == second
    assert wiki.history('FooBar') == [second, first]
    assert [c.message for c in wiki.history('FooBar')] == ['message2', 'message1\ntext']


def test_find_with_revision(wiki):
    first = wiki.write('FooBar', 'old content', None, 'message1', AUTHOR1)
    wiki.write('FooBar', 'new content', first.sha, 'message2', AUTHOR1)
    assert wiki.find('FooBar/%s' % first.sha).content == 'old content'
    assert wiki.find('FooBar/%s' % first.short_sha).content == 'old content'
    root = wiki.find(first.sha)
    assert isinstance(root, Tree) and root.revision == first.sha


def test_find_page_named_like_revision(wiki):
    wiki.write('cafe1', 'a page', None, 'msg', AUTHOR1)
    assert wiki.find('cafe1').content == 'a page'


def test_conflict(wiki):
    first = wiki.write('FooBar', 'old content', None, 'message1', AUTHOR1)
    wiki.write('FooBar', 'new content', first.sha, 'message2', AUTHOR1)
    with pytest.raises(ConflictError):
        wiki.write('FooBar', 'other content', first.sha, 'message3', AUTHOR2)


def test_reserved_paths(wiki):
    assert wiki.is_reserved_path('login')
    assert not wiki.is_reserved_path('SomeWikiPage')
    with pytest.raises(ForbiddenError):
        wiki.write('login', 'x', None, 'msg', AUTHOR1)
    with pytest.raises(ForbiddenError):
        wiki.write('Foo/edit', 'x', None, 'msg', AUTHOR1)
    assert [page.path for page in wiki.pages()] == [MAIN_PAGE]


def test_edit(wiki):
    first = wiki.write('FooBar', 'Hello World', None, 'msg', AUTHOR1)
    commit = wiki.edit('FooBar', 'Wiki', first.sha, 6, 5, 'edit', AUTHOR1)
    assert commit.parent_sha == first.sha
    assert wiki.find('FooBar').content == 'Hello Wiki'
    wiki.edit('FooBar', io.BytesIO(b'!'), commit.sha, 100, 0, 'append', AUTHOR1)
    assert wiki.find('FooBar').content == 'Hello Wiki!'
    with pytest.raises(ConflictError):
        wiki.edit('FooBar', 'X', first.sha, 0, 0, 'stale', AUTHOR2)


def test_walk(wiki):
    wiki.write('A/B/C', 'c', None, 'msg', AUTHOR1)
    listing = [(depth, child.path, is_open) for depth, child, is_open in wiki.walk('A/B')]
    assert listing == [
        (0, 'A', True),
        (1, 'A/B', True),
        (2, 'A/B/C', False),
        (0, MAIN_PAGE, False),
    ]


def test_diff(wiki):
    first = wiki.write('FooBar', 'old content\n', None, 'message1', AUTHOR1)
    second = wiki.write('FooBar', 'new content\n', first.sha, 'message2', AUTHOR1)
    assert '-old content\n+new content' in wiki.diff('FooBar', first.sha, second.sha)
    assert wiki.commit_diff(second.sha) == wiki.diff(None, first.sha, second.sha)


def test_archive(wiki):
    commit = wiki.write('A/B', 'b', None, 'msg', AUTHOR1)
    filename = wiki.archive('A')
    with tarfile.open(filename, 'r:gz') as tar:
        assert sorted(tar.getnames()) == ['A', 'A/B']
        assert tar.getmember('A/B').mtime == int(commit.date.timestamp())
    with pytest.raises(NotFoundError):
        wiki.archive('A/B')  # a page, no tree
    with pytest.raises(NotFoundError):
        wiki.archive('Nothing')


def test_archive_is_reproducible(tmpdir, monkeypatch):
    clock = [1300000000]
    monkeypatch.setattr('gitwiki.middleware.versioning.time.time', lambda: clock[0])
    wiki = Wiki.open_or_create(WikiConfig(store='memory', archive_dir=str(tmpdir.join('archives'))))
    try:
        commit = wiki.write('A/B', 'b', None, 'msg', AUTHOR1)
        filename = wiki.archive('A')
        with open(filename, 'rb') as f:
            first = f.read()
        clock[0] += 100
        wiki.write('C', 'c', None, 'msg', AUTHOR1)
        os.remove(filename)
        # same tree as of a later head: same file, same bytes
        assert wiki.archive('A') == filename
        with open(filename, 'rb') as f:
            assert f.read() == first
        with tarfile.open(filename, 'r:gz') as tar:
            assert tar.getmember('A/B').mtime == int(commit.date.timestamp())
    finally:
        wiki.close()
        wiki.destroy()


def test_noop_write_does_not_index_other_commits(wiki, monkeypatch):
    first = wiki.write('Fruit', 'apples', None, 'msg', AUTHOR1)
    save = wiki.store.save

    def racing_save(*args, **kw):
        # another writer commits between our call and the write lock
        monkeypatch.setattr(wiki.store, 'save', save)
        wiki.write('Other', 'other', None, 'msg', AUTHOR2)
        return save(*args, **kw)

    monkeypatch.setattr(wiki.store, 'save', racing_save)
    again = wiki.write('Fruit', 'apples', first.sha, 'msg', AUTHOR1)
    assert again == wiki.commit()
    assert len(list(wiki.indexer.documents(all_revs=True, path=u'Other'))) == 1
    assert [doc[PATH] for doc in wiki.search(u'other')] == [u'Other']


def test_search_follows_writes(wiki):
    first = wiki.write('Fruit', 'apples', None, 'msg', AUTHOR1)
    assert [doc[PATH] for doc in wiki.search(u'apples')] == [u'Fruit']
    wiki.write('Fruit', 'bananas', first.sha, 'msg', AUTHOR1)
    assert list(wiki.search(u'apples')) == []
    assert [doc[PATH] for doc in wiki.search(u'bananas')] == [u'Fruit']


def test_invalid_write(wiki):
    with pytest.raises(ValidationError):
        wiki.write('FooBar', 'x', None, '', AUTHOR1)
    with pytest.raises(ValidationError):
        wiki.write('FooBar', 'x', None, 'msg', 'nobody')
    with pytest.raises(NotFoundError):
        wiki.find('FooBar')


def test_dump_load(tmpdir):
    source = Wiki.open_or_create(make_config(tmpdir.mkdir('source')))
    first = source.write('FooBar', 'old content', None, 'message1', AUTHOR1)
    source.write('FooBar', 'searchable content', first.sha, 'message2', AUTHOR1)
    f = io.BytesIO()
    source.dump(f)
    f.seek(0)

    target = Wiki(make_config(tmpdir.mkdir('target'), 'sqlite'))
    target.create()
    target.open()
    try:
        target.load(f)
        assert target.commit() == source.commit()
        assert target.find('FooBar/%s' % first.sha).content == 'old content'
        assert [doc[PATH] for doc in target.search(u'searchable')] == [u'FooBar']
    finally:
        for wiki in source, target:
            wiki.close()
            wiki.destroy()


def test_memory_wiki_without_extras():
    wiki = Wiki(WikiConfig(store='memory'))
    wiki.create()
    wiki.open()
    try:
        wiki.initialize()
        assert isinstance(wiki.find(MAIN_PAGE), Page)
        with pytest.raises(ValueError):
            wiki.search(u'main')
        with pytest.raises(ValueError):
            wiki.archive('')
    finally:
        wiki.close()
        wiki.destroy()


def test_extension(tmpdir):
    wiki = Wiki.open_or_create(make_config(tmpdir, extension='.md'))
    try:
        assert wiki.find(MAIN_PAGE).path == MAIN_PAGE
        root = wiki.backend.get_tree(wiki.commit().tree_id)
        assert [name for mode, name, sha in root] == [MAIN_PAGE + '.md']
    finally:
        wiki.close()
        wiki.destroy()
