# Copyright: 2011 MoinMoin:RonnyPfannschmidt
# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - versioning middleware

The backend is just a bunch of immutable objects plus a HEAD ref. The
version store adds the needed power on top of it:

* resolving a path (at head or at some revision) to a Page or a Tree
* writing a new page revision (one commit per write), with optimistic
  concurrency control based on the revision the writer has seen
* history of a path (first-parent walk, only commits changing the path)
* diffs between revisions, listing of all pages

Writes are serialized by a lock, reads do not lock: objects never change and
HEAD is only moved after the new commit is completely stored.
"""


import re
import time
import difflib
import logging
import threading

from gitwiki.config import HEAD, COMMIT, BLOB, MODE_BLOB, MODE_TREE, SHA_LENGTH, \
                           SHA_PATTERN, STRICT_SHA_PATTERN, TZ_OFFSET
from gitwiki.errors import NotFoundError, DuplicateError, ConflictError, ValidationError
from gitwiki.backend.objects import object_id, ObjectFormatError
from gitwiki.middleware.items import Commit, Page, Tree, clean_path, join_path, parse_author

SHA_RE = re.compile(r'^%s$' % SHA_PATTERN)
STRICT_SHA_RE = re.compile(r'^%s$' % STRICT_SHA_PATTERN)


def is_strict_sha(value):
    return bool(value) and STRICT_SHA_RE.match(value) is not None


def read_content(content):
    """
    Convert page content given as text, bytes or open file to bytes.
    """
    if content is None:
        raise ValidationError("Content is missing")
    if hasattr(content, 'read'):
        content = content.read()
    if isinstance(content, str):
        content = content.encode('utf-8')
    if not isinstance(content, bytes):
        raise TypeError("content must be str, bytes or a file, not %s" % type(content).__name__)
    return content


def is_binary(data):
    if b'\0' in data:
        return True
    try:
        data.decode('utf-8')
    except UnicodeDecodeError:
        return True
    return False


class VersionStore(object):
    def __init__(self, backend, extension=None):
        """
        :param backend: opened MutableBackend holding the objects and refs
        :param extension: if given, page paths are stored as blobs named
                          path + extension (e.g. 'Home' -> 'Home.md')
        """
        self.backend = backend
        self.extension = extension
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # objects and revisions

    def _read(self, getter, sha):
        try:
            return getter(sha)
        except KeyError:
            raise IOError("repository is corrupted, object %s is missing" % sha)
        except ObjectFormatError as err:
            raise IOError("repository is corrupted, object %s: %s" % (sha, err))

    def _load_blob(self, sha):
        return self._read(self.backend.get_blob, sha)

    def _tree_entries(self, sha):
        return self._read(self.backend.get_tree, sha)

    def _load_commit(self, sha):
        return Commit.from_object(sha, self._read(self.backend.get_commit, sha))

    def head_revision(self):
        """
        return the id of the newest commit, None if nothing was committed yet
        """
        return self.backend.get_ref(HEAD)

    def head(self):
        """
        return the newest Commit, None if nothing was committed yet
        """
        sha = self.head_revision()
        return self._load_commit(sha) if sha else None

    def expand_revision(self, revision=None):
        """
        Return the full commit id for a (maybe abbreviated) revision.

        None means head (which is None for an empty repository).
        Raises NotFoundError if there is no such commit, ValidationError if an
        abbreviated revision is ambiguous.
        """
        if revision is None:
            return self.head_revision()
        if not SHA_RE.match(revision):
            raise NotFoundError('', revision)
        if len(revision) == SHA_LENGTH:
            candidates = [revision] if revision in self.backend else []
        else:
            candidates = self.backend.find_objects(revision)
        candidates = [sha for sha in candidates if self.backend.get_type(sha) == COMMIT]
        if not candidates:
            raise NotFoundError('', revision)
        if len(candidates) > 1:
            raise ValidationError("Revision %s is ambiguous" % revision)
        return candidates[0]

    def commit(self, revision=None):
        """
        return the Commit for revision (default: head)
        """
        sha = self.expand_revision(revision)
        if sha is None:
            raise NotFoundError('', revision)
        return self._load_commit(sha)

    # ------------------------------------------------------------------
    # paths

    def _blob_name(self, path):
        if self.extension and not path.endswith(self.extension):
            return path + self.extension
        return path

    def _page_path(self, name):
        if self.extension and name.endswith(self.extension) and name != self.extension:
            return name[:-len(self.extension)]
        return name

    def _lookup(self, tree_id, segments):
        """
        return (mode, sha) of the entry at segments below tree tree_id, None if there is none
        """
        if tree_id is None:
            return None
        mode, sha = MODE_TREE, tree_id
        for segment in segments:
            if mode != MODE_TREE:
                return None
            for entry_mode, name, entry_sha in self._tree_entries(sha):
                if name == segment:
                    mode, sha = entry_mode, entry_sha
                    break
            else:
                return None
        return mode, sha

    def _find_entry(self, tree_id, path):
        """
        return (name, mode, sha) for the object that path refers to, None if there is none.

        name is the path of the object in the tree (maybe with the page extension).
        """
        if not path:
            return ('', MODE_TREE, tree_id) if tree_id else None
        blob_name = self._blob_name(path)
        if blob_name != path:
            found = self._lookup(tree_id, blob_name.split('/'))
            if found is not None and found[0] != MODE_TREE:
                return (blob_name, ) + found
        found = self._lookup(tree_id, path.split('/'))
        if found is not None:
            return (path, ) + found
        return None

    def _make_document(self, path, mode, sha, revision):
        if mode == MODE_TREE:
            return Tree(path, revision, sha, self._tree_entries(sha), factory=self._make_child)
        return Page(path, revision=revision, blob_id=sha, loader=self._load_blob)

    def _make_child(self, tree, entry):
        mode, name, sha = entry
        if mode != MODE_TREE:
            name = self._page_path(name)
        return self._make_document(join_path(tree.path, name), mode, sha, tree.revision)

    # ------------------------------------------------------------------
    # reading

    def resolve(self, path, revision=None):
        """
        Return the Page or Tree at path as of revision (default: head).

        Raises NotFoundError if there is nothing at path.
        """
        path = clean_path(path)
        try:
            sha = self.expand_revision(revision)
        except NotFoundError:
            raise NotFoundError(path, revision)
        if sha is None:
            raise NotFoundError(path, revision)
        commit = self._load_commit(sha)
        found = self._find_entry(commit.tree_id, path)
        if found is None:
            raise NotFoundError(path, revision)
        name, mode, obj_sha = found
        return self._make_document(path, mode, obj_sha, sha)

    def exists(self, path, revision=None):
        try:
            self.resolve(path, revision)
        except NotFoundError:
            return False
        return True

    def find_or_create(self, path):
        """
        Return the page at path (at head) or a new page if there is none yet.
        """
        path = clean_path(path)
        try:
            document = self.resolve(path)
        except NotFoundError:
            return Page(path)
        if isinstance(document, Tree):
            raise ValidationError("%s is a directory, not a page" % path)
        return document

    def pages(self, revision=None):
        """
        Return a list of all pages (recursively) as of revision (default: head).
        """
        try:
            root = self.resolve('', revision)
        except NotFoundError:
            if revision is None:
                return [] # nothing committed yet
            raise
        result = []
        stack = [root]
        while stack:
            tree = stack.pop()
            for child in tree.children:
                if isinstance(child, Tree):
                    stack.append(child)
                else:
                    result.append(child)
        return sorted(result, key=lambda page: page.path)

    # ------------------------------------------------------------------
    # history

    def _iter_history(self, sha, name):
        segments = name.split('/') if name else []
        commit = self._load_commit(sha) if sha else None
        while commit is not None:
            parent = self._load_commit(commit.parent_sha) if commit.parent_sha else None
            current = self._lookup(commit.tree_id, segments)
            previous = self._lookup(parent.tree_id, segments) if parent else None
            if current != previous:
                yield commit
            commit = parent

    def history(self, path='', revision=None):
        """
        Return the list of commits that changed path, newest first.

        Only the first parent of each commit is followed. The empty path
        (root) gives all commits. Raises NotFoundError if path does not exist
        at revision (default: head).
        """
        path = clean_path(path)
        document = self.resolve(path, revision)
        found = self._find_entry(self._load_commit(document.revision).tree_id, path)
        return list(self._iter_history(document.revision, found[0]))

    def latest_commit(self, path, revision=None):
        """
        Return the newest commit that changed path (up to revision).
        """
        path = clean_path(path)
        document = self.resolve(path, revision)
        found = self._find_entry(self._load_commit(document.revision).tree_id, path)
        return next(self._iter_history(document.revision, found[0]))

    def _iter_blobs(self, tree_id, prefix):
        for mode, name, sha in self._tree_entries(tree_id):
            path = join_path(prefix, name)
            if mode == MODE_TREE:
                for item in self._iter_blobs(sha, path):
                    yield item
            else:
                yield path, sha

    def _diff_trees(self, old_id, new_id, prefix=''):
        """
        yield (name, old blob sha, new blob sha) for all blobs that differ
        between tree old_id and tree new_id (None is an empty tree).
        """
        if old_id == new_id:
            return
        old = dict((name, (mode, sha)) for mode, name, sha in self._tree_entries(old_id)) if old_id else {}
        new = dict((name, (mode, sha)) for mode, name, sha in self._tree_entries(new_id)) if new_id else {}
        for name in sorted(set(old) | set(new)):
            o, n = old.get(name), new.get(name)
            if o == n:
                continue
            path = join_path(prefix, name)
            o_tree = o[1] if o and o[0] == MODE_TREE else None
            n_tree = n[1] if n and n[0] == MODE_TREE else None
            if o_tree or n_tree:
                for change in self._diff_trees(o_tree, n_tree, path):
                    yield change
            o_blob = o[1] if o and o[0] != MODE_TREE else None
            n_blob = n[1] if n and n[0] != MODE_TREE else None
            if o_blob != n_blob:
                yield path, o_blob, n_blob

    def changed_paths(self, commit):
        """
        Return the sorted list of page paths changed by commit (compared to its parent).
        """
        parent_tree = self._load_commit(commit.parent_sha).tree_id if commit.parent_sha else None
        return sorted(self._page_path(name) for name, _, _ in self._diff_trees(parent_tree, commit.tree_id))

    # ------------------------------------------------------------------
    # diffs

    def _format_change(self, name, old_sha, new_sha):
        old_data = self._load_blob(old_sha) if old_sha else b''
        new_data = self._load_blob(new_sha) if new_sha else b''
        old_file = 'a/%s' % name if old_sha else '/dev/null'
        new_file = 'b/%s' % name if new_sha else '/dev/null'
        lines = ['diff --git a/%s b/%s' % (name, name), ]
        if old_sha is None:
            lines.append('new file mode %s' % MODE_BLOB)
        elif new_sha is None:
            lines.append('deleted file mode %s' % MODE_BLOB)
        lines.append('index %s..%s' % ((old_sha or '0' * SHA_LENGTH)[:7], (new_sha or '0' * SHA_LENGTH)[:7]))
        if is_binary(old_data) or is_binary(new_data):
            lines.append('Binary files %s and %s differ' % (old_file, new_file))
        else:
            lines.extend(difflib.unified_diff(old_data.decode('utf-8').splitlines(),
                                              new_data.decode('utf-8').splitlines(),
                                              old_file, new_file, lineterm=''))
        return '\n'.join(lines) + '\n'

    def diff(self, path=None, from_revision=None, to_revision=None):
        """
        Return a unified (git style) diff between two revisions.

        :param path: only show changes of this page or below this tree
        :param from_revision: old revision, None is the empty repository
        :param to_revision: new revision, None is head
        """
        path = clean_path(path)
        to_sha = self.expand_revision(to_revision)
        if to_sha is None:
            raise NotFoundError(path, to_revision)
        from_sha = self.expand_revision(from_revision) if from_revision else None
        old_root = self._load_commit(from_sha).tree_id if from_sha else None
        new_root = self._load_commit(to_sha).tree_id
        if path:
            old = self._find_entry(old_root, path) if old_root else None
            new = self._find_entry(new_root, path)
            if old is None and new is None:
                raise NotFoundError(path, to_revision)
            name = (new or old)[0]
            o_tree = old[2] if old and old[1] == MODE_TREE else None
            n_tree = new[2] if new and new[1] == MODE_TREE else None
            changes = list(self._diff_trees(o_tree, n_tree, name))
            o_blob = old[2] if old and old[1] != MODE_TREE else None
            n_blob = new[2] if new and new[1] != MODE_TREE else None
            if o_blob != n_blob:
                changes.append((name, o_blob, n_blob))
        else:
            changes = self._diff_trees(old_root, new_root)
        return ''.join(self._format_change(name, o, n) for name, o, n in changes)

    def commit_diff(self, revision):
        """
        Return the diff of the changes introduced by commit revision.
        """
        commit = self.commit(revision)
        return self.diff(None, commit.parent_sha, commit.sha)

    # ------------------------------------------------------------------
    # writing

    def _check_parents(self, tree_id, segments):
        """
        raise ValidationError if some parent directory of segments is a page
        """
        for i in range(1, len(segments)):
            found = self._lookup(tree_id, segments[:i])
            if found is None:
                return
            if found[0] != MODE_TREE:
                raise ValidationError("%s is a page, it can not contain other pages" % '/'.join(segments[:i]))

    def _check_baseline(self, head_sha, name, baseline_revision):
        """
        raise ConflictError if some commit after baseline_revision changed name
        (or if baseline_revision is not in the history at all).
        """
        segments = name.split('/')
        for commit in self._iter_first_parents(head_sha):
            if commit.sha == baseline_revision:
                return
            parent_tree = self._load_commit(commit.parent_sha).tree_id if commit.parent_sha else None
            if self._lookup(commit.tree_id, segments) != self._lookup(parent_tree, segments):
                raise ConflictError("%s was changed by someone else in revision %s" % (
                                    self._page_path(name), commit.short_sha))
        raise ConflictError("Revision %s is unknown" % baseline_revision)

    def _iter_first_parents(self, sha):
        while sha:
            commit = self._load_commit(sha)
            yield commit
            sha = commit.parent_sha

    def _stage(self, tree_id, segments, blob_id):
        """
        store the new trees needed to put blob_id at segments, return new root tree id
        """
        entries = self._tree_entries(tree_id) if tree_id else []
        name, rest = segments[0], segments[1:]
        if rest:
            current = [sha for mode, entry_name, sha in entries if entry_name == name and mode == MODE_TREE]
            new_entry = (MODE_TREE, name, self._stage(current[0] if current else None, rest, blob_id))
        else:
            new_entry = (MODE_BLOB, name, blob_id)
        entries = [entry for entry in entries if entry[1] != name] + [new_entry]
        return self.backend.store_tree(entries)

    def write(self, path, content, baseline_revision=None, message=None, author=None):
        """
        Write a new revision of the page at path, return the Commit (see save).
        """
        commit, created = self.save(path, content, baseline_revision, message, author)
        return commit

    def save(self, path, content, baseline_revision=None, message=None, author=None):
        """
        Write a new revision of the page at path, return (Commit, created).

        :param path: page path
        :param content: new content (str, bytes or open file)
        :param baseline_revision: revision the writer has seen, None if the
                                  writer believes this is a new page
        :param message: commit message, None gives "Created <path>" /
                        "Updated <path>"
        :param author: "Name <email>"

        If content is the same as the current content, nothing is committed:
        the current head Commit is returned and created is False.
        """
        path = clean_path(path)
        if not path:
            raise ValidationError("A page needs a path")
        author = parse_author(author)
        if message is None:
            message = "%s %s" % ('Created' if baseline_revision is None else 'Updated', path)
        elif not message.strip():
            raise ValidationError("Commit message is empty")
        if baseline_revision is not None and not is_strict_sha(baseline_revision):
            raise ValidationError("Baseline revision %r is not a full revision id" % (baseline_revision, ))
        data = read_content(content)

        with self._write_lock:
            head_sha = self.head_revision()
            root = self._load_commit(head_sha).tree_id if head_sha else None
            existing = self._find_entry(root, path) if root else None
            if existing is not None and existing[1] == MODE_TREE:
                raise ValidationError("%s is a directory, not a page" % path)
            if baseline_revision is None and existing is not None:
                raise DuplicateError("Page %s already exists" % path)
            if existing is not None and existing[2] == object_id(BLOB, data):
                logging.debug("no changes for %s, nothing committed" % path)
                return self._load_commit(head_sha), False
            name = existing[0] if existing is not None else self._blob_name(path)
            if baseline_revision is not None:
                self._check_baseline(head_sha, name, baseline_revision)
            segments = name.split('/')
            self._check_parents(root, segments)

            blob_id = self.backend.store_blob(data)
            tree_id = self._stage(root, segments, blob_id)
            signature = (author.name, author.email, int(time.time()), TZ_OFFSET)
            commit = dict(tree=tree_id, parent=head_sha, author=signature, committer=signature,
                          message=message)
            sha = self.backend.store_commit(commit)
            self.backend.set_ref(HEAD, sha)
            logging.debug("committed %s: %s" % (sha, path))
        return self._load_commit(sha), True
