# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - object encoding

Objects are encoded the same way git does it, so object ids are the same
as git would compute for the same content:

    <type> <body length>\\0<body>

blob body: the raw data
tree body: sequence of "<mode> <name>\\0<20 bytes binary id>", sorted by name
commit body: "tree", "parent", "author", "committer" header lines, an empty
             line, then the commit message
"""


import re
import hashlib
import binascii

from gitwiki.config import HASH_ALGORITHM, BLOB, TREE, COMMIT, OBJECT_TYPES, MODE_TREE, TZ_OFFSET

SIGNATURE_RE = re.compile(r'^(?P<name>.*) <(?P<email>[^<>]*)> (?P<time>\d+) (?P<tz>[+-]\d{4})$')


class ObjectFormatError(ValueError):
    """
    the bytes given do not form a valid object
    """


def object_header(obj_type, size):
    return ('%s %d\0' % (obj_type, size)).encode('ascii')


def object_id(obj_type, body):
    """
    compute the id of an object with type <obj_type> and body <body>
    """
    h = hashlib.new(HASH_ALGORITHM)
    h.update(object_header(obj_type, len(body)))
    h.update(body)
    return h.hexdigest()


def encode_object(obj_type, body):
    return object_header(obj_type, len(body)) + body


def decode_object(raw):
    """
    split raw object bytes into (type, body)
    """
    header, sep, body = raw.partition(b'\0')
    if not sep:
        raise ObjectFormatError("object header is not terminated")
    try:
        obj_type, size = header.decode('ascii').split(' ')
        size = int(size)
    except ValueError:
        raise ObjectFormatError("invalid object header %r" % header)
    if obj_type not in OBJECT_TYPES:
        raise ObjectFormatError("unknown object type %r" % obj_type)
    if size != len(body):
        raise ObjectFormatError("object size mismatch: %d != %d" % (size, len(body)))
    return obj_type, body


def _sort_key(entry):
    # git sorts tree names as if tree entries had a trailing slash
    mode, name, sha = entry
    name = name.encode('utf-8')
    return name + b'/' if mode == MODE_TREE else name


def encode_tree(entries):
    """
    encode tree entries (iterable of (mode, name, sha)) to a tree body
    """
    parts = []
    for mode, name, sha in sorted(entries, key=_sort_key):
        parts.append(mode.encode('ascii') + b' ' + name.encode('utf-8') + b'\0' + binascii.unhexlify(sha))
    return b''.join(parts)


def decode_tree(body):
    """
    decode a tree body to a list of (mode, name, sha) in stored order
    """
    entries = []
    pos = 0
    while pos < len(body):
        space = body.find(b' ', pos)
        nul = body.find(b'\0', space)
        if space < 0 or nul < 0 or nul + 21 > len(body):
            raise ObjectFormatError("truncated tree entry at offset %d" % pos)
        mode = body[pos:space].decode('ascii')
        name = body[space + 1:nul].decode('utf-8')
        sha = binascii.hexlify(body[nul + 1:nul + 21]).decode('ascii')
        entries.append((mode, name, sha))
        pos = nul + 21
    return entries


def format_signature(name, email, timestamp, tz=TZ_OFFSET):
    return '%s <%s> %d %s' % (name, email, timestamp, tz)


def parse_signature(value):
    m = SIGNATURE_RE.match(value)
    if not m:
        raise ObjectFormatError("invalid signature %r" % value)
    return m.group('name'), m.group('email'), int(m.group('time')), m.group('tz')


def encode_commit(commit):
    """
    encode a commit dict to a commit body

    :param commit: dict with keys tree, parent (may be None), author and
                   committer (both (name, email, timestamp, tz) tuples), message
    """
    lines = ['tree %s' % commit['tree'], ]
    if commit.get('parent'):
        lines.append('parent %s' % commit['parent'])
    lines.append('author %s' % format_signature(*commit['author']))
    lines.append('committer %s' % format_signature(*commit.get('committer', commit['author'])))
    text = '\n'.join(lines) + '\n\n' + commit['message']
    return text.encode('utf-8')


def decode_commit(body):
    """
    decode a commit body to a commit dict (see encode_commit)
    """
    text = body.decode('utf-8')
    headers, sep, message = text.partition('\n\n')
    if not sep:
        raise ObjectFormatError("commit has no message separator")
    commit = dict(parent=None, message=message)
    for line in headers.split('\n'):
        key, _, value = line.partition(' ')
        if key == 'tree':
            commit['tree'] = value
        elif key == 'parent':
            # first parent only, merges are not supported
            if commit['parent'] is None:
                commit['parent'] = value
        elif key in ('author', 'committer', ):
            commit[key] = parse_signature(value)
    if 'tree' not in commit or 'author' not in commit:
        raise ObjectFormatError("commit without tree or author")
    commit.setdefault('committer', commit['author'])
    return commit


ENCODERS = {
    BLOB: lambda data: data,
    TREE: encode_tree,
    COMMIT: encode_commit,
}

DECODERS = {
    BLOB: lambda body: body,
    TREE: decode_tree,
    COMMIT: decode_commit,
}
