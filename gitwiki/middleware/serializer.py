# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - backend serialization (dump / load for backup and restore)

Stream format, for each object and ref:

    <4 bytes meta length> <json meta> <data>

meta is {"sha": id, "size": n} for objects (data: raw object bytes) and
{"ref": name, "size": n} for refs (data: ascii object id). A meta length
of 0 marks the end of the stream.
"""


import json
import struct

from werkzeug.exceptions import ClientDisconnected
from werkzeug.wsgi import LimitedStream


def _record(meta, data):
    meta = dict(meta, size=len(data))
    meta_str = json.dumps(meta, ensure_ascii=False).encode('utf-8')
    yield struct.pack('!i', len(meta_str))
    yield meta_str
    yield data


def serialize(backend, targetfile, refs=('HEAD', )):
    targetfile.writelines(serialize_iter(backend, refs))


def serialize_iter(backend, refs=('HEAD', )):
    for sha in backend:
        for chunk in _record(dict(sha=sha), backend.get_raw(sha)):
            yield chunk
    # refs after objects, so a partial restore never has a ref to a missing object
    for name in refs:
        sha = backend.get_ref(name)
        if sha is not None:
            for chunk in _record(dict(ref=name), sha.encode('ascii')):
                yield chunk
    # the deserializer expects next meta len here, but gets 0 as
    # indication of a valid end of stream:
    yield struct.pack('!i', 0)


def deserialize(io, backend):
    while True:
        meta_size_bytes = io.read(4)
        if len(meta_size_bytes) != 4:
            raise IOError("truncated stream: expected a 4 byte header, got %d bytes" % len(meta_size_bytes))
        meta_size = struct.unpack('!i', meta_size_bytes)[0]
        if not meta_size:
            return
        meta_str = io.read(meta_size)
        if len(meta_str) != meta_size:
            raise IOError("truncated stream: expected %d bytes of meta data, got %d" % (meta_size, len(meta_str)))
        text = meta_str.decode('utf-8')
        meta = json.loads(text)
        data_size = meta[u'size']

        limited = LimitedStream(io, data_size)
        try:
            data = limited.read()
        except ClientDisconnected:
            data = b''
        if len(data) != data_size:
            raise IOError("truncated stream: expected %d bytes, got %d" % (data_size, len(data)))
        if u'ref' in meta:
            backend.set_ref(meta[u'ref'], data.decode('ascii'))
        else:
            sha = backend.store_raw(data)
            if sha != meta[u'sha']:
                raise IOError("object %s is corrupted (content has id %s)" % (meta[u'sha'], sha))
