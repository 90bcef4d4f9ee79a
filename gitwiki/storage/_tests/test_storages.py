# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - tests for all storages (see conftest for the kinds of storages)
"""


from io import BytesIO

import pytest


def test_bytes_getitem_raises(bst):
    with pytest.raises(KeyError):
        bst['doesnotexist']


def test_bytes_setitem_getitem_delitem(bst):
    k, v = 'key', b'value'
    bst[k] = v
    assert v == bst[k]
    assert k in bst
    del bst[k]
    with pytest.raises(KeyError):
        bst[k]
    assert k not in bst


def test_bytes_overwrite(bst):
    bst['HEAD'] = b'1' * 40
    bst['HEAD'] = b'2' * 40
    assert bst['HEAD'] == b'2' * 40
    assert len(bst) == 1


def test_bytes_iter(bst):
    kvs = set([('1', b'one'), ('2', b'two'), ('3', b'three'), ])
    for k, v in kvs:
        bst[k] = v
    result = set()
    for k in bst:
        result.add((k, bst[k]))
    assert result == kvs


def test_bytes_len(bst):
    assert len(bst) == 0
    bst['foo'] = b'bar'
    assert len(bst) == 1
    del bst['foo']
    assert len(bst) == 0


def test_file_getitem_raises(fst):
    with pytest.raises(KeyError):
        fst['doesnotexist']


def test_file_setitem_getitem_delitem(fst):
    k, v = 'key', b'value'
    fst[k] = BytesIO(v)
    with fst[k] as f:
        assert v == f.read()
    del fst[k]
    with pytest.raises(KeyError):
        fst[k]


def test_file_iter(fst):
    kvs = set([('1', b'one'), ('2', b'two'), ('3', b'three'), ])
    for k, v in kvs:
        fst[k] = BytesIO(v)
    result = set()
    for k in fst:
        with fst[k] as f:
            result.add((k, f.read()))
    assert result == kvs
