# Copyright: 2011 MoinMoin:RonnyPfannschmidt
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - storage test magic
"""


import importlib

import pytest

stores = 'fs memory sqlite sqlite:compressed'.split()


constructors = {
    'memory': lambda store, _: store(),
    'fs': lambda store, tmpdir: store(str(tmpdir.join('store'))),
    'sqlite': lambda store, tmpdir: store(str(tmpdir.join('store.sqlite')),
                                          'test_table', compression_level=0),
    'sqlite:compressed': lambda store, tmpdir: store(str(tmpdir.join('store.sqlite')),
                                          'test_table', compression_level=1),
}


def make_storage(request, tmpdir, kind):
    storename = request.param
    storemodule = importlib.import_module('gitwiki.storage.' + storename.split(':')[0])
    klass = getattr(storemodule, kind)
    store = constructors[storename](klass, tmpdir)
    store.create()
    store.open()
    # no destroy in the normal finalizer
    # so we can keep the data for example if it's a tmpdir
    request.addfinalizer(store.close)
    return store


@pytest.fixture(params=stores)
def bst(request, tmpdir):
    return make_storage(request, tmpdir, 'BytesStorage')


@pytest.fixture(params=stores)
def fst(request, tmpdir):
    return make_storage(request, tmpdir, 'FileStorage')
