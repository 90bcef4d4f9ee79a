# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - versioned document store
==================================

We use a layered approach like this::

 Wiki                              ties everything together for the web layer,
 |                                 checks reserved paths, keeps the index fresh
 v
 Middleware                        resolves paths and revisions to pages and
 |                                 trees, writes new revisions, walks trees,
 |                                 exports archives, diffs, history, search
 v
 Backend                           content-addressable objects: blobs, trees,
 |           |                     commits (git compatible ids) and refs
 v           v
 object store  ref store           simplest stuff: store, get, destroy and
                                   iterate over key/value pairs
"""
