# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - middleware: documents, versioning, routing, tree walking,
archives, indexing and serialization on top of a backend
"""
