# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - tree walking

Flattens a tree into (depth, child, is_open) tuples for rendering a nested
directory listing, only the directories along the requested path are opened.
"""


from gitwiki.middleware.items import Page, Tree, split_path


def walk_tree(tree, path_segments, depth=None):
    """
    Walk tree and yield (depth, child, is_open) for each child in stored order.

    A child is open (and its children follow it, one level deeper) if it is a
    tree and its path is the requested path up to that depth.

    :param tree: Tree to walk
    :param path_segments: requested path as list of segments
    :param depth: depth of the children of tree, default: depth of tree's path
    """
    if depth is None:
        depth = len(split_path(tree.path))
    prefix = '/'.join(path_segments[:depth + 1])
    for child in tree.children:
        if isinstance(child, Tree):
            is_open = child.path == prefix
        elif isinstance(child, Page):
            is_open = False
        else:
            raise TypeError("unknown document type %s" % type(child).__name__)
        yield depth, child, is_open
        if is_open:
            for item in walk_tree(child, path_segments, depth + 1):
                yield item
