# Copyright: 2011 MoinMoin:ThomasWaldmann
# License: GNU GPL v2 (or any later version), see LICENSE.txt for details.

"""
GitWiki - routing middleware

Request paths like "Foo/Bar/<revision>" are ambiguous: revisions are hex
strings of variable length, so the last segment may be a revision or just a
page name that happens to look like one. The rules are:

* a strict (full length) revision is always a revision
* an abbreviated revision is a page name first, a revision second

The routes of the web layer are registered as werkzeug rules (patterns only,
no dispatching happens here). They are used to find out whether a path for a
new page would collide with a system route (like /login).
"""


import re

from werkzeug.routing import Map, Rule, BaseConverter

from gitwiki.config import SHA_PATTERN, STRICT_SHA_PATTERN
from gitwiki.middleware.items import clean_path

SHA_RE = re.compile(r'^%s$' % SHA_PATTERN)
STRICT_SHA_RE = re.compile(r'^%s$' % STRICT_SHA_PATTERN)

# endpoint of the rules serving arbitrary content paths
SHOW = 'show'


class ShaConverter(BaseConverter):
    """
    revision, maybe abbreviated
    """
    regex = SHA_PATTERN


class StrictShaConverter(BaseConverter):
    """
    full length revision
    """
    regex = STRICT_SHA_PATTERN


CONVERTERS = {
    'sha': ShaConverter,
    'strictsha': StrictShaConverter,
}


def default_rules():
    """
    the routes of the wiki web layer
    """
    return [
        Rule('/', endpoint='index'),
        Rule('/sys/fragments/user', endpoint='fragment_user'),
        Rule('/sys/fragments/sidebar', endpoint='fragment_sidebar'),
        Rule('/login', endpoint='login'),
        Rule('/signup', endpoint='signup'),
        Rule('/logout', endpoint='logout'),
        Rule('/profile', endpoint='profile'),
        Rule('/<style>.css', endpoint='style'),
        Rule('/commit/<sha:sha>', endpoint='commit'),
        Rule('/archive', endpoint='archive'),
        Rule('/<path:path>/archive', endpoint='archive'),
        Rule('/history', endpoint='history'),
        Rule('/<path:path>/history', endpoint='history'),
        Rule('/diff', endpoint='diff'),
        Rule('/<path:path>/diff', endpoint='diff'),
        Rule('/<path:path>/edit', endpoint='edit'),
        Rule('/new', endpoint='new'),
        Rule('/upload', endpoint='upload'),
        Rule('/<path:path>/new', endpoint='new'),
        Rule('/<path:path>/upload', endpoint='upload'),
        # content
        Rule('/<sha:sha>', endpoint=SHOW),
        Rule('/<path:path>/<sha:sha>', endpoint=SHOW),
        Rule('/<path:path>', endpoint=SHOW),
    ]


def strict_rules():
    """
    strict revision urls, they must always stay reachable
    """
    return [
        Rule('/<strictsha:sha>', endpoint='show_strict'),
        Rule('/<path:path>/<strictsha:sha>', endpoint='show_strict'),
    ]


class PathResolver(object):
    def __init__(self, rules=None):
        """
        :param rules: werkzeug rules of the web layer (default: default_rules()),
                      rules with endpoint 'show' serve content paths
        """
        if rules is None:
            rules = default_rules()
        self.url_map = Map(rules, converters=CONVERTERS, merge_slashes=False)
        self._reserved = None

    def split(self, request_path):
        """
        Return list of (path, revision) interpretations of request_path, best first.

        revision is None for "current head".
        """
        request_path = clean_path(request_path)
        path, _, last = request_path.rpartition('/')
        if STRICT_SHA_RE.match(last):
            return [(path, last)]
        if SHA_RE.match(last):
            return [(request_path, None), (path, last)]
        return [(request_path, None)]

    def _reserved_map(self):
        if self._reserved is None:
            # rules serving arbitrary content paths are no collisions, they
            # are the way content is reached. strict revision urls are added
            # back: a page path ending with a full revision would never be
            # reachable as a page.
            rules = [Rule(rule.rule, endpoint=rule.endpoint)
                     for rule in self.url_map.iter_rules() if rule.endpoint != SHOW]
            rules.extend(strict_rules())
            self._reserved = Map(rules, converters=CONVERTERS, merge_slashes=False)
        return self._reserved

    def is_reserved_path(self, path):
        """
        Does a page at path collide with a system route?
        """
        path = clean_path(path)
        adapter = self._reserved_map().bind('localhost')
        return bool(adapter.test('/' + path))
