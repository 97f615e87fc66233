# (c) 2005 Ian Bicking and contributors; written for Paste (http://pythonpaste.org)
# Licensed under the MIT license: http://www.opensource.org/licenses/mit-license.php
"""
OpenID challenge headers

An application asks for an OpenID login by answering with a ``401``
whose ``WWW-Authenticate`` header uses the ``OpenID`` scheme::

    WWW-Authenticate: OpenID identity="http://example.com/", required="nickname,email"

The parameters are ``key="value"`` pairs separated by ``, ``.  A value
holding a list is written with its items joined by ``,``; nothing is
escaped, so values themselves may not contain ``"`` (or ``,`` unless
they are lists).

>>> build_header({'identity': 'http://example.com/',
...               'required': ['nickname', 'email']})
'OpenID identity="http://example.com/", required="nickname,email"'
>>> parse_header('OpenID identity="http://example.com/"')
{'identity': 'http://example.com/'}
"""

import logging
import re

from paste.deploy.converters import asbool

from authopenid.httpexceptions import HTTPUnauthorized

log = logging.getLogger(__name__)

AUTHENTICATE_HEADER = 'WWW-Authenticate'
SCHEME = 'OpenID'

_scheme_re = re.compile(r'^%s(?:\s+|$)' % SCHEME, re.I)
_param_re = re.compile(r'([A-Za-z_][\w.\-]*)="([^"]*)"')
_separator_re = re.compile(r'\s*,\s*')


class HeaderParseError(ValueError):
    """
    The value is not an ``OpenID`` challenge, or one of its parameters
    is not of the form ``key="value"``.
    """


def build_header(params):
    """
    Serializes ``params`` (any mapping; order is kept) into the value
    of an ``OpenID`` challenge header.
    """
    parts = []
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            value = ','.join(value)
        parts.append('%s="%s"' % (key, value))
    return ('%s %s' % (SCHEME, ', '.join(parts))).rstrip()


def is_openid_challenge(value):
    return bool(value and _scheme_re.match(value))


def parse_header(value):
    """
    Parses an ``OpenID`` challenge header into a dictionary.  Values
    with a comma in them come back as lists.

    Anything that does not fit the ``key="value"`` shape raises
    ``HeaderParseError``; a bare ``OpenID`` gives an empty dictionary.
    """
    match = _scheme_re.match(value or '')
    if not match:
        raise HeaderParseError(
            'Not an %s challenge: %r' % (SCHEME, value))
    rest = value[match.end():].rstrip()
    params = {}
    pos = 0
    while pos < len(rest):
        param = _param_re.match(rest, pos)
        if not param:
            raise HeaderParseError(
                'Malformed parameter at %r in %r' % (rest[pos:], value))
        key, item = param.groups()
        if ',' in item:
            item = item.split(',')
        params[key] = item
        pos = param.end()
        if pos == len(rest):
            break
        sep = _separator_re.match(rest, pos)
        if not sep or sep.end() == len(rest):
            raise HeaderParseError(
                'Expected ", " at %r in %r' % (rest[pos:], value))
        pos = sep.end()
    return params


class ChallengeOptions(object):
    """
    What is asked of the identity provider.

    ``identity``
        The claimed identifier (required).

    ``return_to``
        Where the provider sends the user back; by default the URL of
        the request that was challenged.

    ``required``, ``optional``
        Lists of profile fields.  Plain names (``nickname``) are asked
        for with Simple Registration, URLs
        (``http://axschema.org/contact/email``) with Attribute Exchange.

    ``method``
        The HTTP method the application sees on the return visit.  It
        defaults to the challenged request's method, or to ``GET`` when
        ``return_to`` is given.

    ``trust_root``
        The OpenID realm; the application root by default.

    ``immediate``
        Use ``checkid_immediate`` instead of ``checkid_setup``.

    ``policy_url``
        Passed along with Simple Registration requests.
    """

    fields = ('identity', 'return_to', 'required', 'optional', 'method',
              'trust_root', 'immediate', 'policy_url')
    list_fields = ('required', 'optional')
    aliases = {'identifier': 'identity'}

    def __init__(self, identity, return_to=None, required=None,
                 optional=None, method=None, trust_root=None,
                 immediate=False, policy_url=None):
        self.identity = self._string('identity', identity)
        if not self.identity:
            raise ValueError('An identity is required')
        self.return_to = self._string('return_to', return_to)
        self.required = self._list('required', required)
        self.optional = self._list('optional', optional)
        self.method = self._string('method', method)
        self.trust_root = self._string('trust_root', trust_root)
        self.immediate = asbool(immediate)
        self.policy_url = self._string('policy_url', policy_url)

    @classmethod
    def from_dict(cls, params):
        kw = {}
        for key, value in params.items():
            key = cls.aliases.get(key, key)
            if key not in cls.fields:
                log.debug('Ignoring unknown challenge parameter %r', key)
                continue
            kw[key] = value
        if 'identity' not in kw:
            raise ValueError('An identity is required')
        return cls(**kw)

    @classmethod
    def from_header(cls, value):
        return cls.from_dict(parse_header(value))

    def _string(self, name, value):
        if value is None or isinstance(value, str):
            return value
        raise TypeError('%s must be a string, not %r' % (name, value))

    def _list(self, name, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        value = list(value)
        for item in value:
            if not isinstance(item, str):
                raise TypeError(
                    '%s must be a list of strings, not %r' % (name, value))
        return value

    def as_dict(self):
        result = {}
        for name in self.fields:
            value = getattr(self, name)
            if name == 'immediate':
                if value:
                    result[name] = 'true'
            elif value:
                result[name] = value
        return result

    def header(self):
        return build_header(self.as_dict())

    __str__ = header

    def challenge(self):
        """
        An ``HTTPUnauthorized`` exception carrying this challenge, to be
        raised under an ``HTTPExceptionHandler``.
        """
        return HTTPUnauthorized(headers=[(AUTHENTICATE_HEADER, self.header())])

    def __eq__(self, other):
        if not isinstance(other, ChallengeOptions):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self):
        return '<%s %s>' % (self.__class__.__name__, self.header())
