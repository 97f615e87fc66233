# (c) 2005 Ian Bicking and contributors
# This module is part of the Python Paste Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
"""
This module provides helper routines with work directly on a WSGI
environment to solve common requirements.

   * get_cookies(environ)
   * parse_querystring(environ)
   * parse_formvars(environ, include_get_vars=True)
   * construct_url(environ, with_query_string=True, with_path_info=True,
                   script_name=None, path_info=None, querystring=None)
   * append_args(url, args)

"""
from http.cookies import SimpleCookie
from io import BytesIO
from urllib.parse import parse_qsl, urlencode

__all__ = ['get_cookies', 'parse_querystring', 'parse_formvars',
           'construct_url', 'append_args', 'WSGIRequest']


class environ_getter(object):
    """For delegating an attribute to a key in self.environ."""
    def __init__(self, key, default=''):
        self.key = key
        self.default = default

    def __get__(self, obj, type=None):
        if obj is None:
            return self
        if self.key not in obj.environ:
            return self.default
        return obj.environ[self.key]

    def __repr__(self):
        return '<Proxy for WSGI environ %r key>' % self.key


def get_cookies(environ):
    """
    Gets a cookie object (which is a dictionary-like object) from the
    request environment; caches this value in case get_cookies is
    called again for the same request.

    """
    header = environ.get('HTTP_COOKIE', '')
    if 'authopenid.cookies' in environ:
        cookies, check_header = environ['authopenid.cookies']
        if check_header == header:
            return cookies
    cookies = SimpleCookie()
    cookies.load(header)
    environ['authopenid.cookies'] = (cookies, header)
    return cookies


def parse_querystring(environ):
    """
    Parses a query string into a list like ``[(name, value)]``.
    Caches this value in case parse_querystring is called again
    for the same request.

    You can pass the result to ``dict()``, but be aware that keys that
    appear multiple times will be lost (only the last value will be
    preserved).

    """
    source = environ.get('QUERY_STRING', '')
    if not source:
        return []
    if 'authopenid.parsed_querystring' in environ:
        parsed, check_source = environ['authopenid.parsed_querystring']
        if check_source == source:
            return parsed
    parsed = parse_qsl(source, keep_blank_values=True)
    environ['authopenid.parsed_querystring'] = (parsed, source)
    return parsed


def _is_urlencoded(environ):
    content_type = environ.get('CONTENT_TYPE', '').split(';', 1)[0]
    return content_type.strip().lower() == 'application/x-www-form-urlencoded'


def parse_formvars(environ, include_get_vars=True):
    """Parses the request, returning a list of ``(name, value)``.

    Only ``application/x-www-form-urlencoded`` POST bodies are read.
    The body is put back in ``wsgi.input`` so the application can still
    read it.

    If ``include_get_vars`` is true then GET (query string) variables
    will also be included.

    """
    formvars = []
    if environ['REQUEST_METHOD'] == 'POST' and _is_urlencoded(environ):
        if 'authopenid.parsed_formvars' in environ:
            formvars = environ['authopenid.parsed_formvars']
        else:
            try:
                length = int(environ.get('CONTENT_LENGTH') or 0)
            except ValueError:
                length = 0
            body = environ['wsgi.input'].read(length) if length else b''
            environ['wsgi.input'] = BytesIO(body)
            formvars = parse_qsl(body.decode('utf8', 'replace'),
                                 keep_blank_values=True)
            environ['authopenid.parsed_formvars'] = formvars
    if include_get_vars:
        return parse_querystring(environ) + formvars
    return list(formvars)


def construct_url(environ, with_query_string=True, with_path_info=True,
                  script_name=None, path_info=None, querystring=None):
    """Reconstructs the URL from the WSGI environment.

    You may override SCRIPT_NAME, PATH_INFO, and QUERYSTRING with
    the keyword arguments.

    """
    url = environ['wsgi.url_scheme']+'://'

    if environ.get('HTTP_HOST'):
        host = environ['HTTP_HOST']
        port = None
        if ':' in host:
            host, port = host.split(':', 1)
            if environ['wsgi.url_scheme'] == 'https':
                if port == '443':
                    port = None
            elif environ['wsgi.url_scheme'] == 'http':
                if port == '80':
                    port = None
        url += host
        if port:
            url += ':%s' % port
    else:
        url += environ['SERVER_NAME']
        if environ['wsgi.url_scheme'] == 'https':
            if environ['SERVER_PORT'] != '443':
                url += ':' + environ['SERVER_PORT']
        else:
            if environ['SERVER_PORT'] != '80':
                url += ':' + environ['SERVER_PORT']

    if script_name is None:
        url += environ.get('SCRIPT_NAME', '')
    else:
        url += script_name
    if with_path_info:
        if path_info is None:
            url += environ.get('PATH_INFO', '')
        else:
            url += path_info
    if with_query_string:
        if querystring is None:
            if environ.get('QUERY_STRING'):
                url += '?' + environ['QUERY_STRING']
        elif querystring:
            url += '?' + querystring
    return url


def append_args(url, args):
    """
    Appends the ``args`` (a dict or list of pairs) to the query string
    of ``url``.
    """
    if hasattr(args, 'items'):
        args = sorted(args.items())
    if not args:
        return url
    if '?' in url:
        sep = '&'
    else:
        sep = '?'
    return '%s%s%s' % (url, sep, urlencode(args))


class WSGIRequest(object):
    """WSGI Request API Object

    A thin, stateless view of a WSGI environment.  *All* state is kept
    in the environment dictionary; this is essential for
    interoperability.

    ``openid_response`` is the ``OpenIDResponse`` left by
    ``AuthOpenIDHandler``, or None when the request was not an OpenID
    return visit.
    """
    def __init__(self, environ):
        self.environ = environ

    scheme = environ_getter('wsgi.url_scheme')
    method = environ_getter('REQUEST_METHOD')
    script_name = environ_getter('SCRIPT_NAME')
    path_info = environ_getter('PATH_INFO')
    openid_response = environ_getter('authopenid.response', default=None)

    def url(self):
        """The full URL of the request, with query string"""
        return construct_url(self.environ)
    url = property(url, doc=url.__doc__)

    def params(self):
        """Dictionary of GET and POST parameters; the last value wins"""
        return dict(parse_formvars(self.environ))
    params = property(params, doc=params.__doc__)

    def cookies(self):
        """Dictionary of cookies keyed by cookie name."""
        return dict((name, morsel.value)
                    for name, morsel in get_cookies(self.environ).items())
    cookies = property(cookies, doc=cookies.__doc__)
