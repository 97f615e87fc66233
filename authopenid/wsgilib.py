# (c) 2005 Ian Bicking and contributors; written for Paste (http://pythonpaste.org)
# Licensed under the MIT license: http://www.opensource.org/licenses/mit-license.php

"""
Routines for working with WSGI response headers and iterables.
"""

import itertools
from io import BytesIO, StringIO
from urllib.parse import urlsplit

__all__ = ['add_close', 'has_header', 'header_value', 'intercept_output',
           'raw_interactive']


class add_close(object):
    """
    An an iterable that iterates over app_iter, then calls
    close_func.
    """

    def __init__(self, app_iterable, close_func):
        self.app_iterable = app_iterable
        self.app_iter = iter(app_iterable)
        self.close_func = close_func

    def __iter__(self):
        return self

    def __next__(self):
        return next(self.app_iter)

    def close(self):
        try:
            if hasattr(self.app_iterable, 'close'):
                self.app_iterable.close()
        finally:
            self.close_func()


def has_header(headers, name):
    """
    Is header named ``name`` present in headers?
    """
    name = name.lower()
    for header, value in headers:
        if header.lower() == name:
            return True
    return False


def header_value(headers, name):
    """
    Returns the header's value, or None if no such header.  If a
    header appears more than once, all the values of the headers
    are joined with ','
    """
    name = name.lower()
    result = [value for header, value in headers
              if header.lower() == name]
    if result:
        return ','.join(result)
    else:
        return None


def intercept_output(environ, application, conditional=None,
                     start_response=None):
    """
    Runs application with environ and captures status, headers, and
    body.  None are sent on; you must send them on yourself.

    If ``conditional`` is given it is called as ``conditional(status,
    headers)``; only when it returns true is the response captured.
    Otherwise the response goes to ``start_response`` as usual and
    ``(None, None, app_iter)`` is returned, with ``app_iter`` left for
    the caller to return upstream.

    Typically this is used like::

        def challenge_catcher(application):
            def replacement_app(environ, start_response):
                status, headers, body = intercept_output(
                    environ, application,
                    lambda s, h: s.startswith('401'),
                    start_response)
                if status is None:
                    return body
                ...
            return replacement_app
    """
    if conditional is not None and start_response is None:
        raise TypeError(
            "If you provide conditional you must also provide "
            "start_response")
    data = []
    output = BytesIO()

    def replacement_start_response(status, headers, exc_info=None):
        if conditional is not None and not conditional(status, headers):
            data.append(None)
            return start_response(status, headers, exc_info)
        if data:
            data[:] = []
        data.append(status)
        data.append(headers)
        return output.write

    app_iter = application(environ, replacement_start_response)
    if not data:
        # start_response is deferred until the first chunk
        iterator = iter(app_iter)
        first = list(itertools.islice(iterator, 1))
        close = getattr(app_iter, 'close', None)
        app_iter = add_close(itertools.chain(first, iterator),
                             close or (lambda: None))
    if data and data[0] is None:
        return (None, None, app_iter)
    try:
        for item in app_iter:
            output.write(item)
    finally:
        if hasattr(app_iter, 'close'):
            app_iter.close()
    if not data:
        data.append(None)
    if len(data) < 2:
        data.append(None)
    data.append(output.getvalue())
    return data


def raw_interactive(application, path='', **environ):
    """
    Runs the application in a fake environment.

    Keyword arguments become environment keys (``__`` is turned into
    ``.``); a string ``wsgi__input`` is wrapped as the request body.
    Returns ``(status, headers, body, errors)``.
    """
    assert "path_info" not in environ, "argument list changed"
    errors = StringIO()
    basic_environ = {
        # mandatory CGI variables
        'REQUEST_METHOD': 'GET',     # always mandatory
        'SCRIPT_NAME': '',           # may be empty if app is at the root
        'PATH_INFO': '',             # may be empty if at root of app
        'SERVER_NAME': 'localhost',  # always mandatory
        'SERVER_PORT': '80',         # always mandatory
        'SERVER_PROTOCOL': 'HTTP/1.0',
        # mandatory wsgi variables
        'wsgi.version': (1, 0),
        'wsgi.url_scheme': 'http',
        'wsgi.input': BytesIO(),
        'wsgi.errors': errors,
        'wsgi.multithread': False,
        'wsgi.multiprocess': False,
        'wsgi.run_once': False,
        }
    if path:
        (_, _, path_info, query, fragment) = urlsplit(str(path))
        basic_environ['PATH_INFO'] = path_info
        if query:
            basic_environ['QUERY_STRING'] = query
    for name, value in environ.items():
        name = name.replace('__', '.')
        basic_environ[name] = value
    istream = basic_environ['wsgi.input']
    if isinstance(istream, str):
        istream = istream.encode('utf8')
    if isinstance(istream, bytes):
        basic_environ['wsgi.input'] = BytesIO(istream)
        basic_environ['CONTENT_LENGTH'] = str(len(istream))
    data = {}
    output = []
    headers_set = []
    headers_sent = []

    def start_response(status, headers, exc_info=None):
        if exc_info:
            try:
                if headers_sent:
                    # Re-raise original exception only if headers sent
                    raise exc_info[1].with_traceback(exc_info[2])
            finally:
                # avoid dangling circular reference
                exc_info = None
        elif headers_set:
            # You cannot set the headers more than once, unless the
            # exc_info is provided.
            raise AssertionError("Headers already set and no exc_info!")
        headers_set.append(True)
        data['status'] = status
        data['headers'] = headers
        return output.append

    app_iter = application(basic_environ, start_response)
    try:
        try:
            for s in app_iter:
                if not isinstance(s, bytes):
                    raise ValueError(
                        "The app_iter response can only contain bytes "
                        "(not %r)" % type(s))
                headers_sent.append(True)
                if not headers_set:
                    raise AssertionError("Content sent w/o headers!")
                output.append(s)
        except TypeError as e:
            # Typically "iteration over non-sequence", so we want
            # to give better debugging information...
            e.args = ((e.args[0] + ' iterable: %r' % app_iter),) + e.args[1:]
            raise
    finally:
        if hasattr(app_iter, 'close'):
            app_iter.close()
    return (data['status'], data['headers'], b''.join(output),
            errors.getvalue())
