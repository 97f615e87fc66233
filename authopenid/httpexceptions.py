# (c) 2005 Ian Bicking, Clark C. Evans and contributors
# This module is part of the Python Paste Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
# Some of this code was funded by http://prometheusresearch.com
"""
HTTP Exception Middleware

This module processes Python exceptions that relate to HTTP exceptions
by defining a set of exceptions, all subclasses of HTTPException, and a
request handler (`HTTPExceptionHandler`) that catches these exceptions
and turns them into proper responses.

The OpenID middleware answers a challenge with ``HTTPSeeOther``, and
reports a broken setup (no challenge header on a ``401``, no session
middleware) with 500-class exceptions that the handler renders.

Exception
  HTTPException
    HTTPRedirection
      303 - HTTPSeeOther
    HTTPError
      400 - HTTPClientError
        401 - HTTPUnauthorized
      HTTPServerError
        500 - HTTPInternalServerError
          MissingChallengeConfiguration
          SessionRequired
"""

import html
import logging
import re
import sys

from authopenid.wsgilib import has_header, header_value

log = logging.getLogger(__name__)


def strip_html(s):
    # should this use html2text?  or something else?
    s = re.sub(r'<.*?>', '', s)
    return html.unescape(s)


class HTTPException(Exception):
    """
    Base class for all HTTP exceptions

    This encapsulates an HTTP response that interrupts normal application
    flow; but one which is not necessarly an error condition. For
    example, codes in the 300's are exceptions in that they interrupt
    normal processing; however, they are not considered errors.

    Attributes:

       ``code``
           the HTTP status code for the exception

       ``title``
           remainder of the status line (stuff after the code)

       ``explanation``
           a plain-text explanation of the error message that is
           not subject to environment or header substitutions;
           it is accessable in the template via %(explanation)s

       ``detail``
           a plain-text message customization that is not subject
           to environment or header substutions; accessable in
           the template via %(detail)s

       ``required_headers``
           a sequence of headers which are required for proper
           construction of the exception

    Parameters:

       ``detail``     a plain-text override of the default ``detail``
       ``headers``    a list of (k,v) header pairs
       ``comment``    a plain-text additional information which is
                      usually stripped/hidden for end-users
    """

    code = None
    title = None
    explanation = ''
    detail = ''
    comment = ''
    template = "%(explanation)s\n<br/>%(detail)s\n<!-- %(comment)s -->"
    required_headers = ()
    server_name = 'WSGI server'

    def __init__(self, detail=None, headers=None, comment=None):
        assert self.code, "Do not directly instantiate abstract exceptions."
        assert isinstance(headers, (type(None), list))
        assert isinstance(detail, (type(None), str))
        assert isinstance(comment, (type(None), str))
        self.headers = headers or []
        for req in self.required_headers:
            assert has_header(self.headers, req), (
                "%s requires a %s header" % (self.__class__.__name__, req))
        if detail is not None:
            self.detail = detail
        if comment is not None:
            self.comment = comment
        Exception.__init__(self, "%s %s\n%s\n%s\n" % (
            self.code, self.title, self.explanation, self.detail))

    def make_body(self, environ, template, escfunc):
        args = {'explanation': escfunc(self.explanation),
                'detail': escfunc(self.detail),
                'comment': escfunc(self.comment)}
        if HTTPException.template == self.template:
            return template % args
        for (k, v) in environ.items():
            args[k] = escfunc(str(v))
        if self.headers:
            for (k, v) in self.headers:
                args[k.lower()] = escfunc(v)
        return template % args

    def plain(self, environ):
        """ text/plain representation of the exception """
        noop = lambda _: _
        body = self.make_body(environ, strip_html(self.template), noop)
        return ('%s %s\n%s\n' % (self.code, self.title, body))

    def html(self, environ):
        """ text/html representation of the exception """
        body = self.make_body(environ, self.template, html.escape)
        return ('<html><head><title>%(title)s</title></head>\n'
                '<body>\n'
                '<h1>%(title)s</h1>\n'
                '<p>%(body)s</p>\n'
                '<hr noshade>\n'
                '<div align="right">%(server)s</div>\n'
                '</body></html>\n'
                % {'title': self.title,
                   'code': self.code,
                   'server': self.server_name,
                   'body': body})

    def wsgi_application(self, environ, start_response, exc_info=None):
        """
        This exception as a WSGI application
        """
        if 'html' in environ.get('HTTP_ACCEPT', ''):
            headers = [('Content-Type', 'text/html; charset=utf8')]
            content = self.html(environ)
        else:
            headers = [('Content-Type', 'text/plain; charset=utf8')]
            content = self.plain(environ)
        headers.extend(self.headers)
        content = content.encode('utf8')
        headers.append(('Content-Length', str(len(content))))
        start_response('%s %s' % (self.code, self.title),
                       headers,
                       exc_info)
        return [content]

    def __repr__(self):
        return '<%s %s; code=%s>' % (self.__class__.__name__,
                                     self.title, self.code)


class HTTPError(HTTPException):
    """
    This is an exception which indicates that an error has occured,
    and that any work in progress should not be committed.  These are
    typically results in the 400's and 500's.
    """

#
# 3xx Redirection
#


class HTTPRedirection(HTTPException):
    """
    This is an abstract base class for 3xx redirection.  It indicates
    that further action needs to be taken by the user agent in order
    to fulfill the request.  It does not necessarly signal an error
    condition.
    """


class _HTTPMove(HTTPRedirection):
    """
    Base class for redirections which require a Location field.

    If a location is not provided in the headers, it is assumed that
    the detail _is_ the location.
    """
    required_headers = ('location',)
    explanation = 'The resource has been moved to'
    template = (
        '%(explanation)s <a href="%(location)s">%(location)s</a>;\n'
        'you should be redirected automatically.\n'
        '%(detail)s\n<!-- %(comment)s -->')

    def __init__(self, detail=None, headers=None, comment=None):
        assert isinstance(headers, (type(None), list))
        headers = headers or []
        location = header_value(headers, 'location')
        if not location:
            location = detail
            detail = ''
            headers.append(('Location', location))
        assert location, ("HTTPRedirection specified neither a "
                          "location in the headers nor did it "
                          "provide a detail argument.")
        HTTPRedirection.__init__(self, location, headers, comment)
        if detail is not None:
            self.detail = detail


# This one is safe after a POST (the redirected location will be
# retrieved with GET):
class HTTPSeeOther(_HTTPMove):
    code = 303
    title = 'See Other'

#
# 4xx Client Error
#


class HTTPClientError(HTTPError):
    """
    This is an error condition in which the client is presumed to be
    in-error.  This is an expected problem, and thus is not considered
    a bug.  A server-side traceback is not warranted.  Unless specialized,
    this is a '400 Bad Request'
    """
    code = 400
    title = 'Bad Request'
    explanation = 'The server could not understand your request.'


class HTTPUnauthorized(HTTPClientError):
    required_headers = ('WWW-Authenticate',)
    code = 401
    title = 'Unauthorized'
    explanation = (
        'This server could not verify that you are authorized to\n'
        'access the document you requested.  You will be sent to your\n'
        'OpenID provider to prove your identity.\n')

#
# 5xx Server Error
#


class HTTPServerError(HTTPError):
    """
    This is an error condition in which the server is presumed to be
    in-error.  This is usually unexpected, and thus requires a traceback;
    ideally, opening a support ticket for the customer. Unless specialized,
    this is a '500 Internal Server Error'
    """
    code = 500
    title = 'Internal Server Error'
    explanation = ('An internal server error occurred.')


HTTPInternalServerError = HTTPServerError


class MissingChallengeConfiguration(HTTPInternalServerError):
    """
    The application answered ``401`` without an ``OpenID`` challenge
    (or with one that names no identity), so there is nowhere to send
    the user.
    """
    explanation = ('The application asked for authentication without '
                   'saying which OpenID identity to verify.')


class SessionRequired(HTTPInternalServerError):
    """
    OpenID authentication was attempted without session middleware in
    front of the OpenID middleware.
    """
    explanation = ('OpenID authentication requires a session.')


############################################################
## Middleware implementation:
############################################################


class HTTPExceptionHandler(object):
    """
    This middleware catches any exceptions (which are subclasses of
    ``HTTPException``) and turns them into proper HTTP responses.

    Attributes:

       ``warning_level``
           Exceptions with a code at or above this level are logged
           with their traceback; by default only 5xx,
           HTTPServerError exceptions.
    """

    def __init__(self, application, warning_level=None):
        assert not warning_level or (warning_level > 99 and
                                     warning_level < 600)
        self.warning_level = warning_level or 500
        self.application = application

    def __call__(self, environ, start_response):
        environ['authopenid.httpexceptions'] = self
        try:
            return self.application(environ, start_response)
        except HTTPException as exc:
            if exc.code >= self.warning_level:
                log.error('%s while serving %s', exc.title,
                          environ.get('PATH_INFO'), exc_info=True)
            return exc.wsgi_application(environ, start_response,
                                        sys.exc_info())


def make_middleware(app, global_conf=None, warning_level=None):
    """
    ``httpexceptions`` middleware; this catches any
    ``HTTPException`` exceptions (exceptions like ``HTTPSeeOther``,
    ``MissingChallengeConfiguration``, etc) and turns them into proper
    HTTP responses.

    ``warning_level`` can be an integer corresponding to an HTTP code.
    Any code over that value will be logged with its traceback.
    """
    if warning_level:
        warning_level = int(warning_level)
    return HTTPExceptionHandler(app, warning_level=warning_level)


__all__ = ['HTTPException', 'HTTPRedirection', 'HTTPError',
           'HTTPSeeOther', 'HTTPClientError',
           'HTTPUnauthorized', 'HTTPServerError', 'HTTPInternalServerError',
           'MissingChallengeConfiguration', 'SessionRequired',
           'HTTPExceptionHandler']
