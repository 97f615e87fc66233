# (c) 2005 Ben Bangert
# This module is part of the Python Paste Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
"""
OpenID Authentication middleware

The wrapped application asks for authentication by answering with a
``401`` carrying an ``OpenID`` challenge::

    from authopenid.header import AUTHENTICATE_HEADER, build_header
    from authopenid.middleware import RESPONSE

    def application(environ, start_response):
        resp = environ.get(RESPONSE)
        if resp is None:
            start_response('401 Unauthorized', [
                ('Content-Type', 'text/plain'),
                (AUTHENTICATE_HEADER, build_header(
                    {'identity': 'http://example.com/',
                     'required': ['nickname', 'email']}))])
            return [b'Log in first']
        ...

The middleware turns the ``401`` into a ``303 See Other`` to the
identity provider.  When the user comes back, the same URL (and method)
is requested again, this time with an ``OpenIDResponse`` in
``environ[RESPONSE]``; the OpenID arguments are taken out of the query
string first.  Which HTTP status each outcome gets is up to the
application.

This middleware needs ``authopenid.session.SessionMiddleware`` (or
anything putting a session dictionary, or a callable returning one, in
``environ['authopenid.session.factory']``) in front of it.
"""

import logging
from urllib.parse import urlencode

from paste.deploy.converters import asbool, aslist

from authopenid.consumer import OpenIDVerifier, VerificationFailure, make_store
from authopenid.header import (
    AUTHENTICATE_HEADER, ChallengeOptions, HeaderParseError,
    is_openid_challenge)
from authopenid.httpexceptions import (
    HTTPSeeOther, MissingChallengeConfiguration, SessionRequired)
from authopenid.request import append_args, construct_url, parse_querystring
from authopenid.response import OpenIDResponse, MISSING, UNAUTHORIZED
from authopenid.session import SESSION_KEY
from authopenid.wsgilib import intercept_output

log = logging.getLogger(__name__)

RESPONSE = 'authopenid.response'

HTTP_METHODS = ('GET', 'HEAD', 'PUT', 'POST', 'DELETE', 'OPTIONS', 'PATCH')


def get_response(environ):
    """
    The ``OpenIDResponse`` of this request, or None if it is not a
    return visit from an identity provider.
    """
    return environ.get(RESPONSE)


def _challenges(headers):
    return [value for name, value in headers
            if name.lower() == AUTHENTICATE_HEADER.lower()]


def _is_openid_401(status, headers):
    if not status.startswith('401'):
        return False
    challenges = _challenges(headers)
    if not challenges:
        return True
    for value in challenges:
        if is_openid_challenge(value):
            return True
    return False


class AuthOpenIDHandler(object):
    """
    OpenID consumer middleware.

    Parameters:

        ``application``

            The WSGI application; it answers ``401`` with an ``OpenID``
            challenge to have the user authenticated, and finds the
            outcome in ``environ[RESPONSE]`` afterwards.

        ``verifier``

            A ``authopenid.consumer.Verifier``; an ``OpenIDVerifier``
            with an in-memory store by default.

        ``session_key``

            Where the session (a dictionary, or a callable returning
            one) is found in the environment.

        ``authfunc``

            Optional ``authfunc(identity, environ)``; when it returns
            false for a verified identity the application gets an
            ``unauthorized`` response instead.

        ``set_remote_user``

            Put a verified identity in ``REMOTE_USER`` (with
            ``AUTH_TYPE`` set to ``openid``) for the request.
    """

    def __init__(self, application, verifier=None, session_key=SESSION_KEY,
                 authfunc=None, set_remote_user=True):
        self.application = application
        if verifier is None:
            verifier = OpenIDVerifier()
        self.verifier = verifier
        self.session_key = session_key
        self.authfunc = authfunc
        self.set_remote_user = set_remote_user

    def __call__(self, environ, start_response):
        if self.verifier.is_callback(environ):
            response = self.verifier.verify(environ,
                                            self.get_session(environ))
            return self.complete(environ, start_response, response)
        status, headers, body = intercept_output(
            environ, self.application, _is_openid_401, start_response)
        if status is None:
            log.debug('Passing %s %s through', environ['REQUEST_METHOD'],
                      environ.get('PATH_INFO', ''))
            return body
        options = self.challenge_options(headers)
        return self.begin(environ, start_response, options)

    def get_session(self, environ):
        session = environ.get(self.session_key)
        if session is None:
            raise SessionRequired(
                'No session found in environ[%r]' % self.session_key)
        if callable(session):
            session = session()
        return session

    def challenge_options(self, headers):
        challenges = [value for value in _challenges(headers)
                      if is_openid_challenge(value)]
        if not challenges:
            raise MissingChallengeConfiguration(
                'The application answered 401 without a %s header'
                % AUTHENTICATE_HEADER)
        try:
            return ChallengeOptions.from_header(challenges[0])
        except (HeaderParseError, ValueError, TypeError) as e:
            raise MissingChallengeConfiguration(
                'Unusable %s header %r: %s'
                % (AUTHENTICATE_HEADER, challenges[0], e))

    def begin(self, environ, start_response, options):
        """
        Sends the user to the identity provider of ``options.identity``.
        """
        session = self.get_session(environ)
        return_to, method = self.return_to(environ, options)
        realm = options.trust_root or self.realm(environ)
        try:
            url = self.verifier.begin(session, options, return_to, realm)
        except VerificationFailure as e:
            log.warning('%s', e)
            environ[RESPONSE] = OpenIDResponse(MISSING, message=str(e))
            return self.application(environ, start_response)
        self.verifier.store_token(session, {
            'identity': options.identity,
            'return_to': return_to,
            'method': method,
            })
        log.info('Sending %s to %s', options.identity, url)
        exc = HTTPSeeOther(headers=[('Location', url)])
        return exc.wsgi_application(environ, start_response)

    def return_to(self, environ, options):
        """
        Works out the URL the provider sends the user back to, and the
        method the application will see then; a method other than GET
        travels in the ``_method`` argument.
        """
        if options.return_to:
            return_to = options.return_to
            method = options.method or 'GET'
        else:
            return_to = construct_url(environ)
            method = options.method or environ['REQUEST_METHOD']
        method = method.upper()
        if method != 'GET':
            return_to = append_args(return_to, [('_method', method.lower())])
        return return_to, method

    def realm(self, environ):
        return construct_url(environ, with_query_string=False,
                             with_path_info=False, script_name='') + '/'

    def complete(self, environ, start_response, response):
        """
        Hands the outcome of a return visit to the application.
        """
        if response.is_success() and self.authfunc is not None:
            if not self.authfunc(response.identity, environ):
                log.warning('Identity %s is not authorized',
                            response.identity)
                response = OpenIDResponse(
                    UNAUTHORIZED,
                    message='%s is not authorized' % response.identity)
        log.info('OpenID authentication finished: %r', response)
        environ[RESPONSE] = response
        if response.is_success() and self.set_remote_user:
            environ['AUTH_TYPE'] = 'openid'
            environ['REMOTE_USER'] = response.identity
        self.restore_request(environ)
        return self.application(environ, start_response)

    def restore_request(self, environ):
        """
        Puts back the method of the original request and takes the
        OpenID arguments out of the query string.
        """
        query = []
        method = None
        for name, value in parse_querystring(environ):
            if name == '_method':
                method = value.upper()
            elif name.startswith('openid.') or name == 'janrain_nonce':
                continue
            else:
                query.append((name, value))
        if method in HTTP_METHODS:
            environ['REQUEST_METHOD'] = method
        environ['QUERY_STRING'] = urlencode(query)
        if 'REQUEST_URI' in environ:
            request_uri = (environ.get('SCRIPT_NAME', '') +
                           environ.get('PATH_INFO', ''))
            if environ['QUERY_STRING']:
                request_uri += '?' + environ['QUERY_STRING']
            environ['REQUEST_URI'] = request_uri


middleware = AuthOpenIDHandler


def make_trusted_identities(prefixes):
    """
    An ``authfunc`` accepting identities that start with one of
    ``prefixes``.
    """
    def authfunc(identity, environ):
        for prefix in prefixes:
            if identity.startswith(prefix):
                return True
        return False
    return authfunc


def make_middleware(app, global_conf, data_store_path=None,
                    session_key=SESSION_KEY, set_remote_user=True,
                    trusted_identities=None):
    """
    Wraps ``app`` with OpenID authentication.

    ``data_store_path`` keeps OpenID associations and nonces in files
    there (in memory otherwise).  ``trusted_identities`` is a
    whitespace separated list of identity URL prefixes; other verified
    identities are reported as ``unauthorized``.
    """
    verifier = OpenIDVerifier(make_store(data_store_path))
    authfunc = None
    if trusted_identities:
        authfunc = make_trusted_identities(aslist(trusted_identities))
    return AuthOpenIDHandler(app, verifier, session_key=session_key,
                             authfunc=authfunc,
                             set_remote_user=asbool(set_remote_user))
