# (c) 2005 Ian Bicking and contributors; written for Paste (http://pythonpaste.org)
# Licensed under the MIT license: http://www.opensource.org/licenses/mit-license.php
"""
OpenID authentication for WSGI applications.

The application signals that it wants an identity by answering with a
``401 Unauthorized`` that carries an ``OpenID`` challenge in its
``WWW-Authenticate`` header; the middleware in
``authopenid.middleware`` turns that into a redirect to the identity
provider, and on the return visit places an ``OpenIDResponse`` in the
WSGI environment for the application to act on.

A typical stack::

    from authopenid.middleware import AuthOpenIDHandler
    from authopenid.session import SessionMiddleware
    from authopenid.httpexceptions import HTTPExceptionHandler

    app = HTTPExceptionHandler(
        SessionMiddleware(AuthOpenIDHandler(app)))
"""
