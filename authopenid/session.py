# (c) 2005 Ian Bicking and contributors; written for Paste (http://pythonpaste.org)
# Licensed under the MIT license: http://www.opensource.org/licenses/mit-license.php

"""
Creates a session object; then in your application, use::

    environ['authopenid.session.factory']()

This will return a dictionary.  The session will be created when you
first fetch the session dictionary, and a cookie will be sent in that
case.  The OpenID middleware keeps the state of a pending
authentication (and python3-openid's own discovery state) in it, so it
has to sit inside this middleware.

Two kinds of storage are provided: ``MemorySession`` keeps every
session in a dictionary owned by the middleware instance (the default;
good for a single process), and ``FileSession`` pickles each session to
a file when the request is finished.

@@: Sessions aren't expired.
"""

from http.cookies import SimpleCookie
import hashlib
import logging
import os
import pickle
import random
import re
import time

from authopenid import wsgilib
from authopenid.request import get_cookies

log = logging.getLogger(__name__)

SESSION_KEY = 'authopenid.session.factory'

_sid_re = re.compile(r"^[\w-]+$")


class SessionMiddleware(object):

    def __init__(self, application, global_conf=None, **factory_kw):
        self.application = application
        self.factory_kw = factory_kw
        if factory_kw.get('session_class') in (None, MemorySession):
            self.factory_kw.setdefault('pool', {})

    def __call__(self, environ, start_response):
        session_factory = SessionFactory(environ, **self.factory_kw)
        environ[SESSION_KEY] = session_factory

        def session_start_response(status, headers, exc_info=None):
            if session_factory.created:
                headers = list(headers)
                headers.append(session_factory.set_cookie_header())
            return start_response(status, headers, exc_info)

        app_iter = self.application(environ, session_start_response)
        if session_factory.used:
            return wsgilib.add_close(app_iter, session_factory.close)
        else:
            return app_iter


class SessionFactory(object):

    def __init__(self, environ, cookie_name='_SID_',
                 session_class=None, **session_class_kw):
        self.created = False
        self.used = False
        self.environ = environ
        self.cookie_name = cookie_name
        self.session = None
        self.session_class = session_class or MemorySession
        self.session_class_kw = session_class_kw

    def __call__(self):
        self.used = True
        if self.session is not None:
            return self.session.data()
        cookies = get_cookies(self.environ)
        session = None
        if self.cookie_name in cookies:
            self.sid = cookies[self.cookie_name].value
            try:
                session = self.session_class(self.sid, create=False,
                                             **self.session_class_kw)
            except KeyError:
                log.debug('Unknown session id %r; starting a new session',
                          self.sid)
        if session is None:
            self.created = True
            self.sid = self.make_sid()
            session = self.session_class(self.sid, create=True,
                                         **self.session_class_kw)
        self.session = session
        return session.data()

    def make_sid(self):
        return (''.join(['%02d' % x for x in time.localtime(time.time())[:6]])
                + '-' + self.unique_id())

    def unique_id(self):
        """
        Generates an opaque, identifier string that is practically
        guaranteed to be unique.  Returns a 32 character long string.
        """
        r = [time.time(), random.random(), os.times(), os.urandom(16)]
        return hashlib.md5(repr(r).encode('utf8')).hexdigest()

    def set_cookie_header(self):
        c = SimpleCookie()
        c[self.cookie_name] = self.sid
        c[self.cookie_name]['path'] = '/'
        name, value = str(c).split(': ', 1)
        return (name, value)

    def close(self):
        if self.session is not None:
            self.session.close()


class MemorySession(object):
    """
    A session kept in ``pool`` (a dictionary shared by every request
    that goes through the same middleware).  The data is placed in the
    pool as soon as the session is created.
    """

    def __init__(self, sid, create=False, pool=None):
        if pool is None:
            raise TypeError('MemorySession needs a pool')
        self.sid = sid
        self.pool = pool
        if not create:
            if sid not in pool:
                raise KeyError(sid)
        else:
            pool[sid] = {}

    def data(self):
        return self.pool[self.sid]

    def close(self):
        pass


class FileSession(object):

    def __init__(self, sid, create=False, session_file_path='/tmp'):
        if not _sid_re.match(sid):
            raise KeyError(sid)
        self.session_file_path = session_file_path
        self.sid = sid
        if not create:
            if not os.path.exists(self.filename()):
                raise KeyError(sid)
        self._data = None

    def filename(self):
        return os.path.join(self.session_file_path, self.sid)

    def data(self):
        if self._data is not None:
            return self._data
        if os.path.exists(self.filename()):
            with open(self.filename(), 'rb') as f:
                self._data = pickle.load(f)
        else:
            self._data = {}
        return self._data

    def close(self):
        if self._data is not None:
            filename = self.filename()
            if not self._data:
                if os.path.exists(filename):
                    os.unlink(filename)
            else:
                with open(filename, 'wb') as f:
                    pickle.dump(self._data, f)


def make_session_middleware(app, global_conf, session_file_path=None,
                            cookie_name='_SID_'):
    """
    Adds a session to the request.

    Sessions are kept in memory, or pickled into ``session_file_path``
    when that is set.  ``cookie_name`` names the cookie carrying the
    session id.
    """
    kw = {'cookie_name': cookie_name}
    if session_file_path:
        kw['session_class'] = FileSession
        kw['session_file_path'] = session_file_path
    return SessionMiddleware(app, global_conf, **kw)
