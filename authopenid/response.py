# (c) 2005 Ian Bicking and contributors; written for Paste (http://pythonpaste.org)
# Licensed under the MIT license: http://www.opensource.org/licenses/mit-license.php
"""
The outcome of one OpenID authentication attempt.

An ``OpenIDResponse`` is built once per request by the verifier and put
in the WSGI environment under ``authopenid.middleware.RESPONSE``.  The
application decides what HTTP status each outcome deserves::

    resp = environ.get(RESPONSE)
    if resp is not None and resp.status == SUCCESS:
        login(resp.identity, resp.extensions.get('sreg', {}))
"""

SUCCESS = 'success'
CANCEL = 'cancel'
FAILED = 'failed'
SETUP_NEEDED = 'setup_needed'
MISSING = 'missing'
UNAUTHORIZED = 'unauthorized'

STATUSES = (SUCCESS, CANCEL, FAILED, SETUP_NEEDED, MISSING, UNAUTHORIZED)


class OpenIDResponse(object):
    """
    Read-only result of an authentication attempt.

    ``status``
        One of ``STATUSES``.

    ``identity``
        The verified identifier; set only on ``success``.

    ``extensions``
        ``{namespace: {field: value}}`` (``sreg``, ``ax``); only on
        ``success``.

    ``message``
        Why a non-successful attempt failed, when known.

    ``setup_url``
        Where the user can finish an immediate request that returned
        ``setup_needed``.
    """

    def __init__(self, status, identity=None, extensions=None,
                 message=None, setup_url=None):
        if status not in STATUSES:
            raise ValueError('Unknown status %r' % (status,))
        if status == SUCCESS:
            if not identity:
                raise ValueError('A successful response needs an identity')
        elif identity or extensions:
            raise ValueError(
                'A %s response cannot carry an identity or extensions'
                % status)
        self._status = status
        self._identity = identity
        self._extensions = dict(
            (ns, dict(fields)) for ns, fields in (extensions or {}).items())
        self._message = message
        self._setup_url = setup_url

    status = property(lambda self: self._status)
    identity = property(lambda self: self._identity)
    extensions = property(lambda self: dict(
        (ns, dict(fields)) for ns, fields in self._extensions.items()))
    message = property(lambda self: self._message)
    setup_url = property(lambda self: self._setup_url)

    def is_success(self):
        return self._status == SUCCESS

    def __eq__(self, other):
        if not isinstance(other, OpenIDResponse):
            return NotImplemented
        return (self._status, self._identity, self._extensions,
                self._message, self._setup_url) == (
                    other._status, other._identity, other._extensions,
                    other._message, other._setup_url)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        if self._identity:
            return '<%s %s; identity=%s>' % (
                self.__class__.__name__, self._status, self._identity)
        return '<%s %s>' % (self.__class__.__name__, self._status)
