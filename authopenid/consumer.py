# (c) 2005 Ben Bangert
# This module is part of the Python Paste Project and is released under
# the MIT License: http://www.opensource.org/licenses/mit-license.php
"""
OpenID Verification (Consumer)

OpenID is a distributed authentication system for single sign-on originally
developed at/for LiveJournal.com.

    http://openid.net/

All OpenID does is provide a way to prove that you own a URL (identity).
The work of proving it (discovery of the identity server, associations,
signature checks) is done by the Python OpenID library; this module
wraps it behind the small ``Verifier`` interface that
``authopenid.middleware.AuthOpenIDHandler`` drives.

``Note``: ``OpenIDVerifier`` requires installation of the python3-openid
library::

    https://pypi.org/project/python3-openid/

Profile fields can be asked for along with the identity.  Plain names
(``nickname``, ``email``) go out as Simple Registration fields, URLs
(``http://axschema.org/contact/email``) as Attribute Exchange types;
the answers come back in ``OpenIDResponse.extensions['sreg']`` and
``OpenIDResponse.extensions['ax']``.
"""

import logging
import re

from openid import fetchers
from openid.consumer import consumer
from openid.extensions import ax, sreg
from openid.store import filestore, memstore

from authopenid.request import parse_formvars, construct_url
from authopenid.response import (
    OpenIDResponse, SUCCESS, CANCEL, FAILED, SETUP_NEEDED, MISSING)

log = logging.getLogger(__name__)

_url_field_re = re.compile(r'^https?://')


class VerificationFailure(Exception):
    """
    The claimed identifier could not be used to start an
    authentication (no provider found, provider unreachable).
    """


def make_store(data_store_path=None):
    """
    A file based OpenID store in ``data_store_path``, or an in-memory
    one when no path is given.
    """
    if data_store_path:
        return filestore.FileOpenIDStore(data_store_path)
    return memstore.MemoryStore()


class Verifier(object):
    """
    The interface ``AuthOpenIDHandler`` uses to talk to an OpenID
    implementation.  Subclasses provide ``begin`` and ``verify``.

    The state of a pending authentication (the session token) is kept
    in the session under ``token_key``: it is stored when the user is
    sent to the provider and taken out again on the return visit.
    """

    token_key = 'authopenid.token'

    def is_callback(self, environ):
        """
        Is this request a return visit from an identity provider?
        """
        for name, value in parse_formvars(environ):
            if name.startswith('openid.'):
                return True
        return False

    def callback_params(self, environ):
        return dict(parse_formvars(environ))

    def begin(self, session, options, return_to, realm):
        """
        Starts authenticating ``options.identity`` and returns the URL
        of the identity provider the user should be sent to.  Raises
        ``VerificationFailure`` when that is not possible.
        """
        raise NotImplementedError

    def verify(self, environ, session):
        """
        Resolves a return visit into an ``OpenIDResponse``.
        """
        raise NotImplementedError

    def store_token(self, session, token):
        session[self.token_key] = token

    def pop_token(self, session):
        return session.pop(self.token_key, None)


class OpenIDVerifier(Verifier):
    """
    A ``Verifier`` backed by python3-openid's ``Consumer``.

    ``store`` is an OpenID store (see ``make_store``); associations and
    nonces live there, while per-user discovery state lives in the
    session.
    """

    def __init__(self, store=None):
        if store is None:
            store = make_store()
        self.store = store

    def make_consumer(self, session):
        return consumer.Consumer(session, self.store)

    def begin(self, session, options, return_to, realm):
        oidconsumer = self.make_consumer(session)
        try:
            oidreq = oidconsumer.begin(options.identity)
        except (consumer.DiscoveryFailure, fetchers.HTTPFetchingError) as e:
            raise VerificationFailure(
                'Could not start authentication for %s: %s'
                % (options.identity, e))
        if oidreq is None:
            raise VerificationFailure(
                'No OpenID services found for %s' % options.identity)
        self.add_simple_registration_fields(oidreq, options)
        self.add_attribute_exchange_fields(oidreq, options)
        return oidreq.redirectURL(realm, return_to,
                                  immediate=options.immediate)

    def simple_registration_fields(self, fields):
        names = []
        for field in fields:
            if _url_field_re.match(field):
                continue
            if field not in sreg.data_fields:
                log.warning('Ignoring unknown simple registration field %r',
                            field)
                continue
            names.append(field)
        return names

    def add_simple_registration_fields(self, oidreq, options):
        required = self.simple_registration_fields(options.required)
        optional = self.simple_registration_fields(options.optional)
        if required or optional:
            sregreq = sreg.SRegRequest(policy_url=options.policy_url)
            # a field asked for twice ends up required once
            sregreq.requestFields(required, required=True, strict=False)
            sregreq.requestFields(optional, strict=False)
            oidreq.addExtension(sregreq)

    def add_attribute_exchange_fields(self, oidreq, options):
        required = [f for f in options.required if _url_field_re.match(f)]
        optional = [f for f in options.optional if _url_field_re.match(f)]
        if required or optional:
            axreq = ax.FetchRequest()
            requested = set()
            for field, is_required in ([(f, True) for f in required] +
                                       [(f, False) for f in optional]):
                if field in requested:
                    continue
                requested.add(field)
                axreq.add(ax.AttrInfo(field, required=is_required))
            oidreq.addExtension(axreq)

    def verify(self, environ, session):
        query = self.callback_params(environ)
        token = self.pop_token(session)
        if token is None:
            log.debug('OpenID return visit without a pending authentication')
            return OpenIDResponse(
                MISSING, message='No authentication was in progress')
        if not query.get('openid.mode'):
            return OpenIDResponse(
                MISSING, message='The provider sent no openid.mode')
        oidconsumer = self.make_consumer(session)
        try:
            oidresp = oidconsumer.complete(query, construct_url(environ))
        except fetchers.HTTPFetchingError as e:
            log.warning('Could not reach the provider of %s: %s',
                        token.get('identity'), e)
            return OpenIDResponse(FAILED, message=str(e))
        return self.make_response(oidresp)

    def make_response(self, oidresp):
        """
        Translates a python3-openid response into an ``OpenIDResponse``.
        """
        status = oidresp.status
        if status == consumer.SUCCESS:
            return OpenIDResponse(SUCCESS, identity=oidresp.identity_url,
                                  extensions=self.extension_data(oidresp))
        elif status == consumer.CANCEL:
            return OpenIDResponse(CANCEL)
        elif status == consumer.SETUP_NEEDED:
            return OpenIDResponse(
                SETUP_NEEDED, setup_url=getattr(oidresp, 'setup_url', None))
        else:
            return OpenIDResponse(
                FAILED, message=getattr(oidresp, 'message', None))

    def extension_data(self, oidresp):
        extensions = {}
        sreg_resp = sreg.SRegResponse.fromSuccessResponse(oidresp)
        if sreg_resp is not None and sreg_resp.data:
            extensions['sreg'] = dict(sreg_resp.data)
        try:
            ax_resp = ax.FetchResponse.fromSuccessResponse(oidresp)
        except ax.AXError as e:
            log.warning('Ignoring malformed attribute exchange data from '
                        '%s: %s', oidresp.identity_url, e)
            ax_resp = None
        if ax_resp is not None and ax_resp.data:
            extensions['ax'] = dict(ax_resp.data)
        return extensions
