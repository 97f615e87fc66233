import pytest

from authopenid.header import (
    AUTHENTICATE_HEADER, ChallengeOptions, HeaderParseError, build_header,
    is_openid_challenge, parse_header)
from authopenid.httpexceptions import HTTPUnauthorized


def test_build_header():
    assert 'OpenID identity="http://example.com/"' == \
        build_header({'identity': "http://example.com/"})
    assert 'OpenID identity="http://example.com/?foo=bar"' == \
        build_header({'identity': "http://example.com/?foo=bar"})
    assert ('OpenID identity="http://example.com/", '
            'return_to="http://example.org/"') == \
        build_header({'identity': "http://example.com/",
                      'return_to': "http://example.org/"})
    assert ('OpenID identity="http://example.com/", '
            'required="nickname,email"') == \
        build_header({'identity': "http://example.com/",
                      'required': ["nickname", "email"]})


def test_build_header_keeps_order():
    header = build_header({'required': ('a', 'b'), 'identity': 'x'})
    assert header == 'OpenID required="a,b", identity="x"'


def test_build_header_empty():
    assert build_header({}) == 'OpenID'


def test_parse_header():
    assert {'identity': "http://example.com/"} == \
        parse_header('OpenID identity="http://example.com/"')
    assert {'identity': "http://example.com/?foo=bar"} == \
        parse_header('OpenID identity="http://example.com/?foo=bar"')
    assert {'identity': "http://example.com/",
            'return_to': "http://example.org/"} == \
        parse_header('OpenID identity="http://example.com/", '
                     'return_to="http://example.org/"')
    assert {'identity': "http://example.com/",
            'required': ["nickname", "email"]} == \
        parse_header('OpenID identity="http://example.com/", '
                     'required="nickname,email"')


def test_parse_header_whitespace():
    assert parse_header('openid  identity="a" ,required="b,c"  ') == \
        {'identity': 'a', 'required': ['b', 'c']}


def test_parse_header_empty():
    assert parse_header('OpenID') == {}
    assert parse_header('OpenID   ') == {}


def test_round_trip():
    options = {'identity': 'http://example.com/',
               'return_to': 'http://example.org/complete',
               'required': ['nickname', 'email'],
               'optional': ['http://axschema.org/namePerson',
                            'http://axschema.org/contact/email'],
               'method': 'put'}
    assert parse_header(build_header(options)) == options


@pytest.mark.parametrize('value', [
    None,
    '',
    'Basic realm="foo"',
    'OpenIDidentity="x"',
    'OpenID identity=x',
    'OpenID identity="x" return_to="y"',
    'OpenID identity="x", ',
    'OpenID identity="x", junk',
    'OpenID "x"',
    ])
def test_parse_header_malformed(value):
    with pytest.raises(HeaderParseError):
        parse_header(value)


def test_is_openid_challenge():
    assert is_openid_challenge('OpenID identity="x"')
    assert is_openid_challenge('OpenID')
    assert not is_openid_challenge('Basic realm="x"')
    assert not is_openid_challenge(None)


def test_options_from_header():
    options = ChallengeOptions.from_header(
        'OpenID identifier="http://example.com/", optional="fullname", '
        'immediate="true", unknown="ignored"')
    assert options.identity == 'http://example.com/'
    assert options.optional == ['fullname']
    assert options.required == []
    assert options.immediate is True
    assert options.return_to is None


def test_options_header():
    options = ChallengeOptions('http://example.com/',
                               required=['nickname', 'email'],
                               method='post')
    assert options.header() == (
        'OpenID identity="http://example.com/", '
        'required="nickname,email", method="post"')
    assert ChallengeOptions.from_header(str(options)) == options


def test_options_validation():
    with pytest.raises(ValueError):
        ChallengeOptions('')
    with pytest.raises(ValueError):
        ChallengeOptions.from_dict({'return_to': 'http://example.org/'})
    with pytest.raises(TypeError):
        ChallengeOptions('http://example.com/', return_to=42)
    with pytest.raises(TypeError):
        ChallengeOptions('http://example.com/', required=['nickname', 1])


def test_options_challenge():
    exc = ChallengeOptions('http://example.com/').challenge()
    assert isinstance(exc, HTTPUnauthorized)
    assert exc.headers == [
        (AUTHENTICATE_HEADER, 'OpenID identity="http://example.com/"')]
