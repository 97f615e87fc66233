import pytest

from authopenid.wsgilib import (
    add_close, has_header, header_value, intercept_output, raw_interactive)


def app_iterable_func_bytes():
    yield b'a'
    yield b'b'
    yield b'c'


def close_func():
    global close_func_called
    close_func_called = True


def test_add_close_bytes():
    global close_func_called

    close_func_called = False
    lst = []
    app_iterable = app_iterable_func_bytes()

    obj = add_close(app_iterable, close_func)
    for x in obj:
        lst.append(x)
    obj.close()

    assert lst == [b'a', b'b', b'c']
    assert close_func_called


class Closing(list):
    closed = False

    def close(self):
        self.closed = True


def test_add_close_closes_both():
    global close_func_called

    close_func_called = False
    inner = Closing([b'x'])
    obj = add_close(inner, close_func)
    assert list(obj) == [b'x']
    obj.close()
    assert inner.closed
    assert close_func_called


def test_headers():
    headers = [('Content-Type', 'text/plain'),
               ('Set-Cookie', 'a=1'),
               ('set-cookie', 'b=2')]
    assert has_header(headers, 'content-type')
    assert not has_header(headers, 'Location')
    assert header_value(headers, 'SET-COOKIE') == 'a=1,b=2'
    assert header_value(headers, 'Location') is None


def unauthorized_app(environ, start_response):
    start_response('401 Unauthorized', [('Content-Type', 'text/plain')])
    return [b'log ', b'in']


def ok_app(environ, start_response):
    start_response('200 OK', [('Content-Type', 'text/plain')])
    return Closing([b'fine'])


def is_401(status, headers):
    return status.startswith('401')


def test_intercept_output():
    status, headers, body = intercept_output({}, unauthorized_app)
    assert status == '401 Unauthorized'
    assert headers == [('Content-Type', 'text/plain')]
    assert body == b'log in'


def test_intercept_output_conditional():
    sent = []

    def start_response(status, headers, exc_info=None):
        sent.append((status, headers))

    status, headers, body = intercept_output(
        {}, unauthorized_app, is_401, start_response)
    assert (status, body) == ('401 Unauthorized', b'log in')
    assert sent == []

    status, headers, app_iter = intercept_output(
        {}, ok_app, is_401, start_response)
    assert status is None and headers is None
    assert sent == [('200 OK', [('Content-Type', 'text/plain')])]
    assert list(app_iter) == [b'fine']
    assert not app_iter.closed


def test_intercept_output_deferred_start_response():
    def generator_app(environ, start_response):
        start_response('401 Unauthorized', [])
        yield b'late'

    status, headers, body = intercept_output(
        {}, generator_app, is_401, lambda *args: None)
    assert status == '401 Unauthorized'
    assert body == b'late'


def test_intercept_output_needs_start_response():
    with pytest.raises(TypeError):
        intercept_output({}, ok_app, is_401)


def echo_app(environ, start_response):
    start_response('200 OK', [('Content-Type', 'text/plain')])
    length = int(environ.get('CONTENT_LENGTH') or 0)
    return [('%s %s?%s %s ' % (environ['REQUEST_METHOD'],
                               environ['PATH_INFO'],
                               environ.get('QUERY_STRING', ''),
                               environ.get('test.key'))).encode('utf8'),
            environ['wsgi.input'].read(length)]


def test_raw_interactive():
    status, headers, body, errors = raw_interactive(
        echo_app, '/path?a=1', REQUEST_METHOD='POST', wsgi__input='x=1',
        test__key='value')
    assert status == '200 OK'
    assert body == b'POST /path?a=1 value x=1'
    assert errors == ''


def test_raw_interactive_rejects_text():
    def text_app(environ, start_response):
        start_response('200 OK', [])
        return ['text']
    with pytest.raises(ValueError):
        raw_interactive(text_app)


def test_raw_interactive_errors():
    def noisy_app(environ, start_response):
        environ['wsgi.errors'].write('oops')
        start_response('200 OK', [])
        return [b'']
    assert raw_interactive(noisy_app)[3] == 'oops'
