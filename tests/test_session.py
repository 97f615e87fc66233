import os

from authopenid.session import (
    FileSession, MemorySession, SessionFactory, SessionMiddleware,
    make_session_middleware)
from authopenid.wsgilib import header_value, raw_interactive


def counter_app(environ, start_response):
    session = environ['authopenid.session.factory']()
    session['count'] = session.get('count', 0) + 1
    start_response('200 OK', [('Content-Type', 'text/plain')])
    return [str(session['count']).encode('utf8')]


def idle_app(environ, start_response):
    start_response('200 OK', [('Content-Type', 'text/plain')])
    return [b'idle']


def get(app, cookie=None):
    environ = {}
    if cookie:
        environ['HTTP_COOKIE'] = cookie.split(';')[0]
    return raw_interactive(app, '/', **environ)


def test_memory_session():
    app = SessionMiddleware(counter_app)
    status, headers, body, errors = get(app)
    assert body == b'1'
    cookie = header_value(headers, 'Set-Cookie')
    assert cookie.startswith('_SID_=')
    assert 'Path=/' in cookie
    status, headers, body, errors = get(app, cookie)
    assert body == b'2'
    assert header_value(headers, 'Set-Cookie') is None
    assert len(app.factory_kw['pool']) == 1


def test_unknown_session_id():
    app = SessionMiddleware(counter_app)
    status, headers, body, errors = get(app, '_SID_=nosuchsession')
    assert body == b'1'
    assert header_value(headers, 'Set-Cookie') is not None


def test_unused_session():
    app = SessionMiddleware(idle_app)
    status, headers, body, errors = get(app)
    assert body == b'idle'
    assert header_value(headers, 'Set-Cookie') is None
    assert app.factory_kw['pool'] == {}


def test_pools_are_per_middleware():
    first = SessionMiddleware(counter_app)
    second = SessionMiddleware(counter_app)
    cookie = header_value(get(first)[1], 'Set-Cookie')
    assert get(second, cookie)[2] == b'1'


def test_memory_session_class():
    pool = {}
    session = MemorySession('abc', create=True, pool=pool)
    session.data()['x'] = 1
    assert MemorySession('abc', pool=pool).data() == {'x': 1}
    try:
        MemorySession('other', pool=pool)
    except KeyError:
        pass
    else:
        assert False, "KeyError expected"


def test_unique_id():
    factory = SessionFactory({})
    first = factory.unique_id()
    assert len(first) == 32
    assert first != factory.unique_id()
    assert factory.make_sid() != factory.make_sid()


def test_file_session(tmp_path):
    app = make_session_middleware(counter_app, {},
                                  session_file_path=str(tmp_path))
    status, headers, body, errors = get(app)
    assert body == b'1'
    cookie = header_value(headers, 'Set-Cookie')
    sid = cookie.split(';')[0].split('=', 1)[1]
    assert os.path.exists(os.path.join(str(tmp_path), sid))
    status, headers, body, errors = get(app, cookie)
    assert body == b'2'


def test_file_session_rejects_paths(tmp_path):
    for sid in ('../etc', 'a/b', ''):
        try:
            FileSession(sid, session_file_path=str(tmp_path))
        except KeyError:
            pass
        else:
            assert False, "KeyError expected for %r" % sid


def test_file_session_removes_empty(tmp_path):
    session = FileSession('abc', create=True,
                          session_file_path=str(tmp_path))
    session.data()['x'] = 1
    session.close()
    filename = session.filename()
    assert os.path.exists(filename)
    session = FileSession('abc', session_file_path=str(tmp_path))
    assert session.data() == {'x': 1}
    session.data().clear()
    session.close()
    assert not os.path.exists(filename)


def test_cookie_name():
    app = make_session_middleware(counter_app, {}, cookie_name='sess')
    cookie = header_value(get(app)[1], 'Set-Cookie')
    assert cookie.startswith('sess=')
