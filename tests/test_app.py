from concurrent.futures import ThreadPoolExecutor

import pytest

from app.app import DEFAULT_MESSAGE, create_app, server_address


@pytest.fixture
def client():
    app = create_app({'TESTING': True})
    return app.test_client()


def test_message_returns_fixed_text(client):
    response = client.get('/message')
    assert response.status_code == 200
    assert response.mimetype == 'text/plain'
    assert response.get_data(as_text=True) == DEFAULT_MESSAGE


def test_message_ignores_query_and_headers(client):
    response = client.get('/message?name=ignored', headers={'X-Anything': '1'})
    assert response.status_code == 200
    assert response.get_data(as_text=True) == DEFAULT_MESSAGE


def test_message_is_stable_across_sequential_calls(client):
    bodies = {client.get('/message').get_data(as_text=True) for _ in range(50)}
    assert bodies == {DEFAULT_MESSAGE}


def test_message_is_stable_under_concurrent_calls():
    app = create_app({'TESTING': True})

    def call(_):
        with app.test_client() as c:
            r = c.get('/message')
            return r.status_code, r.get_data(as_text=True)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = set(pool.map(call, range(64)))
    assert results == {(200, DEFAULT_MESSAGE)}


def test_message_text_from_environment(monkeypatch):
    monkeypatch.setenv('MESSAGE_TEXT', 'hello from pod')
    client = create_app({'TESTING': True}).test_client()
    assert client.get('/message').get_data(as_text=True) == 'hello from pod'


def test_root_redirects_to_message(client):
    response = client.get('/')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/message')


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok', 'service': 'message-service'}


def test_unknown_route_returns_json_404(client):
    response = client.get('/nope')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Not found'}


def test_post_to_message_not_allowed(client):
    response = client.post('/message')
    assert response.status_code == 405
    assert response.get_json() == {'error': 'Method not allowed'}


def test_head_message_has_no_body(client):
    response = client.head('/message')
    assert response.status_code == 200
    assert response.mimetype == 'text/plain'
    assert response.get_data() == b''


def test_server_address_defaults(monkeypatch):
    monkeypatch.delenv('HOST', raising=False)
    monkeypatch.delenv('PORT', raising=False)
    assert server_address() == ('0.0.0.0', 8080)


def test_server_address_from_environment(monkeypatch):
    monkeypatch.setenv('HOST', '127.0.0.1')
    monkeypatch.setenv('PORT', '9090')
    assert server_address() == ('127.0.0.1', 9090)
