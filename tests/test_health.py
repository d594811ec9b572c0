from fastapi.testclient import TestClient

from flowcanvas.main import app


def test_health():
    c = TestClient(app)
    r = c.get('/health')
    assert r.status_code == 200
    assert r.json()['status'] == 'healthy'


def test_ping():
    c = TestClient(app)
    r = c.get('/ping')
    assert r.json() == {'status': 'ok'}
