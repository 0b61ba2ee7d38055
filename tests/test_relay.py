"""Tests for a11y_report/relay.py"""

import pytest
import requests
from fastapi.testclient import TestClient

from a11y_report.relay import create_app, forward, send

UPSTREAM = "https://acme.atlassian.net/rest/api/3/myself"


@pytest.fixture
def app_client() -> TestClient:
    return TestClient(create_app())


# ---------------------------------------------------------------------------
# send() / forward()
# ---------------------------------------------------------------------------

def test_send_decodes_json(requests_mock):
    requests_mock.get(UPSTREAM, headers={"Content-Type": "application/json"},
                      json={"accountId": "1"})
    status, payload = send(UPSTREAM)
    assert status == 200
    assert payload["ok"] is True
    assert payload["data"] == {"accountId": "1"}


def test_send_keeps_text_body(requests_mock):
    requests_mock.get(UPSTREAM, status_code=503, text="Service down",
                      headers={"Content-Type": "text/plain"})
    status, payload = send(UPSTREAM)
    assert status == 503
    assert payload["ok"] is False
    assert payload["data"] == "Service down"


def test_send_forwards_method_headers_and_body(requests_mock):
    adapter = requests_mock.post(UPSTREAM, status_code=201)
    send(UPSTREAM, "post", {"Authorization": "Basic abc"}, {"fields": {}})
    assert adapter.last_request.method == "POST"
    assert adapter.last_request.headers["Authorization"] == "Basic abc"
    assert adapter.last_request.json() == {"fields": {}}


def test_send_raises_on_network_error(requests_mock):
    requests_mock.get(UPSTREAM, exc=requests.exceptions.ConnectionError)
    with pytest.raises(requests.exceptions.ConnectionError):
        send(UPSTREAM)


def test_forward_wraps_network_error(requests_mock):
    requests_mock.get(UPSTREAM, exc=requests.exceptions.ConnectionError("no route"))
    status, payload = forward(UPSTREAM)
    assert status == 500
    assert payload == {
        "ok": False,
        "status": 500,
        "statusText": "Internal Server Error",
        "data": {"error": "no route"},
    }


# ---------------------------------------------------------------------------
# HTTP app
# ---------------------------------------------------------------------------

def test_health(app_client):
    response = app_client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["message"] == "Tracker relay is running"


def test_proxy_missing_url(app_client):
    response = app_client.post("/proxy", json={"method": "GET"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing URL parameter"}


def test_proxy_forwards_upstream_status(app_client, requests_mock):
    requests_mock.get(UPSTREAM, status_code=401, text="Unauthorized",
                      headers={"Content-Type": "text/plain"})
    response = app_client.post("/proxy", json={"url": UPSTREAM})
    assert response.status_code == 401
    body = response.json()
    assert body["ok"] is False
    assert body["status"] == 401
    assert body["data"] == "Unauthorized"


def test_proxy_json_response(app_client, requests_mock):
    requests_mock.post(UPSTREAM, status_code=201, headers={"Content-Type": "application/json"},
                       json={"key": "WEB-1"})
    response = app_client.post("/proxy", json={
        "url": UPSTREAM, "method": "POST",
        "headers": {"Content-Type": "application/json"}, "body": {"fields": {}},
    })
    assert response.status_code == 201
    assert response.json()["data"] == {"key": "WEB-1"}


def test_proxy_unreachable_upstream(app_client, requests_mock):
    requests_mock.get(UPSTREAM, exc=requests.exceptions.ConnectionError("refused"))
    response = app_client.post("/proxy", json={"url": UPSTREAM})
    assert response.status_code == 500
    assert response.json()["ok"] is False
    assert response.json()["data"] == {"error": "refused"}


@pytest.mark.parametrize("status", [204, 304])
def test_proxy_bodiless_upstream_status_has_empty_body(app_client, requests_mock, status):
    requests_mock.get(UPSTREAM, status_code=status)
    response = app_client.post("/proxy", json={"url": UPSTREAM})
    assert response.status_code == status
    assert response.content == b""
    assert "content-type" not in response.headers


def test_cors_headers(app_client):
    response = app_client.get("/", headers={"Origin": "https://app.example.com"})
    assert response.headers["access-control-allow-origin"] == "*"
