"""
Tests for the client-side token interceptor.
"""

import httpx

from client.interceptor import TokenInterceptor


def _response(path: str, status: int = 200, body=None) -> httpx.Response:
    return httpx.Response(status, json=body or {}, request=httpx.Request("POST", f"http://vault{path}"))


def test_attach_without_token_adds_nothing():
    request = httpx.Request("GET", "http://vault/passwords")

    TokenInterceptor().attach(request)

    assert "authorization" not in request.headers


def test_attach_with_token():
    request = httpx.Request("GET", "http://vault/passwords")

    TokenInterceptor("abc").attach(request)

    assert request.headers["authorization"] == "Bearer abc"


def test_capture_from_register_and_login():
    tokens = TokenInterceptor()

    tokens.capture(_response("/auth/register", body={"token": "first"}))
    assert tokens.token == "first"

    tokens.capture(_response("/auth/login", body={"token": "second"}))
    assert tokens.token == "second"


def test_capture_ignores_other_responses():
    tokens = TokenInterceptor("kept")

    tokens.capture(_response("/passwords", body={"token": "nope"}))
    tokens.capture(_response("/auth/login", status=403, body={"code": "PermissionDenied", "detail": "invalid password"}))

    assert tokens.token == "kept"


def test_install_keeps_existing_hooks():
    seen = []
    http = httpx.Client(event_hooks={"request": [seen.append]})
    tokens = TokenInterceptor("abc")

    tokens.install(http)

    assert http.event_hooks["request"] == [seen.append, tokens.attach]
    assert http.event_hooks["response"] == [tokens.capture]
    http.close()
