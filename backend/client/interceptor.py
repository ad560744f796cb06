# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Client-side token handling, installed as httpx event hooks.

``attach`` runs before every request (unary and streaming alike) and adds
``Authorization: Bearer <token>`` once a token is known.  ``capture`` runs
after every response and keeps the token returned by register / login.
The token lives on the interceptor instance, so two clients in one process
hold two independent sessions.
"""

from typing import Optional

import httpx

from core.security import AUTH_SCHEME

# Responses that carry a freshly minted token
TOKEN_PATHS = ("/auth/register", "/auth/login")


class TokenInterceptor:

    def __init__(self, token: Optional[str] = None):
        self.token = token

    def attach(self, request: httpx.Request) -> None:
        if self.token:
            request.headers["Authorization"] = f"{AUTH_SCHEME} {self.token}"

    def capture(self, response: httpx.Response) -> None:
        if not response.is_success or not response.request.url.path.endswith(TOKEN_PATHS):
            return
        response.read()
        token = response.json().get("token")
        if token:
            self.token = token

    def install(self, http: httpx.Client) -> None:
        """Register both hooks on *http*, keeping any hooks already there."""
        hooks = http.event_hooks
        hooks["request"].append(self.attach)
        hooks["response"].append(self.capture)
        http.event_hooks = hooks
