from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from bounceban.config import Settings
from bounceban.models import BounceBanCredentials


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ("" if body is None else str(body))

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeHttp:
    """Stands in for requests.Session; answers every GET through ``handler``."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.sessions_opened = 0
        self.sessions_closed = 0
        self._lock = threading.Lock()
        self.handler: Callable[[str, Dict[str, Any]], Any] = lambda url, params: FakeResponse(
            200, {"result": "deliverable", "score": 100, "email": params.get("email")}
        )

    def session(self) -> "FakeSession":
        with self._lock:
            self.sessions_opened += 1
        return FakeSession(self)

    def calls_for(self, email: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if (c["params"] or {}).get("email") == email]


class FakeSession:
    def __init__(self, http: FakeHttp):
        self.http = http

    def get(self, url, params=None, headers=None, timeout=None, verify=True):
        with self.http._lock:
            self.http.calls.append(
                {
                    "url": url,
                    "params": dict(params) if params else None,
                    "headers": dict(headers or {}),
                    "timeout": timeout,
                    "verify": verify,
                }
            )
        response = self.http.handler(url, params or {})
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        with self.http._lock:
            self.http.sessions_closed += 1

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


@pytest.fixture
def fake_http(monkeypatch: pytest.MonkeyPatch) -> FakeHttp:
    http = FakeHttp()
    monkeypatch.setattr(requests, "Session", http.session)
    return http


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key", timeout=5)


@pytest.fixture
def credentials() -> BounceBanCredentials:
    return BounceBanCredentials("test-key")
