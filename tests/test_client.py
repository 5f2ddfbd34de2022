from __future__ import annotations

import warnings

import pytest
import requests
from urllib3.exceptions import InsecureRequestWarning

from bounceban import client
from bounceban.config import ACCOUNT_URL, VERIFY_URL, Settings
from bounceban.errors import BounceBanApiError, CredentialsError
from bounceban.models import BounceBanCredentials

from conftest import FakeResponse


def test_build_query_drops_unset_options():
    query = client.build_query(
        "jane@acme.com",
        {"mode": "deepverify", "disable_catchall_verify": "0", "url": ""},
    )

    assert query == {"email": "jane@acme.com", "mode": "deepverify", "disable_catchall_verify": "0"}


def test_verify_single_sends_authenticated_insecure_get(fake_http, settings, credentials):
    result = client.verify_single(
        "jane@acme.com", credentials, settings, options={"mode": "regular", "url": "https://hook.example/x"}
    )

    assert result["result"] == "deliverable"
    [call] = fake_http.calls
    assert call["url"] == VERIFY_URL
    assert call["params"] == {"email": "jane@acme.com", "mode": "regular", "url": "https://hook.example/x"}
    assert call["headers"] == {"Authorization": "test-key", "utc_source": "n8n_node"}
    assert call["verify"] is False
    assert call["timeout"] == 5
    assert fake_http.sessions_closed == fake_http.sessions_opened == 1


def test_408_is_retried_until_success(fake_http, settings, credentials):
    answers = [FakeResponse(408, {"message": "still verifying"})] * 3 + [
        FakeResponse(200, {"result": "risky", "score": 40})
    ]
    fake_http.handler = lambda url, params: answers.pop(0)

    result = client.verify_single("jane@acme.com", credentials, settings)

    assert result == {"result": "risky", "score": 40}
    assert len(fake_http.calls) == 4


def test_408_gives_up_after_sixteen_attempts(fake_http, settings, credentials):
    fake_http.handler = lambda url, params: FakeResponse(408, {"message": "Request Timeout"})

    with pytest.raises(BounceBanApiError) as exc_info:
        client.verify_single("jane@acme.com", credentials, settings)

    assert len(fake_http.calls) == 16
    assert exc_info.value.status_code == 408
    assert exc_info.value.attempts == 16
    assert exc_info.value.is_timeout
    assert str(exc_info.value) == "HTTP 408: Request Timeout"


def test_max_retries_comes_from_settings(fake_http, credentials):
    fake_http.handler = lambda url, params: FakeResponse(408, {})

    with pytest.raises(BounceBanApiError):
        client.verify_single("jane@acme.com", credentials, Settings(max_retries=2))

    assert len(fake_http.calls) == 3


@pytest.mark.parametrize("status", [400, 401, 402, 429, 500, 503])
def test_other_errors_are_not_retried(fake_http, settings, credentials, status):
    fake_http.handler = lambda url, params: FakeResponse(status, {"error": "nope"})

    with pytest.raises(BounceBanApiError) as exc_info:
        client.verify_single("jane@acme.com", credentials, settings)

    assert len(fake_http.calls) == 1
    assert exc_info.value.status_code == status
    assert exc_info.value.body == {"error": "nope"}
    assert str(exc_info.value) == f"HTTP {status}: nope"


def test_transport_error_is_wrapped(fake_http, settings, credentials):
    fake_http.handler = lambda url, params: requests.ConnectionError("connection refused")

    with pytest.raises(BounceBanApiError) as exc_info:
        client.verify_single("jane@acme.com", credentials, settings)

    assert exc_info.value.status_code is None
    assert "connection refused" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)
    assert len(fake_http.calls) == 1


def test_non_json_success_is_an_error(fake_http, settings, credentials):
    fake_http.handler = lambda url, params: FakeResponse(200, None, text="<html>oops</html>")

    with pytest.raises(BounceBanApiError, match="not valid JSON"):
        client.verify_single("jane@acme.com", credentials, settings)


def test_error_message_uses_plain_text_body(fake_http, settings, credentials):
    fake_http.handler = lambda url, params: FakeResponse(502, None, text="Bad Gateway")

    with pytest.raises(BounceBanApiError, match="HTTP 502: Bad Gateway"):
        client.verify_single("jane@acme.com", credentials, settings)


def test_missing_api_key_raises_before_any_request(fake_http, settings):
    with pytest.raises(CredentialsError):
        client.verify_single("jane@acme.com", BounceBanCredentials(""), settings)

    assert fake_http.calls == []


def test_check_credentials_hits_account_endpoint(fake_http, settings, credentials):
    fake_http.handler = lambda url, params: FakeResponse(200, {"credits": 1200})

    account = client.check_credentials(credentials, settings)

    assert account == {"credits": 1200}
    [call] = fake_http.calls
    assert call["url"] == ACCOUNT_URL
    assert call["params"] is None
    assert call["headers"]["Authorization"] == "test-key"
    assert call["verify"] is True


def test_check_credentials_reports_rejected_key(fake_http, settings, credentials):
    fake_http.handler = lambda url, params: FakeResponse(401, {"message": "Invalid API key"})

    with pytest.raises(BounceBanApiError, match="Invalid API key"):
        client.check_credentials(credentials, settings)

    assert len(fake_http.calls) == 1


def test_caller_session_is_left_open(fake_http, settings, credentials):
    session = requests.Session()

    client.verify_single("jane@acme.com", credentials, settings, session=session)

    assert fake_http.sessions_closed == 0


def test_retry_delay_sleeps_between_408_retries(fake_http, credentials, monkeypatch):
    sleeps = []
    monkeypatch.setattr(client.time, "sleep", sleeps.append)
    fake_http.handler = lambda url, params: FakeResponse(408, {})

    with pytest.raises(BounceBanApiError):
        client.verify_single("jane@acme.com", credentials, Settings(retry_delay=0.5))

    assert len(fake_http.calls) == 16
    assert sleeps == [0.5] * 15


def test_no_sleep_without_retry_delay(fake_http, settings, credentials, monkeypatch):
    sleeps = []
    monkeypatch.setattr(client.time, "sleep", sleeps.append)
    answers = [FakeResponse(408, {}), FakeResponse(200, {"result": "deliverable"})]
    fake_http.handler = lambda url, params: answers.pop(0)

    client.verify_single("jane@acme.com", credentials, settings)

    assert sleeps == []


def test_import_leaves_insecure_request_warnings_alone():
    assert not any(
        action == "ignore" and category is InsecureRequestWarning
        for action, _, category, _, _ in warnings.filters
    )
