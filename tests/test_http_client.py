"""Unit tests for src.inspect_orgs.http_client covering pagination, probes and stats.

Execute with coverage to validate networking helpers:
    pytest tests/test_http_client.py --maxfail=1 -v --cov=src.inspect_orgs.http_client --cov-report=term-missing
"""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from src.inspect_orgs import http_client
from src.inspect_orgs.credentials import resolve_credential
from src.inspect_orgs.errors import GitHubAPIError, UnknownStatCategoryError

TOKEN = resolve_credential("abc123")
BASIC = resolve_credential("alice:secret")


def _make_resp(status: int = 200, payload: Any = None, headers: dict | None = None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    if payload is None:
        payload = {}
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


def _client(**kwargs) -> http_client.GitHubRestClient:
    client = http_client.GitHubRestClient(**kwargs)
    client.session = MagicMock()
    return client


def test_log_http_error_handles_json_and_text(capsys):
    resp = _make_resp(403, {"message": "bad"})
    http_client.log_http_error(resp, "url")
    out = capsys.readouterr().out
    assert out.startswith("[error] HTTP 403 for url")
    assert "bad" in out

    resp = _make_resp(500)
    resp.json.side_effect = ValueError()
    resp.text = "plain"
    http_client.log_http_error(resp, "url")
    assert "plain" in capsys.readouterr().out


def test_base_url_uses_host_and_prefix():
    client = _client(api_host="ghe.example.com", path_prefix="/api/v3")
    assert client._url("orgs/x") == "https://ghe.example.com/api/v3/orgs/x"
    assert client.timeout == pytest.approx(120.0)


def test_request_sets_token_header_and_basic_auth():
    client = _client()
    client.session.request.return_value = _make_resp(200, {"ok": 1})

    client.request(TOKEN, "GET", "https://api.github.com/x")
    kwargs = client.session.request.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "token abc123"
    assert kwargs["auth"] is None

    client.request(BASIC, "GET", "https://api.github.com/x")
    kwargs = client.session.request.call_args.kwargs
    assert "Authorization" not in kwargs["headers"]
    assert kwargs["auth"] == ("alice", "secret")


def test_request_debug_prints_url(capsys):
    client = _client(debug=True)
    client.session.request.return_value = _make_resp()
    client.request(TOKEN, "GET", "https://api.github.com/rate_limit")
    assert "[debug] GET https://api.github.com/rate_limit" in capsys.readouterr().out


def test_paged_get_stops_on_short_page(monkeypatch):
    monkeypatch.setattr(http_client, "PER_PAGE", 2)
    client = _client()
    client.session.request.side_effect = [
        _make_resp(200, [{"id": 1}, {"id": 2}]),
        _make_resp(200, [{"id": 3}]),
    ]
    items = client.paged_get(TOKEN, "/orgs/x/repos")
    assert [item["id"] for item in items] == [1, 2, 3]
    last_url = client.session.request.call_args.args[1]
    assert last_url.endswith("/orgs/x/repos?per_page=2&page=2")


def test_paged_get_respects_max_pages(monkeypatch):
    monkeypatch.setattr(http_client, "PER_PAGE", 1)
    client = _client()
    client.session.request.return_value = _make_resp(200, [{"id": 1}])
    assert len(client.paged_get(TOKEN, "/x", max_pages=3)) == 3


def test_paged_get_raises_on_error_and_logs_when_verbose(capsys):
    client = _client(verbose=True)
    client.session.request.return_value = _make_resp(404, {"message": "Not Found"})
    with pytest.raises(GitHubAPIError) as excinfo:
        client.paged_get(TOKEN, "/orgs/missing/repos")
    assert excinfo.value.status_code == 404
    assert "Not Found" in capsys.readouterr().out


def test_errors_are_silent_without_verbose(capsys):
    client = _client()
    client.session.request.return_value = _make_resp(500, {"message": "boom"})
    with pytest.raises(GitHubAPIError):
        client.get_rate_limit_status(TOKEN)
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize("status,expected", [(204, True), (302, False), (404, False)])
def test_is_org_member_status_mapping(status, expected):
    client = _client()
    client.session.request.return_value = _make_resp(status)
    assert client.is_org_member(TOKEN, "org", "alice") is expected
    assert client.session.request.call_args.kwargs["allow_redirects"] is False


def test_is_org_member_raises_on_unexpected_status():
    client = _client()
    client.session.request.return_value = _make_resp(401)
    with pytest.raises(GitHubAPIError):
        client.is_org_member(TOKEN, "org", "alice")


def test_is_team_member_checks_state():
    client = _client()
    client.session.request.return_value = _make_resp(200, {"state": "active"})
    assert client.is_team_member(TOKEN, "org", "core", "alice") is True

    client.session.request.return_value = _make_resp(200, {"state": "pending"})
    assert client.is_team_member(TOKEN, "org", "core", "alice") is False

    client.session.request.return_value = _make_resp(404)
    assert client.is_team_member(TOKEN, "org", "core", "alice") is False
    assert client.session.request.call_args.args[1].endswith("/orgs/org/teams/core/memberships/alice")


def test_stats_pending_returns_placeholder_copy():
    client = _client()
    client.session.request.return_value = _make_resp(202, {})
    result = client.get_repo_stats_by_category(TOKEN, "org", "repo", "commitActivity")
    assert http_client.is_pending_stats(result)
    result["meta"]["status"] = 0
    assert http_client.PENDING_STATS["meta"]["status"] == 202


def test_stats_paths_and_empty_reply():
    client = _client()
    client.session.request.return_value = _make_resp(200, [[0, 1, 2]])
    assert client.get_repo_stats_by_category(TOKEN, "org", "repo", "punchCard") == [[0, 1, 2]]
    assert client.session.request.call_args.args[1].endswith("/repos/org/repo/stats/punch_card")

    client.session.request.return_value = _make_resp(204)
    assert client.get_repo_stats_by_category(TOKEN, "org", "repo", "participation") == []


def test_watchers_are_paged_from_subscribers():
    client = _client()
    client.session.request.return_value = _make_resp(200, [{"login": "w"}])
    assert client.get_repo_stats_by_category(TOKEN, "org", "repo", "watchers") == [{"login": "w"}]
    assert "/repos/org/repo/subscribers?per_page=" in client.session.request.call_args.args[1]


def test_unknown_stats_category_raises_without_request():
    client = _client()
    with pytest.raises(UnknownStatCategoryError):
        client.get_repo_stats_by_category(TOKEN, "org", "repo", "forks")
    client.session.request.assert_not_called()


def test_get_authenticated_user_and_rate_limit_paths():
    client = _client()
    client.session.request.return_value = _make_resp(200, {"login": "alice"})
    assert client.get_authenticated_user(TOKEN) == {"login": "alice"}
    assert client.session.request.call_args.args[1] == "https://api.github.com/user"

    client.get_rate_limit_status(TOKEN)
    assert client.session.request.call_args.args[1] == "https://api.github.com/rate_limit"


@patch("src.inspect_orgs.http_client.requests.get")
def test_fetch_raw_file_records_any_status(mock_get):
    mock_get.return_value = MagicMock(status_code=404, text="404: Not Found")
    result = http_client.fetch_raw_file("https://raw.example/org/repo/main/x", {"User-Agent": "ua"})
    assert result == {"status_code": 404, "body": "404: Not Found"}
    assert mock_get.call_args.kwargs["headers"] == {"User-Agent": "ua"}


def test_stat_categories_keep_documented_names():
    assert http_client.STAT_CATEGORIES == (
        "codeFrequency", "commitActivity", "contributors", "participation", "punchCard", "stargazers", "watchers",
    )
    client = _client()
    client.session.request.return_value = _make_resp(200, [[1, 2, 3]])
    client.get_repo_stats_by_category(TOKEN, "org", "repo", "codeFrequency")
    assert client.session.request.call_args.args[1].endswith("/repos/org/repo/stats/code_frequency")
