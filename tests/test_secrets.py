"""Tests for src.secrets covering the local secrets file and organization entries.

Run with coverage:
    pytest tests/test_secrets.py --maxfail=1 -v --cov=src.secrets --cov-report=term-missing
"""

import json

from src import secrets


def test_missing_file_returns_empty(tmp_path):
    assert secrets.load_local_secrets(tmp_path / "nope.json") == {}


def test_env_path_is_used(tmp_path, monkeypatch):
    path = tmp_path / "local.json"
    path.write_text(json.dumps({"organizations": []}), encoding="utf-8")
    monkeypatch.setenv("LOCAL_SECRETS_FILE", str(path))
    assert secrets.load_local_secrets() == {"organizations": []}


def test_unreadable_json_warns(tmp_path, capsys):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    assert secrets.load_local_secrets(path) == {}
    assert "[warn]" in capsys.readouterr().out


def test_organization_sources_filter_non_mappings():
    data = {"organizations": [{"credential": "t", "owner": "o", "regex": "."}, "junk"]}
    assert secrets.load_organization_sources(data) == [{"credential": "t", "owner": "o", "regex": "."}]


def test_organization_sources_not_a_list(capsys):
    assert secrets.load_organization_sources({"organizations": {"owner": "o"}}) == []
    assert "not a list" in capsys.readouterr().out
    assert secrets.load_organization_sources({}) == []
