"""Tests for src.inspect_orgs.config ensuring env overrides, defaults and CLI parsing work.

Run with coverage to validate configuration handling:
    pytest tests/test_config.py --maxfail=1 -v --cov=src.inspect_orgs.config --cov-report=term-missing
"""

from importlib import reload

import pytest

import src.inspect_orgs.config as config


def test_config_defaults_are_present():
    assert config.PER_PAGE == 100
    assert config.REQUEST_TIMEOUT_MS > 0
    assert config.THREAD_POOL_SIZE > 0
    assert config.RAW_URL_PREFIX.endswith("/")
    assert isinstance(config.ORGANIZATIONS, list)


def test_env_override_for_api_host_and_pool(monkeypatch):
    monkeypatch.setenv("GITHUB_API_HOST", "ghe.example.com")
    monkeypatch.setenv("INSPECT_THREAD_POOL_SIZE", "3")
    reloaded = reload(config)
    try:
        assert reloaded.API_HOST == "ghe.example.com"
        assert reloaded.THREAD_POOL_SIZE == 3
    finally:
        monkeypatch.delenv("GITHUB_API_HOST", raising=False)
        monkeypatch.delenv("INSPECT_THREAD_POOL_SIZE", raising=False)
        reload(config)


def test_resolve_settings_defaults():
    settings = config.resolve_settings(config.parse_args(["--credential", ""]))
    assert settings.query == "list_organizations"
    assert settings.credential is None
    assert settings.repo_files == ()
    assert settings.stats_categories == ("all",)
    assert settings.raw is False


def test_resolve_settings_from_cli():
    args = config.parse_args([
        "--query",
        "list_repository_statistics",
        "--credential",
        "alice:secret",
        "--repo-file",
        "package.json",
        "--repo-file",
        "README.md",
        "--stats-category",
        "punchCard",
        "--output",
        "./output/stats.json",
        "--raw",
        "--verbose",
        "--timeout-ms",
        "5000",
        "--thread-pool-size",
        "4",
    ])
    settings = config.resolve_settings(args)
    assert settings.query == "list_repository_statistics"
    assert settings.credential == "alice:secret"
    assert settings.repo_files == ("package.json", "README.md")
    assert settings.stats_categories == ("punchCard",)
    assert settings.output == "./output/stats.json"
    assert settings.raw is True and settings.verbose is True and settings.debug is False
    assert settings.timeout_millis == 5000
    assert settings.thread_pool_size == 4


def test_unknown_query_is_rejected():
    with pytest.raises(SystemExit):
        config.parse_args(["--query", "drop_everything"])
