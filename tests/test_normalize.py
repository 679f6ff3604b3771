"""Tests for src.inspect_orgs.normalize covering category walking and defaults.

Run with coverage:
    pytest tests/test_normalize.py --maxfail=1 -v --cov=src.inspect_orgs.normalize --cov-report=term-missing
"""

import copy
import datetime as dt
import json

import pytest

from src.inspect_orgs import normalize
from src.inspect_orgs.errors import InvalidArgumentError, UnknownCategoryError

NOW = dt.datetime(2016, 2, 20, 4, 56, 3, 792000, tzinfo=dt.timezone.utc)


def _raw_tree():
    return [
        {
            "login": "typhonjs",
            "id": 7,
            "avatar_url": "https://avatars/7",
            "repos": [
                {
                    "name": "backbone",
                    "full_name": "typhonjs/backbone",
                    "html_url": "https://github.com/typhonjs/backbone",
                    "default_branch": "master",
                    "stats": [
                        {
                            "contributors": [{"total": 3, "author": {"login": "alice", "id": 1}}],
                            "stargazers": [{"login": "bob", "id": 2, "html_url": "https://github.com/bob"}],
                            "punchCard": [[0, 0, 5]],
                        }
                    ],
                }
            ],
        }
    ]


def test_format_timestamp_has_millis_and_z():
    assert normalize.format_timestamp(NOW) == "2016-02-20T04:56:03.792Z"
    naive = dt.datetime(2020, 1, 1, 0, 0, 0)
    assert normalize.format_timestamp(naive) == "2020-01-01T00:00:00.000Z"


def test_root_wrapper_fields():
    tree = normalize.normalize_categories(["orgs"], [{"login": "a"}], now=NOW)
    assert tree["scm"] == "github"
    assert tree["categories"] == "orgs"
    assert tree["timestamp"] == "2016-02-20T04:56:03.792Z"
    assert tree["orgs"][0]["url"] == "https://github.com/a"


def test_missing_fields_get_defaults():
    org = normalize.normalize_org({})
    assert org == {"name": "", "id": -1, "url": "https://github.com/", "avatar_url": "", "description": ""}
    repo = normalize.normalize_repo({})
    assert repo["id"] == -1 and repo["private"] is False and repo["repo_files"] == {}
    assert normalize.normalize_user({})["name"] == ""


def test_nested_path_is_walked():
    tree = normalize.normalize_categories(["orgs", "repos", "stats"], _raw_tree(), now=NOW)
    assert tree["categories"] == "orgs:repos:stats"
    repo = tree["orgs"][0]["repos"][0]
    assert repo["full_name"] == "typhonjs/backbone"
    stats = repo["stats"][0]
    assert stats["contributors"][0]["author"]["name"] == "alice"
    assert stats["contributors"][0]["total"] == 3
    assert stats["stargazers"][0] == {"name": "bob", "id": 2, "url": "https://github.com/bob", "avatar_url": ""}
    assert stats["punchCard"] == [[0, 0, 5]]


def test_levels_without_child_list_are_left_bare():
    tree = normalize.normalize_categories(["orgs", "repos"], [{"login": "a"}], now=NOW)
    assert "repos" not in tree["orgs"][0]


def test_pending_stats_are_surfaced_not_normalized():
    pending = {"meta": {"status": 202, "message": "computing"}}
    stats = normalize.normalize_stats({"contributors": pending, "watchers": pending, "results_pending": True})
    assert stats["contributors"] is pending
    assert stats["watchers"] is pending
    assert stats["results_pending"] is True


def test_rate_limit_reset_in_millis():
    norm = normalize.normalize_rate_limit(
        {"resources": {"core": {"limit": 5000, "remaining": 10, "reset": 100}, "search": {}}}
    )
    assert norm["core"] == {"limit": 5000, "remaining": 10, "reset": 100000}
    assert norm["search"] == {"limit": 0, "remaining": 0, "reset": 0}


def test_owner_mapping_uses_host_prefix():
    tree = normalize.normalize_categories(
        ["owners"], [{"owner": "typhonjs"}], host_url_prefix="https://ghe.example/", now=NOW
    )
    assert tree["owners"] == [{"name": "typhonjs", "url": "https://ghe.example/typhonjs"}]


def test_pure_and_does_not_mutate_raw():
    raw = _raw_tree()
    before = copy.deepcopy(raw)
    first = normalize.normalize_categories(["orgs", "repos", "stats"], raw, now=NOW)
    second = normalize.normalize_categories(["orgs", "repos", "stats"], raw, now=NOW)
    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)
    assert raw == before


def test_unknown_category_raises_even_without_data():
    with pytest.raises(UnknownCategoryError):
        normalize.normalize_categories(["bogus"], [{}])
    with pytest.raises(UnknownCategoryError):
        normalize.normalize_categories(["orgs", "bogus"], [])


@pytest.mark.parametrize("categories", [[], "orgs", None])
def test_bad_category_list_raises(categories):
    with pytest.raises(InvalidArgumentError):
        normalize.normalize_categories(categories, [])


def test_raw_must_be_list():
    with pytest.raises(InvalidArgumentError):
        normalize.normalize_categories(["orgs"], {"login": "a"})


def test_empty_stats_categories_are_kept():
    stats = normalize.normalize_stats(
        {"stargazers": [], "watchers": [], "codeFrequency": [], "punchCard": [], "contributors": []}
    )
    assert stats == {"stargazers": [], "watchers": [], "codeFrequency": [], "punchCard": [], "contributors": []}
    assert "commitActivity" not in stats
