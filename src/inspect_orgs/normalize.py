"""Normalization of raw GitHub query results into a fixed nested JSON shape.

Each compound query returns raw GitHub payloads nested one level per category,
for instance organizations holding `repos` holding `stats`. `normalize_categories`
walks that nesting following a category path such as ``["orgs", "repos", "stats"]``
and maps each record through the function registered for its category, so
consumers always see the same keys regardless of which endpoint produced the data:

    {
        "scm": "github",
        "categories": "orgs:repos",
        "timestamp": "2016-02-20T04:56:03.792Z",
        "orgs": [{"name": ..., "repos": [{"name": ..., ...}]}],
    }
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import InvalidArgumentError, UnknownCategoryError

SCM = "github"
DEFAULT_HOST_URL_PREFIX = "https://github.com/"

# Stats categories whose payload is passed through untouched.
PASSTHROUGH_STATS = ("codeFrequency", "commitActivity", "participation", "punchCard")

NormalizeFunction = Callable[[Dict[str, Any], str], Dict[str, Any]]


def format_timestamp(value: dt.datetime) -> str:
    """Render an aware or naive datetime as UTC ISO-8601 with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    value = value.astimezone(dt.timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_org(org: Dict[str, Any], host_url_prefix: str = DEFAULT_HOST_URL_PREFIX) -> Dict[str, Any]:
    name = org.get("login") or ""
    return {
        "name": name,
        "id": org.get("id") or -1,
        "url": f"{host_url_prefix}{name}",
        "avatar_url": org.get("avatar_url") or "",
        "description": org.get("description") or "",
    }


def normalize_owner(owner: Dict[str, Any], host_url_prefix: str = DEFAULT_HOST_URL_PREFIX) -> Dict[str, Any]:
    name = owner.get("owner") or ""
    return {"name": name, "url": f"{host_url_prefix}{name}"}


def _rate_resource(resource: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    resource = resource or {}
    return {
        "limit": resource.get("limit") or 0,
        "remaining": resource.get("remaining") or 0,
        "reset": (resource.get("reset") or 0) * 1000,
    }


def normalize_rate_limit(ratelimit: Dict[str, Any], host_url_prefix: str = DEFAULT_HOST_URL_PREFIX) -> Dict[str, Any]:
    """Reset times are converted from epoch seconds to epoch milliseconds."""
    resources = ratelimit.get("resources") or {}
    return {
        "core": _rate_resource(resources.get("core")),
        "search": _rate_resource(resources.get("search")),
    }


def normalize_repo(repo: Dict[str, Any], host_url_prefix: str = DEFAULT_HOST_URL_PREFIX) -> Dict[str, Any]:
    return {
        "name": repo.get("name") or "",
        "full_name": repo.get("full_name") or "",
        "id": repo.get("id") or -1,
        "url": repo.get("html_url") or "",
        "description": repo.get("description") or "",
        "private": repo.get("private") or False,
        "repo_files": repo.get("repo_files") or {},
        "fork": repo.get("fork") or False,
        "created_at": repo.get("created_at") or "",
        "updated_at": repo.get("updated_at") or "",
        "pushed_at": repo.get("pushed_at") or "",
        "git_url": repo.get("git_url") or "",
        "ssh_url": repo.get("ssh_url") or "",
        "clone_url": repo.get("clone_url") or "",
        "stargazers_count": repo.get("stargazers_count") or 0,
        "watchers_count": repo.get("watchers_count") or 0,
        "default_branch": repo.get("default_branch") or "",
    }


def normalize_team(team: Dict[str, Any], host_url_prefix: str = DEFAULT_HOST_URL_PREFIX) -> Dict[str, Any]:
    return {
        "name": team.get("name") or "",
        "id": team.get("id") or -1,
        "privacy": team.get("privacy") or "",
        "permission": team.get("permission") or "",
        "description": team.get("description") or "",
    }


def normalize_user(user: Dict[str, Any], host_url_prefix: str = DEFAULT_HOST_URL_PREFIX) -> Dict[str, Any]:
    return {
        "name": user.get("login") or "",
        "id": user.get("id") or -1,
        "url": user.get("html_url") or "",
        "avatar_url": user.get("avatar_url") or "",
    }


def _normalize_users(value: Any) -> Any:
    # Anything other than a list is a "still computing" placeholder.
    if not isinstance(value, list):
        return value
    return [normalize_user(user) for user in value]


def normalize_stats(stats: Dict[str, Any], host_url_prefix: str = DEFAULT_HOST_URL_PREFIX) -> Dict[str, Any]:
    norm: Dict[str, Any] = {}

    for key in PASSTHROUGH_STATS:
        if stats.get(key) is not None:
            norm[key] = stats[key]

    contributors = stats.get("contributors")
    if contributors is not None:
        if isinstance(contributors, list):
            norm["contributors"] = []
            for contributor in contributors:
                entry = dict(contributor)
                if entry.get("author"):
                    entry["author"] = normalize_user(entry["author"])
                norm["contributors"].append(entry)
        else:
            norm["contributors"] = contributors

    for key in ("stargazers", "watchers"):
        if stats.get(key) is not None:
            norm[key] = _normalize_users(stats[key])

    if stats.get("results_pending"):
        norm["results_pending"] = True

    return norm


NORMALIZE_FUNCTIONS: Dict[str, NormalizeFunction] = {
    "authors": normalize_user,
    "collaborators": normalize_user,
    "contributors": normalize_user,
    "members": normalize_user,
    "users": normalize_user,
    "orgs": normalize_org,
    "owners": normalize_owner,
    "ratelimit": normalize_rate_limit,
    "repos": normalize_repo,
    "stats": normalize_stats,
    "teams": normalize_team,
}


def get_normalize_function(category: str) -> NormalizeFunction:
    """Return the mapping function for `category` or raise UnknownCategoryError."""
    try:
        return NORMALIZE_FUNCTIONS[category]
    except (KeyError, TypeError):
        raise UnknownCategoryError(category) from None


def _depth_normalize(categories: Sequence[str],
                     data: List[Dict[str, Any]],
                     depth: int,
                     host_url_prefix: str) -> List[Dict[str, Any]]:
    category = categories[depth]
    next_category = categories[depth + 1] if depth + 1 < len(categories) else None
    normalize_function = get_normalize_function(category)

    results: List[Dict[str, Any]] = []
    for entry in data:
        normalized = normalize_function(entry, host_url_prefix)
        if next_category and isinstance(entry.get(next_category), list):
            normalized[next_category] = _depth_normalize(
                categories, entry[next_category], depth + 1, host_url_prefix
            )
        results.append(normalized)
    return results


def normalize_categories(categories: Sequence[str],
                         raw: List[Dict[str, Any]],
                         host_url_prefix: str = DEFAULT_HOST_URL_PREFIX,
                         now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """Build the normalized tree for `raw` following the `categories` path."""
    if isinstance(categories, str) or not isinstance(categories, Sequence) or not categories:
        raise InvalidArgumentError("categories must be a non-empty list of category names")
    if not isinstance(raw, list):
        raise InvalidArgumentError("raw must be a list of records")

    # Fail on a bad path even when there is no data to walk.
    for category in categories:
        get_normalize_function(category)

    timestamp = format_timestamp(now or dt.datetime.now(dt.timezone.utc))
    tree: Dict[str, Any] = {
        "scm": SCM,
        "categories": ":".join(categories),
        "timestamp": timestamp,
    }
    tree[categories[0]] = _depth_normalize(categories, raw, 0, host_url_prefix)
    return tree


__all__ = [
    "SCM",
    "DEFAULT_HOST_URL_PREFIX",
    "PASSTHROUGH_STATS",
    "NORMALIZE_FUNCTIONS",
    "format_timestamp",
    "normalize_org",
    "normalize_owner",
    "normalize_rate_limit",
    "normalize_repo",
    "normalize_team",
    "normalize_user",
    "normalize_stats",
    "get_normalize_function",
    "normalize_categories",
]
