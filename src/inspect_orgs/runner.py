"""Entry point running one compound query and printing or saving its JSON."""

from __future__ import annotations

import json
import locale
import os
import sys
from typing import Any, Dict, List, Optional

import requests

from . import config
from .config import InspectSettings, parse_args, resolve_settings
from .errors import InspectOrgsError
from .orchestrator import GitHubOrgInspector

# Queries that take no calling credential.
_UNSCOPED_QUERIES = frozenset({"list_owners", "list_owner_organizations", "list_owner_rate_limits"})
_REPO_FILE_QUERIES = frozenset({
    "list_organization_repositories",
    "list_repository_collaborators",
    "list_repository_contributors",
    "list_repository_statistics",
})


def ensure_dir(path: str) -> None:
    """Create output directories as-needed without raising for existing folders."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_json(path: str, data: Any) -> None:
    """Write JSON to disk using UTF-8; non-JSON values (credentials) are stringified."""
    ensure_dir(os.path.dirname(path))
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=str)


def use_system_collation() -> None:
    """Sort names with the user's locale collation; keep codepoint order if it is unavailable."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        print(f"[warn] could not apply locale collation: {exc}")


def _build_inspector(settings: InspectSettings, organizations: List[Dict[str, Any]]) -> GitHubOrgInspector:
    return GitHubOrgInspector(
        organizations,
        debug=settings.debug,
        api_host=settings.api_host,
        path_prefix=settings.path_prefix,
        raw_url_prefix=settings.raw_url_prefix,
        host_url_prefix=settings.host_url_prefix,
        timeout_millis=settings.timeout_millis,
        user_agent=settings.user_agent,
        verbose=settings.verbose,
        thread_pool_size=settings.thread_pool_size,
    )


def _query_kwargs(settings: InspectSettings) -> Dict[str, Any]:
    query = settings.query
    if query in ("list_owners", "list_owner_rate_limits"):
        return {}
    if query == "get_rate_limit":
        return {"credential": settings.credential}

    kwargs: Dict[str, Any] = {}
    if query not in _UNSCOPED_QUERIES:
        kwargs["credential"] = settings.credential
    if query in _REPO_FILE_QUERIES and settings.repo_files:
        kwargs["repo_files"] = list(settings.repo_files)
    if query == "list_repository_statistics":
        kwargs["categories"] = list(settings.stats_categories)
    return kwargs


def run_query(inspector: GitHubOrgInspector, settings: InspectSettings) -> Any:
    """Invoke `settings.query` on the inspector; returns normalized data unless raw is requested."""
    result = getattr(inspector, settings.query)(**_query_kwargs(settings))
    return result if settings.raw else result["normalized"]


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point; exits with status 1 on configuration or query errors."""

    args = parse_args(argv)
    settings = resolve_settings(args)
    use_system_collation()

    if not config.ORGANIZATIONS:
        print("[error] No organizations configured. Add an \"organizations\" list to local_secrets.json.")
        sys.exit(1)

    try:
        inspector = _build_inspector(settings, config.ORGANIZATIONS)
        data = run_query(inspector, settings)
    except (InspectOrgsError, ValueError, requests.RequestException) as exc:
        print(f"[error] {settings.query}: {exc}")
        sys.exit(1)

    if settings.output:
        save_json(settings.output, data)
        print(f"[info] wrote {settings.query} → {settings.output}")
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


if __name__ == "__main__":
    main()


__all__ = ["ensure_dir", "save_json", "use_system_collation", "run_query", "main"]
