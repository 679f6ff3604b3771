"""Central configuration constants and CLI settings for the organization inspector."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from src.secrets import load_local_secrets, load_organization_sources

_SECRETS = load_local_secrets()
ORGANIZATIONS: List[Dict[str, Any]] = load_organization_sources(_SECRETS)

API_HOST = os.getenv("GITHUB_API_HOST", "api.github.com")
PATH_PREFIX = os.getenv("GITHUB_PATH_PREFIX", "")
RAW_URL_PREFIX = os.getenv("GITHUB_RAW_URL_PREFIX", "https://raw.githubusercontent.com/")
HOST_URL_PREFIX = os.getenv("GITHUB_HOST_URL_PREFIX", "https://github.com/")
USER_AGENT = os.getenv("INSPECT_USER_AGENT", "github-inspect-orgs")
REQUEST_TIMEOUT_MS = int(os.getenv("INSPECT_REQUEST_TIMEOUT_MS", "120000"))
THREAD_POOL_SIZE = int(os.getenv("INSPECT_THREAD_POOL_SIZE", "10"))
PER_PAGE = 100
OUTPUT_DIR = "./output"

QUERIES: Tuple[str, ...] = (
    "list_organizations",
    "list_organization_teams",
    "list_organization_team_members",
    "list_organization_repositories",
    "list_organization_members",
    "list_repository_collaborators",
    "list_repository_contributors",
    "list_repository_statistics",
    "collapse_collaborators",
    "collapse_contributors",
    "collapse_members",
    "list_owners",
    "list_owner_organizations",
    "list_owner_rate_limits",
    "get_rate_limit",
)


@dataclass(frozen=True)
class InspectSettings:
    """Resolved runtime settings for one CLI invocation."""

    query: str
    credential: Optional[str]
    repo_files: Tuple[str, ...]
    stats_categories: Tuple[str, ...]
    output: Optional[str]
    raw: bool
    verbose: bool
    debug: bool
    api_host: str
    path_prefix: str
    raw_url_prefix: str
    host_url_prefix: str
    user_agent: str
    timeout_millis: int
    thread_pool_size: int


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the inspector entry point."""

    parser = argparse.ArgumentParser(
        description="Run compound GitHub queries across the configured organizations.",
    )
    parser.add_argument("--query", choices=QUERIES, default="list_organizations")
    parser.add_argument("--credential", default=os.getenv("GITHUB_USER_TOKEN"),
                        help="token or user:password limiting results to what that user can see")
    parser.add_argument("--repo-file", dest="repo_files", action="append", default=[])
    parser.add_argument("--stats-category", dest="stats_categories", action="append", default=[])
    parser.add_argument("--output", default=None, help="write JSON here instead of stdout")
    parser.add_argument("--raw", action="store_true", help="emit raw GitHub data alongside normalized data")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--api-host", default=API_HOST)
    parser.add_argument("--path-prefix", default=PATH_PREFIX)
    parser.add_argument("--raw-url-prefix", default=RAW_URL_PREFIX)
    parser.add_argument("--host-url-prefix", default=HOST_URL_PREFIX)
    parser.add_argument("--user-agent", default=USER_AGENT)
    parser.add_argument("--timeout-ms", type=int, default=REQUEST_TIMEOUT_MS)
    parser.add_argument("--thread-pool-size", type=int, default=THREAD_POOL_SIZE)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def resolve_settings(args: Optional[argparse.Namespace] = None) -> InspectSettings:
    """Return immutable settings built from parsed CLI arguments."""

    args = args or parse_args()
    return InspectSettings(
        query=args.query,
        credential=args.credential or None,
        repo_files=tuple(args.repo_files or ()),
        stats_categories=tuple(args.stats_categories or ()) or ("all",),
        output=args.output,
        raw=bool(args.raw),
        verbose=bool(args.verbose),
        debug=bool(args.debug),
        api_host=args.api_host,
        path_prefix=args.path_prefix,
        raw_url_prefix=args.raw_url_prefix,
        host_url_prefix=args.host_url_prefix,
        user_agent=args.user_agent,
        timeout_millis=int(args.timeout_ms),
        thread_pool_size=int(args.thread_pool_size),
    )


__all__ = [
    "ORGANIZATIONS",
    "API_HOST",
    "PATH_PREFIX",
    "RAW_URL_PREFIX",
    "HOST_URL_PREFIX",
    "USER_AGENT",
    "REQUEST_TIMEOUT_MS",
    "THREAD_POOL_SIZE",
    "PER_PAGE",
    "OUTPUT_DIR",
    "QUERIES",
    "InspectSettings",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
]
