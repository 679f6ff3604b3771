"""Compound GitHub queries spanning every organization matched by the configured sources.

`GitHubOrgInspector` chains per-resource REST calls into aggregate results:

    orgs -> teams -> team members
    orgs -> repos -> collaborators | contributors | stats
    orgs -> members

Every public query returns ``{"normalized": <tree>, "raw": <aggregate>}`` (or
just the raw aggregate with ``normalize=False``). Passing ``credential``
restricts organizations, teams and repositories to those the credential's user
can currently access. The rate limit of every configured credential is checked
once before any data is fetched.
"""

from __future__ import annotations

import functools
import locale
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from . import threaded
from .config import (
    API_HOST,
    HOST_URL_PREFIX,
    PATH_PREFIX,
    RAW_URL_PREFIX,
    REQUEST_TIMEOUT_MS,
    THREAD_POOL_SIZE,
    USER_AGENT,
)
from .credentials import Credential, CredentialInput, resolve_credential
from .errors import (
    AuthenticationFailedError,
    GitHubAPIError,
    InvalidArgumentError,
    UnknownStatCategoryError,
)
from .http_client import STAT_CATEGORIES, GitHubRestClient, fetch_raw_file, is_pending_stats
from .models import EmitMode, OrganizationSource, QueryContext, build_organization_source
from .normalize import normalize_categories
from .rate_limit import check_rate_limits

Record = Dict[str, Any]


def sort_key(value: Optional[str]) -> Tuple[str, str]:
    """Case-insensitive collation key with the raw string as tie-break.

    Follows LC_COLLATE; without a prior `locale.setlocale` this is codepoint order.
    """
    value = value or ""
    return (locale.strxfrm(value.casefold()), value)


def sort_records(records: Iterable[Record], field: str) -> List[Record]:
    return sorted(records, key=lambda record: sort_key(record.get(field)))


def dedupe_records(records: Iterable[Record], field: str) -> List[Record]:
    """Keep the first record seen for each value of `field`."""
    seen = set()
    unique: List[Record] = []
    for record in records:
        key = record.get(field)
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def _team_slug(team: Record) -> str:
    return team.get("slug") or team.get("name") or str(team.get("id", ""))


class GitHubOrgInspector:
    """Compound queries over all organizations matched by `organizations` sources."""

    def __init__(
        self,
        organizations: Sequence[Any],
        debug: bool = False,
        api_host: str = API_HOST,
        path_prefix: str = PATH_PREFIX,
        raw_url_prefix: str = RAW_URL_PREFIX,
        host_url_prefix: str = HOST_URL_PREFIX,
        timeout_millis: int = REQUEST_TIMEOUT_MS,
        user_agent: str = USER_AGENT,
        verbose: bool = False,
        thread_pool_size: int = THREAD_POOL_SIZE,
        client: Optional[GitHubRestClient] = None,
        raw_fetcher: Optional[Callable[..., Record]] = None,
    ) -> None:
        if isinstance(organizations, (str, bytes)) or not isinstance(organizations, Sequence):
            raise InvalidArgumentError("organizations must be a list of {credential, owner, regex} entries")
        if not organizations:
            raise InvalidArgumentError("organizations must not be empty")
        if not isinstance(timeout_millis, int) or timeout_millis <= 0:
            raise InvalidArgumentError("timeout_millis must be a positive integer")
        if not isinstance(thread_pool_size, int) or thread_pool_size <= 0:
            raise InvalidArgumentError("thread_pool_size must be a positive integer")

        self.sources: Tuple[OrganizationSource, ...] = tuple(
            build_organization_source(entry, index) for index, entry in enumerate(organizations)
        )
        self.raw_url_prefix = raw_url_prefix
        self.host_url_prefix = host_url_prefix
        self.user_agent = user_agent
        self.verbose = bool(verbose)
        self.thread_pool_size = thread_pool_size
        self.client = client or GitHubRestClient(
            api_host=api_host,
            path_prefix=path_prefix,
            timeout_millis=timeout_millis,
            user_agent=user_agent,
            debug=debug,
            verbose=verbose,
        )
        self.raw_fetcher = raw_fetcher or functools.partial(fetch_raw_file, timeout=timeout_millis / 1000.0)

    # Context / output helpers -------------------------------------------------------------------

    def _context(self,
                 credential: Optional[CredentialInput] = None,
                 repo_files: Optional[Sequence[str]] = None,
                 normalize: bool = True,
                 verbose: Optional[bool] = None) -> QueryContext:
        if not isinstance(normalize, bool):
            raise InvalidArgumentError("normalize must be a boolean")
        if repo_files is None:
            files: Tuple[str, ...] = ()
        elif isinstance(repo_files, str) or not isinstance(repo_files, Sequence):
            raise InvalidArgumentError("repo_files must be a list of file paths")
        elif not all(isinstance(path, str) and path for path in repo_files):
            raise InvalidArgumentError("repo_files entries must be non-empty strings")
        else:
            files = tuple(repo_files)

        return QueryContext(
            emit=EmitMode.NORMALIZED_TREE if normalize else EmitMode.AGGREGATE_ONLY,
            credential=resolve_credential(credential) if credential is not None else None,
            repo_files=files,
            verbose=self.verbose if verbose is None else bool(verbose),
        )

    def _emit(self, ctx: QueryContext, categories: List[str], raw: List[Record]) -> Any:
        if ctx.emit is EmitMode.AGGREGATE_ONLY:
            return raw
        normalized = normalize_categories(categories, raw, host_url_prefix=self.host_url_prefix)
        return {"normalized": normalized, "raw": raw}

    def _warn(self, ctx: QueryContext, message: str) -> None:
        if ctx.verbose:
            print(f"[warn] {message}")

    def _gate(self, ctx: QueryContext) -> None:
        check_rate_limits(self.client, self.sources, ctx, thread_pool_size=self.thread_pool_size)

    def _run(self, func: Callable[[Any], Any], items: Sequence[Any], tolerant: bool = False) -> List[Any]:
        return threaded.run(func, items, self.thread_pool_size, return_exceptions=tolerant)

    # Identity -----------------------------------------------------------------------------------

    def resolve_user_from_credential(self, credential: CredentialInput) -> Optional[Record]:
        """Return the GitHub user behind `credential`, or None when it does not authenticate."""
        resolved = resolve_credential(credential)
        try:
            return self.client.get_authenticated_user(resolved)
        except GitHubAPIError:
            return None

    def verify_user_owns_credential(self, user: str, credential: CredentialInput) -> bool:
        """True when `credential` authenticates as the GitHub login `user`."""
        if not isinstance(user, str) or not user:
            raise InvalidArgumentError("user must be a non-empty string")
        identity = self.resolve_user_from_credential(credential)
        if not identity:
            return False
        return str(identity.get("login") or "").casefold() == user.casefold()

    def _require_user(self, ctx: QueryContext) -> Record:
        if ctx.user is None:
            user = self.resolve_user_from_credential(ctx.credential)
            if not user or not user.get("login"):
                raise AuthenticationFailedError("user authentication failed for the supplied credential")
            ctx.user = user
        return ctx.user

    # Organizations ------------------------------------------------------------------------------

    def _source_orgs(self, source: OrganizationSource) -> List[Record]:
        orgs = self.client.list_orgs_for_user(source.credential, source.owner)
        return [
            {**org, "_credential": source.credential}
            for org in orgs
            if source.matches(org.get("login"))
        ]

    def _all_orgs(self) -> List[Record]:
        batches = self._run(self._source_orgs, self.sources)
        merged = [org for batch in batches for org in batch]
        return sort_records(dedupe_records(merged, "login"), "login")

    def _orgs_for_user(self, ctx: QueryContext) -> List[Record]:
        user = self._require_user(ctx)
        orgs = self._all_orgs()
        probes = self._run(
            lambda org: self.client.is_org_member(org["_credential"], org["login"], user["login"]),
            orgs,
            tolerant=True,
        )
        return [{**org, "auth_user": user} for org, is_member in zip(orgs, probes) if is_member is True]

    def _orgs(self, ctx: QueryContext) -> List[Record]:
        if ctx.authenticated:
            return self._orgs_for_user(ctx)
        return self._all_orgs()

    def list_organizations(self, credential: Optional[CredentialInput] = None,
                           normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """All matched organizations sorted by login; categories `orgs`."""
        ctx = self._context(credential=credential, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs"], self._orgs(ctx))

    # Teams --------------------------------------------------------------------------------------

    def _org_teams(self, ctx: QueryContext) -> List[Record]:
        orgs = self._orgs(ctx)
        listings = self._run(
            lambda org: self.client.get_org_teams(org["_credential"], org["login"]),
            orgs,
            tolerant=True,
        )

        results: List[Record] = []
        for org, teams in zip(orgs, listings):
            if isinstance(teams, Exception):
                self._warn(ctx, f"Skipping organization '{org['login']}' as user does not have access to view teams.")
                results.append({**org, "teams": []} if ctx.authenticated else dict(org))
                continue
            results.append({**org, "teams": sort_records(teams, "name")})

        if ctx.authenticated:
            results = self._teams_for_user(ctx, results)
        return results

    def _teams_for_user(self, ctx: QueryContext, orgs: List[Record]) -> List[Record]:
        user = self._require_user(ctx)
        pairs = [(oi, team) for oi, org in enumerate(orgs) for team in org.get("teams") or []]
        probes = self._run(
            lambda pair: self.client.is_team_member(
                orgs[pair[0]]["_credential"], orgs[pair[0]]["login"], _team_slug(pair[1]), user["login"]
            ),
            pairs,
            tolerant=True,
        )

        kept: Dict[int, List[Record]] = {oi: [] for oi in range(len(orgs))}
        for (oi, team), is_member in zip(pairs, probes):
            if is_member is True:
                kept[oi].append(team)
        return [{**org, "teams": sort_records(kept[oi], "name")} for oi, org in enumerate(orgs)]

    def list_organization_teams(self, credential: Optional[CredentialInput] = None,
                                normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Teams by organization; categories `orgs:teams`."""
        ctx = self._context(credential=credential, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs", "teams"], self._org_teams(ctx))

    def _org_team_members(self, ctx: QueryContext) -> List[Record]:
        orgs = self._org_teams(ctx)
        pairs = [(oi, ti) for oi, org in enumerate(orgs) for ti in range(len(org.get("teams") or []))]
        members = self._run(
            lambda pair: self.client.get_team_members(
                orgs[pair[0]]["_credential"], orgs[pair[0]]["login"], _team_slug(orgs[pair[0]]["teams"][pair[1]])
            ),
            pairs,
            tolerant=True,
        )

        found = {pair: result for pair, result in zip(pairs, members) if not isinstance(result, Exception)}
        results: List[Record] = []
        for oi, org in enumerate(orgs):
            if "teams" not in org:
                results.append(org)
                continue
            teams = []
            for ti, team in enumerate(org["teams"]):
                if (oi, ti) in found:
                    team = {**team, "members": sort_records(found[(oi, ti)], "login")}
                teams.append(team)
            results.append({**org, "teams": teams})
        return results

    def list_organization_team_members(self, credential: Optional[CredentialInput] = None,
                                       normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Members by team by organization; categories `orgs:teams:members`."""
        ctx = self._context(credential=credential, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs", "teams", "members"], self._org_team_members(ctx))

    # Members ------------------------------------------------------------------------------------

    def _org_members(self, ctx: QueryContext) -> List[Record]:
        orgs = self._orgs(ctx)
        members = self._run(
            lambda org: self.client.get_org_members(org["_credential"], org["login"]),
            orgs,
        )
        return [{**org, "members": sort_records(users, "login")} for org, users in zip(orgs, members)]

    def list_organization_members(self, credential: Optional[CredentialInput] = None,
                                  normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Members by organization; categories `orgs:members`."""
        ctx = self._context(credential=credential, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs", "members"], self._org_members(ctx))

    # Repositories -------------------------------------------------------------------------------

    def _repos_for_user(self, ctx: QueryContext) -> List[Record]:
        orgs = self._org_teams(ctx)
        pairs = [(oi, team) for oi, org in enumerate(orgs) for team in org.get("teams") or []]
        listings = self._run(
            lambda pair: self.client.get_team_repos(
                orgs[pair[0]]["_credential"], orgs[pair[0]]["login"], _team_slug(pair[1])
            ),
            pairs,
        )

        reachable: Dict[int, List[Record]] = {oi: [] for oi in range(len(orgs))}
        for (oi, _team), repos in zip(pairs, listings):
            reachable[oi].extend(repos)
        return [
            {**org, "repos": sort_records(dedupe_records(reachable[oi], "name"), "name")}
            for oi, org in enumerate(orgs)
        ]

    def _all_repos(self, ctx: QueryContext) -> List[Record]:
        orgs = self._orgs(ctx)
        listings = self._run(
            lambda org: self.client.list_repos_for_org(org["_credential"], org["login"]),
            orgs,
        )
        return [{**org, "repos": sort_records(repos, "name")} for org, repos in zip(orgs, listings)]

    def _attach_repo_files(self, ctx: QueryContext, orgs: List[Record]) -> List[Record]:
        if not ctx.repo_files:
            return orgs

        headers = {"User-Agent": self.user_agent}
        tasks = [
            (oi, ri, path)
            for oi, org in enumerate(orgs)
            for ri in range(len(org.get("repos") or []))
            for path in ctx.repo_files
        ]

        def fetch(task: Tuple[int, int, str]) -> Record:
            oi, ri, path = task
            repo = orgs[oi]["repos"][ri]
            url = f"{self.raw_url_prefix}{repo.get('full_name')}/{repo.get('default_branch')}/{path}"
            return self.raw_fetcher(url, headers)

        responses = self._run(fetch, tasks)
        files: Dict[Tuple[int, int], Dict[str, Record]] = {}
        for (oi, ri, path), response in zip(tasks, responses):
            files.setdefault((oi, ri), {})[path] = {
                "status_code": response.get("status_code"),
                "body": response.get("body"),
            }
        return self._update_repos(orgs, {key: {"repo_files": value} for key, value in files.items()})

    @staticmethod
    def _update_repos(orgs: List[Record], updates: Dict[Tuple[int, int], Record]) -> List[Record]:
        """Return copies of `orgs` with `updates[(org_index, repo_index)]` merged into each repo."""
        results: List[Record] = []
        for oi, org in enumerate(orgs):
            if "repos" not in org:
                results.append(org)
                continue
            repos = [{**repo, **updates.get((oi, ri), {})} for ri, repo in enumerate(org["repos"])]
            results.append({**org, "repos": repos})
        return results

    def _org_repos(self, ctx: QueryContext) -> List[Record]:
        orgs = self._repos_for_user(ctx) if ctx.authenticated else self._all_repos(ctx)
        return self._attach_repo_files(ctx, orgs)

    def list_organization_repositories(self, credential: Optional[CredentialInput] = None,
                                       repo_files: Optional[Sequence[str]] = None,
                                       normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Repositories by organization; categories `orgs:repos`.

        With `credential` only repositories reachable through the user's teams
        are listed. `repo_files` paths are fetched from each repo's default
        branch and recorded under `repo_files[path]` as `{status_code, body}`.
        """
        ctx = self._context(credential=credential, repo_files=repo_files, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs", "repos"], self._org_repos(ctx))

    def _repo_users(self, ctx: QueryContext, field: str,
                    fetch: Callable[[Credential, str, str], List[Record]], skip_reason: str) -> List[Record]:
        orgs = self._org_repos(ctx)
        pairs = [(oi, ri) for oi, org in enumerate(orgs) for ri in range(len(org.get("repos") or []))]
        listings = self._run(
            lambda pair: fetch(
                orgs[pair[0]]["_credential"], orgs[pair[0]]["login"], orgs[pair[0]]["repos"][pair[1]]["name"]
            ),
            pairs,
            tolerant=True,
        )

        updates: Dict[Tuple[int, int], Record] = {}
        for (oi, ri), users in zip(pairs, listings):
            if isinstance(users, Exception):
                self._warn(ctx, f"Skipping repo '{orgs[oi]['repos'][ri]['name']}' {skip_reason}: {users}")
                continue
            updates[(oi, ri)] = {field: sort_records(users, "login")}
        return self._update_repos(orgs, updates)

    def _repo_collaborators(self, ctx: QueryContext) -> List[Record]:
        return self._repo_users(ctx, "collaborators", self.client.get_repo_collaborators,
                                "as user must have push access to view collaborators")

    def _repo_contributors(self, ctx: QueryContext) -> List[Record]:
        return self._repo_users(ctx, "contributors", self.client.get_repo_contributors,
                                "as contributors could not be listed")

    def list_repository_collaborators(self, credential: Optional[CredentialInput] = None,
                                      repo_files: Optional[Sequence[str]] = None,
                                      normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Collaborators by repo by organization; categories `orgs:repos:collaborators`."""
        ctx = self._context(credential=credential, repo_files=repo_files, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs", "repos", "collaborators"], self._repo_collaborators(ctx))

    def list_repository_contributors(self, credential: Optional[CredentialInput] = None,
                                     repo_files: Optional[Sequence[str]] = None,
                                     normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Contributors by repo by organization; categories `orgs:repos:contributors`."""
        ctx = self._context(credential=credential, repo_files=repo_files, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs", "repos", "contributors"], self._repo_contributors(ctx))

    # Statistics ---------------------------------------------------------------------------------

    @staticmethod
    def resolve_stat_categories(categories: Optional[Sequence[str]]) -> Tuple[str, ...]:
        """Expand the `all` wildcard and reject names GitHub has no statistics for."""
        if categories is None:
            return ()
        if isinstance(categories, str) or not isinstance(categories, Sequence):
            raise InvalidArgumentError("categories must be a list of statistics category names")
        resolved: List[str] = []
        for category in categories:
            if category == "all":
                continue
            if category not in STAT_CATEGORIES:
                raise UnknownStatCategoryError(category)
            if category not in resolved:
                resolved.append(category)
        if "all" in categories:
            return STAT_CATEGORIES
        return tuple(resolved)

    def _repo_stats(self, ctx: QueryContext, categories: Tuple[str, ...]) -> List[Record]:
        orgs = self._org_repos(ctx)
        tasks = [
            (oi, ri, category)
            for oi, org in enumerate(orgs)
            for ri in range(len(org.get("repos") or []))
            for category in categories
        ]
        results = self._run(
            lambda task: self.client.get_repo_stats_by_category(
                orgs[task[0]]["_credential"], orgs[task[0]]["login"], orgs[task[0]]["repos"][task[1]]["name"], task[2]
            ),
            tasks,
        )

        stats: Dict[Tuple[int, int], Record] = {
            (oi, ri): {} for oi, org in enumerate(orgs) for ri in range(len(org.get("repos") or []))
        }
        for (oi, ri, category), result in zip(tasks, results):
            entry = stats[(oi, ri)]
            if is_pending_stats(result):
                entry["results_pending"] = True
            entry[category] = result
        return self._update_repos(orgs, {key: {"stats": [value]} for key, value in stats.items()})

    def list_repository_statistics(self, categories: Sequence[str] = ("all",),
                                   credential: Optional[CredentialInput] = None,
                                   repo_files: Optional[Sequence[str]] = None,
                                   normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Statistics by repo by organization; categories `orgs:repos:stats`.

        Each repo gets `stats = [{<category>: <data>, ...}]`. GitHub computes
        statistics lazily: a category it is still computing comes back as a
        placeholder and `results_pending` is set on that repo's stats, meaning
        the query should be issued again later.
        """
        resolved = self.resolve_stat_categories(categories)
        ctx = self._context(credential=credential, repo_files=repo_files, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        return self._emit(ctx, ["orgs", "repos", "stats"], self._repo_stats(ctx, resolved))

    # Flattened views ----------------------------------------------------------------------------

    @staticmethod
    def _collapse(users: Iterable[Record]) -> List[Record]:
        return sort_records(dedupe_records(users, "login"), "login")

    def collapse_collaborators(self, credential: Optional[CredentialInput] = None,
                               normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Unique collaborators across all organizations; categories `collaborators`."""
        ctx = self._context(credential=credential, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        orgs = self._repo_collaborators(ctx)
        users = self._collapse(
            user
            for org in orgs
            for repo in org.get("repos") or []
            for user in repo.get("collaborators") or []
        )
        return self._emit(ctx, ["collaborators"], users)

    def collapse_contributors(self, credential: Optional[CredentialInput] = None,
                              normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Unique contributors across all organizations; categories `contributors`."""
        ctx = self._context(credential=credential, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        orgs = self._repo_contributors(ctx)
        users = self._collapse(
            user
            for org in orgs
            for repo in org.get("repos") or []
            for user in repo.get("contributors") or []
        )
        return self._emit(ctx, ["contributors"], users)

    def collapse_members(self, credential: Optional[CredentialInput] = None,
                         normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Unique organization members across all organizations; categories `members`."""
        ctx = self._context(credential=credential, normalize=normalize, verbose=verbose)
        self._gate(ctx)
        orgs = self._org_members(ctx)
        users = self._collapse(user for org in orgs for user in org.get("members") or [])
        return self._emit(ctx, ["members"], users)

    # Owners -------------------------------------------------------------------------------------

    def list_owners(self, normalize: bool = True) -> Any:
        """Configured owners, no network access; categories `owners`."""
        ctx = self._context(normalize=normalize)
        owners = [
            {"owner": source.owner, "regex": source.owner_name_pattern.pattern}
            for source in self.sources
        ]
        return self._emit(ctx, ["owners"], sort_records(owners, "owner"))

    def list_owner_organizations(self, normalize: bool = True, verbose: Optional[bool] = None) -> Any:
        """Matched organizations grouped by owner; categories `owners:orgs`."""
        ctx = self._context(normalize=normalize, verbose=verbose)
        self._gate(ctx)
        batches = self._run(self._source_orgs, self.sources)
        owners = [
            {"owner": source.owner, "orgs": sort_records(orgs, "login")}
            for source, orgs in zip(self.sources, batches)
        ]
        return self._emit(ctx, ["owners", "orgs"], sort_records(owners, "owner"))

    def list_owner_rate_limits(self, normalize: bool = True) -> Any:
        """Raw quota per configured owner; categories `owners:ratelimit`. Not rate-limit gated."""
        ctx = self._context(normalize=normalize)
        statuses = self._run(lambda source: self.client.get_rate_limit_status(source.credential), self.sources)
        owners = [
            {"owner": source.owner, "ratelimit": [status]}
            for source, status in zip(self.sources, statuses)
        ]
        return self._emit(ctx, ["owners", "ratelimit"], sort_records(owners, "owner"))

    def get_rate_limit(self, credential: Optional[CredentialInput] = None, normalize: bool = True) -> Any:
        """Quota for `credential`, defaulting to the first configured source; categories `ratelimit`."""
        ctx = self._context(normalize=normalize)
        resolved = resolve_credential(credential) if credential is not None else self.sources[0].credential
        status = self.client.get_rate_limit_status(resolved)
        return self._emit(ctx, ["ratelimit"], [status])


__all__ = [
    "GitHubOrgInspector",
    "sort_key",
    "sort_records",
    "dedupe_records",
]
