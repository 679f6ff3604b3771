"""GitHub REST and raw-file HTTP helpers used by the compound queries."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .config import API_HOST, PATH_PREFIX, PER_PAGE, REQUEST_TIMEOUT_MS, USER_AGENT
from .credentials import Credential
from .errors import GitHubAPIError, UnknownStatCategoryError

# Repo statistics categories mapped to their REST path under /repos/{owner}/{repo}/.
STAT_CATEGORY_PATHS: Dict[str, str] = {
    "codeFrequency": "stats/code_frequency",
    "commitActivity": "stats/commit_activity",
    "contributors": "stats/contributors",
    "participation": "stats/participation",
    "punchCard": "stats/punch_card",
    "stargazers": "stargazers",
    "watchers": "subscribers",
}
STAT_CATEGORIES = tuple(STAT_CATEGORY_PATHS)
PAGED_STAT_CATEGORIES = frozenset({"stargazers", "watchers"})

# Returned in place of statistics GitHub has not finished computing (HTTP 202).
PENDING_STATS: Dict[str, Any] = {
    "meta": {"status": 202, "message": "statistics are being computed; query again later"},
}


def is_pending_stats(value: Any) -> bool:
    """True when a statistics payload is the 202 'still computing' placeholder."""
    return isinstance(value, dict) and "meta" in value


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        return str(body)[:300]
    return str(body.get("message") or body.get("error") or body.get("text") or "")


def log_http_error(resp: requests.Response, url: str) -> None:
    """Print a short, human-readable message when GitHub returns an error."""
    print(f"[error] HTTP {resp.status_code} for {url}\n  -> {_error_message(resp)}")


def fetch_raw_file(url: str,
                   headers: Optional[Dict[str, str]] = None,
                   timeout: float = REQUEST_TIMEOUT_MS / 1000.0) -> Dict[str, Any]:
    """GET a raw file and record the status code and body, whatever the status."""
    resp = requests.get(url, headers=headers or {}, timeout=timeout)
    return {"status_code": resp.status_code, "body": resp.text}


class GitHubRestClient:
    """Thin wrapper around the GitHub v3 REST API authenticating per request."""

    def __init__(
        self,
        api_host: str = API_HOST,
        path_prefix: str = PATH_PREFIX,
        timeout_millis: int = REQUEST_TIMEOUT_MS,
        user_agent: str = USER_AGENT,
        debug: bool = False,
        verbose: bool = False,
    ) -> None:
        self.base_url = f"https://{api_host}{path_prefix}".rstrip("/")
        self.timeout = timeout_millis / 1000.0
        self.debug = bool(debug)
        self.verbose = bool(verbose)
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": user_agent,
            }
        )

    def _url(self, path: str) -> str:
        path = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{path}"

    def request(self, credential: Credential, method: str, url: str, **kwargs) -> requests.Response:
        """Send one request authenticated as `credential`; never retries."""
        if self.debug:
            print(f"[debug] {method} {url}")
        headers = dict(kwargs.pop("headers", None) or {})
        headers.update(credential.auth_header())
        return self.session.request(
            method,
            url,
            headers=headers,
            auth=credential.requests_auth(),
            timeout=kwargs.pop("timeout", self.timeout),
            **kwargs,
        )

    def _fail(self, resp: requests.Response, url: str) -> GitHubAPIError:
        if self.verbose or self.debug:
            log_http_error(resp, url)
        return GitHubAPIError(resp.status_code, url, _error_message(resp))

    def get_json(self, credential: Credential, path: str) -> Any:
        url = self._url(path)
        resp = self.request(credential, "GET", url)
        if resp.status_code != 200:
            raise self._fail(resp, url)
        return resp.json()

    def paged_get(self, credential: Credential, path: str, *, max_pages: int = 0) -> List[Dict[str, Any]]:
        """Retrieve pages until GitHub returns a short or empty page, or max_pages hits."""
        url = self._url(path)
        results: List[Dict[str, Any]] = []
        page = 1
        while True:
            if max_pages and page > max_pages:
                break
            sep = "&" if "?" in url else "?"
            page_url = f"{url}{sep}per_page={PER_PAGE}&page={page}"
            resp = self.request(credential, "GET", page_url)
            if resp.status_code != 200:
                raise self._fail(resp, page_url)

            batch = resp.json()
            if not isinstance(batch, list) or not batch:
                break
            results.extend(batch)

            if len(batch) < PER_PAGE:
                break
            page += 1
        return results

    def _probe(self, credential: Credential, path: str) -> requests.Response:
        return self.request(credential, "GET", self._url(path), allow_redirects=False)

    # Organizations ------------------------------------------------------------------------------

    def list_orgs_for_user(self, credential: Credential, user: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/users/{user}/orgs")

    def get_org_members(self, credential: Credential, org: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/orgs/{org}/members")

    def is_org_member(self, credential: Credential, org: str, username: str) -> bool:
        """204 means member; 404 (or 302 when the requester is an outsider) means not."""
        path = f"/orgs/{org}/members/{username}"
        resp = self._probe(credential, path)
        if resp.status_code == 204:
            return True
        if resp.status_code in (302, 404):
            return False
        raise self._fail(resp, self._url(path))

    # Teams --------------------------------------------------------------------------------------

    def get_org_teams(self, credential: Credential, org: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/orgs/{org}/teams")

    def get_team_members(self, credential: Credential, org: str, team_slug: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/orgs/{org}/teams/{team_slug}/members")

    def get_team_repos(self, credential: Credential, org: str, team_slug: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/orgs/{org}/teams/{team_slug}/repos")

    def is_team_member(self, credential: Credential, org: str, team_slug: str, username: str) -> bool:
        path = f"/orgs/{org}/teams/{team_slug}/memberships/{username}"
        resp = self._probe(credential, path)
        if resp.status_code == 200:
            return (resp.json() or {}).get("state", "active") == "active"
        if resp.status_code == 404:
            return False
        raise self._fail(resp, self._url(path))

    # Repositories -------------------------------------------------------------------------------

    def list_repos_for_org(self, credential: Credential, org: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/orgs/{org}/repos")

    def get_repo_collaborators(self, credential: Credential, owner: str, repo: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/repos/{owner}/{repo}/collaborators")

    def get_repo_contributors(self, credential: Credential, owner: str, repo: str) -> List[Dict[str, Any]]:
        return self.paged_get(credential, f"/repos/{owner}/{repo}/contributors")

    def get_repo_stats_by_category(self, credential: Credential, owner: str, repo: str, category: str) -> Any:
        """Return one statistics category, or a copy of PENDING_STATS while GitHub computes it."""
        try:
            sub_path = STAT_CATEGORY_PATHS[category]
        except KeyError:
            raise UnknownStatCategoryError(category) from None

        path = f"/repos/{owner}/{repo}/{sub_path}"
        if category in PAGED_STAT_CATEGORIES:
            return self.paged_get(credential, path)

        url = self._url(path)
        resp = self.request(credential, "GET", url)
        if resp.status_code == 202:
            return {"meta": dict(PENDING_STATS["meta"])}
        if resp.status_code == 204:
            return []
        if resp.status_code != 200:
            raise self._fail(resp, url)
        return resp.json()

    # Identity / quota ---------------------------------------------------------------------------

    def get_rate_limit_status(self, credential: Credential) -> Dict[str, Any]:
        return self.get_json(credential, "/rate_limit")

    def get_authenticated_user(self, credential: Credential) -> Dict[str, Any]:
        return self.get_json(credential, "/user")


__all__ = [
    "STAT_CATEGORY_PATHS",
    "STAT_CATEGORIES",
    "PENDING_STATS",
    "is_pending_stats",
    "log_http_error",
    "fetch_raw_file",
    "GitHubRestClient",
]
