"""Exception types raised by the compound-query client."""

from __future__ import annotations

import datetime as dt
from typing import Optional


class InspectOrgsError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgumentError(InspectOrgsError, ValueError):
    """Malformed options, credentials or category lists (raised before any request)."""


class InvalidCredentialError(InvalidArgumentError):
    """A credential string or object failed shape validation."""


class UnknownCategoryError(InvalidArgumentError):
    """A normalization category has no registered mapping function."""

    def __init__(self, category: str) -> None:
        super().__init__(f"Unknown category: {category!r}")
        self.category = category


class UnknownStatCategoryError(InvalidArgumentError):
    """A repository statistics category is not one GitHub provides."""

    def __init__(self, category: str) -> None:
        super().__init__(f"Unknown statistics category: {category!r}")
        self.category = category


class RateLimitExceededError(InspectOrgsError):
    """The core quota of a configured credential is exhausted."""

    def __init__(self, owner: str, reset_at: Optional[dt.datetime]) -> None:
        when = reset_at.isoformat() if reset_at else "unknown"
        super().__init__(
            f"GitHub API rate limit reached for organization owner '{owner}'; "
            f"please try again at: {when}"
        )
        self.owner = owner
        self.reset_at = reset_at


class AuthenticationFailedError(InspectOrgsError):
    """The calling credential does not resolve to a GitHub user."""


class GitHubAPIError(InspectOrgsError):
    """GitHub answered a REST call with a non-success status."""

    def __init__(self, status_code: int, url: str, message: str = "") -> None:
        text = f"HTTP {status_code} for {url}"
        super().__init__(f"{text}: {message}" if message else text)
        self.status_code = status_code
        self.url = url
        self.message = message


__all__ = [
    "InspectOrgsError",
    "InvalidArgumentError",
    "InvalidCredentialError",
    "UnknownCategoryError",
    "UnknownStatCategoryError",
    "RateLimitExceededError",
    "AuthenticationFailedError",
    "GitHubAPIError",
]
