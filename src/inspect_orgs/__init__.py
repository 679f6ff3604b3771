"""Compound GitHub queries across multiple organizations with normalized output."""

from .credentials import Credential, resolve_credential
from .errors import (
    AuthenticationFailedError,
    GitHubAPIError,
    InspectOrgsError,
    InvalidArgumentError,
    InvalidCredentialError,
    RateLimitExceededError,
    UnknownCategoryError,
    UnknownStatCategoryError,
)
from .normalize import normalize_categories
from .orchestrator import GitHubOrgInspector

__all__ = [
    "GitHubOrgInspector",
    "Credential",
    "resolve_credential",
    "normalize_categories",
    "InspectOrgsError",
    "InvalidArgumentError",
    "InvalidCredentialError",
    "UnknownCategoryError",
    "UnknownStatCategoryError",
    "RateLimitExceededError",
    "AuthenticationFailedError",
    "GitHubAPIError",
]
