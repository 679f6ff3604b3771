"""Credential parsing for GitHub personal access tokens and basic auth pairs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import InvalidCredentialError

TOKEN = "token"
BASIC = "basic"


@dataclass(frozen=True)
class Credential:
    """A resolved GitHub credential: either a token or a username/password pair."""

    type: str
    token: Optional[str] = field(default=None, repr=False)
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def is_token(self) -> bool:
        return self.type == TOKEN

    def auth_header(self) -> Dict[str, str]:
        """Header to attach for token credentials; basic credentials use `requests_auth`."""
        if self.is_token:
            return {"Authorization": f"token {self.token}"}
        return {}

    def requests_auth(self) -> Optional[Tuple[str, str]]:
        if self.type == BASIC:
            return (self.username or "", self.password or "")
        return None


CredentialInput = Union[str, Credential, Mapping[str, Any]]


def _parse_string(value: str) -> Credential:
    if value == "":
        raise InvalidCredentialError("credential is an empty string")
    if ":" in value:
        username, password = value.split(":", 1)
        return Credential(type=BASIC, username=username, password=password)
    return Credential(type=TOKEN, token=value)


def _from_mapping(value: Mapping[str, Any]) -> Credential:
    kind = value.get("type")
    if kind == "oauth":
        kind = TOKEN
    return Credential(
        type=kind,
        token=value.get("token"),
        username=value.get("username"),
        password=value.get("password"),
    )


def _validate(credential: Credential) -> Credential:
    if credential.type == BASIC:
        if not credential.username:
            raise InvalidCredentialError("basic credential username is missing or empty")
        if not credential.password:
            raise InvalidCredentialError("basic credential password is missing or empty")
    elif credential.type == TOKEN:
        if not credential.token:
            raise InvalidCredentialError("token credential is missing or empty")
    else:
        raise InvalidCredentialError(f"missing or unknown credential type: {credential.type!r}")
    return credential


def resolve_credential(value: CredentialInput) -> Credential:
    """Parse `token` or `username:password` strings; re-validate resolved credentials."""
    if isinstance(value, Credential):
        return _validate(value)
    if isinstance(value, str):
        return _validate(_parse_string(value))
    if isinstance(value, Mapping):
        return _validate(_from_mapping(value))
    raise InvalidCredentialError(
        f"credential must be a string or a credential object, got {type(value).__name__}"
    )


__all__ = [
    "TOKEN",
    "BASIC",
    "Credential",
    "CredentialInput",
    "resolve_credential",
]
