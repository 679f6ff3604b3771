"""Configured organization sources and the per-query context threaded through compound queries."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Pattern, Tuple

from .credentials import Credential, resolve_credential
from .errors import InvalidArgumentError


@dataclass(frozen=True)
class OrganizationSource:
    """Use `credential` to list organizations owned by `owner` whose login matches the pattern."""

    credential: Credential
    owner: str
    owner_name_pattern: Pattern[str]

    def matches(self, login: Any) -> bool:
        return isinstance(login, str) and self.owner_name_pattern.search(login) is not None


def build_organization_source(entry: Any, index: int = 0) -> OrganizationSource:
    """Validate one `{credential, owner, regex}` configuration entry."""
    if isinstance(entry, OrganizationSource):
        return entry
    if not isinstance(entry, Mapping):
        raise InvalidArgumentError(f"organizations[{index}] is not a mapping")

    credential = entry.get("credential")
    if not isinstance(credential, (str, Credential, Mapping)):
        raise InvalidArgumentError(f"organizations[{index}].credential is not a string")

    owner = entry.get("owner")
    if not isinstance(owner, str) or not owner:
        raise InvalidArgumentError(f"organizations[{index}].owner is not a non-empty string")

    pattern = entry.get("regex", entry.get("owner_name_pattern"))
    if isinstance(pattern, str):
        try:
            pattern = re.compile(pattern)
        except re.error as exc:
            raise InvalidArgumentError(f"organizations[{index}].regex is not a valid regex: {exc}") from exc
    elif not isinstance(pattern, re.Pattern):
        raise InvalidArgumentError(f"organizations[{index}].regex is not a string")

    return OrganizationSource(
        credential=resolve_credential(credential),
        owner=owner,
        owner_name_pattern=pattern,
    )


class EmitMode(enum.Enum):
    AGGREGATE_ONLY = "aggregate"
    NORMALIZED_TREE = "normalized"


@dataclass
class QueryContext:
    """Private workspace of one top-level query; never shared between calls."""

    emit: EmitMode = EmitMode.NORMALIZED_TREE
    credential: Optional[Credential] = None
    repo_files: Tuple[str, ...] = ()
    verbose: bool = False
    rate_limit_checked: bool = False
    user: Optional[Dict[str, Any]] = None

    @property
    def authenticated(self) -> bool:
        return self.credential is not None


__all__ = [
    "OrganizationSource",
    "build_organization_source",
    "EmitMode",
    "QueryContext",
]
