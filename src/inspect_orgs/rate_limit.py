"""Fail-fast rate limit pre-check across every configured credential."""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional, Sequence

from . import threaded
from .config import THREAD_POOL_SIZE
from .errors import RateLimitExceededError
from .models import OrganizationSource, QueryContext


def _core_quota(status: Any) -> Dict[str, Any]:
    resources = (status or {}).get("resources") or {}
    return resources.get("core") or {}


def _reset_time(core: Dict[str, Any]) -> Optional[dt.datetime]:
    reset = core.get("reset")
    if reset is None:
        return None
    return dt.datetime.fromtimestamp(int(reset), tz=dt.timezone.utc)


def check_rate_limits(client,
                      sources: Sequence[OrganizationSource],
                      context: Optional[QueryContext] = None,
                      thread_pool_size: int = THREAD_POOL_SIZE) -> None:
    """Raise RateLimitExceededError if any source credential has no core quota left.

    A context already marked as checked skips the requests; a passing check
    marks it so nested steps of the same query do not repeat it.
    """
    if context is not None and context.rate_limit_checked:
        return

    statuses = threaded.run(
        lambda source: client.get_rate_limit_status(source.credential),
        sources,
        thread_pool_size,
    )
    for source, status in zip(sources, statuses):
        core = _core_quota(status)
        remaining = core.get("remaining")
        if remaining is not None and remaining <= 0:
            raise RateLimitExceededError(source.owner, _reset_time(core))

    if context is not None:
        context.rate_limit_checked = True


__all__ = ["check_rate_limits"]
