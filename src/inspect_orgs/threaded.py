"""Thread-pool fan-out used for per-organization, per-repo and per-team requests."""

from __future__ import annotations

import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, List, TypeVar

T = TypeVar("T")


def catching_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            return exc
    return wrapper


def run(func: Callable[..., Any],
        iterable: Iterable[T],
        thread_pool_size: int,
        return_exceptions: bool = False,
        **kwargs) -> List[Any]:
    """Call `func` for every item concurrently and return results in input order.

    Without `return_exceptions` the first failure is re-raised once every
    submitted call has finished, so the caller never sees a partial batch.
    With `return_exceptions` a failed call contributes its exception object
    in place of a result and the rest of the batch is kept.
    """
    items = list(iterable)
    if not items:
        return []

    target = catching_exceptions(func) if return_exceptions else func
    func_partial = functools.partial(target, **kwargs)

    workers = max(1, min(thread_pool_size, len(items)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(func_partial, item) for item in items]
        return [future.result() for future in futures]


__all__ = ["catching_exceptions", "run"]
