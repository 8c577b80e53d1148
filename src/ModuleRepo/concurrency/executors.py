"""Executor factory used by the registry sync workers."""

from __future__ import annotations

from concurrent import futures
from typing import Tuple


def create_executor(
    policy: str, workers: int, *, name: str = "modrepo-io"
) -> Tuple[futures.Executor, bool]:
    """
    Return an executor configured for the given policy.

    Args:
        policy: Execution policy. Only ``"io"`` is supported; registry fetches
            are network-bound and their callbacks must share process state, so
            process pools are rejected.
        workers: Desired concurrency level (clamped to at least one).
        name: Thread name prefix, visible in logs emitted from callbacks.

    Returns:
        Tuple of (executor, needs_shutdown). Caller is responsible for shutting
        down the returned executor when ``needs_shutdown`` is ``True``.

    Raises:
        ValueError: If ``policy`` is not an IO policy.
    """
    normalized = (policy or "io").lower()
    if normalized != "io":
        raise ValueError(f"Unsupported executor policy: {policy!r}")
    return futures.ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix=name), True
