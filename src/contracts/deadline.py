from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, TypeVar

from .errors import PipelineError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_deadline(
    fn: Callable[[], T],
    *,
    timeout_s: float | None,
    on_timeout: Callable[[], PipelineError],
    name: str = "stage",
) -> T:
    """
    Run `fn` on a single-use worker thread and wait at most `timeout_s`.

    On timeout the worker is abandoned (not joined) and the error built by
    `on_timeout` is raised. Exceptions raised by `fn` propagate unchanged.
    `timeout_s=None` runs `fn` inline with no deadline.
    """

    if timeout_s is None:
        return fn()

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"deadline-{name}")
    future = executor.submit(fn)
    try:
        return future.result(timeout=timeout_s)
    except FutureTimeoutError:
        future.cancel()
        logger.warning("%s exceeded deadline of %.1fs; abandoning", name, timeout_s)
        raise on_timeout() from None
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
