"""Thread pool helpers for independent work items."""

import itertools
import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional, TypeVar

from ...common.exceptions import FeatureAlignInterruptedException

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_for(
    items: Sequence[T],
    fn: Callable[[T], None],
    *,
    num_threads: int,
    cancel_event: Optional[threading.Event] = None,
) -> None:
    """Call fn once per item, spreading items over workers through a shared cursor.

    Each worker pulls the next unclaimed index until the items are exhausted or
    cancel_event is set. fn must not write state that another item writes.

    Raises:
        FeatureAlignInterruptedException: If cancel_event was set before all
            items were processed
    """
    num_items = len(items)
    cursor = itertools.count()

    def worker() -> None:
        while cancel_event is None or not cancel_event.is_set():
            index = next(cursor)
            if index >= num_items:
                return
            fn(items[index])

    if num_threads <= 1 or num_items <= 1:
        worker()
    else:
        num_workers = min(num_threads, num_items)
        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            futures = [executor.submit(worker) for _ in range(num_workers)]
            for future in as_completed(futures):
                future.result()

    remaining = next(cursor)
    if remaining < num_items:
        raise FeatureAlignInterruptedException(
            f"Cancelled with {num_items - remaining} of {num_items} items unprocessed"
        )


def map_tasks(
    fn: Callable[[T], R],
    items: Sequence[T],
    *,
    max_workers: int,
    cancel_event: Optional[threading.Event] = None,
) -> list[R]:
    """Run fn on every item in a fixed-size pool and return results in input order.

    Interruption (KeyboardInterrupt or a set cancel_event) shuts the pool down,
    drops every pending task and is re-raised. No partial results are returned.

    Raises:
        FeatureAlignInterruptedException: If cancel_event is set while waiting
    """
    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = [executor.submit(fn, item) for item in items]
        results = []
        for future in futures:
            if cancel_event is not None and cancel_event.is_set():
                raise FeatureAlignInterruptedException(
                    f"Cancelled after {len(results)} of {len(futures)} tasks"
                )
            results.append(future.result())
    except BaseException as e:
        if isinstance(e, (KeyboardInterrupt, FeatureAlignInterruptedException)):
            logger.warning("Interrupted, shutting down worker pool")
        executor.shutdown(wait=False, cancel_futures=True)
        raise

    executor.shutdown(wait=True)
    return results
