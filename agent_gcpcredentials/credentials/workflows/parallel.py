"""Run independent tasks concurrently and join on all of them."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AggregationError(Exception):
    """
    A task failed, or the tasks could not be run.

    The underlying exception is chained as __cause__. `index` is the
    failing task's position, or None when the executor itself failed.
    """

    def __init__(self, index: Optional[int], cause: BaseException):
        if index is None:
            super().__init__(f"Parallel execution failed: {cause}")
        else:
            super().__init__(f"Task {index} failed: {cause}")
        self.index = index


def run_parallel(tasks: Sequence[Callable[[], T]]) -> List[T]:
    """
    Run zero-argument tasks, one worker per task.

    Results come back in the order the tasks were given, regardless of
    completion order. Every task runs to completion before anything is
    raised; if any failed, the first failure in task order is raised.

    Zero tasks return an empty list and a single task runs in the
    calling thread.

    Raises:
        AggregationError: If any task raised or the executor failed
    """
    if not tasks:
        return []

    if len(tasks) == 1:
        try:
            return [tasks[0]()]
        except Exception as e:
            raise AggregationError(0, e) from e

    try:
        # Leaving the executor block waits for every submitted task
        with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
            futures = [pool.submit(task) for task in tasks]
    except Exception as e:
        raise AggregationError(None, e) from e

    results = []
    for index, future in enumerate(futures):
        error = future.exception()
        if error is not None:
            failed = sum(1 for f in futures if f.exception() is not None)
            logger.debug(f"{failed} of {len(futures)} tasks failed, reporting task {index}")
            raise AggregationError(index, error) from error
        results.append(future.result())
    return results
