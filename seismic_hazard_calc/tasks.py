"""
Composition of tasks running on a concurrent.futures.Executor.

Dependent tasks are chained via done-callbacks, i.e. a task is only
submitted to the executor once its predecessor has completed, so
no worker is ever blocked waiting on another task.
Cancellation is not supported.
"""

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import CancelledError, Executor, Future


def submit(executor: Executor, fn: Callable, *args) -> Future:
    """Submits fn(*args) as a task to the executor"""
    return executor.submit(fn, *args)


def _copy_outcome(source: Future, target: Future):
    """Sets the result (or exception) of the finished source future on the target"""
    if source.cancelled():
        target.set_exception(CancelledError())
    elif (exc := source.exception()) is not None:
        target.set_exception(exc)
    else:
        target.set_result(source.result())


def then(
    executor: Executor,
    future: Future,
    fn: Callable,
    *args,
    skip_none: bool = False,
) -> Future:
    """
    Runs fn(result, *args) as a new task once the
    given future has completed successfully

    Parameters
    ----------
    executor: Executor
    future: Future
        The predecessor task
    fn: Callable
        The function to run on the result of the predecessor
    args:
        Additional arguments for fn
    skip_none: bool, optional
        If True and the predecessor returns None,
        fn is not run and the returned future
        resolves to None

    Returns
    -------
    Future
        Resolves to the result of fn, or to the exception
        of the predecessor or fn
    """
    result_future = Future()

    def _on_done(prev: Future):
        if prev.cancelled() or prev.exception() is not None:
            _copy_outcome(prev, result_future)
            return

        value = prev.result()
        if skip_none and value is None:
            result_future.set_result(None)
            return

        try:
            next_future = executor.submit(fn, value, *args)
        except RuntimeError as e:
            # Executor has been shut down
            result_future.set_exception(e)
            return
        next_future.add_done_callback(
            lambda cur_future: _copy_outcome(cur_future, result_future)
        )

    future.add_done_callback(_on_done)
    return result_future


def all_settled(futures: Iterable[Future]) -> Future:
    """
    Creates a future that resolves to the list of the
    given futures, once every one of them has finished,
    regardless of whether they succeeded or failed.
    """
    futures = list(futures)
    result_future = Future()
    if len(futures) == 0:
        result_future.set_result(futures)
        return result_future

    lock = threading.Lock()
    remaining = len(futures)

    def _on_done(_: Future):
        nonlocal remaining
        with lock:
            remaining -= 1
            is_last = remaining == 0
        if is_last:
            result_future.set_result(futures)

    for cur_future in futures:
        cur_future.add_done_callback(_on_done)

    return result_future
