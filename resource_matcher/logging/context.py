"""Context propagation for structured logging.

Fields pushed here (run_id, category, ...) are stamped onto every log record
emitted inside the scope. Context lives in a ContextVar so it follows the call
chain; worker threads do not inherit it automatically, so category tasks are
submitted through ``bind_log_context`` which snapshots the caller's context.
"""

from contextvars import ContextVar, Token, copy_context
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

T = TypeVar("T")

LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge fields into the logging context.

    Args:
        **kwargs: Fields to add (existing keys are overwritten)

    Returns:
        Token for restoring the previous context with pop_log_context()

    Example:
        >>> token = push_log_context(run_id="abc123", category="grant")
        >>> # ... every log line now carries run_id and category ...
        >>> pop_log_context(token)
    """
    current = LogContextVar.get()
    return LogContextVar.set({**current, **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the logging context captured by push_log_context()."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop all context fields. Mostly useful in tests."""
    LogContextVar.set({})


class log_context:
    """Context manager for scoped logging context.

    Example:
        >>> with log_context(run_id="abc123"):
        ...     logger.info("Matching started")  # includes run_id
    """

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
        return False


def bind_log_context(func: Callable[..., T]) -> Callable[..., T]:
    """Wrap ``func`` so it runs inside a snapshot of the current context.

    Used when handing work to a thread pool: the snapshot is taken when this
    function is called (in the submitting thread), not when the worker runs.

    Args:
        func: Callable to run in a worker thread

    Returns:
        Callable that executes ``func`` within the captured context
    """
    ctx = copy_context()

    @wraps(func)
    def runner(*args, **kwargs):
        return ctx.run(func, *args, **kwargs)

    return runner
