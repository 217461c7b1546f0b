"""
Run context.

Stores the current validation run id (single claim or batch) in a ContextVar
so every log line emitted during the run can be correlated.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

# Context variable for the current run ID
_run_id_var: ContextVar[str] = ContextVar("run_id", default="")


def get_run_id() -> str:
    """Get the current run ID from context."""
    return _run_id_var.get()


@contextmanager
def run_scope(run_id: str | None = None):
    """Bind a run id for the duration of the block; nested scopes keep the outer id."""
    current = _run_id_var.get()
    if current and run_id is None:
        yield current
        return
    token = _run_id_var.set(run_id or f"RUN-{uuid4().hex[:12].upper()}")
    try:
        yield _run_id_var.get()
    finally:
        _run_id_var.reset(token)
