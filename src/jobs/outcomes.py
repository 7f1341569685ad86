"""
Tagged results returned by binding, prepare and check hooks.

A hook either lets the record proceed (optionally carrying the statement
parameters it bound) or asks the engine to abandon the record with a
message. The engines inspect the result explicitly instead of catching a
control-flow exception.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Proceed:
    """Continue with the record, using ``params`` for the next statement."""

    params: Sequence[Any] | dict[str, Any] = ()


@dataclass(frozen=True)
class SkipWithReason:
    """Abandon the record; ``message`` is logged as the reason."""

    message: str


Outcome = Union[Proceed, SkipWithReason]

PROCEED = Proceed()


def is_skip(outcome: Outcome) -> bool:
    """Return True if the hook asked for the record to be skipped."""
    return isinstance(outcome, SkipWithReason)


def ensure_outcome(value: Any, hook_name: str) -> Outcome:
    """
    Normalise a hook's return value.

    ``None`` is read as a bare ``Proceed``; anything else that is not an
    outcome is a programming error in the hook.
    """
    if value is None:
        return PROCEED
    if isinstance(value, (Proceed, SkipWithReason)):
        return value
    raise TypeError(
        f"{hook_name} must return Proceed or SkipWithReason, got {type(value).__name__}"
    )
