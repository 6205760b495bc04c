"""Exception types raised by graph construction and the simulators."""

from typing import Any, Optional


class InvalidConfiguration(ValueError):
    """Rejected simulation input (rates, horizon, thresholds, initial nodes)."""


class InvalidEdge(ValueError):
    """Malformed edge list passed to graph construction."""


class EmptyQueue(IndexError):
    """Pop from an event queue with no pending events."""


class InconsistentState(RuntimeError):
    """An internal invariant of a run was violated.

    Signals a logic defect rather than bad input; the run is aborted.
    """

    def __init__(
        self,
        message: str,
        node: Optional[int] = None,
        expected: Any = None,
        actual: Any = None,
        time: Optional[float] = None,
    ):
        self.node = node
        self.expected = expected
        self.actual = actual
        self.time = time
        details = []
        if node is not None:
            details.append(f"node={node}")
        if expected is not None:
            details.append(f"expected={expected}")
        if actual is not None:
            details.append(f"actual={actual}")
        if time is not None:
            details.append(f"t={time}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)
