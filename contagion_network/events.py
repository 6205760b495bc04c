"""Time-ordered event queue with lazy invalidation.

Events are ordered by ``(time, kind, sequence)``. At equal times a
Transmit event is resolved before a Recover event, then the event created
first wins. This tie rule is observable in simulation output and is part
of the reproducibility contract.

Superseded events are never removed. The consumer compares the popped time
against the node's authoritative time and drops stale entries.
"""

import heapq
from enum import IntEnum
from typing import List, NamedTuple

from contagion_network.errors import EmptyQueue


class EventKind(IntEnum):
    """Kind of state transition an event proposes (declaration order is the tie order)."""

    TRANSMIT = 0
    RECOVER = 1


class Event(NamedTuple):
    """A pending transition; fields are declared in sort order.

    ``arc`` names the directed arc that carried a transmission when the
    consumer tracks exposures per neighbor, and is -1 otherwise.
    """

    time: float
    kind: EventKind
    sequence: int
    node: int
    arc: int = -1


class EventQueue:
    """Binary min-heap of events."""

    def __init__(self):
        self._heap: List[Event] = []
        self._next_sequence = 0

    def next_sequence(self) -> int:
        seq = self._next_sequence
        self._next_sequence += 1
        return seq

    def schedule(self, time: float, node: int, kind: EventKind, arc: int = -1) -> Event:
        """Create an event with the next sequence number and push it."""
        event = Event(time, kind, self.next_sequence(), node, arc)
        heapq.heappush(self._heap, event)
        return event

    def push(self, event: Event) -> None:
        heapq.heappush(self._heap, event)

    def pop_min(self) -> Event:
        """Remove and return the earliest event.

        Raises:
            EmptyQueue: no events remain
        """
        if not self._heap:
            raise EmptyQueue("pop from an empty event queue")
        return heapq.heappop(self._heap)

    def peek(self) -> Event:
        if not self._heap:
            raise EmptyQueue("peek into an empty event queue")
        return self._heap[0]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
