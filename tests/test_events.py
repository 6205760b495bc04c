"""Tests for the event queue and random streams."""

import math

import pytest
import numpy as np

from contagion_network.errors import EmptyQueue, InvalidConfiguration
from contagion_network.events import Event, EventKind, EventQueue
from contagion_network.rng import derive_seeds, exponential, make_rng, sample_unique


class TestEventQueue:
    """Test event ordering."""

    def test_pops_in_time_order(self):
        """Events come out by increasing time."""
        queue = EventQueue()
        for t in [3.0, 0.5, 2.0, 1.0]:
            queue.schedule(t, 0, EventKind.TRANSMIT)

        times = [queue.pop_min().time for _ in range(4)]
        assert times == [0.5, 1.0, 2.0, 3.0]
        assert not queue

    def test_tie_rule(self):
        """At equal times Transmit beats Recover, then creation order."""
        queue = EventQueue()
        queue.schedule(1.0, 5, EventKind.RECOVER)
        queue.schedule(1.0, 3, EventKind.TRANSMIT)
        queue.schedule(1.0, 4, EventKind.TRANSMIT)

        popped = [queue.pop_min() for _ in range(3)]
        assert [(e.kind, e.node) for e in popped] == [
            (EventKind.TRANSMIT, 3),
            (EventKind.TRANSMIT, 4),
            (EventKind.RECOVER, 5),
        ]

    def test_sequence_numbers(self):
        """Sequence numbers increase with every scheduled event."""
        queue = EventQueue()
        e1 = queue.schedule(1.0, 0, EventKind.TRANSMIT)
        e2 = queue.schedule(1.0, 1, EventKind.TRANSMIT, arc=4)

        assert e2.sequence == e1.sequence + 1
        assert e1.arc == -1
        assert e2.arc == 4

    def test_push_and_peek(self):
        """Test pushing prebuilt events and peeking."""
        queue = EventQueue()
        queue.push(Event(2.0, EventKind.RECOVER, queue.next_sequence(), 1))
        queue.push(Event(1.0, EventKind.TRANSMIT, queue.next_sequence(), 2))

        assert len(queue) == 2
        assert queue.peek().node == 2
        assert len(queue) == 2

    def test_empty(self):
        """Popping or peeking an empty queue raises EmptyQueue."""
        queue = EventQueue()
        with pytest.raises(EmptyQueue):
            queue.pop_min()
        with pytest.raises(EmptyQueue):
            queue.peek()


class TestRandomStreams:
    """Test seeding and draws."""

    def test_exponential_zero_rate(self):
        """A zero rate returns infinity and consumes no randomness."""
        rng_a = make_rng(3)
        rng_b = make_rng(3)

        assert exponential(rng_a, 0.0) == math.inf
        assert exponential(rng_a, -1.0) == math.inf
        assert rng_a.random() == rng_b.random()

    def test_exponential_positive(self):
        """Draws are non-negative and have roughly the right mean."""
        rng = make_rng(11)
        draws = np.array([exponential(rng, 2.0) for _ in range(20000)])

        assert (draws >= 0).all()
        assert abs(draws.mean() - 0.5) < 0.02

    def test_derive_seeds(self):
        """Derived seeds are reproducible and distinct."""
        seeds = derive_seeds(12345, 10)

        assert seeds == derive_seeds(12345, 10)
        assert len(set(seeds)) == 10
        assert seeds != derive_seeds(12346, 10)

    def test_sample_unique(self):
        """Sampled nodes are distinct and within range."""
        nodes = sample_unique(make_rng(5), 20, 20)
        assert sorted(nodes) == list(range(20))

        nodes = sample_unique(make_rng(5), 1000, 10)
        assert len(set(nodes)) == 10
        assert all(0 <= u < 1000 for u in nodes)

    def test_sample_too_many(self):
        """Asking for more nodes than exist is rejected."""
        with pytest.raises(InvalidConfiguration):
            sample_unique(make_rng(5), 3, 4)
