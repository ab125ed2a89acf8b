"""Monotonic identifier sources shared across a run."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


@dataclass(slots=True)
class IDFactory:
    """Thread-safe monotonic counter for innovation and entity identifiers."""

    next_id: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock,
        init=False,
        repr=False,
        compare=False,
    )

    def __post_init__(self) -> None:
        if self.next_id < 0:
            msg = "next_id must be non-negative."
            raise ValueError(msg)

    def __call__(self) -> int:
        """Return the next identifier."""
        with self._lock:
            value = self.next_id
            self.next_id += 1
        return value

    def peek(self) -> int:
        """Return the identifier that will be handed out next."""
        with self._lock:
            return self.next_id


__all__ = ["IDFactory"]
