"""Utility for assigning display names to anonymous quiz participants."""

from __future__ import annotations

from collections import deque
import random
from threading import Lock

_DEFAULT_ALIASES = [
    "Secret Admirer",
    "Mystery Guest",
    "Plus One",
    "Best Friend Forever",
    "Sweetheart",
    "Partner in Crime",
    "Wingman",
    "Soulmate",
    "Roommate",
    "Travel Buddy",
    "Study Buddy",
    "Dance Partner",
    "Karaoke Legend",
    "Brunch Club",
    "Movie Night Critic",
    "Road Trip DJ",
]


class NameAssigner:
    """Hands out shuffled aliases, cycling through the whole list before repeating."""

    def __init__(self, names: list[str] | None = None, seed: int | None = None):
        cleaned = [name.strip() for name in (names or _DEFAULT_ALIASES) if name.strip()]
        if not cleaned:
            raise ValueError("Name list cannot be empty.")
        self._names = cleaned
        self._pool: deque[str] = deque()
        self._lock = Lock()
        self._rng = random.Random(seed)
        self._refill_pool()

    def next_name(self) -> str:
        with self._lock:
            if not self._pool:
                self._refill_pool()
            return self._pool.popleft()

    def _refill_pool(self) -> None:
        shuffled = list(self._names)
        self._rng.shuffle(shuffled)
        self._pool.extend(shuffled)
