# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Time budgets shared by the connection test and the metadata read."""

from __future__ import annotations

import time
from collections.abc import Callable

DEFAULT_OVERALL_CEILING_MS = 10_000
DEFAULT_FLOOR_MS = 3_000

Clock = Callable[[], float]


def derive_metadata_budget(
    connection_response_time_ms: int | None,
    overall_ceiling_ms: int = DEFAULT_OVERALL_CEILING_MS,
    floor_ms: int = DEFAULT_FLOOR_MS,
) -> int:
    """
    Budget left for metadata extraction after the connection test.

    The result never drops below ``floor_ms``, so a slow connection test still
    leaves room for a short metadata attempt.

    Example:
      derive_metadata_budget(2000) -> 8000
      derive_metadata_budget(9800) -> 3000
    """
    consumed = connection_response_time_ms or 0
    return max(floor_ms, overall_ceiling_ms - consumed)


class Deadline:
    """Monotonic wall-clock deadline measured in milliseconds."""

    def __init__(self, budget_ms: int, *, clock: Clock = time.monotonic):
        self.budget_ms = max(0, int(budget_ms))
        self._clock = clock
        self._started = clock()

    def elapsed_ms(self) -> int:
        return int(round((self._clock() - self._started) * 1000))

    def remaining_ms(self) -> int:
        return max(0, self.budget_ms - self.elapsed_ms())

    def remaining_s(self) -> float:
        return self.remaining_ms() / 1000.0

    def expired(self) -> bool:
        return self.elapsed_ms() >= self.budget_ms


__all__ = ["Clock", "DEFAULT_FLOOR_MS", "DEFAULT_OVERALL_CEILING_MS", "Deadline", "derive_metadata_budget"]
