"""Wait record domain model.

A wait record tracks how long a participant has waited while online
with a level in the queue. The weight feeds the weighted lottery.

Weight Storage:
    The weight is kept as whole minutes plus a millisecond remainder
    (0 to 59999) so fractional subscriber multipliers accumulate without
    floating point drift. ``weight()`` rounds to the nearest minute.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime

BASE_WEIGHT_MINUTES = 1
MSEC_PER_MINUTE = 60_000


@dataclass(frozen=True)
class WaitRecord:
    """Accumulated waiting time of one participant.

    Attributes:
        wait_time: Minutes spent waiting while online.
        weight_min: Whole minutes of weighted time.
        weight_msec: Millisecond remainder of weighted time (0-59999).
        last_online_time: When the participant was last seen online.
    """

    wait_time: int
    weight_min: int
    weight_msec: int
    last_online_time: datetime

    def __post_init__(self) -> None:
        """Validate record fields.

        Raises:
            ValueError: If any field is out of range.
        """
        if self.wait_time < 0 or self.weight_min < 0:
            raise ValueError("wait_time and weight_min must be non-negative")
        if not 0 <= self.weight_msec < MSEC_PER_MINUTE:
            raise ValueError(
                f"weight_msec must be in [0, {MSEC_PER_MINUTE}), got {self.weight_msec}"
            )

    @classmethod
    def create(cls, now: datetime) -> WaitRecord:
        """Create a record at the base weight."""
        return cls(
            wait_time=BASE_WEIGHT_MINUTES,
            weight_min=BASE_WEIGHT_MINUTES,
            weight_msec=0,
            last_online_time=now,
        )

    def add_minute(self, multiplier: float, now: datetime) -> WaitRecord:
        """Return the record after one more online minute.

        Args:
            multiplier: Weight gained per minute (1.0 for everyone,
                higher for subscribers).
            now: Time the participant was seen online.

        Returns:
            The updated record.
        """
        add_min = math.floor(multiplier)
        add_msec = round((multiplier % 1) * MSEC_PER_MINUTE)
        weight_min = self.weight_min + add_min
        weight_msec = self.weight_msec + add_msec
        while weight_msec >= MSEC_PER_MINUTE:
            weight_msec -= MSEC_PER_MINUTE
            weight_min += 1
        return replace(
            self,
            wait_time=self.wait_time + 1,
            weight_min=weight_min,
            weight_msec=weight_msec,
            last_online_time=now,
        )

    def weight(self) -> int:
        """Weight in minutes, rounded to the nearest minute."""
        return self.weight_min + (1 if self.weight_msec >= MSEC_PER_MINUTE // 2 else 0)
