"""Collection reward policy.

Decides how many points a verified collection earns. Two modes:

- ``random``: uniform integer in [min_points, max_points] (10..1009 by
  default). This is the default mode.
- ``quantity``: ``base + per_unit * quantity`` where quantity is the first
  number in the report's amount text, clamped to [min_points, max_points].
  Deterministic and auditable.
"""

import random
import re
from dataclasses import dataclass
from typing import Optional

from ecoledger_core.config import Settings

_QUANTITY_RE = re.compile(r"(\d+(?:\.\d+)?)")

MODE_RANDOM = "random"
MODE_QUANTITY = "quantity"


def parse_quantity(amount: Optional[str]) -> float:
    """Return the first decimal number embedded in ``amount``, or 0.0.

    >>> parse_quantity("5 kg")
    5.0
    >>> parse_quantity("about 2.5 liters")
    2.5
    """
    if not amount:
        return 0.0
    match = _QUANTITY_RE.search(amount)
    return float(match.group(1)) if match else 0.0


@dataclass
class CollectRewardPolicy:
    """Computes ``earned_collect`` amounts."""

    mode: str = MODE_RANDOM
    min_points: int = 10
    max_points: int = 1009
    base_points: int = 10
    per_unit_points: int = 5
    rng: Optional[random.Random] = None

    def __post_init__(self):
        if self.mode not in (MODE_RANDOM, MODE_QUANTITY):
            raise ValueError(f"Unknown reward mode '{self.mode}'")
        if self.min_points < 1 or self.min_points > self.max_points:
            raise ValueError("Reward range must satisfy 1 <= min_points <= max_points")
        if self.rng is None:
            self.rng = random.Random()

    @classmethod
    def from_settings(
        cls, settings: Settings, rng: Optional[random.Random] = None
    ) -> "CollectRewardPolicy":
        return cls(
            mode=settings.collect_reward_mode,
            min_points=settings.collect_reward_min,
            max_points=settings.collect_reward_max,
            base_points=settings.collect_reward_base,
            per_unit_points=settings.collect_reward_per_unit,
            rng=rng,
        )

    def points_for(self, amount: Optional[str]) -> int:
        """Points for collecting a report whose amount text is ``amount``."""
        if self.mode == MODE_RANDOM:
            return self.rng.randint(self.min_points, self.max_points)

        raw = self.base_points + int(round(self.per_unit_points * parse_quantity(amount)))
        return min(max(raw, self.min_points), self.max_points)
