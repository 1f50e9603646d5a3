from __future__ import annotations

import random
from typing import Optional

from models.records import Fault, Reading, Sample
from sensors.max6675 import DEGREES_PER_LSB, OPEN_THERMOCOUPLE_REASON


class SimulatedSensor:
    """Bounded random walk quantized like a MAX6675, for development use."""

    name = "simulated"

    def __init__(
        self,
        base: float = 22.0,
        spread: float = 3.0,
        step: float = 0.5,
        fault_rate: float = 0.0,
        seed: Optional[int] = None,
    ) -> None:
        self.base = base
        self.spread = spread
        self.step = step
        self.fault_rate = fault_rate
        self._random = random.Random(seed)
        self._value = base

    def open(self) -> None:
        self._value = self.base

    def poll(self) -> Sample:
        if self.fault_rate and self._random.random() < self.fault_rate:
            return Fault(reason=OPEN_THERMOCOUPLE_REASON)
        candidate = self._value + self._random.uniform(-self.step, self.step)
        low, high = self.base - self.spread, self.base + self.spread
        self._value = min(max(candidate, low), high)
        quantized = round(self._value / DEGREES_PER_LSB) * DEGREES_PER_LSB
        return Reading(value=quantized)

    def close(self) -> None:
        return None
