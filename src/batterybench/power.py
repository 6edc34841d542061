"""Battery and power-state probing plus start-up gating."""

from __future__ import annotations

import enum
import logging as py_logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import psutil

from batterybench.confirm import Confirmer
from batterybench.errors import UserDeclined

logger = py_logging.getLogger(__name__)

UNPLUG_MESSAGE = "Please unplug the system to start the benchmarking"
NO_BATTERY_QUESTION = (
    "This benchmark is meant for laptops and will loop compiling until the battery runs out. "
    "No battery was detected, would you like to continue anyway?"
)
NOT_FULL_QUESTION = "Battery is not full, you might get a lower score. Would you like to continue?"
WAIT_FULL_QUESTION = "Would you like to wait until the battery is full?"


class ChargingState(enum.Enum):
    CHARGING = "charging"
    DISCHARGING = "discharging"
    FULL = "full"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PowerState:
    percentage: int
    charging: ChargingState

    @property
    def plugged(self) -> bool:
        return self.charging in (ChargingState.CHARGING, ChargingState.FULL)


class PowerMonitor:
    def __init__(
        self,
        confirmer: Confirmer,
        *,
        sensor: Callable[[], Any] = psutil.sensors_battery,
    ) -> None:
        self._confirmer = confirmer
        self._sensor = sensor
        self._asked_no_battery = False

    def _battery(self) -> Any:
        return self._sensor()

    def read_charge_percentage(self) -> int:
        battery = self._battery()
        if battery is None:
            return 100
        return max(0, min(100, math.floor(battery.percent)))

    def read_charging_state(self) -> ChargingState:
        battery = self._battery()
        if battery is None:
            if not self._asked_no_battery:
                self._asked_no_battery = True
                logger.warning("No battery detected")
                if not self._confirmer.confirm(NO_BATTERY_QUESTION):
                    raise UserDeclined(
                        "Benchmark cancelled on a machine without battery",
                        hint="Run the benchmark on a laptop running on battery power.",
                    )
            return ChargingState.DISCHARGING
        if battery.power_plugged is None:
            return ChargingState.UNKNOWN
        if battery.power_plugged:
            if battery.percent >= 100:
                return ChargingState.FULL
            return ChargingState.CHARGING
        return ChargingState.DISCHARGING

    def read(self) -> PowerState:
        return PowerState(
            percentage=self.read_charge_percentage(),
            charging=self.read_charging_state(),
        )


def wait_until_unplugged(
    monitor: PowerMonitor,
    emit: Callable[[str], None],
    *,
    interval: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    state = monitor.read_charging_state()
    if state not in (ChargingState.CHARGING, ChargingState.FULL):
        return
    logger.debug("Power plugged in, waiting state=%s", state.value)
    emit(UNPLUG_MESSAGE)
    while True:
        sleep(interval)
        state = monitor.read_charging_state()
        if state not in (ChargingState.CHARGING, ChargingState.FULL):
            logger.debug("Power unplugged state=%s", state.value)
            return


def check_charge(
    monitor: PowerMonitor,
    confirmer: Confirmer,
    emit: Callable[[str], None],
    *,
    interval: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Warn about a partial charge and optionally wait for a full battery.

    Returns the last charge percentage read. Raises ``UserDeclined`` when the
    operator refuses to continue on a partial charge.
    """
    percentage = monitor.read_charge_percentage()
    if percentage >= 100:
        return percentage

    logger.warning("Battery not full percentage=%s", percentage)
    if not confirmer.confirm(NOT_FULL_QUESTION):
        raise UserDeclined("Benchmark cancelled: battery is not full")
    if not confirmer.confirm(WAIT_FULL_QUESTION):
        return percentage

    emit(f"Waiting for a full charge (currently {percentage}%)")
    while percentage < 100:
        sleep(interval)
        percentage = monitor.read_charge_percentage()
    emit("Battery is full")
    return percentage
