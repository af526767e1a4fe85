"""Exception types raised before or during the sampling loop."""

from __future__ import annotations


class HostlogError(Exception):
    pass


class BatteryNotFoundError(HostlogError):
    def __init__(self, battery: str, available: list[str]) -> None:
        self.battery = battery
        self.available = list(available)
        options = ", ".join(self.available) or "none found"
        super().__init__(f"battery '{battery}' not found (available: {options})")


class LogStoreError(HostlogError):
    pass
