"""The fixed optimization profile applied by ``start``."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator

from topt_engine.resources import DeviceClass

DEFAULT_GOVERNOR = "performance"
DEFAULT_SWAPPINESS = 1
DEFAULT_PRIORITY_DELTA = -10
NICE_MIN = -20
NICE_MAX = 19


class OptimizationProfile(BaseModel):
    """Target values for each tunable family."""

    governor: str = Field(default=DEFAULT_GOVERNOR, min_length=1, description="CPU frequency governor")
    swappiness: int = Field(default=DEFAULT_SWAPPINESS, ge=0, le=100, description="vm.swappiness target")
    nvme_schedulers: List[str] = Field(
        default_factory=lambda: ["none", "mq-deadline"],
        description="Scheduler preference order for NVMe devices",
    )
    sata_schedulers: List[str] = Field(
        default_factory=lambda: ["deadline", "none", "mq-deadline"],
        description="Scheduler preference order for SATA and rotational devices",
    )
    priority_delta: int = Field(
        default=DEFAULT_PRIORITY_DELTA, ge=-40, le=40, description="Nice adjustment for the invoking shell"
    )

    @field_validator("nvme_schedulers", "sata_schedulers")
    @classmethod
    def _dedupe(cls, value: List[str]) -> List[str]:
        seen: list[str] = []
        for name in value:
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        if not seen:
            raise ValueError("scheduler preference list must not be empty")
        return seen

    def scheduler_preference(self, device_class: DeviceClass) -> list[str]:
        if device_class is DeviceClass.NVME:
            return list(self.nvme_schedulers)
        return list(self.sata_schedulers)


def clamp_nice(value: int) -> int:
    return max(NICE_MIN, min(NICE_MAX, value))
