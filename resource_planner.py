"""
Resource planning for the transcoding engine

Maps a coarse CPU utilization fraction onto concrete thread and pool counts
for x265. The driver runs one engine at a time, so a single plan covers the
whole host budget.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ResourcePlan:
    """Worker sizing handed to the engine"""
    total_units: int
    utilization: int
    workers: int
    pools: int

    def describe(self) -> str:
        return f"{self.workers} threads + {self.pools} pools = {self.utilization}% CPU"


def plan(utilization: int, total_units: int) -> ResourcePlan:
    """
    Compute the engine's worker and pool counts

    Args:
        utilization: Percentage of processing units to use (25, 50, 75 or 100)
        total_units: Processing units available on the host

    Returns:
        ResourcePlan with at least one worker and one pool
    """
    total_units = max(1, int(total_units))
    workers = max(1, (total_units * utilization) // 100)
    pools = max(1, workers // 2)
    return ResourcePlan(
        total_units=total_units,
        utilization=utilization,
        workers=workers,
        pools=pools,
    )


def detect_total_units() -> int:
    """Number of logical CPUs on this host (1 if it cannot be determined)"""
    return os.cpu_count() or 1
