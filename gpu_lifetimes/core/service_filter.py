"""Service-Node Filter: drops observations at non-GPU service slots.

Must run after identifier forward-fill: service records may carry the
identifiers that later GPU records inherit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Sequence

from gpu_lifetimes.domain.observation import Observation

logger = logging.getLogger(__name__)


@dataclass
class ServiceFilterResult:
    observations: list[Observation] = field(default_factory=list)
    removed_count: int = 0
    unobserved_service_slots: list[str] = field(default_factory=list)


def filter_service_slots(
    observations: Sequence[Observation],
    service_slots: AbstractSet[str],
) -> ServiceFilterResult:
    """Remove every observation whose slot_id is a known service slot.

    Reference slots that never occur in the data are reported as
    configuration drift.  This is logged, never fatal.
    """
    kept: list[Observation] = []
    seen_service: set[str] = set()
    for obs in observations:
        if obs.slot_id in service_slots:
            seen_service.add(obs.slot_id)
            continue
        kept.append(obs)

    unobserved = sorted(set(service_slots) - seen_service)
    removed = len(observations) - len(kept)

    logger.info("Service-slot filter removed %d observation(s)", removed)
    if unobserved:
        logger.warning(
            "Configuration drift: %d service slot(s) never observed in history (e.g. %s)",
            len(unobserved),
            ", ".join(unobserved[:5]),
        )

    return ServiceFilterResult(
        observations=kept,
        removed_count=removed,
        unobserved_service_slots=unobserved,
    )
