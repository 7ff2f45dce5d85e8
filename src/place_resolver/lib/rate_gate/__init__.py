"""Rate gate library — per-caller-class admission control for outbound calls.

Public API:
    - RateGate: Fixed-window gate with minimum call spacing
    - GateClass: Known caller classes
    - build_rate_gates: Create one independent gate per caller class from settings
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from place_resolver.lib.rate_gate.gate import RateGate

if TYPE_CHECKING:
    from place_resolver.core.config import Settings


class GateClass(StrEnum):
    """Caller classes with independently configured budgets."""

    GEOCODING = "geocoding"
    PUBLIC = "public"


def build_rate_gates(settings: Settings) -> dict[GateClass, RateGate]:
    """Create a separate gate for each caller class.

    Gates never share counters, so public traffic cannot exhaust the
    internal geocoding budget or the other way round.

    Args:
        settings: Application settings.

    Returns:
        Mapping of caller class to its gate.
    """
    return {
        GateClass.GEOCODING: RateGate(
            GateClass.GEOCODING.value,
            max_calls=settings.rate_gate_geocoding_max_calls,
            window_seconds=settings.rate_gate_geocoding_window_seconds,
            min_delay=settings.rate_gate_geocoding_min_delay,
        ),
        GateClass.PUBLIC: RateGate(
            GateClass.PUBLIC.value,
            max_calls=settings.rate_gate_public_max_calls,
            window_seconds=settings.rate_gate_public_window_seconds,
            min_delay=settings.rate_gate_public_min_delay,
        ),
    }


__all__ = [
    "GateClass",
    "RateGate",
    "build_rate_gates",
]
