"""Fix operation registry — ordered mapping of fix names to RingFix instances."""

from __future__ import annotations

import logging
from typing import Optional

from geocomply.fixes.base import RingFix

logger = logging.getLogger("geocomply.fixes.registry")


class FixRegistry:
    """Registry of ring repairs, applied in registration order.

    Usage::

        registry = FixRegistry()
        registry.register(RoundCoordinatesFix())
        registry.register(CloseRingFix())

        for op in registry:
            ring = op.apply(ring)
    """

    def __init__(self) -> None:
        self._ops: dict[str, RingFix] = {}

    def register(self, op: RingFix) -> None:
        """Register a fix operation by its name."""
        if op.name in self._ops:
            logger.warning("Overwriting fix operation: %s", op.name)
        self._ops[op.name] = op
        logger.debug("Registered fix operation: %s", op.name)

    def get(self, name: str) -> Optional[RingFix]:
        """Look up a fix operation by name."""
        return self._ops.get(name)

    def list_operations(self) -> list[str]:
        """Return all registered fix type names, in application order."""
        return list(self._ops.keys())

    def __iter__(self):
        return iter(self._ops.values())

    def __contains__(self, name: str) -> bool:
        return name in self._ops


def build_default_registry(places: int = 6) -> FixRegistry:
    """Create a registry with rounding followed by closure repair.

    Closure is checked on the rounded coordinates.
    """
    from geocomply.fixes.geometry import CloseRingFix, RoundCoordinatesFix

    registry = FixRegistry()
    for op in (RoundCoordinatesFix(places), CloseRingFix()):
        registry.register(op)
    return registry
