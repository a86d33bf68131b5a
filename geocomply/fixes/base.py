"""Abstract base class for all ring repair operations.

Every repair (rounding, closure, …) inherits from ``RingFix`` and
implements ``name`` and ``execute``; ``validate`` may be overridden.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from geocomply.core.models import Ring

logger = logging.getLogger("geocomply.fixes")


class RingFix(ABC):
    """Base class for deterministic polygon ring repairs.

    Subclasses must implement:
    - ``name``    — unique string identifier
    - ``execute`` — return the repaired ring

    The ``apply`` method handles the full lifecycle:
    execute → validate → return the repaired ring, or the input ring
    when the repair cannot be applied. It never raises.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this fix type (e.g. ``"close_ring"``)."""
        ...

    @abstractmethod
    def execute(self, ring: Ring) -> Ring:
        """Apply the repair to one ring and return the new ring."""
        ...

    def validate(self, original: Ring, fixed: Ring) -> bool:
        """Check that the repair kept every existing vertex.

        Override in subclasses for fix-type-specific checks.
        """
        return len(fixed) >= len(original)

    def apply(self, ring: Ring) -> Ring:
        """Full repair lifecycle. This is the entry point used by the fixer."""
        try:
            fixed = self.execute(ring)
        except Exception as exc:
            logger.warning("Fix %s failed on ring of %d vertices: %s", self.name, len(ring), exc)
            return ring
        if not self.validate(ring, fixed):
            logger.warning("Fix %s rejected: result failed validation", self.name)
            return ring
        return fixed
