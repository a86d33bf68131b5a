"""Ring repair operations: round_coordinates, close_ring."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Context, Decimal

from geocomply.core.models import Ring
from geocomply.fixes.base import RingFix

# Wide enough to quantize any finite double to 6 places without overflow.
_DECIMAL_CONTEXT = Context(prec=350, rounding=ROUND_HALF_UP)


def round_half_away(value: float, places: int = 6) -> float:
    """Round to ``places`` decimals, halves away from zero.

    Works on the shortest decimal form of the float, so
    ``0.123456789 → 0.123457`` and ``0.0000005 → 0.000001``.
    Non-finite values are returned unchanged.
    """
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, context=_DECIMAL_CONTEXT))


class RoundCoordinatesFix(RingFix):
    """Round every coordinate component to a fixed number of decimals."""

    def __init__(self, places: int = 6):
        self.places = places

    @property
    def name(self) -> str:
        return "round_coordinates"

    def execute(self, ring: Ring) -> Ring:
        return tuple(
            (round_half_away(lng, self.places), round_half_away(lat, self.places))
            for lng, lat in ring
        )

    def validate(self, original: Ring, fixed: Ring) -> bool:
        return len(fixed) == len(original)


class CloseRingFix(RingFix):
    """Append a copy of the first coordinate when a ring is not closed.

    Never removes or reorders existing vertices.
    """

    @property
    def name(self) -> str:
        return "close_ring"

    def execute(self, ring: Ring) -> Ring:
        if not ring or ring[0] == ring[-1]:
            return ring
        return (*ring, ring[0])

    def validate(self, original: Ring, fixed: Ring) -> bool:
        if not super().validate(original, fixed):
            return False
        return fixed[: len(original)] == original
