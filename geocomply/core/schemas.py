"""Request schema for exports.

Filter and optimization parameters are checked here, before any
records are fetched or any geometry is touched.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from geocomply.core.models import ExportOptions


class Commodity(str, Enum):
    """Commodities covered by the regulation."""

    CATTLE = "CATTLE"
    COCOA = "COCOA"
    COFFEE = "COFFEE"
    PALM_OIL = "PALM_OIL"
    RUBBER = "RUBBER"
    SOY = "SOY"
    WOOD = "WOOD"


class ExportRequest(BaseModel):
    supplier_ids: Optional[list[str]] = None
    commodity: Optional[Commodity] = None
    convert_small_to_points: bool = False
    simplify_tolerance: Optional[float] = Field(default=None, ge=0, le=0.001)
    include_audit_log: bool = False
    small_plot_threshold_hectares: float = Field(default=4.0, gt=0)

    def to_options(self) -> ExportOptions:
        return ExportOptions(
            supplier_ids=tuple(self.supplier_ids or ()),
            commodity=self.commodity.value if self.commodity else None,
            convert_small_to_points=self.convert_small_to_points,
            simplify_tolerance=self.simplify_tolerance,
            include_provenance_log=self.include_audit_log,
            small_plot_threshold_hectares=self.small_plot_threshold_hectares,
        )
