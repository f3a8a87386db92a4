from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from . import CamelModel, NonEmptyStr


class WorkReportCreate(CamelModel):
    complaint_id: NonEmptyStr
    work_start_time: datetime
    work_end_time: datetime
    work_description: NonEmptyStr
    materials_used: List[Any] = Field(default_factory=list)
    labor_cost: Optional[float] = Field(default=None, ge=0)
    material_cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    technician_notes: Optional[str] = None
    before_photos: List[str] = Field(default_factory=list)
    after_photos: List[str] = Field(default_factory=list)


class WorkReportUpdate(CamelModel):
    work_start_time: Optional[datetime] = None
    work_end_time: Optional[datetime] = None
    work_description: Optional[NonEmptyStr] = None
    materials_used: Optional[List[Any]] = None
    labor_cost: Optional[float] = Field(default=None, ge=0)
    material_cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    technician_notes: Optional[str] = None
    before_photos: Optional[List[str]] = None
    after_photos: Optional[List[str]] = None


class ReviewIn(CamelModel):
    # validated by the lifecycle so a bad value reads "invalid status"
    review_status: str
    review_notes: Optional[str] = None
