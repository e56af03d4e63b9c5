"""
Finance Tracker - Period Close Schemas
"""

from typing import Optional

from pydantic import BaseModel, Field


class PeriodRef(BaseModel):
    year: int = Field(..., ge=1900, le=9999)
    month: int = Field(..., ge=1, le=12)


class PeriodCloseRequest(PeriodRef):
    notes: Optional[str] = Field(None, max_length=2000)


class PeriodReopenRequest(PeriodRef):
    pass
