"""
Finance Tracker - Approval Schemas
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ApprovalActionRequest(BaseModel):
    """Decision on a pending approval request."""
    action: Literal["approved", "rejected"]
    comments: Optional[str] = Field(None, max_length=2000)
