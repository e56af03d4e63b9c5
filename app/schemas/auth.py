"""
Finance Tracker - Authentication Schemas

Pydantic schemas for authentication requests.
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Schema for login request. ``username`` also accepts an email."""
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=100)
