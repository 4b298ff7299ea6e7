"""Pydantic schemas for registration."""

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)


class UserRegistered(BaseModel):
    """Response for registration — carries the first credential."""
    id: int
    access_token: str
    token_type: str = "bearer"
