"""Schemas shared by several routers."""

from pydantic import BaseModel, Field


class ActionResponse(BaseModel):
    """Outcome of a command endpoint."""

    success: bool
    message: str
    count: int | None = Field(default=None, description="Number of affected records")


class PaginationRead(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


__all__ = ["ActionResponse", "PaginationRead"]
