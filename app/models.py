"""
Pydantic models for stored pastes and request/response payloads.
"""
from typing import Optional
from pydantic import BaseModel, Field

from app.exceptions import PasteExhausted, PasteExpired


class Paste(BaseModel):
    """A stored paste. Timestamps are milliseconds since the epoch."""
    id: str
    content: str
    created_at: int
    expires_at: Optional[int] = None
    max_views: Optional[int] = None
    views: int = 0

    def ensure_available(self, now_ms: int) -> None:
        """Raise the matching access error if the paste cannot be served at now_ms."""
        if self.expires_at is not None and now_ms >= self.expires_at:
            raise PasteExpired()
        if self.max_views is not None and self.views >= self.max_views:
            raise PasteExhausted()

    @property
    def remaining_views(self) -> Optional[int]:
        if self.max_views is None:
            return None
        return max(0, self.max_views - self.views)


class FetchedPaste(BaseModel):
    """Result of a successful fetch, after the view was counted."""
    content: str
    remaining_views: Optional[int] = None
    expires_at: Optional[int] = None


class PasteResponse(BaseModel):
    """Schema for paste creation response."""
    id: str = Field(..., description="Unique paste ID")
    url: str = Field(..., description="Shareable URL to view the paste")


class PasteView(BaseModel):
    """Schema for viewing/fetching a paste."""
    content: str = Field(..., description="Paste text content")
    remaining_views: Optional[int] = Field(None, description="Views left (null if unlimited)")
    expires_at: Optional[str] = Field(None, description="Expiry timestamp (ISO 8601, null if no TTL)")


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    error: str


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
