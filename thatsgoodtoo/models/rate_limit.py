from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from thatsgoodtoo.core.clock import utcnow

class RateLimitCounter(SQLModel, table=True):
    """Keyed hit counter that lives as long as its window."""
    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(unique=True, index=True)  # e.g. "contact:203.0.113.7"
    count: int = Field(default=0)
    window_started_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(index=True)
