from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text
from enum import Enum
from thatsgoodtoo.core.clock import utcnow

class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class VendorApplication(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Applicant
    user_id: int = Field(foreign_key="user.id", index=True)

    # Business
    business_name: str
    business_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    website: Optional[str] = None
    city: Optional[str] = None

    # Review
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING, index=True)
    admin_notes: Optional[str] = None
    reviewed_by: Optional[int] = Field(default=None, foreign_key="user.id")
    reviewed_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
