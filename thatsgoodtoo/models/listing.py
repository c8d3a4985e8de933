from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text
from thatsgoodtoo.core.clock import utcnow

class Listing(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    vendor_id: int = Field(foreign_key="user.id", index=True)

    title: str
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    price: Optional[float] = None
    image_url: Optional[str] = None

    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
