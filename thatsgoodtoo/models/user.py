from typing import Optional, List
from enum import Enum
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from datetime import datetime
from thatsgoodtoo.core.clock import utcnow

class UserRole(str, Enum):
    VENDOR = "vendor"
    SHOPPER = "shopper"
    ADMIN = "admin"

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: Optional[str] = None
    email: str = Field(unique=True, index=True)
    password_hash: str = ""

    # Role set, e.g. ["shopper"] or ["vendor", "shopper"]
    roles: List[str] = Field(default=[UserRole.SHOPPER.value], sa_column=Column(JSON))

    # Account Status
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def has_role(self, role: UserRole) -> bool:
        return role.value in (self.roles or [])
