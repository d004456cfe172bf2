from typing import Optional
from uuid import uuid4
from sqlalchemy import Column, DateTime, JSON
from sqlmodel import SQLModel, Field
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # naive values are taken to be UTC already
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ts_column(**kwargs) -> Column:
    return Column(DateTime(timezone=True), **kwargs)


def new_id() -> str:
    return uuid4().hex


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    username: str = Field(index=True, unique=True)
    password_hash: str
    name: str
    role: str = Field(default="VIEWER", index=True)
    status: str = Field(default="pending", index=True)


class Location(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    parent_id: Optional[str] = Field(default=None, foreign_key="location.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_column=ts_column(nullable=False))


class Asset(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    category: str = Field(index=True)
    location_id: str = Field(foreign_key="location.id", index=True)
    price: float = Field(default=0)
    purchase_date: date
    useful_life: int                  # years
    status: str = Field(default="Good", index=True)
    barcode: Optional[str] = Field(default=None, index=True)  # not unique
    image: Optional[str] = None

    deletion_status: Optional[str] = Field(default=None, index=True)  # None / "pending"
    deletion_request_date: Optional[datetime] = Field(default=None, sa_column=ts_column(nullable=True))

    created_at: datetime = Field(default_factory=utcnow, sa_column=ts_column(nullable=False))


class AuditSession(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    start_date: datetime = Field(default_factory=utcnow, sa_column=ts_column(nullable=False))
    end_date: Optional[datetime] = Field(default=None, sa_column=ts_column(nullable=True))
    status: str = Field(default="In Progress", index=True)
    total_assets_to_check: int = 0
    scanned_assets: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    missing_assets: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    auditor_name: str


class AuditLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    action: str = Field(index=True)   # CREATE / UPDATE / ... / AUDIT_COMPLETE
    target: str
    details: str = ""
    user: str = Field(index=True)     # username or "System"

    timestamp: datetime = Field(default_factory=utcnow, sa_column=ts_column(nullable=False, index=True))


class RolePermission(SQLModel, table=True):
    role: str = Field(primary_key=True)
    feature: str = Field(primary_key=True)
    view: bool = False
    edit: bool = False
    fields: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=ts_column(nullable=False))
