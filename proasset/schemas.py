from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field
from datetime import date, datetime


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    AUDITOR = "AUDITOR"
    VIEWER = "VIEWER"


class UserStatus(str, Enum):
    active = "active"
    pending = "pending"
    rejected = "rejected"


class FeatureKey(str, Enum):
    dashboard = "dashboard"
    assets = "assets"
    locations = "locations"
    approvals = "approvals"
    audit = "audit"
    settings = "settings"
    users = "users"


class PermissionAction(str, Enum):
    view = "view"
    edit = "edit"


class AssetStatus(str, Enum):
    Good = "Good"
    UnderRepair = "UnderRepair"
    Damaged = "Damaged"
    Lost = "Lost"


class AuditStatus(str, Enum):
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class LogAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    RESET = "RESET"
    AUDIT_START = "AUDIT_START"
    AUDIT_SCAN = "AUDIT_SCAN"
    AUDIT_COMPLETE = "AUDIT_COMPLETE"


DELETION_PENDING = "pending"


# ---------- auth / users ----------

class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    role: Role = Role.VIEWER


class AdminUserCreate(UserCreate):
    status: UserStatus = UserStatus.active


class UserUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    role: Role
    status: UserStatus
    password: Optional[str] = Field(None, min_length=1)


class PasswordChange(BaseModel):
    new_password: str = Field(..., min_length=1)


class UserRead(BaseModel):
    id: str
    username: str
    name: str
    role: Role
    status: UserStatus


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ---------- permissions ----------

class FieldPermission(BaseModel):
    view: bool = False
    edit: bool = False


class FeaturePermission(BaseModel):
    view: bool = False
    edit: bool = False
    fields: Optional[dict[str, FieldPermission]] = None


class PermissionCheck(BaseModel):
    role: Role
    feature: str
    action: str
    field: Optional[str] = None
    allowed: bool


# ---------- locations ----------

class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    parent_id: Optional[str] = None


class LocationRead(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None


class LocationTreeItem(LocationRead):
    level: int


# ---------- assets ----------

class AssetWrite(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    location_id: str
    # null keeps the stored value on update
    price: Optional[float] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    useful_life: Optional[int] = Field(None, gt=0, description="Useful life in years")
    status: AssetStatus = AssetStatus.Good
    barcode: Optional[str] = None
    image: Optional[str] = Field(None, description="Encoded photo, e.g. a data URL")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Laptop Dell Latitude 5420",
                    "category": "Electronics",
                    "location_id": "0f1e2d3c4b5a",
                    "price": 15000000,
                    "purchase_date": "2024-01-15",
                    "useful_life": 4,
                    "status": "Good",
                    "barcode": "INV-0001",
                }
            ]
        }
    }


class AssetRead(BaseModel):
    id: str
    name: str
    category: str
    location_id: str
    # role-restricted fields come back as null when hidden
    price: Optional[float] = None
    purchase_date: Optional[date] = None
    useful_life: Optional[int] = None
    status: AssetStatus
    barcode: Optional[str] = None
    image: Optional[str] = None
    deletion_status: Optional[str] = None
    deletion_request_date: Optional[datetime] = None
    created_at: datetime


class AssetListResponse(BaseModel):
    items: list[AssetRead]
    total: int
    limit: int
    offset: int
    q: str | None = None


class DepreciationResult(BaseModel):
    current_value: int
    depreciation_per_year: int
    age_years: float


# ---------- audit ----------

class AuditStart(BaseModel):
    auditor_name: str


class AuditScan(BaseModel):
    identifier: str = Field(..., description="Decoded barcode text or asset id")


class AuditSessionRead(BaseModel):
    id: str
    name: str
    start_date: datetime
    end_date: Optional[datetime] = None
    status: AuditStatus
    total_assets_to_check: int
    scanned_assets: list[str]
    missing_assets: list[str]
    auditor_name: str
    progress: float
    accuracy: float


class ScanResult(BaseModel):
    found: bool
    session: Optional[AuditSessionRead] = None


class AuditReportRow(BaseModel):
    asset_id: str
    name: str
    barcode: Optional[str] = None
    category: str
    result: str  # FOUND / MISSING
    price: Optional[float] = None


class AuditReport(BaseModel):
    session: AuditSessionRead
    scanned_count: int
    missing_count: int
    rows: list[AuditReportRow]


# ---------- activity log ----------

class AuditLogRead(BaseModel):
    id: int
    action: LogAction
    target: str
    details: str
    timestamp: datetime
    user: str


class AuditLogListResponse(BaseModel):
    items: list[AuditLogRead]
    total: int
    limit: int
    offset: int


# ---------- system ----------

class DashboardStats(BaseModel):
    total: int
    current_value: Optional[int] = None
    pending: int
    bad: int


class LocationBackupRow(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    parent_id: Optional[str] = None
    created_at: Optional[datetime] = None


class AssetBackupRow(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    category: str
    location_id: str
    price: float = Field(..., ge=0)
    purchase_date: date
    useful_life: int
    status: AssetStatus = AssetStatus.Good
    barcode: Optional[str] = None
    image: Optional[str] = None
    deletion_status: Optional[str] = None
    deletion_request_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class BackupPayload(BaseModel):
    assets: list[AssetBackupRow]
    locations: list[LocationBackupRow]
    users: list[dict] = []
    export_date: Optional[datetime] = None
