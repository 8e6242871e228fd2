from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.enums import ReportStatus


REPORT_VERSION = "rpt-0.1"


class ParcelContext(BaseModel):
    parcel_id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    intent: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)


class ReportCreate(BaseModel):
    parcel_context: ParcelContext
    report_name: Optional[str] = Field(None, min_length=1, max_length=255)
    branded: bool = False


class ReportStatusUpdate(BaseModel):
    status: ReportStatus


# -----------------------------------------------------
# STORED SHAPE
# -----------------------------------------------------
class ReportLocation(BaseModel):
    lat: float
    lng: float


class ReportProjection(BaseModel):
    parcel_id: str
    location: ReportLocation
    intent: str


class ReportBranding(BaseModel):
    workspace_name: str
    color_primary: Optional[str] = None
    logo_url: Optional[str] = None


class ReportSection(BaseModel):
    type: str
    blocks: List[dict] = []


class ReportRead(BaseModel):
    id: str
    workspace_id: str
    name: str
    status: ReportStatus
    version: str = REPORT_VERSION
    projection: Optional[ReportProjection] = None
    branding: Optional[ReportBranding] = None
    sections: List[ReportSection] = []
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class ReportResponse(BaseModel):
    report: ReportRead


class ReportListResponse(BaseModel):
    reports: List[ReportRead]
    pagination: Pagination
