from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ParcelRead(BaseModel):
    id: str
    apn: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    county: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    zoning: Optional[str] = None
    lot_size_sqft: Optional[float] = None
    land_use: Optional[str] = None


class ParcelResponse(BaseModel):
    parcel: ParcelRead


class ParcelListResponse(BaseModel):
    parcels: List[ParcelRead]


class SavedParcelCreate(BaseModel):
    parcel_id: str = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=2000)


class SavedParcelRead(BaseModel):
    id: str
    workspace_id: str
    parcel_id: str
    saved_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class SavedParcelResponse(BaseModel):
    saved_parcel: SavedParcelRead


class SavedParcelListResponse(BaseModel):
    saved_parcels: List[SavedParcelRead]
