from datetime import datetime
from typing import List, Optional

from pydantic import Field

from smart_waste.db.models import (
    HazardLevel,
    ManifestWasteType,
    TrackingDisposalMethod,
    TrackingStatus,
    WasteTracking,
)
from .camel_base_model import CamelCaseBaseModel as BaseModel


class LocationSchema(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)


class ManifestQuantity(BaseModel):
    amount: float = Field(0, ge=0)
    unit: str = Field("tons", max_length=10)


class WasteManifest(BaseModel):
    waste_type: ManifestWasteType
    quantity: ManifestQuantity = Field(default_factory=ManifestQuantity)
    description: Optional[str] = Field(None, max_length=1000)
    hazard_level: HazardLevel = HazardLevel.LOW


class CreateTrackingRequest(BaseModel):
    """Request schema for opening a tracking record on an existing pickup"""

    pickup_id: str = Field(..., min_length=1)
    waste_manifest: WasteManifest
    scheduled_date: Optional[datetime] = None


class UpdateTrackingStatusRequest(BaseModel):
    """Status move plus the side fields each status may carry"""

    status: TrackingStatus
    notes: Optional[str] = Field(None, max_length=1000)
    location: Optional[LocationSchema] = None
    collector_name: Optional[str] = Field(None, max_length=100)
    vehicle_number: Optional[str] = Field(None, max_length=50)
    facility_name: Optional[str] = Field(None, max_length=200)
    disposal_method: Optional[TrackingDisposalMethod] = None


class StatusHistoryEntry(BaseModel):
    status: TrackingStatus
    timestamp: datetime
    updated_by: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[LocationSchema] = None


class CollectionInfo(BaseModel):
    scheduled_date: Optional[datetime] = None
    collected_date: Optional[datetime] = None
    collector_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    notes: Optional[str] = None


class DisposalInfo(BaseModel):
    facility_name: Optional[str] = None
    disposal_date: Optional[datetime] = None
    disposal_method: Optional[TrackingDisposalMethod] = None
    certificate_url: Optional[str] = None


class ComplianceStatus(BaseModel):
    is_compliant: bool = True
    certification_required: bool = False
    certification_issued: bool = False


class TrackingResponse(BaseModel):
    """Response schema for a tracking record with its full history"""

    id: str
    tracking_id: str
    industry_id: str
    industry_name: str
    pickup_id: str
    waste_manifest: WasteManifest
    collection: CollectionInfo
    disposal: DisposalInfo
    compliance: ComplianceStatus
    status: TrackingStatus
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_tracking(cls, tracking: WasteTracking) -> "TrackingResponse":
        history = []
        for entry in tracking.status_history:
            location = None
            if (
                entry.location_lat is not None
                or entry.location_lng is not None
                or entry.location_address
            ):
                location = LocationSchema(
                    latitude=entry.location_lat,
                    longitude=entry.location_lng,
                    address=entry.location_address,
                )
            history.append(
                StatusHistoryEntry(
                    status=entry.status,
                    timestamp=entry.timestamp,
                    updated_by=entry.updated_by,
                    notes=entry.notes,
                    location=location,
                )
            )

        return cls(
            id=tracking.id,
            tracking_id=tracking.tracking_id,
            industry_id=tracking.industry_id,
            industry_name=tracking.industry_name,
            pickup_id=tracking.pickup_id,
            waste_manifest=WasteManifest(
                waste_type=tracking.manifest_waste_type,
                quantity=ManifestQuantity(
                    amount=tracking.manifest_quantity_amount or 0,
                    unit=tracking.manifest_quantity_unit or "tons",
                ),
                description=tracking.manifest_description,
                hazard_level=tracking.manifest_hazard_level,
            ),
            collection=CollectionInfo(
                scheduled_date=tracking.collection_scheduled_date,
                collected_date=tracking.collection_collected_date,
                collector_name=tracking.collection_collector_name,
                vehicle_number=tracking.collection_vehicle_number,
                notes=tracking.collection_notes,
            ),
            disposal=DisposalInfo(
                facility_name=tracking.disposal_facility_name,
                disposal_date=tracking.disposal_date,
                disposal_method=tracking.disposal_method,
                certificate_url=tracking.disposal_certificate_url,
            ),
            compliance=ComplianceStatus(
                is_compliant=tracking.compliance_is_compliant,
                certification_required=tracking.compliance_certification_required,
                certification_issued=tracking.compliance_certification_issued,
            ),
            status=tracking.status,
            status_history=history,
            created_at=tracking.created_at,
            updated_at=tracking.updated_at,
        )


class TrackingStatsResponse(BaseModel):
    total: int = 0
    scheduled: int = 0
    collected: int = 0
    in_transit: int = 0
    at_facility: int = 0
    disposed: int = 0
    cancelled: int = 0
    total_waste_disposed: float = 0
