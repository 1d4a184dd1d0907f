from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from smart_waste.db.models import (
    CancelledBy,
    HazardLevel,
    ManifestWasteType,
    PickupStatus,
    PickupWasteType,
    TimeSlot,
)
from .camel_base_model import CamelCaseBaseModel as BaseModel


class SchedulePickupRequest(BaseModel):
    """Request schema for scheduling a pickup"""

    waste_type: PickupWasteType = Field(..., description="Type of waste to collect")
    pickup_date: datetime = Field(..., description="Requested pickup date")
    time_slot: TimeSlot = Field(..., description="Preferred time slot")
    address: str = Field(..., min_length=1, max_length=500)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    estimated_weight: float = Field(0, ge=0, description="Estimated weight in kg")
    contact_phone: Optional[str] = Field(None, max_length=20)
    special_instructions: Optional[str] = Field(None, max_length=500)

    # Industry shipments only
    manifest_waste_type: Optional[ManifestWasteType] = Field(
        None, description="Manifest waste type override for the tracking record"
    )
    hazard_level: Optional[HazardLevel] = None
    waste_description: Optional[str] = Field(None, max_length=1000)


class CancelPickupRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class CompletePickupRequest(BaseModel):
    """Collector-side completion details"""

    actual_weight: Optional[float] = Field(None, ge=0, description="Weighed kg")
    rating: Optional[int] = Field(None, ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=1000)


class RatePickupRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=1000)


class UpdatePickupStatusRequest(BaseModel):
    status: PickupStatus = Field(..., description="confirmed or in-progress")
    assigned_collector_id: Optional[str] = None


class PickupResponse(BaseModel):
    """Response schema for pickup data"""

    id: str
    user_id: str
    waste_type: PickupWasteType
    pickup_date: datetime
    time_slot: TimeSlot
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    estimated_weight: float = 0
    contact_phone: Optional[str] = None
    special_instructions: Optional[str] = None
    status: PickupStatus
    assigned_collector_id: Optional[str] = None
    actual_weight: Optional[float] = None
    actual_pickup_time: Optional[datetime] = None
    verification_code: str
    rating: Optional[int] = None
    feedback: Optional[str] = None
    points_awarded: int = 0
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[CancelledBy] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PickupStatsResponse(BaseModel):
    total_pickups: int = 0
    status_breakdown: Dict[str, int] = Field(default_factory=dict)
    total_weight_collected: float = 0
    total_points_earned: int = 0
    upcoming_pickups: int = 0
