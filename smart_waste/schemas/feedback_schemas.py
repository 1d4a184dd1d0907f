from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from smart_waste.db.models import (
    ContactMethod,
    FeedbackRating,
    FeedbackStatus,
    FeedbackType,
    Priority,
)
from .camel_base_model import CamelCaseBaseModel as BaseModel


class SubmitFeedbackRequest(BaseModel):
    """Request schema for submitting feedback"""

    type: FeedbackType
    subject: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    priority: Priority = Priority.MEDIUM
    related_pickup_id: Optional[str] = None
    contact_method: ContactMethod = ContactMethod.APP


class RateFeedbackRequest(BaseModel):
    rating: FeedbackRating
    comment: Optional[str] = Field(None, max_length=1000)


class RespondFeedbackRequest(BaseModel):
    """Admin response; status defaults to in_review when omitted"""

    response: str = Field(..., min_length=1, max_length=2000)
    status: Optional[FeedbackStatus] = None
    internal_notes: Optional[str] = Field(None, max_length=2000)


class FeedbackResponse(BaseModel):
    id: str
    user_id: str
    type: FeedbackType
    subject: str
    description: str
    priority: Priority
    status: FeedbackStatus
    related_pickup_id: Optional[str] = None
    contact_method: ContactMethod
    response: Optional[str] = None
    responded_by: Optional[str] = None
    responded_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    rating: Optional[FeedbackRating] = None
    rating_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminFeedbackResponse(FeedbackResponse):
    internal_notes: Optional[str] = None


class FeedbackStatsResponse(BaseModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    avg_response_time: int = Field(0, description="Average whole hours to first response")
