from datetime import datetime
from typing import List, Optional

from pydantic import Field

from smart_waste.db.models import (
    BinColor,
    ClassifiedWasteType,
    WasteCategory,
    WeightUnit,
)
from .camel_base_model import CamelCaseBaseModel as BaseModel


class WeightSchema(BaseModel):
    amount: float = Field(..., ge=0)
    unit: WeightUnit = WeightUnit.KG


class ClassifyWasteRequest(BaseModel):
    """Request schema for classifying a waste item"""

    waste_type: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Waste type or free-text description, e.g. 'plastic bottle'",
    )
    image_url: Optional[str] = Field(None, max_length=1000)
    weight: Optional[WeightSchema] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    location_address: Optional[str] = Field(None, max_length=500)


class ClassificationFeedbackRequest(BaseModel):
    """User correction of a classification result"""

    is_correct: bool
    actual_type: Optional[str] = Field(None, max_length=100)
    comments: Optional[str] = Field(None, max_length=1000)


class ClassificationResponse(BaseModel):
    id: str
    waste_type: ClassifiedWasteType
    category: WasteCategory
    bin_color: Optional[BinColor] = None
    disposal_instructions: Optional[str] = None
    confidence: Optional[float] = None
    tips: List[str] = Field(default_factory=list)
    warning: Optional[str] = None
    recycling_benefit: Optional[str] = None


class WasteRecordResponse(BaseModel):
    id: str
    user_id: str
    waste_type: ClassifiedWasteType
    category: WasteCategory
    image_url: Optional[str] = None
    confidence: Optional[float] = None
    properly_segregated: bool = True
    disposal_instructions: Optional[str] = None
    bin_color: Optional[BinColor] = None
    weight_amount: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    feedback_is_correct: Optional[bool] = None
    feedback_actual_type: Optional[str] = None
    feedback_comments: Optional[str] = None
    classified_at: datetime


class CategoryCount(BaseModel):
    category: str
    count: int


class WasteStatsResponse(BaseModel):
    total_classifications: int = 0
    category_breakdown: List[CategoryCount] = Field(default_factory=list)
    segregation_rate: str = "0%"
    recent_activity: int = 0
    points_earned: int = 0
    level: int = 1


class GuideSearchResult(BaseModel):
    category: str
    waste_type: str
    bin_color: str
    items: List[str]
    matching_items: List[str]
    disposal_instructions: str
    tips: List[str] = Field(default_factory=list)
    warning: Optional[str] = None
    recycling_benefit: Optional[str] = None
    special_instructions: Optional[str] = None
    decomposition_time: Optional[str] = None


class WasteSearchResponse(BaseModel):
    query: str
    results: List[GuideSearchResult] = Field(default_factory=list)
