from typing import List, Optional
from datetime import datetime
import uuid
from sqlalchemy import (
    String,
    Boolean,
    Integer,
    Float,
    Text,
    ForeignKey,
    Enum,
    Index,
    UniqueConstraint,
    CheckConstraint,
    DateTime,
    event,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
    validates,
)
import enum

from smart_waste.utils.datetime_utils import naive_utc_now
from smart_waste.utils.string_utils import random_code


class Base(DeclarativeBase):
    pass


def _uuid() -> str:
    return str(uuid.uuid4())


# Enums
class UserType(enum.Enum):
    CITIZEN = "citizen"
    INDUSTRY = "industry"
    PICKUP_AGENT = "pickup_agent"
    ADMIN = "admin"


class IndustryType(enum.Enum):
    MANUFACTURING = "Manufacturing"
    CHEMICAL = "Chemical"
    TEXTILE = "Textile"
    PHARMACEUTICAL = "Pharmaceutical"
    FOOD_PROCESSING = "Food Processing"
    ELECTRONICS = "Electronics"
    OTHER = "Other"


class PickupWasteType(enum.Enum):
    BIODEGRADABLE = "biodegradable"
    RECYCLABLE = "recyclable"
    E_WASTE = "e-waste"
    HAZARDOUS = "hazardous"


class TimeSlot(enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class PickupStatus(enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CancelledBy(enum.Enum):
    USER = "user"
    COLLECTOR = "collector"
    ADMIN = "admin"


class ClassifiedWasteType(enum.Enum):
    BIODEGRADABLE = "Biodegradable"
    RECYCLABLE_PLASTIC = "Recyclable - Plastic"
    RECYCLABLE_PAPER = "Recyclable - Paper"
    RECYCLABLE_GLASS = "Recyclable - Glass"
    RECYCLABLE_METAL = "Recyclable - Metal"
    E_WASTE = "E-waste"
    HAZARDOUS = "Hazardous"
    OTHER = "Other"


class WasteCategory(enum.Enum):
    BIODEGRADABLE = "Biodegradable"
    RECYCLABLE = "Recyclable"
    E_WASTE = "E-waste"
    HAZARDOUS = "Hazardous"


class BinColor(enum.Enum):
    GREEN = "Green"
    BLUE = "Blue"
    YELLOW = "Yellow"
    RED = "Red"


class WeightUnit(enum.Enum):
    KG = "kg"
    GRAMS = "grams"
    PIECES = "pieces"


class DeclarationCategory(enum.Enum):
    BIODEGRADABLE = "Biodegradable"
    RECYCLABLE = "Recyclable"
    E_WASTE = "E-waste"
    HAZARDOUS = "Hazardous"
    CHEMICAL = "Chemical"
    METAL_SCRAP = "Metal Scrap"
    PLASTIC_WASTE = "Plastic Waste"
    OTHER = "Other"


class QuantityUnit(enum.Enum):
    KG = "kg"
    TONS = "tons"


class DeclarationDisposalMethod(enum.Enum):
    RECYCLING = "Recycling"
    INCINERATION = "Incineration"
    LANDFILL = "Landfill"
    TREATMENT = "Treatment"
    OTHER = "Other"


class DocumentType(enum.Enum):
    MANIFEST = "Manifest"
    CERTIFICATE = "Certificate"
    REPORT = "Report"
    OTHER = "Other"


class DeclarationStatus(enum.Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ManifestWasteType(enum.Enum):
    HAZARDOUS = "Hazardous"
    NON_HAZARDOUS = "Non-Hazardous"
    E_WASTE = "E-Waste"
    BIOMEDICAL = "Biomedical"
    PLASTIC = "Plastic"
    METAL = "Metal"
    CHEMICAL = "Chemical"
    OTHER = "Other"


class HazardLevel(enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    EXTREME = "Extreme"


class TrackingStatus(enum.Enum):
    SCHEDULED = "Scheduled"
    COLLECTED = "Collected"
    IN_TRANSIT = "In Transit"
    AT_FACILITY = "At Facility"
    DISPOSED = "Disposed"
    CANCELLED = "Cancelled"


class TrackingDisposalMethod(enum.Enum):
    RECYCLING = "Recycling"
    INCINERATION = "Incineration"
    LANDFILL = "Landfill"
    TREATMENT = "Treatment"
    COMPOSTING = "Composting"
    OTHER = "Other"


class FeedbackType(enum.Enum):
    COMPLAINT = "complaint"
    SUGGESTION = "suggestion"
    PRAISE = "praise"
    QUERY = "query"


class Priority(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FeedbackStatus(enum.Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ContactMethod(enum.Enum):
    EMAIL = "email"
    PHONE = "phone"
    APP = "app"


class FeedbackRating(enum.Enum):
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"


class NotificationType(enum.Enum):
    PICKUP_SCHEDULED = "pickup_scheduled"
    PICKUP_CONFIRMED = "pickup_confirmed"
    PICKUP_IN_PROGRESS = "pickup_in_progress"
    PICKUP_COMPLETED = "pickup_completed"
    PICKUP_CANCELLED = "pickup_cancelled"
    PICKUP_REMINDER = "pickup_reminder"
    BADGE_EARNED = "badge_earned"
    LEVEL_UP = "level_up"
    REWARD_AVAILABLE = "reward_available"
    POINTS_EARNED = "points_earned"
    FEEDBACK_RESPONSE = "feedback_response"
    SYSTEM_UPDATE = "system_update"
    REMINDER = "reminder"
    ALERT = "alert"


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, onupdate=naive_utc_now
    )


# Models
class User(Base, AuditMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType), default=UserType.CITIZEN, nullable=False
    )
    phone: Mapped[Optional[str]] = mapped_column(String(10))

    # Address
    street: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    pincode: Mapped[Optional[str]] = mapped_column(String(10))
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)

    # Industry profile
    company_name: Mapped[Optional[str]] = mapped_column(String(200))
    industry_type: Mapped[Optional[IndustryType]] = mapped_column(Enum(IndustryType))
    waste_generation_capacity: Mapped[Optional[float]] = mapped_column(Float)

    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reset_password_token: Mapped[Optional[str]] = mapped_column(String(64))
    reset_password_expire: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Relationships
    pickups: Mapped[List["Pickup"]] = relationship(
        back_populates="user", foreign_keys="Pickup.user_id"
    )
    point_transactions: Mapped[List["PointTransaction"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value else value

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        Index("idx_users_type_points", "user_type", "points"),
        Index("idx_users_reset_token", "reset_password_token"),
    )


class PointTransaction(Base, AuditMixin):
    __tablename__ = "point_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    pickup_id: Mapped[Optional[str]] = mapped_column(ForeignKey("pickups.id"))
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped["User"] = relationship(back_populates="point_transactions")

    __table_args__ = (
        Index("idx_point_tx_user_created", "user_id", "created_at"),
    )


class Pickup(Base, AuditMixin):
    __tablename__ = "pickups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    waste_type: Mapped[PickupWasteType] = mapped_column(
        Enum(PickupWasteType), nullable=False
    )
    pickup_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    time_slot: Mapped[TimeSlot] = mapped_column(Enum(TimeSlot), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    estimated_weight: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(20))
    special_instructions: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[PickupStatus] = mapped_column(
        Enum(PickupStatus), default=PickupStatus.SCHEDULED, nullable=False
    )
    assigned_collector_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id")
    )
    actual_weight: Mapped[Optional[float]] = mapped_column(Float)
    actual_pickup_time: Mapped[Optional[datetime]] = mapped_column(DateTime)
    verification_code: Mapped[str] = mapped_column(
        String(6), default=random_code, nullable=False
    )
    rating: Mapped[Optional[int]] = mapped_column(Integer)
    feedback: Mapped[Optional[str]] = mapped_column(Text)
    points_awarded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500))
    cancelled_by: Mapped[Optional[CancelledBy]] = mapped_column(Enum(CancelledBy))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    user: Mapped["User"] = relationship(
        back_populates="pickups", foreign_keys=[user_id]
    )
    assigned_collector: Mapped[Optional["User"]] = relationship(
        foreign_keys=[assigned_collector_id]
    )
    tracking: Mapped[Optional["WasteTracking"]] = relationship(
        back_populates="pickup", uselist=False
    )

    @validates("verification_code")
    def _freeze_verification_code(self, key, value):
        if self.verification_code is not None and value != self.verification_code:
            raise ValueError("Verification code cannot be changed once assigned")
        return value

    __table_args__ = (
        CheckConstraint("estimated_weight >= 0", name="ck_pickups_estimated_weight"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_pickups_rating_range",
        ),
        Index("idx_pickups_user_status", "user_id", "status"),
        Index("idx_pickups_pickup_date", "pickup_date"),
    )


class WasteRecord(Base, AuditMixin):
    __tablename__ = "waste_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    waste_type: Mapped[ClassifiedWasteType] = mapped_column(
        Enum(ClassifiedWasteType), nullable=False
    )
    category: Mapped[WasteCategory] = mapped_column(
        Enum(WasteCategory), nullable=False
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(1000))
    confidence: Mapped[Optional[float]] = mapped_column(Float)
    properly_segregated: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    disposal_instructions: Mapped[Optional[str]] = mapped_column(Text)
    bin_color: Mapped[Optional[BinColor]] = mapped_column(Enum(BinColor))
    weight_amount: Mapped[Optional[float]] = mapped_column(Float)
    weight_unit: Mapped[Optional[WeightUnit]] = mapped_column(Enum(WeightUnit))
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    location_address: Mapped[Optional[str]] = mapped_column(String(500))
    feedback_is_correct: Mapped[Optional[bool]] = mapped_column(Boolean)
    feedback_actual_type: Mapped[Optional[str]] = mapped_column(String(100))
    feedback_comments: Mapped[Optional[str]] = mapped_column(Text)
    classified_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "confidence IS NULL OR (confidence >= 0 AND confidence <= 1)",
            name="ck_waste_records_confidence",
        ),
        Index("idx_waste_records_user_classified", "user_id", "classified_at"),
    )


class IndustryWasteCategory(Base):
    __tablename__ = "industry_waste_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    declaration_id: Mapped[str] = mapped_column(
        ForeignKey("industry_waste_declarations.id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[DeclarationCategory] = mapped_column(
        Enum(DeclarationCategory), nullable=False
    )
    quantity_amount: Mapped[float] = mapped_column(Float, nullable=False)
    quantity_unit: Mapped[QuantityUnit] = mapped_column(
        Enum(QuantityUnit), default=QuantityUnit.TONS, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text)
    disposal_method: Mapped[Optional[DeclarationDisposalMethod]] = mapped_column(
        Enum(DeclarationDisposalMethod)
    )

    declaration: Mapped["IndustryWaste"] = relationship(back_populates="categories")

    __table_args__ = (
        CheckConstraint("quantity_amount >= 0", name="ck_iw_categories_quantity"),
    )


class IndustryWasteDocument(Base):
    __tablename__ = "industry_waste_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    declaration_id: Mapped[str] = mapped_column(
        ForeignKey("industry_waste_declarations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(1000), nullable=False)
    type: Mapped[DocumentType] = mapped_column(
        Enum(DocumentType), default=DocumentType.OTHER, nullable=False
    )
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )

    declaration: Mapped["IndustryWaste"] = relationship(back_populates="documents")


class IndustryWaste(Base, AuditMixin):
    __tablename__ = "industry_waste_declarations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    industry_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    total_waste_amount: Mapped[Optional[float]] = mapped_column(Float)
    total_waste_unit: Mapped[str] = mapped_column(
        String(10), default="tons", nullable=False
    )
    tracking_id: Mapped[Optional[str]] = mapped_column(String(20), unique=True)
    status: Mapped[DeclarationStatus] = mapped_column(
        Enum(DeclarationStatus), default=DeclarationStatus.DRAFT, nullable=False
    )

    # Compliance
    is_pollution_cert_valid: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    certificate_number: Mapped[Optional[str]] = mapped_column(String(100))
    certificate_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime)
    is_properly_segregated: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    linked_pickup_id: Mapped[Optional[str]] = mapped_column(ForeignKey("pickups.id"))

    # Review
    reviewed_by: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"))
    review_notes: Mapped[Optional[str]] = mapped_column(Text)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    industry: Mapped["User"] = relationship(foreign_keys=[industry_id])
    categories: Mapped[List["IndustryWasteCategory"]] = relationship(
        back_populates="declaration",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    documents: Mapped[List["IndustryWasteDocument"]] = relationship(
        back_populates="declaration",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint(
            "industry_id",
            "period_month",
            "period_year",
            name="uq_iw_industry_period",
        ),
        CheckConstraint(
            "period_month >= 1 AND period_month <= 12", name="ck_iw_period_month"
        ),
        Index("idx_iw_industry_status", "industry_id", "status"),
    )


def total_in_tons(categories: List["IndustryWasteCategory"]) -> float:
    """Sum category quantities in tons, rounded to 2 decimals."""
    total = 0.0
    for category in categories:
        amount = category.quantity_amount or 0
        if category.quantity_unit == QuantityUnit.KG:
            amount = amount / 1000
        total += amount
    return round(total, 2)


@event.listens_for(IndustryWaste, "before_insert")
@event.listens_for(IndustryWaste, "before_update")
def _prepare_declaration(mapper, connection, target: IndustryWaste):
    if not target.tracking_id:
        now = naive_utc_now()
        target.tracking_id = f"IW{now.year}{now.month:02d}-{random_code(6)}"
    if target.total_waste_amount is None:
        target.total_waste_amount = total_in_tons(target.categories)
        target.total_waste_unit = "tons"


class WasteTrackingStatusHistory(Base):
    __tablename__ = "waste_tracking_status_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tracking_id: Mapped[str] = mapped_column(
        ForeignKey("waste_trackings.id", ondelete="CASCADE"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TrackingStatus] = mapped_column(
        Enum(TrackingStatus), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    # Display name of the actor, not a user reference
    updated_by: Mapped[Optional[str]] = mapped_column(String(200))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    location_lat: Mapped[Optional[float]] = mapped_column(Float)
    location_lng: Mapped[Optional[float]] = mapped_column(Float)
    location_address: Mapped[Optional[str]] = mapped_column(String(500))

    tracking: Mapped["WasteTracking"] = relationship(back_populates="status_history")

    __table_args__ = (
        UniqueConstraint("tracking_id", "sequence", name="uq_wt_history_sequence"),
        Index("idx_wt_history_tracking_ts", "tracking_id", "timestamp"),
    )


class WasteTracking(Base, AuditMixin):
    __tablename__ = "waste_trackings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tracking_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    industry_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    industry_name: Mapped[str] = mapped_column(String(200), nullable=False)
    pickup_id: Mapped[str] = mapped_column(
        ForeignKey("pickups.id"), unique=True, nullable=False
    )

    # Manifest
    manifest_waste_type: Mapped[ManifestWasteType] = mapped_column(
        Enum(ManifestWasteType), nullable=False
    )
    manifest_quantity_amount: Mapped[float] = mapped_column(
        Float, default=0, nullable=False
    )
    manifest_quantity_unit: Mapped[str] = mapped_column(
        String(10), default="tons", nullable=False
    )
    manifest_description: Mapped[Optional[str]] = mapped_column(Text)
    manifest_hazard_level: Mapped[HazardLevel] = mapped_column(
        Enum(HazardLevel), default=HazardLevel.LOW, nullable=False
    )

    # Collection
    collection_scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    collection_collected_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    collection_collector_name: Mapped[Optional[str]] = mapped_column(String(100))
    collection_vehicle_number: Mapped[Optional[str]] = mapped_column(String(50))
    collection_notes: Mapped[Optional[str]] = mapped_column(Text)

    # Disposal
    disposal_facility_name: Mapped[Optional[str]] = mapped_column(String(200))
    disposal_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    disposal_method: Mapped[Optional[TrackingDisposalMethod]] = mapped_column(
        Enum(TrackingDisposalMethod)
    )
    disposal_certificate_url: Mapped[Optional[str]] = mapped_column(String(1000))

    # Compliance
    compliance_is_compliant: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    compliance_certification_required: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    compliance_certification_issued: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    status: Mapped[TrackingStatus] = mapped_column(
        Enum(TrackingStatus), default=TrackingStatus.SCHEDULED, nullable=False
    )

    pickup: Mapped["Pickup"] = relationship(back_populates="tracking")
    industry: Mapped["User"] = relationship(foreign_keys=[industry_id])
    status_history: Mapped[List["WasteTrackingStatusHistory"]] = relationship(
        back_populates="tracking",
        cascade="all, delete-orphan",
        order_by=[
            WasteTrackingStatusHistory.timestamp,
            WasteTrackingStatusHistory.sequence,
        ],
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_wt_industry_created", "industry_id", "created_at"),
        Index("idx_wt_status", "status"),
    )


class Feedback(Base, AuditMixin):
    __tablename__ = "feedbacks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[FeedbackType] = mapped_column(Enum(FeedbackType), nullable=False)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority), default=Priority.MEDIUM, nullable=False
    )
    status: Mapped[FeedbackStatus] = mapped_column(
        Enum(FeedbackStatus), default=FeedbackStatus.PENDING, nullable=False
    )
    related_pickup_id: Mapped[Optional[str]] = mapped_column(ForeignKey("pickups.id"))
    contact_method: Mapped[ContactMethod] = mapped_column(
        Enum(ContactMethod), default=ContactMethod.APP, nullable=False
    )
    response: Mapped[Optional[str]] = mapped_column(Text)
    responded_by: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"))
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    rating: Mapped[Optional[FeedbackRating]] = mapped_column(Enum(FeedbackRating))
    rating_comment: Mapped[Optional[str]] = mapped_column(Text)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text)

    @validates("status")
    def _stamp_status_dates(self, key, value):
        if value == FeedbackStatus.RESOLVED and self.resolved_at is None:
            self.resolved_at = naive_utc_now()
        if value == FeedbackStatus.CLOSED and self.closed_at is None:
            self.closed_at = naive_utc_now()
        return value

    __table_args__ = (
        Index("idx_feedbacks_user_created", "user_id", "created_at"),
        Index("idx_feedbacks_status_priority", "status", "priority"),
    )


class Notification(Base, AuditMixin):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType), nullable=False
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    icon: Mapped[str] = mapped_column(String(20), default="bell", nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#667eea", nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    related_pickup_id: Mapped[Optional[str]] = mapped_column(ForeignKey("pickups.id"))
    related_feedback_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("feedbacks.id")
    )
    action_url: Mapped[Optional[str]] = mapped_column(String(255))
    action_label: Mapped[Optional[str]] = mapped_column(String(100))
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority), default=Priority.MEDIUM, nullable=False
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("idx_notifications_user_read_created", "user_id", "read", "created_at"),
        Index("idx_notifications_expires_at", "expires_at"),
    )
