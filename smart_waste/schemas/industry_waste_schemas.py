from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from smart_waste.db.models import (
    DeclarationCategory,
    DeclarationDisposalMethod,
    DeclarationStatus,
    DocumentType,
    IndustryWaste,
    QuantityUnit,
)
from .camel_base_model import CamelCaseBaseModel as BaseModel


class DeclarationPeriod(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class Quantity(BaseModel):
    amount: float = Field(..., ge=0)
    unit: QuantityUnit = QuantityUnit.TONS


class WasteCategoryEntry(BaseModel):
    category: DeclarationCategory
    quantity: Quantity
    description: Optional[str] = Field(None, max_length=1000)
    disposal_method: Optional[DeclarationDisposalMethod] = None


class ComplianceInfo(BaseModel):
    is_pollution_cert_valid: bool = False
    certificate_number: Optional[str] = Field(None, max_length=100)
    certificate_expiry: Optional[datetime] = None
    is_properly_segregated: bool = False


class DeclarationDocument(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=1000)
    type: DocumentType = DocumentType.OTHER
    uploaded_at: Optional[datetime] = None


class SubmitDeclarationRequest(BaseModel):
    """Request schema for a monthly waste declaration"""

    declaration_period: DeclarationPeriod
    waste_categories: List[WasteCategoryEntry] = Field(..., min_length=1)
    compliance: Optional[ComplianceInfo] = None
    documents: List[DeclarationDocument] = Field(default_factory=list)
    total_waste_generated: Optional[Quantity] = Field(
        None, description="Explicit total; derived from the categories when omitted"
    )
    linked_pickup_id: Optional[str] = None
    save_as_draft: bool = False


class ReviewDeclarationRequest(BaseModel):
    status: DeclarationStatus = Field(
        ..., description="Under Review, Approved or Rejected"
    )
    review_notes: Optional[str] = Field(None, max_length=2000)


class DeclarationResponse(BaseModel):
    """Response schema for declaration data"""

    id: str
    industry_id: str
    tracking_id: Optional[str] = None
    declaration_period: DeclarationPeriod
    waste_categories: List[WasteCategoryEntry] = Field(default_factory=list)
    total_waste_generated: Quantity
    status: DeclarationStatus
    compliance: ComplianceInfo
    documents: List[DeclarationDocument] = Field(default_factory=list)
    linked_pickup_id: Optional[str] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_declaration(cls, declaration: IndustryWaste) -> "DeclarationResponse":
        return cls(
            id=declaration.id,
            industry_id=declaration.industry_id,
            tracking_id=declaration.tracking_id,
            declaration_period=DeclarationPeriod(
                month=declaration.period_month, year=declaration.period_year
            ),
            waste_categories=[
                WasteCategoryEntry(
                    category=entry.category,
                    quantity=Quantity(
                        amount=entry.quantity_amount, unit=entry.quantity_unit
                    ),
                    description=entry.description,
                    disposal_method=entry.disposal_method,
                )
                for entry in declaration.categories
            ],
            total_waste_generated=Quantity(
                amount=declaration.total_waste_amount or 0,
                unit=QuantityUnit(declaration.total_waste_unit or "tons"),
            ),
            status=declaration.status,
            compliance=ComplianceInfo(
                is_pollution_cert_valid=declaration.is_pollution_cert_valid,
                certificate_number=declaration.certificate_number,
                certificate_expiry=declaration.certificate_expiry,
                is_properly_segregated=declaration.is_properly_segregated,
            ),
            documents=[
                DeclarationDocument(
                    name=document.name,
                    url=document.url,
                    type=document.type,
                    uploaded_at=document.uploaded_at,
                )
                for document in declaration.documents
            ],
            linked_pickup_id=declaration.linked_pickup_id,
            reviewed_by=declaration.reviewed_by,
            review_notes=declaration.review_notes,
            reviewed_at=declaration.reviewed_at,
            submitted_at=declaration.submitted_at,
            approved_at=declaration.approved_at,
            created_at=declaration.created_at,
            updated_at=declaration.updated_at,
        )


class IndustrySummary(BaseModel):
    company_name: Optional[str] = None
    industry_type: Optional[str] = None


class TrackedDeclarationResponse(DeclarationResponse):
    """Public tracking view, with the declaring industry's public details"""

    industry: Optional[IndustrySummary] = None


class CategoryTotal(BaseModel):
    category: str
    total_quantity: float


class DeclarationStatsResponse(BaseModel):
    total_declarations: int = 0
    status_breakdown: Dict[str, int] = Field(default_factory=dict)
    total_waste_this_year: float = 0
    category_breakdown: List[CategoryTotal] = Field(default_factory=list)
    pending_approvals: int = 0


class CertificateResponse(BaseModel):
    """Structured compliance certificate payload, rendered client-side"""

    tracking_id: str
    company_name: Optional[str] = None
    industry_type: Optional[str] = None
    declaration_period: DeclarationPeriod
    total_waste: Quantity
    waste_categories: List[WasteCategoryEntry] = Field(default_factory=list)
    compliance: ComplianceInfo
    approved_at: Optional[datetime] = None
    generated_at: datetime
