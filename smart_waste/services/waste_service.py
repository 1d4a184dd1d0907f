from datetime import timedelta
from typing import List, Tuple

from fastapi import Depends
from sqlalchemy import case, desc, func, select
from sqlalchemy.orm import Session

from smart_waste.data.waste_guide import get_waste_info, search_waste_items
from smart_waste.db.models import (
    BinColor,
    ClassifiedWasteType,
    User,
    WasteCategory,
    WasteRecord,
)
from smart_waste.db.session import get_sync_session
from smart_waste.middlewares.auth_middleware import AuthState
from smart_waste.schemas.waste_schemas import (
    CategoryCount,
    ClassificationFeedbackRequest,
    ClassificationResponse,
    ClassifyWasteRequest,
    GuideSearchResult,
    WasteRecordResponse,
    WasteSearchResponse,
    WasteStatsResponse,
)
from smart_waste.utils.datetime_utils import naive_utc_now
from smart_waste.utils.errors import AuthorizationError, NotFoundError, ValidationError
from smart_waste.utils.logging import get_logger
from smart_waste.utils.number_utils import round_half_up

logger = get_logger()

# Keyword lookups carry a fixed confidence
LOOKUP_CONFIDENCE = 0.85
RECENT_ACTIVITY_DAYS = 7


class WasteService:
    """Waste classification records backed by the static guide"""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def classify(
        self, user_id: str, request: ClassifyWasteRequest
    ) -> ClassificationResponse:
        guide = get_waste_info(request.waste_type)

        record = WasteRecord(
            user_id=user_id,
            waste_type=ClassifiedWasteType(guide["waste_type"]),
            category=WasteCategory(guide["category"]),
            image_url=request.image_url,
            confidence=LOOKUP_CONFIDENCE,
            properly_segregated=True,
            disposal_instructions=guide["disposal_instructions"],
            bin_color=BinColor(guide["bin_color"]),
            weight_amount=request.weight.amount if request.weight else None,
            weight_unit=request.weight.unit if request.weight else None,
            latitude=request.latitude,
            longitude=request.longitude,
            location_address=request.location_address,
            classified_at=naive_utc_now(),
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.info(
            f"Classified '{request.waste_type}' as {record.waste_type.value} for user {user_id}"
        )
        return ClassificationResponse(
            id=record.id,
            waste_type=record.waste_type,
            category=record.category,
            bin_color=record.bin_color,
            disposal_instructions=record.disposal_instructions,
            confidence=record.confidence,
            tips=guide.get("tips", []),
            warning=guide.get("warning"),
            recycling_benefit=guide.get("recycling_benefit"),
        )

    async def get_history(
        self, user_id: str, page: int = 1, limit: int = 10
    ) -> Tuple[List[WasteRecordResponse], int]:
        total = self.db.execute(
            select(func.count(WasteRecord.id)).where(WasteRecord.user_id == user_id)
        ).scalar_one()
        records = (
            self.db.execute(
                select(WasteRecord)
                .where(WasteRecord.user_id == user_id)
                .order_by(desc(WasteRecord.classified_at))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [WasteRecordResponse.model_validate(r) for r in records], total

    async def get_stats(self, current_user: AuthState) -> WasteStatsResponse:
        """Classification stats for the caller, or across all users for admins"""
        scope = [] if current_user.is_admin else [WasteRecord.user_id == current_user.user_id]

        total, segregated = self.db.execute(
            select(
                func.count(WasteRecord.id),
                func.coalesce(
                    func.sum(case((WasteRecord.properly_segregated.is_(True), 1), else_=0)),
                    0,
                ),
            ).where(*scope)
        ).one()

        breakdown = [
            CategoryCount(category=category.value, count=count)
            for category, count in self.db.execute(
                select(WasteRecord.category, func.count(WasteRecord.id))
                .where(*scope)
                .group_by(WasteRecord.category)
                .order_by(desc(func.count(WasteRecord.id)))
            ).all()
        ]

        since = naive_utc_now() - timedelta(days=RECENT_ACTIVITY_DAYS)
        recent = self.db.execute(
            select(func.count(WasteRecord.id)).where(
                *scope, WasteRecord.classified_at >= since
            )
        ).scalar_one()

        user = self.db.get(User, current_user.user_id)
        rate = round_half_up(int(segregated) / total * 100) if total else 0

        return WasteStatsResponse(
            total_classifications=total,
            category_breakdown=breakdown,
            segregation_rate=f"{rate}%",
            recent_activity=recent,
            points_earned=user.points if user else 0,
            level=user.level if user else 1,
        )

    async def search(self, query: str) -> WasteSearchResponse:
        if not query or not query.strip():
            raise ValidationError("Search query is required", "SEARCH_QUERY_REQUIRED")
        query = query.strip()
        return WasteSearchResponse(
            query=query,
            results=[GuideSearchResult(**entry) for entry in search_waste_items(query)],
        )

    async def _get_owned(self, user_id: str, record_id: str) -> WasteRecord:
        record = self.db.get(WasteRecord, record_id)
        if not record:
            raise NotFoundError("Waste record not found", "WASTE_RECORD_NOT_FOUND")
        if record.user_id != user_id:
            raise AuthorizationError(
                "Not authorized to modify this record", "NOT_RECORD_OWNER"
            )
        return record

    async def submit_feedback(
        self, user_id: str, record_id: str, request: ClassificationFeedbackRequest
    ) -> WasteRecordResponse:
        record = await self._get_owned(user_id, record_id)
        record.feedback_is_correct = request.is_correct
        record.feedback_actual_type = request.actual_type
        record.feedback_comments = request.comments
        self.db.commit()
        self.db.refresh(record)
        return WasteRecordResponse.model_validate(record)

    async def delete_record(self, user_id: str, record_id: str) -> None:
        record = await self._get_owned(user_id, record_id)
        self.db.delete(record)
        self.db.commit()
        logger.info(f"Deleted waste record {record_id}")


def get_waste_service(db: Session = Depends(get_sync_session)) -> WasteService:
    return WasteService(db)
