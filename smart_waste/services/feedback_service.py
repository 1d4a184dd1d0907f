from typing import List, Optional, Tuple, Union

from fastapi import Depends
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from smart_waste.db.models import (
    Feedback,
    FeedbackStatus,
    FeedbackType,
    Pickup,
    Priority,
)
from smart_waste.db.session import get_sync_session
from smart_waste.middlewares.auth_middleware import AuthState
from smart_waste.schemas.feedback_schemas import (
    AdminFeedbackResponse,
    FeedbackResponse,
    FeedbackStatsResponse,
    RateFeedbackRequest,
    RespondFeedbackRequest,
    SubmitFeedbackRequest,
)
from smart_waste.services.notifications import notification_events
from smart_waste.utils.datetime_utils import naive_utc_now
from smart_waste.utils.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
)
from smart_waste.utils.logging import get_logger
from smart_waste.utils.number_utils import round_half_up

logger = get_logger()


class FeedbackService:
    """Citizen feedback and the admin response workflow"""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def _get_feedback(self, feedback_id: str) -> Feedback:
        feedback = self.db.get(Feedback, feedback_id)
        if not feedback:
            raise NotFoundError("Feedback not found", "FEEDBACK_NOT_FOUND")
        return feedback

    async def submit(
        self, user_id: str, request: SubmitFeedbackRequest
    ) -> FeedbackResponse:
        related_pickup_id = None
        if request.related_pickup_id:
            # Only keep the link when the pickup belongs to the submitter
            pickup = self.db.get(Pickup, request.related_pickup_id)
            if pickup and pickup.user_id == user_id:
                related_pickup_id = pickup.id

        feedback = Feedback(
            user_id=user_id,
            type=request.type,
            subject=request.subject.strip(),
            description=request.description.strip(),
            priority=request.priority,
            related_pickup_id=related_pickup_id,
            contact_method=request.contact_method,
            status=FeedbackStatus.PENDING,
        )
        self.db.add(feedback)
        self.db.commit()
        self.db.refresh(feedback)

        logger.info(f"User {user_id} submitted {feedback.type.value} {feedback.id}")
        return FeedbackResponse.model_validate(feedback)

    async def _list(
        self, conditions: list, page: int, limit: int
    ) -> Tuple[List[Feedback], int]:
        total = self.db.execute(
            select(func.count(Feedback.id)).where(*conditions)
        ).scalar_one()
        feedbacks = (
            self.db.execute(
                select(Feedback)
                .where(*conditions)
                .order_by(desc(Feedback.created_at))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return list(feedbacks), total

    async def get_my_feedback(
        self,
        user_id: str,
        status: Optional[FeedbackStatus] = None,
        feedback_type: Optional[FeedbackType] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[FeedbackResponse], int]:
        conditions = [Feedback.user_id == user_id]
        if status:
            conditions.append(Feedback.status == status)
        if feedback_type:
            conditions.append(Feedback.type == feedback_type)

        feedbacks, total = await self._list(conditions, page, limit)
        return [FeedbackResponse.model_validate(f) for f in feedbacks], total

    async def get_all_feedback(
        self,
        status: Optional[FeedbackStatus] = None,
        feedback_type: Optional[FeedbackType] = None,
        priority: Optional[Priority] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[AdminFeedbackResponse], int]:
        conditions = []
        if status:
            conditions.append(Feedback.status == status)
        if feedback_type:
            conditions.append(Feedback.type == feedback_type)
        if priority:
            conditions.append(Feedback.priority == priority)

        feedbacks, total = await self._list(conditions, page, limit)
        return [AdminFeedbackResponse.model_validate(f) for f in feedbacks], total

    async def get_feedback(
        self, current_user: AuthState, feedback_id: str
    ) -> Union[FeedbackResponse, AdminFeedbackResponse]:
        feedback = await self._get_feedback(feedback_id)
        if current_user.is_admin:
            return AdminFeedbackResponse.model_validate(feedback)
        if feedback.user_id != current_user.user_id:
            raise AuthorizationError(
                "Not authorized to view this feedback", "NOT_FEEDBACK_OWNER"
            )
        return FeedbackResponse.model_validate(feedback)

    async def rate_response(
        self, user_id: str, feedback_id: str, request: RateFeedbackRequest
    ) -> FeedbackResponse:
        feedback = await self._get_feedback(feedback_id)
        if feedback.user_id != user_id:
            raise AuthorizationError(
                "Not authorized to rate this feedback", "NOT_FEEDBACK_OWNER"
            )
        if not feedback.response:
            raise InvalidStateError(
                "Cannot rate feedback without a response", "FEEDBACK_NOT_RESPONDED"
            )

        feedback.rating = request.rating
        feedback.rating_comment = request.comment
        self.db.commit()
        self.db.refresh(feedback)
        return FeedbackResponse.model_validate(feedback)

    async def respond(
        self, feedback_id: str, request: RespondFeedbackRequest, admin: AuthState
    ) -> AdminFeedbackResponse:
        """
        Record an admin response.

        Without an explicit status, pending feedback moves to in_review and
        anything further along keeps its status.
        """
        feedback = await self._get_feedback(feedback_id)

        feedback.response = request.response
        feedback.responded_by = admin.user_id
        feedback.responded_at = naive_utc_now()
        if request.status:
            feedback.status = request.status
        elif feedback.status == FeedbackStatus.PENDING:
            feedback.status = FeedbackStatus.IN_REVIEW
        if request.internal_notes is not None:
            feedback.internal_notes = request.internal_notes
        self.db.commit()
        self.db.refresh(feedback)
        logger.info(f"Admin {admin.user_id} responded to feedback {feedback.id}")

        try:
            notification_events.notify_feedback_response(self.db, feedback)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Feedback response notification failed for {feedback.id}: {e}")

        return AdminFeedbackResponse.model_validate(feedback)

    async def get_stats(self, current_user: AuthState) -> FeedbackStatsResponse:
        scope = [] if current_user.is_admin else [Feedback.user_id == current_user.user_id]

        by_status = {
            status.value: count
            for status, count in self.db.execute(
                select(Feedback.status, func.count(Feedback.id))
                .where(*scope)
                .group_by(Feedback.status)
            ).all()
        }
        by_type = {
            feedback_type.value: count
            for feedback_type, count in self.db.execute(
                select(Feedback.type, func.count(Feedback.id))
                .where(*scope)
                .group_by(Feedback.type)
            ).all()
        }

        response_times = [
            (responded_at - created_at).total_seconds() / 3600
            for created_at, responded_at in self.db.execute(
                select(Feedback.created_at, Feedback.responded_at).where(
                    *scope, Feedback.responded_at.is_not(None)
                )
            ).all()
        ]
        avg_hours = (
            round_half_up(sum(response_times) / len(response_times)) if response_times else 0
        )

        return FeedbackStatsResponse(
            total=sum(by_status.values()),
            by_status=by_status,
            by_type=by_type,
            avg_response_time=avg_hours,
        )


def get_feedback_service(db: Session = Depends(get_sync_session)) -> FeedbackService:
    return FeedbackService(db)
