'''

'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.ratings import aggregate_ratings
from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..common.logger import log
from ..models import review as review_models
from .security import authorize_roles
from .tutor_service import TutorService


class ReviewService:
    """Service for tutor reviews and the derived tutor rating."""

    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        tutor_service: Annotated[TutorService, Depends(TutorService)]
    ):
        self.db = db
        self.tutor_service = tutor_service

    async def record_review(self, review_data: review_models.ReviewCreate, current_user: db_models.Users) -> db_models.Reviews:
        """
        Stores a review and recomputes the tutor's rating and review count
        from all of their reviews.
        """
        authorize_roles(current_user, [UserRole.STUDENT])
        # the tutor row lock serializes concurrent reviews, so each recompute sees every committed review
        tutor = await self.tutor_service.get_tutor(review_data.tutor_id, for_update=True)

        log.info(f"Student {current_user.email} reviewing tutor {tutor.id} with rating {review_data.rating}.")
        review = db_models.Reviews(
            tutor_id=tutor.id,
            student_email=current_user.email,
            rating=review_data.rating,
            comment=review_data.comment,
        )
        self.db.add(review)
        await self.db.flush()

        # full scan of the tutor's reviews on every write
        result = await self.db.execute(
            select(db_models.Reviews.rating).filter(db_models.Reviews.tutor_id == tutor.id)
        )
        tutor.rating, tutor.review_count = aggregate_ratings(result.scalars().all())
        self.db.add(tutor)
        await self.db.flush()
        log.info(f"Tutor {tutor.id} rating is now {tutor.rating} over {tutor.review_count} review(s).")
        return review

    async def list_reviews(self, tutor_id: UUID) -> list[db_models.Reviews]:
        await self.tutor_service.get_tutor(tutor_id)
        stmt = select(db_models.Reviews).filter(
            db_models.Reviews.tutor_id == tutor_id
        ).order_by(db_models.Reviews.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
