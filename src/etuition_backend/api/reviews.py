'''
API endpoints for tutor reviews.
'''
from typing import Annotated
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import application as application_models
from ..models import review as review_models
from ..services.security import verify_token_and_get_user
from ..services.review_service import ReviewService


class ReviewsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/reviews",
            tags=["Reviews"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "",
                self.create_review,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=application_models.InsertedId)
        self.router.add_api_route(
                "/tutor/{tutor_id}",
                self.list_reviews,
                methods=["GET"],
                response_model=list[review_models.ReviewRead])

    async def create_review(
        self,
        review_data: review_models.ReviewCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        review_service: Annotated[ReviewService, Depends(ReviewService)]
    ):
        """
        Reviews a tutor. Restricted to students; updates the tutor's rating.
        """
        review = await review_service.record_review(review_data, current_user)
        return application_models.InsertedId(inserted_id=review.id)

    async def list_reviews(
        self,
        tutor_id: UUID,
        review_service: Annotated[ReviewService, Depends(ReviewService)]
    ):
        return await review_service.list_reviews(tutor_id)


reviews_api = ReviewsAPI()
router = reviews_api.router
