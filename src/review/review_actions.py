from typing import List, Optional

from pymongo.database import Database

from logger import logger
from config.config import settings
from account.account_model import Role, UserData
from database.repository.property_repository import PropertyRepository
from database.repository.review_repository import ReviewRepository
from database.repository.user_repository import UserRepository
from review.review_actions_model import *
from review.review_model import ReviewModel
from utils.common_models import MessageResponse, utc_now
from utils.exceptions import ForbiddenError, NotFoundError, RequestValidationFailed


class ReviewActionsHandler:
    def __init__(self, db: Database, user_data: Optional[UserData] = None):
        self.user_data = user_data
        self.reviews = ReviewRepository(db)
        self.properties = PropertyRepository(db)
        self.users = UserRepository(db)

    def add_review(self, request: CreateReviewRequest) -> ReviewResponse:
        reviewer = self.users.get_by_uid(self.user_data.uid)
        if reviewer is None or Role(reviewer.role) != Role.USER:
            raise ForbiddenError("Only users can add reviews", code='FORBIDDEN_ROLE')

        property = self.properties.get_by_id(request.property_id)
        if property is None:
            raise NotFoundError("Property not found", code='PROPERTY_NOT_FOUND')

        review = self.reviews.create(ReviewModel(
            property_id=property.id,
            property_title=property.title,
            property_image=property.image,
            property_agent_uid=property.agent_uid,
            property_agent_name=property.agent_name,
            reviewer_uid=reviewer.uid,
            reviewer_name=reviewer.display_name,
            reviewer_email=reviewer.email,
            reviewer_image=reviewer.photo_url or '',
            review_text=request.review_text,
            created_at=utc_now(),
        ))
        logger.info(f"[REVIEW] Review {review.id} added by {reviewer.email} on property {property.id}")
        return ReviewResponse(message="Review added successfully", review=review)

    def reviews_for_property(self, property_id: str) -> List[ReviewModel]:
        if not property_id or property_id == 'undefined':
            raise RequestValidationFailed("Invalid property ID", code='INVALID_PROPERTY_ID')
        return self.reviews.get_by_property(property_id)

    def my_reviews(self) -> List[ReviewModel]:
        """The caller's reviews; reviews saved without an image borrow the property's"""
        reviews = self.reviews.get_by_reviewer(self.user_data.uid)
        for review in reviews:
            if not review.property_image and review.property_id:
                property = self.properties.get_by_id(review.property_id)
                if property is not None:
                    review.property_image = property.image
        return reviews

    def all_reviews(self) -> List[ReviewModel]:
        return self.reviews.get_latest()

    def latest_reviews(self, limit: Optional[int] = None) -> List[ReviewModel]:
        return self.reviews.get_latest(limit or settings.Listings.LATEST_REVIEWS_LIMIT)

    def delete_review(self, review_id: str) -> MessageResponse:
        review = self.reviews.get_by_id(review_id)
        if review is None:
            raise NotFoundError("Review not found", code='REVIEW_NOT_FOUND')
        if not review.is_written_by(self.user_data.uid) and Role(self.user_data.role) != Role.ADMIN:
            raise ForbiddenError("Not authorized to delete this review", code='NOT_REVIEW_OWNER')
        self.reviews.delete_by_id(review_id)
        logger.info(f"[REVIEW] Review {review_id} deleted by {self.user_data.email}")
        return MessageResponse(message="Review deleted successfully")
