from pydantic import Field

from review.review_model import ReviewModel
from utils.common_models import CamelModel


class CreateReviewRequest(CamelModel):
    property_id: str = Field(..., min_length=1)
    review_text: str = Field(..., min_length=1)


class ReviewResponse(CamelModel):
    message: str
    review: ReviewModel
