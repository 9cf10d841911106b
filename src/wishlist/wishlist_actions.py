from typing import List

from pymongo.database import Database

from logger import logger
from account.account_model import Role, UserData
from database.repository.property_repository import PropertyRepository
from database.repository.wishlist_repository import WishlistRepository
from utils.common_models import MessageResponse, utc_now
from utils.exceptions import ConflictError, ForbiddenError, NotFoundError
from wishlist.wishlist_actions_model import *
from wishlist.wishlist_model import WishlistModel


class WishlistActionsHandler:
    def __init__(self, db: Database, user_data: UserData):
        self.user_data = user_data
        self.wishlists = WishlistRepository(db)
        self.properties = PropertyRepository(db)

    def add(self, request: AddToWishlistRequest) -> WishlistResponse:
        property = self.properties.get_by_id(request.property_id)
        if property is None:
            raise NotFoundError("Property not found", code='PROPERTY_NOT_FOUND')
        if self.wishlists.get_entry(self.user_data.uid, property.id):
            raise ConflictError("Property already in wishlist", code='ALREADY_IN_WISHLIST', status_code=409)

        entry = self.wishlists.create(WishlistModel(
            user_id=self.user_data.uid,
            property_id=property.id,
            added_at=utc_now(),
        ))
        logger.info(f"[WISHLIST] Property {property.id} added to wishlist of {self.user_data.email}")
        return WishlistResponse(message="Property added to wishlist", wishlist=entry)

    def get_wishlist(self) -> List[WishlistItem]:
        """The caller's wishlist; entries whose property is gone or sold are left out"""
        items = []
        for entry in self.wishlists.get_by_user(self.user_data.uid):
            property = self.properties.get_by_id(entry.property_id)
            if property is None or property.is_sold:
                continue
            items.append(WishlistItem(
                **entry.model_dump(),
                property_details=property,
                verification_status=property.verification_status,
                property_title=property.title,
                property_location=property.location,
                price_range=property.price_range,
                agent_name=property.agent_name,
                agent_email=property.agent_email,
                property_image=property.image,
                is_sold=property.is_sold,
            ))
        return items

    def remove(self, wishlist_id: str) -> MessageResponse:
        entry = self.wishlists.get_by_id(wishlist_id)
        if entry is None:
            raise NotFoundError("Wishlist item not found", code='WISHLIST_ITEM_NOT_FOUND')
        if entry.user_id != self.user_data.uid and Role(self.user_data.role) != Role.ADMIN:
            raise ForbiddenError("Not authorized to remove this wishlist item", code='NOT_WISHLIST_OWNER')
        self.wishlists.delete_by_id(wishlist_id)
        return MessageResponse(message="Property removed from wishlist")
