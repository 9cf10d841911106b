from typing import List, Optional

from pymongo.database import Database

from logger import logger
from config.config import settings
from account.account_model import Role, UserData
from database.repository.property_repository import PropertyRepository
from database.repository.user_repository import UserRepository
from property.property_actions_model import *
from property.property_model import PropertyModel, price_range_text
from utils.common_models import utc_now
from utils.exceptions import ForbiddenError, NotFoundError, RequestValidationFailed

SORT_ORDERS = {'priceAsc': 1, 'priceDesc': -1, 'asc': 1, 'desc': -1}


def sort_by_price(properties: List[PropertyModel], order: Optional[int]) -> List[PropertyModel]:
    """Order listings by their lower price bound; listings without one go last"""
    if not order:
        return properties
    priced = [p for p in properties if p.effective_min_price is not None]
    unpriced = [p for p in properties if p.effective_min_price is None]
    priced.sort(key=lambda p: p.effective_min_price, reverse=order < 0)
    return priced + unpriced


class PropertyActionsHandler:
    def __init__(self, db: Database, user_data: Optional[UserData] = None):
        self.user_data = user_data
        self.properties = PropertyRepository(db)
        self.users = UserRepository(db)

    def _get_property(self, property_id: str) -> PropertyModel:
        if not property_id or property_id == 'undefined':
            raise RequestValidationFailed("Invalid property ID", code='INVALID_PROPERTY_ID')
        property = self.properties.get_by_id(property_id)
        if property is None:
            raise NotFoundError("Property not found", code='PROPERTY_NOT_FOUND')
        return property

    def add_property(self, request: CreatePropertyRequest) -> PropertyResponse:
        agent = self.users.get_by_uid(self.user_data.uid)
        if agent is None or Role(agent.role) not in (Role.AGENT, Role.FRAUD):
            raise ForbiddenError("Only agents can add properties", code='UNAUTHORIZED_AGENT')
        if agent.is_fraud or Role(agent.role) == Role.FRAUD:
            raise ForbiddenError("Agent marked as fraud, cannot add property", code='FRAUD_AGENT')

        price_range = request.price_range
        if price_range is None and (request.min_price is not None or request.max_price is not None):
            price_range = PropertyModel.PriceRange(min=request.min_price, max=request.max_price)

        property = self.properties.create(PropertyModel(
            title=request.title,
            location=request.location,
            image=request.image,
            description=request.description,
            price_range=price_range,
            min_price=request.min_price,
            max_price=request.max_price,
            agent_uid=agent.uid,
            agent_name=agent.display_name,
            agent_email=agent.email,
            verification_status=PropertyModel.VerificationStatus.PENDING,
            is_advertised=False,
            status=PropertyModel.SaleStatus.ACTIVE,
            created_at=utc_now(),
        ))
        logger.info(f"[PROPERTY] Agent {agent.email} added property {property.id}")
        return PropertyResponse(message="Property added successfully", property=property)

    def list_public(self, search: Optional[str] = None, sort: Optional[str] = None) -> List[PropertyModel]:
        properties = self.properties.get_public(
            location=search, exclude_agent_uids=self.users.fraud_agent_uids()
        )
        return sort_by_price(properties, SORT_ORDERS.get(sort))

    def get_details(self, property_id: str) -> PropertyModel:
        return self._get_property(property_id)

    def update_property(self, property_id: str, request: UpdatePropertyRequest) -> PropertyResponse:
        property = self._get_property(property_id)
        if not property.is_owned_by(self.user_data.uid):
            raise ForbiddenError("Not authorized to update this property", code='UNAUTHORIZED_UPDATE')
        if property.verification_status == PropertyModel.VerificationStatus.REJECTED.value:
            raise ForbiddenError("Cannot update rejected property", code='REJECTED_PROPERTY')

        min_price = request.min_price or 0
        max_price = request.max_price or 0
        fields = {
            'minPrice': min_price,
            'maxPrice': max_price,
            'priceRange': price_range_text(min_price, max_price, settings.Listings.PRICE_ON_REQUEST),
            'updatedAt': utc_now(),
        }
        for key, value in (('title', request.title), ('location', request.location),
                           ('description', request.description), ('image', request.image)):
            if value:
                fields[key] = value

        self.properties.update_by_id(property_id, fields)
        logger.info(f"[PROPERTY] Property {property_id} updated by {self.user_data.email}")
        return PropertyResponse(message="Property updated successfully", property=self._get_property(property_id))

    def delete_property(self, property_id: str) -> DeletePropertyResponse:
        property = self._get_property(property_id)
        if not property.is_owned_by(self.user_data.uid):
            raise ForbiddenError("Not authorized to delete this property", code='UNAUTHORIZED_DELETE')
        self.properties.delete_by_id(property_id)
        logger.info(f"[PROPERTY] Property {property_id} deleted by {self.user_data.email}")
        return DeletePropertyResponse(message="Property deleted successfully", property_id=property_id)

    def verify_property(self, property_id: str, request: VerifyPropertyRequest) -> PropertyResponse:
        allowed = (PropertyModel.VerificationStatus.VERIFIED.value, PropertyModel.VerificationStatus.REJECTED.value)
        if request.status not in allowed:
            raise RequestValidationFailed("Invalid verification status", code='INVALID_STATUS')
        if not self.properties.update_by_id(property_id, {'verificationStatus': request.status}):
            raise NotFoundError("Property not found", code='PROPERTY_NOT_FOUND')
        logger.info(f"[PROPERTY] Property {property_id} marked {request.status} by {self.user_data.email}")
        return PropertyResponse(message=f"Property {request.status} successfully",
                                property=self._get_property(property_id))

    def list_all(self) -> List[PropertyModel]:
        return self.properties.get_by_filter({}, sort=[('createdAt', -1)])

    def advertise_property(self, property_id: str, request: AdvertisePropertyRequest) -> PropertyResponse:
        if not self.properties.update_by_id(property_id, {'isAdvertised': request.is_advertised}):
            raise NotFoundError("Property not found", code='PROPERTY_NOT_FOUND')
        action = 'added to' if request.is_advertised else 'removed from'
        return PropertyResponse(message=f"Property {action} advertisements successfully",
                                property=self._get_property(property_id))

    def list_admin_advertised(self) -> List[PropertyModel]:
        return self.properties.get_by_filter({'isAdvertised': True})

    def list_advertised(self) -> List[PropertyModel]:
        return self.properties.get_advertised(exclude_agent_uids=self.users.fraud_agent_uids())

    def list_latest_advertised(self, limit: Optional[int] = None) -> List[PropertyModel]:
        return self.properties.get_advertised(
            exclude_agent_uids=self.users.fraud_agent_uids(),
            limit=limit or settings.Listings.LATEST_ADVERTISED_LIMIT,
        )

    def search_by_location(self, location: Optional[str]) -> List[PropertyModel]:
        if not location:
            raise RequestValidationFailed("Location parameter is required", code='MISSING_LOCATION')
        return self.properties.get_public(location=location, exclude_agent_uids=self.users.fraud_agent_uids())

    def sorted_by_price(self, order: Optional[str] = None) -> List[PropertyModel]:
        properties = self.properties.get_public(exclude_agent_uids=self.users.fraud_agent_uids())
        return sort_by_price(properties, -1 if order == 'desc' else 1)

    def my_properties(self) -> MyPropertiesResponse:
        properties = self.properties.get_by_agent(self.user_data.uid)
        return MyPropertiesResponse(properties=properties, total=len(properties))
