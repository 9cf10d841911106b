from typing import List, Optional, Union

from pydantic import Field

from property.property_model import PropertyModel
from utils.common_models import CamelModel


class CreatePropertyRequest(CamelModel):
    title: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    image: Optional[str] = None
    description: Optional[str] = None
    price_range: Optional[Union[PropertyModel.PriceRange, str]] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)


class UpdatePropertyRequest(CamelModel):
    title: Optional[str] = None
    location: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)


class VerifyPropertyRequest(CamelModel):
    status: str = Field(..., description='verified or rejected')


class AdvertisePropertyRequest(CamelModel):
    # Strict so that "true" or 1 are refused instead of coerced
    is_advertised: bool = Field(..., strict=True)


class PropertyResponse(CamelModel):
    message: str
    property: PropertyModel


class DeletePropertyResponse(CamelModel):
    message: str
    property_id: str


class MyPropertiesResponse(CamelModel):
    properties: List[PropertyModel]
    total: int
