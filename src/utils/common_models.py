from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Optional

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CaseInsensitiveEnum(Enum):
    """Enum class that enables case-insensitive matching."""
    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return super()._missing_(value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def stringify_object_id(value):
    if isinstance(value, ObjectId):
        return str(value)
    return value


# Identifiers may be stored as free-form strings or as binary ObjectIds
DocumentId = Annotated[str, BeforeValidator(stringify_object_id)]


class MarketplaceDocument(BaseModel):
    """
    Base for documents stored in the marketplace collections.

    Documents are stored with camelCase keys (the shape historical data already has),
    accept either `_id` or `id` on input and always expose the identifier as a string `id`.
    Unknown keys are kept so legacy documents round-trip without loss.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra='allow',
    )

    id: Optional[DocumentId] = Field(default=None, validation_alias=AliasChoices('_id', 'id'))

    @classmethod
    def from_document(cls, document: Optional[Dict[str, Any]]):
        if document is None:
            return None
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        """Serialize for insertion; the store assigns `_id`"""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={'id'})


class CamelModel(BaseModel):
    """Request/response body using the camelCase keys clients send and expect"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(CamelModel):
    message: str
