"""
Common Model Pieces
Identity, audit and soft-delete fields shared by every stored document
"""
from datetime import datetime
from typing import Any, Dict, Optional

from beanie import PydanticObjectId
from bson import ObjectId
from pydantic import BaseModel, Field

from forex.exceptions import ValidationError


class StoredModel(BaseModel):
    """Base for anything persisted; `id` maps to the `_id` key"""
    id: Optional[PydanticObjectId] = Field(default=None, alias="_id")

    class Config:
        populate_by_name = True

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Entity(StoredModel):
    """Stored model with the audit and soft-delete fields"""
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    created_by: Optional[PydanticObjectId] = None
    updated_by: Optional[PydanticObjectId] = None

    is_deleted: bool = False
    deleted_by: Optional[PydanticObjectId] = None
    deleted_at: Optional[datetime] = None


def parse_object_id(value: Any, label: str = "ID") -> PydanticObjectId:
    """Parse a 24-char hex identifier, echoing the offending value on failure"""
    if isinstance(value, ObjectId):
        return PydanticObjectId(value)
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label}: {value}")
    return PydanticObjectId(value)


def parse_optional_object_id(value: Any, label: str = "ID") -> Optional[PydanticObjectId]:
    if value is None or value == "":
        return None
    return parse_object_id(value, label)
