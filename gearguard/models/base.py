from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import core_schema


class PyObjectId(ObjectId):
    """ObjectId that pydantic validates from strings and dumps as a string in JSON mode."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str, when_used="json"),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, schema, handler):
        return {"type": "string", "pattern": "^[0-9a-f]{24}$"}

    @classmethod
    def validate(cls, v):
        if isinstance(v, ObjectId):
            return v
        if not ObjectId.is_valid(str(v)):
            raise ValueError(f"'{v}' is not a valid ObjectId")
        return ObjectId(str(v))


def as_object_id(value) -> Optional[ObjectId]:
    """Coerce a string or ObjectId; returns None for anything that is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def utcnow() -> datetime:
    # Mongo stores naive UTC with millisecond precision
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_storage(value):
    """Normalise a value to what Mongo hands back after a round trip."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.replace(microsecond=value.microsecond // 1000 * 1000)
    return value


class MongoModel(BaseModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> dict:
        doc = self.model_dump(by_alias=True, exclude={"id"})
        return {key: to_storage(value) for key, value in doc.items()}


class Ref(BaseModel):
    """Short summary of a referenced document, embedded in API responses."""

    id: PyObjectId = Field(alias="_id")

    model_config = ConfigDict(populate_by_name=True)
