from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import MongoModel, PyObjectId
from .equipment import EquipmentRef
from .team import TeamRef
from .user import UserRef

REQUEST_TYPES = ("corrective", "preventive")
REQUEST_STATUSES = ("new", "in-progress", "repaired", "scrap")
PRIORITIES = ("low", "medium", "high")

RequestType = Literal["corrective", "preventive"]
RequestStatus = Literal["new", "in-progress", "repaired", "scrap"]
Priority = Literal["low", "medium", "high"]


class Request(MongoModel):
    subject: str
    description: str = ""
    equipment_id: PyObjectId
    type: RequestType
    status: RequestStatus = "new"
    priority: Priority = "medium"
    created_by: PyObjectId
    assigned_to: Optional[PyObjectId] = None
    team_id: Optional[PyObjectId] = None
    category: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    duration: Optional[float] = Field(default=None, ge=0)
    notes: str = ""


# Enum and required-field checks for the two payloads below happen in the
# lifecycle so each failure gets its own message instead of a generic 422.
class RequestCreate(BaseModel):
    subject: Optional[str] = None
    description: Optional[str] = None
    equipment_id: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    assigned_to: Optional[PyObjectId] = None
    duration: Optional[float] = None
    notes: Optional[str] = None


class RequestUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subject: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[PyObjectId] = None
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    duration: Optional[float] = None
    notes: Optional[str] = None


class AssignPayload(BaseModel):
    technician_id: Optional[PyObjectId] = None


class Permissions(BaseModel):
    can_edit: bool = False
    can_assign: bool = False
    can_update_status: bool = False


class RequestOut(Request):
    equipment: Optional[EquipmentRef] = None
    team: Optional[TeamRef] = None
    creator: Optional[UserRef] = None
    assignee: Optional[UserRef] = None
    permissions: Permissions = Field(default_factory=Permissions)
