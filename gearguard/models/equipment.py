from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from .base import MongoModel, PyObjectId, Ref
from .team import TeamRef
from .user import UserRef

EQUIPMENT_CATEGORIES = ("Production", "IT Equipment", "Logistics", "HVAC", "Electrical", "Other")
EquipmentCategory = Literal["Production", "IT Equipment", "Logistics", "HVAC", "Electrical", "Other"]
EquipmentStatus = Literal["operational", "maintenance", "repair", "scrapped"]


class Equipment(MongoModel):
    name: str
    serial_number: str
    category: EquipmentCategory = "Other"
    department: str
    location: str
    purchase_date: datetime
    warranty: Optional[datetime] = None
    assigned_employee: Optional[str] = None
    team_id: Optional[PyObjectId] = None
    technician_id: Optional[PyObjectId] = None
    status: EquipmentStatus = "operational"
    is_active: bool = True


class EquipmentCreate(BaseModel):
    name: str
    serial_number: str
    category: EquipmentCategory = "Other"
    department: str
    location: str
    purchase_date: datetime
    warranty: Optional[datetime] = None
    assigned_employee: Optional[str] = None
    team_id: PyObjectId
    technician_id: PyObjectId
    status: EquipmentStatus = "operational"


class EquipmentUpdate(BaseModel):
    name: Optional[str] = None
    serial_number: Optional[str] = None
    category: Optional[EquipmentCategory] = None
    department: Optional[str] = None
    location: Optional[str] = None
    purchase_date: Optional[datetime] = None
    warranty: Optional[datetime] = None
    assigned_employee: Optional[str] = None
    team_id: Optional[PyObjectId] = None
    technician_id: Optional[PyObjectId] = None
    status: Optional[EquipmentStatus] = None
    is_active: Optional[bool] = None


class EquipmentRef(Ref):
    name: str
    serial_number: str
    category: str


class EquipmentOut(Equipment):
    team: Optional[TeamRef] = None
    technician: Optional[UserRef] = None
