from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from .base import MongoModel, PyObjectId, Ref

ROLES = ("admin", "manager", "technician", "employee")
Role = Literal["admin", "manager", "technician", "employee"]


class User(MongoModel):
    name: str
    email: str
    role: Role = "employee"
    team_id: Optional[PyObjectId] = None
    avatar: str = "👤"
    is_active: bool = True


class UserCreate(BaseModel):
    name: str
    email: str
    role: Role = "employee"
    team_id: Optional[PyObjectId] = None
    avatar: str = "👤"


class UserUpdate(BaseModel):
    # unknown keys (e.g. password) are dropped; credentials belong to the auth service
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None
    team_id: Optional[PyObjectId] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None


class UserRef(Ref):
    name: str
    email: str
    avatar: str = "👤"
