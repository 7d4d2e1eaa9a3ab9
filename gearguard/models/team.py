from typing import List, Optional

from pydantic import BaseModel

from .base import MongoModel, PyObjectId, Ref
from .user import User, UserRef


class Team(MongoModel):
    name: str
    icon: str = "⚙️"
    description: str = ""
    members: List[PyObjectId] = []
    is_active: bool = True


class TeamOut(Team):
    member_details: List[UserRef] = []


class TeamCreate(BaseModel):
    name: str
    icon: str = "⚙️"
    description: str = ""
    members: List[PyObjectId] = []


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    members: Optional[List[PyObjectId]] = None
    is_active: Optional[bool] = None


class TeamRef(Ref):
    name: str
    icon: str = "⚙️"


class UserOut(User):
    team: Optional[TeamRef] = None
