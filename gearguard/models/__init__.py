from .base import MongoModel, PyObjectId, as_object_id, to_storage, utcnow
from .equipment import (
    EQUIPMENT_CATEGORIES,
    Equipment,
    EquipmentCreate,
    EquipmentOut,
    EquipmentRef,
    EquipmentUpdate,
)
from .request import (
    PRIORITIES,
    REQUEST_STATUSES,
    REQUEST_TYPES,
    AssignPayload,
    Permissions,
    Request,
    RequestCreate,
    RequestOut,
    RequestUpdate,
)
from .team import Team, TeamCreate, TeamOut, TeamRef, TeamUpdate, UserOut
from .user import ROLES, User, UserCreate, UserRef, UserUpdate
