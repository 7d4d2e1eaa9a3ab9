"""
Equipment, team and user directories.

The request lifecycle only needs `EquipmentDirectory.resolve/set_status` and
`UserDirectory.technicians_of`; the rest backs the admin CRUD routes.
"""
from typing import Generic, List, Type, TypeVar

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from .errors import NotFound, ValidationFailed
from .logger import get_logger
from .models import (
    Equipment,
    EquipmentOut,
    MongoModel,
    Team,
    TeamOut,
    TeamRef,
    User,
    UserOut,
    UserRef,
    as_object_id,
    to_storage,
    utcnow,
)

logger = get_logger(__name__)

M = TypeVar("M", bound=MongoModel)


class _Directory(Generic[M]):
    collection_name: str
    model: Type[M]
    label: str

    def __init__(self, db: Database):
        self.db = db
        self.collection = db[self.collection_name]

    def _not_found(self) -> NotFound:
        return NotFound(f"{self.label} not found")

    def list_active(self) -> List[M]:
        docs = self.collection.find({"is_active": True}).sort("created_at", -1)
        return [self.model(**d) for d in docs]

    def get(self, doc_id) -> M:
        oid = as_object_id(doc_id)
        data = self.collection.find_one({"_id": oid}) if oid else None
        if not data:
            raise self._not_found()
        return self.model(**data)

    def find_many(self, ids) -> dict:
        oids = [oid for oid in (as_object_id(i) for i in ids) if oid]
        if not oids:
            return {}
        return {d["_id"]: d for d in self.collection.find({"_id": {"$in": oids}})}

    def create(self, payload: dict) -> M:
        item = self.model(**payload)
        doc = item.to_document()
        try:
            res = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ValidationFailed(f"{self.label} already exists")
        logger.info("Created %s %s", self.label.lower(), res.inserted_id)
        return self.get(res.inserted_id)

    def update(self, doc_id, changes: dict) -> M:
        oid = as_object_id(doc_id)
        if oid is None:
            raise self._not_found()
        if not changes:
            return self.get(oid)
        changes = {k: to_storage(v) for k, v in changes.items()}
        changes["updated_at"] = utcnow()
        try:
            data = self.collection.find_one_and_update(
                {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise ValidationFailed(f"{self.label} already exists")
        if not data:
            raise self._not_found()
        return self.model(**data)

    def deactivate(self, doc_id) -> M:
        """Soft delete: the document stays retrievable by id."""
        item = self.update(doc_id, {"is_active": False})
        logger.info("Deactivated %s %s", self.label.lower(), item.id)
        return item


class EquipmentDirectory(_Directory[Equipment]):
    collection_name = "equipment"
    model = Equipment
    label = "Equipment"

    def resolve(self, equipment_id) -> Equipment:
        return self.get(equipment_id)

    def set_status(self, equipment_id, status: str) -> None:
        oid = as_object_id(equipment_id)
        self.collection.update_one(
            {"_id": oid}, {"$set": {"status": status, "updated_at": utcnow()}}
        )

    def with_refs(self, items: List[Equipment]) -> List[EquipmentOut]:
        """Attach the maintenance team and default technician summaries."""
        teams = TeamDirectory(self.db).refs(e.team_id for e in items if e.team_id)
        technicians = UserDirectory(self.db).refs(e.technician_id for e in items if e.technician_id)
        return [
            EquipmentOut(**e.model_dump(by_alias=True),
                         team=teams.get(e.team_id), technician=technicians.get(e.technician_id))
            for e in items
        ]


class UserDirectory(_Directory[User]):
    collection_name = "users"
    model = User
    label = "User"

    def technicians_of(self, team_id) -> List[User]:
        oid = as_object_id(team_id)
        if oid is None:
            return []
        docs = self.collection.find({"role": "technician", "team_id": oid, "is_active": True})
        return [User(**d) for d in docs.sort("name", 1)]

    def refs(self, ids) -> dict:
        return {oid: UserRef(**d) for oid, d in self.find_many(ids).items()}

    def with_team(self, items: List[User]) -> List[UserOut]:
        teams = TeamDirectory(self.db).refs(u.team_id for u in items if u.team_id)
        return [UserOut(**u.model_dump(by_alias=True), team=teams.get(u.team_id)) for u in items]


class TeamDirectory(_Directory[Team]):
    collection_name = "teams"
    model = Team
    label = "Team"

    def refs(self, ids) -> dict:
        return {oid: TeamRef(**d) for oid, d in self.find_many(ids).items()}

    def with_members(self, team: Team) -> TeamOut:
        members = UserDirectory(self.db).refs(team.members)
        details = [members[m] for m in team.members if m in members]
        return TeamOut(**team.model_dump(by_alias=True), member_details=details)

    def list_with_members(self) -> List[TeamOut]:
        return [self.with_members(t) for t in self.list_active()]


def ensure_indexes(db: Database) -> None:
    db.equipment.create_index("serial_number", unique=True)
    db.teams.create_index("name", unique=True)
    db.users.create_index("email", unique=True)
    db.requests.create_index([("created_at", -1)])
    db.requests.create_index([("team_id", 1), ("status", 1)])
    db.requests.create_index("assigned_to")
    db.requests.create_index("created_by")
    db.requests.create_index("equipment_id")
