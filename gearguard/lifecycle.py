"""
Maintenance request lifecycle.

new -> in-progress happens through assignment; any status may move to
repaired (stamps completed_date) or scrap (scraps the equipment). Nothing is
blocked, terminal states included.
"""
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from . import policy
from .directory import EquipmentDirectory, TeamDirectory, UserDirectory
from .errors import NotFound, ValidationFailed
from .logger import get_logger
from .models import (
    PRIORITIES,
    REQUEST_STATUSES,
    REQUEST_TYPES,
    EquipmentRef,
    Request,
    RequestCreate,
    RequestOut,
    RequestUpdate,
    TeamRef,
    User,
    as_object_id,
    to_storage,
    utcnow,
)

logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "subject", "description", "type", "status", "priority", "assigned_to",
    "scheduled_date", "completed_date", "duration", "notes",
)
NULLABLE_FIELDS = ("assigned_to", "scheduled_date", "completed_date", "duration")


def _check_choice(value, choices, message):
    if value is not None and value not in choices:
        raise ValidationFailed(message)


def _check_duration(value):
    if value is not None and value < 0:
        raise ValidationFailed("Duration cannot be negative")


class RequestLifecycle:
    def __init__(self, db: Database, equipment: Optional[EquipmentDirectory] = None):
        self.db = db
        self.requests = db.requests
        self.equipment = equipment or EquipmentDirectory(db)

    def _load(self, request_id, scope: Optional[dict] = None) -> dict:
        oid = as_object_id(request_id)
        data = self.requests.find_one({"_id": oid, **(scope or {})}) if oid else None
        if not data:
            raise NotFound("Request not found")
        return data

    def create(self, user: User, payload: RequestCreate) -> Request:
        subject = (payload.subject or "").strip()
        if not subject:
            raise ValidationFailed("Subject is required")
        equipment_id = as_object_id(payload.equipment_id)
        if equipment_id is None:
            raise ValidationFailed("Equipment is required")
        if payload.type not in REQUEST_TYPES:
            raise ValidationFailed("Valid request type is required (corrective or preventive)")
        if payload.type == "preventive" and payload.scheduled_date is None:
            raise ValidationFailed("Scheduled date is required for preventive requests")
        priority = payload.priority or None
        _check_choice(priority, PRIORITIES, "Priority must be one of low, medium, high")
        _check_duration(payload.duration)

        equipment = self.equipment.resolve(equipment_id)

        # team and category are snapshots; later equipment edits do not flow back
        request = Request(
            subject=subject,
            description=(payload.description or "").strip(),
            equipment_id=equipment.id,
            type=payload.type,
            priority=priority or "medium",
            status="new",
            created_by=user.id,
            team_id=equipment.team_id,
            category=equipment.category,
            scheduled_date=payload.scheduled_date,
            assigned_to=payload.assigned_to,
            duration=payload.duration,
            notes=payload.notes or "",
        )
        res = self.requests.insert_one(request.to_document())
        logger.info("Request %s created by %s for equipment %s", res.inserted_id, user.id, equipment.id)
        return Request(**self._load(res.inserted_id))

    def assign(self, user: User, request_id, technician_id=None) -> Request:
        """Hand the request to a technician (the caller when none is given) and start work."""
        oid = as_object_id(request_id)
        assignee = as_object_id(technician_id) if technician_id else user.id
        if assignee is None:
            raise ValidationFailed("Technician id is invalid")
        data = None
        if oid:
            data = self.requests.find_one_and_update(
                {"_id": oid},
                {"$set": {"assigned_to": assignee, "status": "in-progress", "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        if not data:
            raise NotFound("Request not found")
        logger.info("Request %s assigned to %s by %s", oid, assignee, user.id)
        return Request(**data)

    def _validate_changes(self, changes: dict) -> None:
        for key, value in changes.items():
            if value is None and key not in NULLABLE_FIELDS:
                raise ValidationFailed(f"{key.replace('_', ' ').capitalize()} cannot be empty")
        if "subject" in changes and not changes["subject"].strip():
            raise ValidationFailed("Subject is required")
        _check_choice(changes.get("type"), REQUEST_TYPES,
                      "Valid request type is required (corrective or preventive)")
        _check_choice(changes.get("status"), REQUEST_STATUSES,
                      "Status must be one of new, in-progress, repaired, scrap")
        _check_choice(changes.get("priority"), PRIORITIES, "Priority must be one of low, medium, high")
        _check_duration(changes.get("duration"))

    def update(self, user: User, request_id, payload: RequestUpdate) -> Request:
        changes = {
            k: v for k, v in payload.model_dump(exclude_unset=True).items()
            if k in UPDATABLE_FIELDS
        }
        self._validate_changes(changes)
        for key in ("subject", "description"):
            if key in changes:
                changes[key] = changes[key].strip()

        status = changes.get("status")
        if status == "repaired" and not changes.get("completed_date"):
            changes["completed_date"] = utcnow()
        # dates are kept at the millisecond precision Mongo stores, so a
        # supplied completed_date reads back truncated to milliseconds
        changes = {k: to_storage(v) for k, v in changes.items()}

        current = self._load(request_id)
        diff = {k: v for k, v in changes.items() if current.get(k) != v}
        if diff:
            diff["updated_at"] = utcnow()
            data = self.requests.find_one_and_update(
                {"_id": current["_id"]}, {"$set": diff}, return_document=ReturnDocument.AFTER
            )
            if not data:
                raise NotFound("Request not found")
            if "status" in diff:
                logger.info("Request %s moved %s -> %s by %s",
                            current["_id"], current.get("status"), diff["status"], user.id)
        else:
            data = current

        if status == "scrap" and data.get("equipment_id"):
            # second write, not rolled back if it fails
            self.equipment.set_status(data["equipment_id"], "scrapped")
            logger.info("Equipment %s scrapped via request %s", data["equipment_id"], data["_id"])

        return Request(**data)

    def list(self, access: policy.Access, status=None, type=None, priority=None) -> List[Request]:
        # blank query parameters mean "no filter"
        status, type, priority = status or None, type or None, priority or None
        _check_choice(status, REQUEST_STATUSES, "Status must be one of new, in-progress, repaired, scrap")
        _check_choice(type, REQUEST_TYPES, "Valid request type is required (corrective or preventive)")
        _check_choice(priority, PRIORITIES, "Priority must be one of low, medium, high")

        query = dict(access.filter)
        for key, value in (("status", status), ("type", type), ("priority", priority)):
            if value:
                query[key] = value
        return [Request(**d) for d in self.requests.find(query).sort("created_at", -1)]

    def get(self, access: policy.Access, request_id) -> Request:
        # out-of-scope requests look exactly like missing ones
        return Request(**self._load(request_id, access.filter))

    def delete(self, request_id) -> None:
        oid = as_object_id(request_id)
        res = self.requests.delete_one({"_id": oid}) if oid else None
        if not res or not res.deleted_count:
            raise NotFound("Request not found")
        logger.info("Request %s deleted", oid)

    def history(self, equipment_id) -> List[Request]:
        equipment = self.equipment.resolve(equipment_id)
        docs = self.requests.find({"equipment_id": equipment.id}).sort("created_at", -1)
        return [Request(**d) for d in docs]

    def present(self, user: User, requests: List[Request]) -> List[RequestOut]:
        """Attach equipment/team/user summaries and the caller's permissions."""
        equipment = self.equipment.find_many({r.equipment_id for r in requests})
        teams = TeamDirectory(self.db).find_many({r.team_id for r in requests if r.team_id})
        users = UserDirectory(self.db).refs(
            {r.created_by for r in requests} | {r.assigned_to for r in requests if r.assigned_to}
        )

        out = []
        for r in requests:
            eq = equipment.get(r.equipment_id)
            team = teams.get(r.team_id)
            out.append(RequestOut(
                **r.model_dump(by_alias=True),
                equipment=EquipmentRef(**eq) if eq else None,
                team=TeamRef(**team) if team else None,
                creator=users.get(r.created_by),
                assignee=users.get(r.assigned_to),
                permissions=policy.permissions(user, r),
            ))
        return out

    def present_one(self, user: User, request: Request) -> RequestOut:
        return self.present(user, [request])[0]
