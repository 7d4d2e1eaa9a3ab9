"""
Pytest fixtures: an in-memory Mongo database, a seeded directory of teams,
users and equipment, and a FastAPI test client wired to that database.
"""
from datetime import datetime
from types import SimpleNamespace

import mongomock
import pytest
from fastapi.testclient import TestClient

from gearguard.api import app
from gearguard.db import get_db
from gearguard.directory import EquipmentDirectory, TeamDirectory, UserDirectory, ensure_indexes
from gearguard.lifecycle import RequestLifecycle
from gearguard.models import RequestCreate


@pytest.fixture()
def db():
    database = mongomock.MongoClient().get_database("gearguard_test")
    ensure_indexes(database)
    return database


@pytest.fixture()
def lifecycle(db):
    return RequestLifecycle(db)


@pytest.fixture()
def seeded(db):
    """Two teams, one user per role (two technicians, two employees), two machines."""
    teams = TeamDirectory(db)
    users = UserDirectory(db)
    equipment = EquipmentDirectory(db)

    mechanics = teams.create({"name": "Mechanics", "icon": "⚙️"})
    it_support = teams.create({"name": "IT Support", "icon": "💻"})

    admin = users.create({"name": "Admin User", "email": "admin@gearguard.com", "role": "admin"})
    manager = users.create({"name": "John Manager", "email": "manager@gearguard.com", "role": "manager"})
    mike = users.create({"name": "Mike Technician", "email": "mike@gearguard.com",
                         "role": "technician", "team_id": mechanics.id})
    sarah = users.create({"name": "Sarah Technician", "email": "sarah@gearguard.com",
                          "role": "technician", "team_id": it_support.id})
    emma = users.create({"name": "Emma Employee", "email": "emma@gearguard.com", "role": "employee"})
    noah = users.create({"name": "Noah Employee", "email": "noah@gearguard.com", "role": "employee"})

    teams.update(mechanics.id, {"members": [mike.id]})
    teams.update(it_support.id, {"members": [sarah.id]})

    press = equipment.create({
        "name": "Hydraulic Press", "serial_number": "HP-001", "category": "Production",
        "department": "Manufacturing", "location": "Floor A", "purchase_date": datetime(2022, 5, 1),
        "team_id": mechanics.id, "technician_id": mike.id,
    })
    laptop = equipment.create({
        "name": "Dell Laptop", "serial_number": "DL-042", "category": "IT Equipment",
        "department": "Office", "location": "Room 12", "purchase_date": datetime(2023, 1, 10),
        "team_id": it_support.id, "technician_id": sarah.id,
    })

    return SimpleNamespace(
        mechanics=mechanics, it_support=it_support,
        admin=admin, manager=manager, mike=mike, sarah=sarah, emma=emma, noah=noah,
        press=press, laptop=laptop,
    )


@pytest.fixture()
def make_request(lifecycle, seeded):
    def _make(user=None, equipment=None, **fields):
        payload = {"subject": "Leaking hose", "type": "corrective"}
        payload.update(fields)
        payload["equipment_id"] = str((equipment or seeded.press).id)
        return lifecycle.create(user or seeded.emma, RequestCreate(**payload))
    return _make


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth():
    """Headers identifying the acting user, as forwarded by the auth service."""
    return lambda user: {"X-User-Id": str(user.id)}
