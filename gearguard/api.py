from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Request as HttpRequest
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from . import dashboard, policy
from .config import settings
from .db import get_db
from .directory import EquipmentDirectory, TeamDirectory, UserDirectory, ensure_indexes
from .errors import GearGuardError, Unauthenticated
from .lifecycle import RequestLifecycle
from .logger import get_logger, setup_logging
from .models import (
    AssignPayload,
    Equipment,
    EquipmentCreate,
    EquipmentOut,
    EquipmentUpdate,
    RequestCreate,
    RequestOut,
    RequestUpdate,
    Team,
    TeamCreate,
    TeamOut,
    TeamUpdate,
    User,
    UserCreate,
    UserOut,
    UserUpdate,
    as_object_id,
)

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes(get_db())
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GearGuardError)
async def gearguard_error_handler(request: HttpRequest, exc: GearGuardError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: HttpRequest, exc: PyMongoError):
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Storage failure"})


# Acting user. Tokens are issued by the auth service, which forwards the
# resolved user id in X-User-Id.
def current_user(x_user_id: Optional[str] = Header(None), db: Database = Depends(get_db)) -> User:
    oid = as_object_id(x_user_id)
    data = db.users.find_one({"_id": oid, "is_active": True}) if oid else None
    if not data:
        raise Unauthenticated("Not authorized")
    return User(**data)


def require(operation: str):
    def dependency(user: User = Depends(current_user)) -> policy.Access:
        return policy.authorize(user, operation)
    return dependency


def get_lifecycle(db: Database = Depends(get_db)) -> RequestLifecycle:
    return RequestLifecycle(db)


@app.get("/health")
def health():
    return {"status": "ok"}


# Requests
@app.get("/api/requests", response_model=List[RequestOut])
def list_requests(
    status: Optional[str] = None,
    type: Optional[str] = None,
    priority: Optional[str] = None,
    access: policy.Access = Depends(require("list_requests")),
    lifecycle: RequestLifecycle = Depends(get_lifecycle),
):
    requests = lifecycle.list(access, status=status, type=type, priority=priority)
    return lifecycle.present(access.user, requests)


@app.get("/api/requests/{request_id}", response_model=RequestOut)
def get_request(
    request_id: str,
    access: policy.Access = Depends(require("view_request")),
    lifecycle: RequestLifecycle = Depends(get_lifecycle),
):
    return lifecycle.present_one(access.user, lifecycle.get(access, request_id))


@app.post("/api/requests", response_model=RequestOut, status_code=201)
def create_request(
    payload: RequestCreate,
    access: policy.Access = Depends(require("create_request")),
    lifecycle: RequestLifecycle = Depends(get_lifecycle),
):
    request = lifecycle.create(access.user, payload)
    return lifecycle.present_one(access.user, request)


@app.put("/api/requests/{request_id}", response_model=RequestOut)
def update_request(
    request_id: str,
    payload: RequestUpdate,
    access: policy.Access = Depends(require("update_request")),
    lifecycle: RequestLifecycle = Depends(get_lifecycle),
):
    request = lifecycle.update(access.user, request_id, payload)
    return lifecycle.present_one(access.user, request)


@app.put("/api/requests/{request_id}/assign", response_model=RequestOut)
def assign_request(
    request_id: str,
    payload: Optional[AssignPayload] = None,
    access: policy.Access = Depends(require("assign_request")),
    lifecycle: RequestLifecycle = Depends(get_lifecycle),
):
    technician_id = payload.technician_id if payload else None
    request = lifecycle.assign(access.user, request_id, technician_id)
    return lifecycle.present_one(access.user, request)


@app.delete("/api/requests/{request_id}")
def delete_request(
    request_id: str,
    access: policy.Access = Depends(require("delete_request")),
    lifecycle: RequestLifecycle = Depends(get_lifecycle),
):
    lifecycle.delete(request_id)
    return {"message": "Request deleted successfully"}


# Equipment
@app.get("/api/equipment", response_model=List[EquipmentOut])
def list_equipment(access: policy.Access = Depends(require("view_equipment")), db: Database = Depends(get_db)):
    equipment = EquipmentDirectory(db)
    return equipment.with_refs(equipment.list_active())


@app.get("/api/equipment/{equipment_id}", response_model=EquipmentOut)
def get_equipment(equipment_id: str, access: policy.Access = Depends(require("view_equipment")),
                  db: Database = Depends(get_db)):
    equipment = EquipmentDirectory(db)
    return equipment.with_refs([equipment.get(equipment_id)])[0]


@app.get("/api/equipment/{equipment_id}/requests", response_model=List[RequestOut])
def equipment_requests(
    equipment_id: str,
    access: policy.Access = Depends(require("view_equipment")),
    lifecycle: RequestLifecycle = Depends(get_lifecycle),
):
    return lifecycle.present(access.user, lifecycle.history(equipment_id))


@app.post("/api/equipment", response_model=Equipment, status_code=201)
def create_equipment(payload: EquipmentCreate, access: policy.Access = Depends(require("manage_equipment")),
                     db: Database = Depends(get_db)):
    return EquipmentDirectory(db).create(payload.model_dump())


@app.put("/api/equipment/{equipment_id}", response_model=Equipment)
def update_equipment(equipment_id: str, payload: EquipmentUpdate,
                     access: policy.Access = Depends(require("manage_equipment")),
                     db: Database = Depends(get_db)):
    return EquipmentDirectory(db).update(equipment_id, payload.model_dump(exclude_unset=True))


@app.delete("/api/equipment/{equipment_id}")
def delete_equipment(equipment_id: str, access: policy.Access = Depends(require("manage_equipment")),
                     db: Database = Depends(get_db)):
    EquipmentDirectory(db).deactivate(equipment_id)
    return {"message": "Equipment deleted successfully"}


# Teams
@app.get("/api/teams", response_model=List[TeamOut])
def list_teams(access: policy.Access = Depends(require("view_teams")), db: Database = Depends(get_db)):
    return TeamDirectory(db).list_with_members()


@app.get("/api/teams/{team_id}", response_model=TeamOut)
def get_team(team_id: str, access: policy.Access = Depends(require("view_teams")), db: Database = Depends(get_db)):
    teams = TeamDirectory(db)
    return teams.with_members(teams.get(team_id))


@app.post("/api/teams", response_model=Team, status_code=201)
def create_team(payload: TeamCreate, access: policy.Access = Depends(require("manage_teams")),
                db: Database = Depends(get_db)):
    return TeamDirectory(db).create(payload.model_dump())


@app.put("/api/teams/{team_id}", response_model=Team)
def update_team(team_id: str, payload: TeamUpdate, access: policy.Access = Depends(require("manage_teams")),
                db: Database = Depends(get_db)):
    return TeamDirectory(db).update(team_id, payload.model_dump(exclude_unset=True))


@app.delete("/api/teams/{team_id}")
def delete_team(team_id: str, access: policy.Access = Depends(require("manage_teams")),
                db: Database = Depends(get_db)):
    TeamDirectory(db).deactivate(team_id)
    return {"message": "Team deleted successfully"}


# Users
@app.get("/api/users", response_model=List[UserOut])
def list_users(access: policy.Access = Depends(require("list_users")), db: Database = Depends(get_db)):
    users = UserDirectory(db)
    return users.with_team(users.list_active())


@app.get("/api/users/technicians/{team_id}", response_model=List[UserOut])
def list_technicians(team_id: str, access: policy.Access = Depends(require("list_technicians")),
                     db: Database = Depends(get_db)):
    users = UserDirectory(db)
    return users.with_team(users.technicians_of(team_id))


@app.get("/api/users/{user_id}", response_model=UserOut)
def get_user(user_id: str, access: policy.Access = Depends(require("view_user")), db: Database = Depends(get_db)):
    users = UserDirectory(db)
    return users.with_team([users.get(user_id)])[0]


@app.post("/api/users", response_model=User, status_code=201)
def create_user(payload: UserCreate, access: policy.Access = Depends(require("manage_users")),
                db: Database = Depends(get_db)):
    return UserDirectory(db).create(payload.model_dump())


@app.put("/api/users/{user_id}", response_model=User)
def update_user(user_id: str, payload: UserUpdate, access: policy.Access = Depends(require("manage_users")),
                db: Database = Depends(get_db)):
    return UserDirectory(db).update(user_id, payload.model_dump(exclude_unset=True))


@app.delete("/api/users/{user_id}")
def delete_user(user_id: str, access: policy.Access = Depends(require("manage_users")),
                db: Database = Depends(get_db)):
    UserDirectory(db).deactivate(user_id)
    return {"message": "User deleted successfully"}


# Dashboard
@app.get("/api/dashboard/stats")
def dashboard_stats(access: policy.Access = Depends(require("view_dashboard")), db: Database = Depends(get_db)):
    return dashboard.stats(db)
