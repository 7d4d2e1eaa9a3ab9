from datetime import datetime, timezone

from pymongo.database import Database

from .models import Request

CLOSED = ["repaired", "scrap"]


def _today() -> datetime:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def stats(db: Database) -> dict:
    open_only = {"status": {"$nin": CLOSED}}
    overdue = db.requests.count_documents({"scheduled_date": {"$lt": _today()}, **open_only})
    completed = db.requests.count_documents({"status": "repaired"})

    recent = [Request(**d) for d in db.requests.find().sort("created_at", -1).limit(5)]

    by_team = db.requests.aggregate([
        {"$match": open_only},
        {"$group": {"_id": "$team_id", "count": {"$sum": 1}}},
        {"$lookup": {"from": "teams", "localField": "_id", "foreignField": "_id", "as": "team"}},
        {"$unwind": "$team"},
        {"$project": {"team_name": "$team.name", "team_icon": "$team.icon", "count": 1}},
    ])
    by_category = db.equipment.aggregate([
        {"$match": {"is_active": True}},
        {"$group": {"_id": "$category", "count": {"$sum": 1}}},
    ])

    return {
        "overview": {
            "total_equipment": db.equipment.count_documents({"is_active": True}),
            "total_users": db.users.count_documents({"is_active": True}),
            "total_teams": db.teams.count_documents({"is_active": True}),
            "total_requests": db.requests.count_documents({}),
            "active_requests": db.requests.count_documents(open_only),
            "overdue_requests": overdue,
            "completed_requests": completed,
        },
        "requests": {
            "new": db.requests.count_documents({"status": "new"}),
            "in_progress": db.requests.count_documents({"status": "in-progress"}),
            "completed": completed,
            "overdue": overdue,
            "corrective": db.requests.count_documents({"type": "corrective"}),
            "preventive": db.requests.count_documents({"type": "preventive"}),
            "high_priority": db.requests.count_documents({"priority": "high", **open_only}),
        },
        "recent_requests": [r.model_dump(mode="json", by_alias=True) for r in recent],
        "requests_by_team": [
            {"team_id": str(t["_id"]), "team_name": t["team_name"], "team_icon": t["team_icon"], "count": t["count"]}
            for t in by_team
        ],
        "equipment_by_category": [
            {"category": c["_id"], "count": c["count"]} for c in by_category
        ],
    }
