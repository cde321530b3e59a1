"""
app/services/match_service.py

Purpose: Co-founder suggestions

- Overlapping skills/interests, same major and year, same city
- Excludes the user and anyone they already have a connection record with
"""

from typing import Any, Dict, List

from app.db.mongo import get_users_collection
from app.services.connection_service import connection_service
from app.services.user_service import SAFE_PROJECTION
from utils.constants import MATCH_LIMIT, VERIFICATION_ACTIVE


async def _find_matches(user: Dict[str, Any], criteria: Dict[str, Any]) -> List[Dict[str, Any]]:
    excluded = [user["_id"]] + await connection_service.related_user_ids(user["_id"])
    query = {
        "_id": {"$nin": excluded},
        "private_mode": {"$ne": True},
        "verification_status": VERIFICATION_ACTIVE,
        **criteria,
    }
    cursor = get_users_collection().find(query, SAFE_PROJECTION).limit(MATCH_LIMIT)
    return [doc async for doc in cursor]


async def potential_matches(user: Dict[str, Any]) -> List[Dict[str, Any]]:
    clauses = []
    for field in ("technical_skills", "my_interests", "interests_looking_in_others"):
        values = user.get(field) or []
        if values:
            clauses.append({field: {"$in": values}})
    if not clauses:
        return []
    return await _find_matches(user, {"$or": clauses})


async def matches_by_major(user: Dict[str, Any]) -> List[Dict[str, Any]]:
    major = (user.get("major_category") or {}).get("value")
    year = (user.get("year_of_study") or {}).get("value")
    if not major:
        return []
    criteria = {"major_category.value": major}
    if year:
        criteria["year_of_study.value"] = year
    return await _find_matches(user, criteria)


async def matches_by_location(user: Dict[str, Any]) -> List[Dict[str, Any]]:
    state = (user.get("state") or {}).get("value")
    city = (user.get("city") or {}).get("value")
    if not state:
        return []
    criteria = {"state.value": state}
    if city:
        criteria["city.value"] = city
    return await _find_matches(user, criteria)
