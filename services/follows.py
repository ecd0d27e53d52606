from __future__ import annotations

import logging

from pymongo.database import Database

from database import to_object_id, utcnow
from services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def toggle_follow(db: Database, user_id: str, target_id: str) -> bool:
    """Follow `target_id`, or unfollow if already following.

    Both sides of the edge are written so that `following` and `followers`
    stay mirror images. Returns True when the caller now follows the target.
    """
    target_oid = to_object_id(target_id, "User")
    target_id = str(target_oid)
    if user_id == target_id:
        raise ConflictError("You cannot follow yourself")
    users = db["libraryuser"]
    if not users.find_one({"_id": target_oid}, {"_id": 1}):
        raise NotFoundError("User not found")
    me_oid = to_object_id(user_id, "User")
    me = users.find_one({"_id": me_oid}, {"following": 1})
    if me is None:
        raise NotFoundError("User not found")

    now = utcnow()
    if target_id in (me.get("following") or []):
        users.update_one({"_id": me_oid}, {"$pull": {"following": target_id}, "$set": {"updated_at": now}})
        users.update_one({"_id": target_oid}, {"$pull": {"followers": user_id}, "$set": {"updated_at": now}})
        logger.info("user %s unfollowed %s", user_id, target_id)
        return False

    users.update_one({"_id": me_oid}, {"$addToSet": {"following": target_id}, "$set": {"updated_at": now}})
    users.update_one({"_id": target_oid}, {"$addToSet": {"followers": user_id}, "$set": {"updated_at": now}})
    logger.info("user %s followed %s", user_id, target_id)
    return True
