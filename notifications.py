import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, EmailStr
from pymongo import ReturnDocument
from starlette.concurrency import run_in_threadpool

from database import get_collection, now_utc, to_object_id
from presence import manager
from schemas import Notification as NotificationSchema

logger = logging.getLogger(__name__)

router = APIRouter()


class InterestedUser(BaseModel):
    id: str
    name: str
    email: EmailStr


class InterestPayload(BaseModel):
    query_email: EmailStr
    query_id: Optional[str] = None
    user_data: InterestedUser


def record_interest(
    query_email: str, user: InterestedUser, query_id: Optional[str] = None
) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """
    Store interest of `user` in a FindingBuddy post.

    Returns the updated post and the post's author, or None for the author when
    the author already holds an interest notification about this user.
    """
    post_filter: Dict[str, Any] = {"email": query_email}
    if query_id is not None:
        post_filter["_id"] = to_object_id(query_id)
        if post_filter["_id"] is None:
            raise HTTPException(status_code=404, detail="FindBuddy post not found")

    post = get_collection("findingbuddy").find_one_and_update(
        post_filter,
        {"$addToSet": {"interested_users": user.id}},
        sort=[("timestamp", -1)],
        return_document=ReturnDocument.AFTER,
    )
    if not post:
        raise HTTPException(status_code=404, detail="FindBuddy post not found")

    users = get_collection("user")
    author = users.find_one({"email": post["email"]})
    if not author:
        raise HTTPException(status_code=404, detail="Post author not found")

    notification = NotificationSchema(
        id=user.id,
        name=user.name,
        type="interest",
        message=f"{user.name} is interested in your FindBuddy query",
        created_at=now_utc(),
    )
    # keyed on the interested user only, not on the post
    result = users.update_one(
        {
            "_id": author["_id"],
            "notifications": {"$not": {"$elemMatch": {"type": "interest", "id": user.id}}},
        },
        {"$push": {"notifications": notification.model_dump()}},
    )
    if result.matched_count == 0:
        return post, None
    logger.info("Interest notification from %s stored for %s", user.id, author["_id"])
    return post, author


async def express_interest(query_email: str, user: InterestedUser, query_id: Optional[str] = None) -> bool:
    """
    Register interest of `user` in a FindingBuddy post and notify its author.

    Returns False when the author already holds an interest notification about
    this user; nothing is stored or emitted in that case.
    """
    post, author = await run_in_threadpool(record_interest, query_email, user, query_id)
    if author is None:
        return False

    connection_id = manager.connection_for(author) or post.get("author_socket_id")
    await manager.send(connection_id, "notification", {
        "type": "interest",
        "message": f"{user.name} is interested in your Travel Plans, Please click on Notification Icon",
    })
    return True


@router.post("/addInterestedUser")
async def add_interested_user(payload: InterestPayload):
    if payload.query_email == payload.user_data.email:
        return {"message": "Interest in your own query is ignored"}
    created = await express_interest(str(payload.query_email), payload.user_data, payload.query_id)
    if not created:
        raise HTTPException(status_code=400, detail="You've already shown interest in this query.")
    return {"message": "Interest registered"}
