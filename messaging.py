"""
Direct messages between users.

Each user document embeds its own list of conversations. Sending only appends
to the sender's copy, so reading a conversation merges the two sides and
orders the result by timestamp.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, EmailStr
from starlette.concurrency import run_in_threadpool

from database import get_collection, now_utc, to_object_id
from presence import manager
from schemas import Conversation as ConversationSchema, Message as MessageSchema

logger = logging.getLogger(__name__)

router = APIRouter()


class FetchMessagesPayload(BaseModel):
    current_user_id: str
    other_user_id: str


class ConversationUser(BaseModel):
    email: EmailStr


class BootstrapPayload(BaseModel):
    user: ConversationUser


def find_user(user_id: Any, projection: Optional[dict] = None) -> Optional[Dict[str, Any]]:
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return get_collection("user").find_one({"_id": oid}, projection)


def associate_connection(user_id: Any, connection_id: str) -> bool:
    """Record the live connection id for a user, in memory and on the user document."""
    oid = to_object_id(user_id)
    user = None
    if oid is not None:
        user = get_collection("user").find_one_and_update({"_id": oid}, {"$set": {"socket_id": connection_id}})
    if not user:
        logger.error("User not found while associating connection %s", connection_id)
        return False
    manager.associate(str(oid), connection_id)
    logger.info("Connection %s associated with user %s", connection_id, oid)
    return True


def _append_to_sender(sender: Dict[str, Any], recipient: Dict[str, Any], message: Dict[str, Any]) -> None:
    users = get_collection("user")
    participant_id = str(recipient["_id"])

    # conversations are never removed, so an index stays valid once seen
    for index, conversation in enumerate(sender.get("conversations", [])):
        if conversation.get("participant_id") == participant_id:
            users.update_one(
                {"_id": sender["_id"], f"conversations.{index}.participant_id": participant_id},
                {"$push": {f"conversations.{index}.messages": message}},
            )
            return

    conversation = ConversationSchema(participant_id=participant_id, name=recipient["name"], messages=[message])
    result = users.update_one(
        {"_id": sender["_id"], "conversations.participant_id": {"$ne": participant_id}},
        {"$push": {"conversations": conversation.model_dump()}},
    )
    if not result.matched_count:
        # created by a concurrent send, append to that one
        _append_to_sender(users.find_one({"_id": sender["_id"]}), recipient, message)


def store_message(sender_id: Any, recipient_id: Any, content: str) -> Optional[Tuple[dict, dict, dict]]:
    sender = find_user(sender_id)
    recipient = find_user(recipient_id)
    if not sender or not recipient:
        logger.error("Sender or recipient not found (%s -> %s)", sender_id, recipient_id)
        return None

    message = MessageSchema(
        sender_id=str(sender["_id"]),
        name=sender["name"],
        content=content,
        timestamp=now_utc(),
        read=False,
    ).model_dump()
    _append_to_sender(sender, recipient, message)
    logger.info("Message saved from %s to %s", sender["_id"], recipient["_id"])
    return sender, recipient, message


async def send_message(sender_id: Any, recipient_id: Any, content: str) -> Optional[Dict[str, Any]]:
    stored = await run_in_threadpool(store_message, sender_id, recipient_id, content)
    if stored is None:
        return None
    sender, recipient, message = stored
    await manager.emit_to_users([sender, recipient], "message", message)
    return message


def _messages_with(owner_id: str, counterpart_id: str) -> List[Dict[str, Any]]:
    owner = find_user(owner_id, {"conversations": 1})
    for conversation in (owner or {}).get("conversations", []):
        if conversation.get("participant_id") == counterpart_id:
            return conversation.get("messages", [])
    return []


def fetch_conversation(current_user_id: str, other_user_id: str) -> List[Dict[str, Any]]:
    messages = _messages_with(current_user_id, other_user_id) + _messages_with(other_user_id, current_user_id)
    return sorted(messages, key=lambda m: m["timestamp"])


def _ensure_conversation(owner: Dict[str, Any], counterpart: Dict[str, Any]) -> None:
    participant_id = str(counterpart["_id"])
    conversation = ConversationSchema(participant_id=participant_id, name=counterpart["name"])
    get_collection("user").update_one(
        {"_id": owner["_id"], "conversations.participant_id": {"$ne": participant_id}},
        {"$push": {"conversations": conversation.model_dump()}},
    )


def bootstrap_conversation(notification_id: str, email: str) -> None:
    """Make sure the caller and the notification's subject each have a conversation with the other."""
    user = get_collection("user").find_one({"email": email})
    subject = find_user(notification_id)
    if not user or not subject:
        raise HTTPException(status_code=404, detail="User or notification not found")
    _ensure_conversation(user, subject)
    _ensure_conversation(subject, user)


@router.post("/messages")
def get_messages(payload: FetchMessagesPayload):
    return fetch_conversation(payload.current_user_id, payload.other_user_id)


@router.post("/addNotificationAsConversation/{notification_id}")
def add_notification_as_conversation(notification_id: str, payload: BootstrapPayload):
    bootstrap_conversation(notification_id, str(payload.user.email))
    return {"message": "Conversation IDs added to both users"}
