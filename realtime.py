"""
WebSocket live channel.

Clients exchange JSON envelopes of the form {"event": <name>, "data": <payload>}.
Inbound: join_room, login, store_socket_id, message. Outbound: message, notification.
Failures are logged and never reported back to the emitting client.
"""
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter
from starlette.concurrency import run_in_threadpool

from database import get_collection
from messaging import associate_connection, send_message
from presence import manager

logger = logging.getLogger(__name__)

router = APIRouter()

email_adapter = TypeAdapter(EmailStr)


class SocketMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender_id: str = Field(alias="senderId")
    recipient_id: str = Field(alias="recipientId")
    content: str


def store_connection_on_posts(connection_id: str, author_email: str) -> int:
    result = get_collection("findingbuddy").update_many(
        {"email": author_email}, {"$set": {"author_socket_id": connection_id}}
    )
    return result.modified_count


async def on_join_room(connection_id: str, room):
    manager.join(connection_id, str(room))


async def on_login(connection_id: str, user_id):
    await run_in_threadpool(associate_connection, user_id, connection_id)


async def on_store_socket_id(connection_id: str, author_email):
    author_email = email_adapter.validate_python(author_email)
    modified = await run_in_threadpool(store_connection_on_posts, connection_id, author_email)
    logger.info("Connection %s stored on %d posts of %s", connection_id, modified, author_email)


async def on_message(connection_id: str, data):
    payload = SocketMessage.model_validate(data)
    await send_message(payload.sender_id, payload.recipient_id, payload.content)


EVENT_HANDLERS = {
    "join_room": on_join_room,
    "login": on_login,
    "store_socket_id": on_store_socket_id,
    "message": on_message,
}


async def dispatch(connection_id: str, raw: str) -> None:
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed frame from %s", connection_id)
        return
    if not isinstance(envelope, dict):
        logger.warning("Ignoring frame without an event from %s", connection_id)
        return

    event = envelope.get("event")
    handler = EVENT_HANDLERS.get(event)
    if handler is None:
        logger.warning("Unknown event %r from %s", event, connection_id)
        return
    try:
        await handler(connection_id, envelope.get("data"))
    except Exception:
        logger.exception("Error handling %s event from %s", event, connection_id)


@router.websocket("/ws")
async def live_channel(websocket: WebSocket):
    connection_id = await manager.connect(websocket)
    logger.info("User connected: %s", connection_id)
    try:
        while True:
            raw = await websocket.receive_text()
            await dispatch(connection_id, raw)
    except WebSocketDisconnect:
        logger.info("User disconnected: %s", connection_id)
    finally:
        manager.disconnect(connection_id)
