"""
Notifications API (bearer required).

GET    /api/notifications               list (?unread=true&limit=&offset=)
GET    /api/notifications/unread-count  authoritative unread count
POST   /api/notifications               create (admins may target others)
PATCH  /api/notifications               {notification_id} or {mark_all: true}
DELETE /api/notifications               {notification_id} or {delete_all_read: true}
WS     /api/ws/notifications?token=     live `notification.created` pushes
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, Body, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from dailydoodle.core.auth import AuthUser, get_current_user, verify_access_token
from dailydoodle.core.errors import AppError, ValidationError
from dailydoodle.core.logging import log_event
from dailydoodle.features.notifications.hub import hub
from dailydoodle.features.notifications.service import notification_service
from dailydoodle.features.profiles.service import profile_service

router = APIRouter(tags=["notifications"])


class CreateNotificationRequest(BaseModel):
    type: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    link: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    target_user_id: Optional[str] = None


class UpdateNotificationRequest(BaseModel):
    notification_id: Optional[int] = None
    mark_all: bool = False


class DeleteNotificationRequest(BaseModel):
    notification_id: Optional[int] = None
    delete_all_read: bool = False


@router.get("/api/notifications")
async def list_notifications(
    unread: bool = Query(False),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    user: AuthUser = Depends(get_current_user),
):
    rows, total = notification_service.list_notifications(
        user.id, unread_only=unread, limit=limit, offset=offset
    )
    return {
        "notifications": [n.to_dict() for n in rows],
        "total": total,
        "unreadCount": notification_service.unread_count(user.id, force_refresh=True),
    }


@router.get("/api/notifications/unread-count")
async def get_unread_count(user: AuthUser = Depends(get_current_user)):
    return {"unreadCount": notification_service.unread_count(user.id)}


@router.post("/api/notifications", status_code=201)
async def create_notification(req: CreateNotificationRequest, user: AuthUser = Depends(get_current_user)):
    notification = notification_service.create_notification(
        actor_id=user.id,
        actor_is_admin=profile_service.is_admin(user.id),
        type=req.type,
        title=req.title,
        body=req.body,
        link=req.link,
        metadata=req.metadata,
        target_user_id=req.target_user_id,
    )
    return {"notification": notification.to_dict()}


@router.patch("/api/notifications")
async def update_notifications(req: UpdateNotificationRequest, user: AuthUser = Depends(get_current_user)):
    if req.mark_all:
        return {"updated": notification_service.mark_all_read(user.id)}
    if req.notification_id is None:
        raise ValidationError("Provide notification_id or mark_all")
    notification = notification_service.mark_read(user.id, req.notification_id)
    return {"notification": notification.to_dict()}


@router.delete("/api/notifications")
async def delete_notifications(
    req: DeleteNotificationRequest = Body(...),
    user: AuthUser = Depends(get_current_user),
):
    if req.delete_all_read:
        return {"success": True, "deleted": notification_service.delete_all_read(user.id)}
    if req.notification_id is None:
        raise ValidationError("Provide notification_id or delete_all_read")
    notification_service.delete_notification(user.id, req.notification_id)
    return {"success": True}


@router.websocket("/api/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: Optional[str] = None):
    """
    Live notification stream for the token's user.

    Messages sent:
    - connected: {type, user_id, unreadCount, ts}
    - notification.created: {type, notification}
    - pong (reply to {"type": "ping"})
    """
    await websocket.accept()
    connection_id = str(uuid4())

    user_id = _authenticate(token)
    if not user_id:
        await _reject_and_close(websocket, "unauthorized", "Unauthorized: missing or invalid token")
        log_event("info", "ws.unauthorized", event_type="ws.unauthorized", extra={"connection_id": connection_id})
        return

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def _enqueue(message: dict) -> None:
        # publish runs on request threads; hop onto this socket's loop
        loop.call_soon_threadsafe(queue.put_nowait, message)

    unsubscribe = hub.subscribe(user_id, _enqueue)
    sender = asyncio.create_task(_forward(websocket, queue))
    log_event("info", "ws.connected", user_id=user_id, event_type="ws.connected", extra={"connection_id": connection_id})

    try:
        await websocket.send_json({
            "type": "connected",
            "user_id": user_id,
            "unreadCount": notification_service.unread_count(user_id),
            "ts": datetime.now(timezone.utc).isoformat(),
        })
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong", "ts": datetime.now(timezone.utc).isoformat()})
    except WebSocketDisconnect:
        log_event("info", "ws.disconnected", user_id=user_id, event_type="ws.disconnected", extra={"connection_id": connection_id})
    finally:
        unsubscribe()
        sender.cancel()


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


def _authenticate(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    try:
        return verify_access_token(token).id
    except (HTTPException, AppError):
        return None


async def _reject_and_close(websocket: WebSocket, code: str, message: str) -> None:
    await websocket.send_json({"type": "error", "code": code, "message": message})
    await websocket.close(code=1008, reason=message)
