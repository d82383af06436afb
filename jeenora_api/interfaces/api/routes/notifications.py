"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

from datetime import datetime

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from jeenora_api.application.use_cases.notifications import (
    NotificationService,
    delete_notification,
    delete_user_notification,
    get_notification_stats,
    list_all_notifications,
    list_user_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)
from jeenora_api.domain.entities import Notification, NotificationTemplate, User
from jeenora_api.domain.errors import PersistenceFailureError
from jeenora_api.infrastructure.database import SessionLocal, get_db
from jeenora_api.infrastructure.notifications import notification_manager, serialize_notification
from jeenora_api.interfaces.api.dependencies import (
    get_current_active_user,
    get_notification_service,
    require_admin,
    resolve_current_user,
)
from jeenora_api.interfaces.api.schemas import (
    ActionResponse,
    AdminNotificationListResponse,
    NotificationChannelStatusRead,
    NotificationListResponse,
    NotificationRead,
    NotificationSendRequest,
    NotificationSendResponse,
    NotificationStatsRead,
    SentStatusRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or 0,
        user_id=notification.user_id,
        title=notification.title,
        message=notification.message,
        type=notification.type,
        category=notification.category,
        link=notification.link,
        channels=list(notification.channels),
        meta=notification.meta or {},
        is_read=notification.is_read,
        sent_status=SentStatusRead(**notification.sent_status.as_dict()),
        created_at=notification.created_at,
        expires_at=notification.expires_at,
    )


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: str | None = Query(None, description="Category filter, or 'all'"),
    unread_only: bool = Query(False, alias="unreadOnly"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationListResponse:
    """Return a page of the authenticated user's notifications."""

    result = list_user_notifications(
        db,
        user_id=current_user.id,
        page=page,
        limit=limit,
        category=category,
        unread_only=unread_only,
    )
    return NotificationListResponse(
        items=[_notification_to_schema(item) for item in result["items"]],
        unread_count=result["unread_count"],
        pagination=result["pagination"],
    )


@router.get("/stats", response_model=NotificationStatsRead)
def notification_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationStatsRead:
    return NotificationStatsRead(**get_notification_stats(db, user_id=current_user.id))


@router.patch("/mark-all-read", response_model=ActionResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    updated = mark_all_notifications_read(db, user_id=current_user.id)
    return ActionResponse(success=True, message="All notifications marked as read", count=updated)


@router.patch("/{notification_id}/read", response_model=ActionResponse)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    if not mark_notification_read(db, user_id=current_user.id, notification_id=notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return ActionResponse(success=True, message="Notification marked as read")


@router.delete("/{notification_id}", response_model=ActionResponse)
def delete_own_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    if not delete_user_notification(db, user_id=current_user.id, notification_id=notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return ActionResponse(success=True, message="Notification deleted")


@router.get("/whatsapp-status", response_model=NotificationChannelStatusRead)
def whatsapp_status(
    service: NotificationService = Depends(get_notification_service),
    _: User = Depends(require_admin),
) -> NotificationChannelStatusRead:
    return NotificationChannelStatusRead(**service.whatsapp_status())


@router.post("/send", response_model=NotificationSendResponse)
async def send_notification(
    payload: NotificationSendRequest,
    db: Session = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
    _: User = Depends(require_admin),
) -> NotificationSendResponse:
    """Notify every active user or the listed users over the requested channels."""

    template = NotificationTemplate(
        title=payload.title,
        message=payload.message,
        type=payload.type,
        category=payload.category,
        link=payload.link,
        channels=list(payload.channels),
        meta=payload.meta,
    )
    try:
        notifications = await service.broadcast(db, payload.user_ids, template)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceFailureError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Notifications could not be stored",
        ) from exc

    return NotificationSendResponse(
        success=bool(notifications),
        message=f"Notification sent to {len(notifications)} users",
        count=len(notifications),
        notifications=[_notification_to_schema(item) for item in notifications],
    )


@router.get("/all", response_model=AdminNotificationListResponse)
def list_every_notification(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: int | None = Query(None, alias="userId"),
    type: str | None = Query(None),
    category: str | None = Query(None),
    channel: str | None = Query(None),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> AdminNotificationListResponse:
    result = list_all_notifications(
        db,
        page=page,
        limit=limit,
        user_id=user_id,
        type=type,
        category=category,
        channel=channel,
        start_date=start_date,
        end_date=end_date,
    )
    return AdminNotificationListResponse(
        items=[_notification_to_schema(item) for item in result["items"]],
        stats=result["stats"],
        pagination=result["pagination"],
    )


@router.delete("/admin/{notification_id}", response_model=ActionResponse)
def admin_delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> ActionResponse:
    if not delete_notification(db, notification_id=notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return ActionResponse(success=True, message="Notification deleted")


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
        pending = list_user_notifications(session, user_id=user.id, unread_only=True)["items"]
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    await notification_manager.connect(user.id, websocket)
    try:
        if pending:
            await websocket.send_json(
                {"type": "init", "data": [serialize_notification(item) for item in pending]}
            )
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    ack_session = SessionLocal()
                    try:
                        for notification_id in ids:
                            if isinstance(notification_id, int):
                                mark_notification_read(
                                    ack_session, user_id=user.id, notification_id=notification_id
                                )
                    finally:
                        ack_session.close()
    except WebSocketDisconnect:
        notification_manager.disconnect(user.id, websocket)
    except Exception:
        notification_manager.disconnect(user.id, websocket)
        raise
