"""Endpoints to operate the WhatsApp session and send campaign messages."""

from __future__ import annotations

import base64
import io
import logging
import platform
import sys

import qrcode
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from jeenora_api.config import get_settings
from jeenora_api.domain.entities import DeliveryAttemptResult, RefreshOutcome, User
from jeenora_api.domain.errors import NotReadyError
from jeenora_api.infrastructure.database import SessionLocal
from jeenora_api.infrastructure.notifications import whatsapp_status_manager
from jeenora_api.infrastructure.whatsapp import (
    WHATSAPP_STATUS_EVENT,
    WhatsAppClientManager,
    WhatsAppGateway,
)
from jeenora_api.infrastructure.whatsapp.browser import resolve_browser_executable
from jeenora_api.interfaces.api.dependencies import (
    get_whatsapp_gateway,
    get_whatsapp_manager,
    require_admin,
    resolve_current_user,
)
from jeenora_api.interfaces.api.schemas import (
    ActionResponse,
    BulkResultItem,
    BulkSendResponse,
    ContactRead,
    DeliveryResultRead,
    GroupRead,
    PhoneAnalysisRead,
    PlatformRead,
    QRCodeRead,
    SendBulkRequest,
    SendMediaRequest,
    SendSingleRequest,
    WhatsAppStatusRead,
)

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])
logger = logging.getLogger(__name__)

_REFRESH_MESSAGES = {
    RefreshOutcome.ALREADY_CONNECTED: "WhatsApp is already connected",
    RefreshOutcome.ALREADY_INITIALIZING: "WhatsApp is already initializing. Please wait.",
    RefreshOutcome.STARTED: "Generating a new QR code",
}


def render_qr_data_url(code: str) -> str:
    """Render ``code`` as a PNG QR image wrapped in a data URL."""

    buffer = io.BytesIO()
    qrcode.make(code).save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def _delivery_to_schema(
    result: DeliveryAttemptResult, gateway: WhatsAppGateway, number: str
) -> DeliveryResultRead:
    return DeliveryResultRead(
        success=result.success,
        message="Message sent successfully" if result.success else result.error or "Send failed",
        message_id=result.provider_message_id,
        error=result.error,
        error_code=result.error_code,
        recipient=result.recipient,
        phone_analysis=PhoneAnalysisRead.model_validate(gateway.analyze(number)),
    )


def _not_connected(exc: NotReadyError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)


@router.get("/status", response_model=WhatsAppStatusRead, response_model_by_alias=True)
async def get_status(
    manager: WhatsAppClientManager = Depends(get_whatsapp_manager),
    _: User = Depends(require_admin),
) -> WhatsAppStatusRead:
    """Return the connection snapshot together with the live session state."""

    detailed = await manager.detailed_status()
    return WhatsAppStatusRead(**manager.status_snapshot(), **detailed)


@router.get("/qr", response_model=QRCodeRead)
async def get_qr(
    manager: WhatsAppClientManager = Depends(get_whatsapp_manager),
    _: User = Depends(require_admin),
) -> QRCodeRead:
    """Return the pending pairing code as a scannable image."""

    if manager.tracker.is_ready():
        return QRCodeRead(success=True, message="WhatsApp is already connected")

    info = manager.pairing_info()
    if info is None:
        if not manager.tracker.is_busy():
            manager.launch()
            return QRCodeRead(
                success=False,
                message="QR code not available. Initializing WhatsApp, try again shortly.",
            )
        return QRCodeRead(success=False, message="WhatsApp is initializing. QR code not ready yet.")

    return QRCodeRead(
        success=True,
        message="Scan the QR code with WhatsApp",
        qr=render_qr_data_url(info.code),
        issued_at=info.issued_at,
        expires_at=info.expires_at,
    )


@router.post("/reset", response_model=ActionResponse)
async def reset_session(
    manager: WhatsAppClientManager = Depends(get_whatsapp_manager),
    _: User = Depends(require_admin),
) -> ActionResponse:
    """Log out, destroy the session and wipe its stored credentials."""

    await manager.logout()
    return ActionResponse(success=True, message="WhatsApp logged out. You can now reconnect.")


@router.post("/reconnect", response_model=ActionResponse)
async def reconnect(
    manager: WhatsAppClientManager = Depends(get_whatsapp_manager),
    _: User = Depends(require_admin),
) -> ActionResponse:
    if not manager.force_reconnect():
        return ActionResponse(success=False, message="WhatsApp is already initializing")
    return ActionResponse(success=True, message="Reconnection started")


@router.post("/refresh-qr", response_model=ActionResponse)
async def refresh_qr(
    manager: WhatsAppClientManager = Depends(get_whatsapp_manager),
    _: User = Depends(require_admin),
) -> ActionResponse:
    outcome = await manager.request_pairing_refresh(background=True)
    return ActionResponse(
        success=outcome is RefreshOutcome.STARTED,
        message=_REFRESH_MESSAGES[outcome],
    )


@router.post("/send-single", response_model=DeliveryResultRead)
async def send_single(
    payload: SendSingleRequest,
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
    _: User = Depends(require_admin),
) -> DeliveryResultRead:
    result = await gateway.send(
        payload.number, payload.message, payload.media_url, campaign_id=payload.campaign_id
    )
    return _delivery_to_schema(result, gateway, payload.number)


@router.post("/send-media", response_model=DeliveryResultRead)
async def send_media(
    payload: SendMediaRequest,
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
    _: User = Depends(require_admin),
) -> DeliveryResultRead:
    result = await gateway.send(
        payload.number, payload.caption, payload.media_url, campaign_id=payload.campaign_id
    )
    return _delivery_to_schema(result, gateway, payload.number)


@router.post("/send-bulk", response_model=BulkSendResponse)
async def send_bulk(
    payload: SendBulkRequest,
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
    _: User = Depends(require_admin),
) -> BulkSendResponse:
    outcomes = await gateway.send_bulk(
        payload.contacts, payload.message, payload.media_url, campaign_id=payload.campaign_id
    )
    results = [
        BulkResultItem(
            contact=str(contact),
            success=result.success,
            message_id=result.provider_message_id,
            error=result.error,
            error_code=result.error_code,
        )
        for contact, result in outcomes
    ]
    sent = sum(1 for item in results if item.success)
    return BulkSendResponse(
        success=sent > 0,
        message=f"Sent {sent} of {len(results)} messages",
        total=len(results),
        sent=sent,
        failed=len(results) - sent,
        results=results,
    )


@router.get("/contacts", response_model=list[ContactRead])
async def list_contacts(
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
    _: User = Depends(require_admin),
) -> list[ContactRead]:
    try:
        contacts = await gateway.list_contacts()
    except NotReadyError as exc:
        raise _not_connected(exc) from exc
    return [ContactRead.model_validate(contact) for contact in contacts]


@router.get("/groups", response_model=list[GroupRead])
async def list_groups(
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
    _: User = Depends(require_admin),
) -> list[GroupRead]:
    try:
        groups = await gateway.list_groups()
    except NotReadyError as exc:
        raise _not_connected(exc) from exc
    return [
        GroupRead(
            id=group.id,
            name=group.name,
            participants=len(group.participants),
            is_read_only=group.is_read_only,
        )
        for group in groups
    ]


@router.get("/platform", response_model=PlatformRead)
def platform_info(_: User = Depends(require_admin)) -> PlatformRead:
    settings = get_settings()
    return PlatformRead(
        platform=sys.platform,
        architecture=platform.machine(),
        python_version=platform.python_version(),
        browser_executable=resolve_browser_executable(settings.browser_executable_path),
        session_path=settings.whatsapp_session_path,
        headless=settings.whatsapp_headless,
    )


@router.websocket("/ws")
async def whatsapp_status_websocket(websocket: WebSocket) -> None:
    """Push connection status changes; a snapshot is sent right after connecting."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        session.close()
    if not (user.is_active and user.is_admin()):
        await websocket.close(code=1008)
        return

    manager: WhatsAppClientManager = websocket.app.state.whatsapp.manager
    await whatsapp_status_manager.connect(user.id, websocket)
    try:
        await websocket.send_json(
            {"type": WHATSAPP_STATUS_EVENT, "data": manager.status_snapshot()}
        )
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        whatsapp_status_manager.disconnect(user.id, websocket)
    except Exception:
        whatsapp_status_manager.disconnect(user.id, websocket)
        raise
