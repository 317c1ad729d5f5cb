"""
Session WebSocket Router

Each connection owns one SessionController. The client sends commands;
the server answers with inline error frames, notice frames and a full
state frame whenever something changed, including changes pushed by other
sessions' writes.
"""

import asyncio
import contextlib
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from return_reward.errors import ReturnRewardError
from return_reward.realtime.queue import EventQueue
from return_reward.schemas.session import ErrorFrame, NoticeFrame, SessionCommand
from return_reward.session.controller import SessionController
from return_reward.session.notices import NoticeBoard
from return_reward.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Session"])


def _command_handlers(controller: SessionController, notices: NoticeBoard) -> Dict[str, Callable[[SessionCommand], Any]]:
    return {
        "sign_in": lambda c: controller.sign_in(c.token),
        "refresh_identity": lambda c: controller.refresh_identity(c.token),
        "sign_out": lambda c: controller.sign_out(),
        "complete_profile": lambda c: controller.complete_profile(c.display_name, c.photo_reference),
        "open_composer": lambda c: controller.open_composer(),
        "open_scanner": lambda c: controller.open_scanner(),
        "back": lambda c: controller.back(),
        "dashboard": lambda c: controller.go_to_dashboard(),
        "register_item": lambda c: controller.register_item(c.item_name, c.description or ""),
        "view_item": lambda c: controller.view_item(c.item_id),
        "scan": lambda c: controller.submit_scan(c.identifier),
        "start_chat": lambda c: controller.start_chat(),
        "open_chat": lambda c: controller.open_chat(c.chat_id),
        "send_message": lambda c: controller.send_message(c.text),
        "request_return": lambda c: controller.request_return(),
        "confirm": lambda c: controller.respond_to_confirmation(bool(c.accepted)),
        "dismiss_notice": lambda c: notices.dismiss(),
    }


async def _flush(websocket: WebSocket, controller: SessionController, notices: NoticeBoard) -> None:
    """Send pending notices, then the current state."""
    while notices.current is not None:
        notice = notices.dismiss()
        await websocket.send_json(NoticeFrame(title=notice.title, message=notice.message, code=notice.code).model_dump())
    await websocket.send_json({"type": "state", "state": controller.snapshot()})


async def _pump(websocket: WebSocket, controller: SessionController, notices: NoticeBoard, wake: asyncio.Event) -> None:
    """Push store notifications that arrive between client commands."""
    while True:
        await wake.wait()
        wake.clear()
        if controller.process_events():
            await _flush(websocket, controller, notices)


async def _handle(websocket: WebSocket, controller: SessionController, notices: NoticeBoard, data: Any) -> None:
    action: Optional[str] = data.get("action") if isinstance(data, dict) else None
    try:
        command = SessionCommand.model_validate(data)
        _command_handlers(controller, notices)[command.action](command)
    except ValidationError as e:
        await websocket.send_json(ErrorFrame(action=action, code="input_invalid", message=str(e)).model_dump())
    except ReturnRewardError as e:
        await websocket.send_json(ErrorFrame(action=action, code=e.code, message=e.message).model_dump())

    controller.process_events()
    await _flush(websocket, controller, notices)


@router.websocket("/ws/session")
async def session_socket(websocket: WebSocket, token: Optional[str] = None):
    """Interactive session: one controller per connection."""
    await websocket.accept()
    state = websocket.app.state
    settings = state.settings

    wake = asyncio.Event()
    notices = NoticeBoard()
    controller = SessionController(
        state.backend,
        notifier=notices,
        queue=EventQueue(on_post=wake.set),
        resume_token=token,
        configuration_error=state.configuration_error,
        qr_service_url=settings.qr_service_url,
        qr_size=settings.qr_size,
    )
    logger.info("Session connected", session=controller.session_id)

    pump = asyncio.create_task(_pump(websocket, controller, notices, wake))
    try:
        controller.process_events()
        await _flush(websocket, controller, notices)
        while True:
            data = await websocket.receive_json()
            await _handle(websocket, controller, notices, data)
    except WebSocketDisconnect:
        logger.info("Session disconnected", session=controller.session_id)
    finally:
        # Tears down every live subscription of this session
        controller.sign_out()
        await _stop_pump(pump, controller.session_id)


async def _stop_pump(pump: "asyncio.Task[None]", session_id: str) -> Optional[BaseException]:
    """Cancel the pump and wait for it. Returns the error it died with, if any."""
    pump.cancel()
    try:
        with contextlib.suppress(asyncio.CancelledError):
            await pump
    except Exception as e:
        logger.exception("Session pump failed", session=session_id, error=str(e))
        return e
    return None
