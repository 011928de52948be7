"""Realtime WebSocket endpoint.

    ws://host/ws?token=<accessToken>

The access token is checked during the handshake; a bad or missing token
closes the socket with 1008 (policy violation) before it is accepted into a
room. Clients may send {"type": "ping"} and receive {"type": "pong"}; all
other traffic is server -> client change events.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from src.et_common.errors import InvalidCredentialsError
from src.et_gateway.auth.dependencies import user_id_from_token
from src.et_realtime.notifier import Notifier, get_notifier
from src.et_realtime.registry import user_room

logger = logging.getLogger("et.realtime")

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    notifier: Annotated[Notifier, Depends(get_notifier)],
    token: str | None = Query(None),
) -> None:
    try:
        user_id = user_id_from_token(token or "")
    except InvalidCredentialsError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    room = user_room(str(user_id))
    registry = notifier.registry
    registry.join(websocket, room)
    logger.info("connection joined %s (%d open)", room, registry.room_size(room))
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    except ValueError as exc:
        # receive_json on a non-JSON frame
        logger.info("closing %s after malformed frame: %s", room, exc)
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
    finally:
        registry.leave(websocket)
        logger.info("connection left %s", room)
