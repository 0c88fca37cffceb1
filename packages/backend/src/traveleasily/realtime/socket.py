"""Socket.IO server: broadcasts domain events to connected clients.

Clients connect to /socket.io with an access token, either in the
Socket.IO `auth` payload ({"token": ...}) or as ?token=. Authenticated
sockets join a room named after their user id so the server can reach
every tab of one user (e.g. to disconnect a deleted account). In
development, anonymous sockets are allowed and only receive broadcasts.

Delivery is fire-and-forget: no ordering or replay. Clients that miss
an event re-read the REST API.
"""

from typing import Any, Optional
from urllib.parse import parse_qs

import socketio
from socketio import exceptions
import structlog
from fastapi.encoders import jsonable_encoder

from traveleasily.auth.jwt import TokenError, verify_token
from traveleasily.config import settings
from traveleasily.events.types import CLIENT_RELAYS

logger = structlog.get_logger()


def _client_manager() -> Optional[socketio.AsyncRedisManager]:
    if settings.realtime_redis_fanout:
        return socketio.AsyncRedisManager(settings.redis_url)
    return None


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.cors_origins,
    client_manager=_client_manager(),
)


def _token_from(environ: dict, auth: Any) -> Optional[str]:
    if isinstance(auth, dict) and auth.get("token"):
        return auth["token"]
    query = parse_qs(environ.get("QUERY_STRING", ""))
    return (query.get("token") or [None])[0]


@sio.event
async def connect(sid: str, environ: dict, auth: Any = None):
    """Authenticate the socket and join the caller's user room."""
    token = _token_from(environ, auth)

    if not token:
        if settings.environment != "development":
            raise exceptions.ConnectionRefusedError("Authentication required")
        logger.info("socket.connected", sid=sid, anonymous=True)
        return

    try:
        payload = verify_token(token)
    except TokenError:
        raise exceptions.ConnectionRefusedError("Invalid or expired token")

    user_id = payload["sub"]
    await sio.save_session(sid, {"user_id": user_id})
    await sio.enter_room(sid, user_id)
    logger.info("socket.connected", sid=sid, user_id=user_id)


@sio.event
async def disconnect(sid: str, *args):
    logger.info("socket.disconnected", sid=sid)


def _register_relay(incoming: str, outgoing: str) -> None:
    async def relay(sid: str, data: Any = None):
        await broadcast(outgoing, data)

    sio.on(incoming, relay)


for _incoming, _outgoing in CLIENT_RELAYS.items():
    _register_relay(_incoming, _outgoing)


async def broadcast(event: str, data: Any, room: Optional[str] = None) -> None:
    """Emit an event to every client, or only to `room` when given."""
    await sio.emit(event, jsonable_encoder(data), room=room)
    logger.debug("socket.broadcast", socket_event=event, room=room)
