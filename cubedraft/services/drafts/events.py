from typing import Dict

from cubedraft import socketio

# room code -> open host sockets, and the pending host-loss pause deadline
host_connections: Dict[str, int] = {}
pending_host_pauses: Dict[str, float] = {}


def room_for(room_code: str) -> str:
    return f"draft:{room_code.upper()}"


def forget_room(room_code: str) -> None:
    """Drop host tracking for a room whose session has ended."""
    code = room_code.upper()
    host_connections.pop(code, None)
    pending_host_pauses.pop(code, None)


def broadcast_state(room_code: str, **extra) -> None:
    """Tell every client in the room to refresh its view of the draft."""
    payload = {'room_code': room_code.upper()}
    payload.update(extra)
    socketio.emit('state_update', payload, to=room_for(room_code), namespace='/ws')


def broadcast_ended(room_code: str, reason: str) -> None:
    socketio.emit('session_ended', {'room_code': room_code.upper(), 'reason': reason},
                  to=room_for(room_code), namespace='/ws')
