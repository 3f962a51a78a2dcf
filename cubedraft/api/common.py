import time
from typing import Dict, Optional

from flask import current_app, request
from flask_login import current_user

_last_controller_action: Dict[str, float] = {}


def request_data() -> dict:
    return request.get_json(silent=True) or {}


def request_user_id(data: Optional[dict] = None) -> Optional[str]:
    """Seat identity: the logged-in account if any, else the client-supplied guest id."""
    if current_user.is_authenticated:
        return current_user.draft_user_id
    if data is None:
        data = request_data()
    return data.get('user_id') or request.args.get('user_id')


def is_debounced(action: str, room_code: str, user_id: Optional[str]) -> bool:
    try:
        debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    key = f"{action}:{room_code.upper()}:{user_id}"
    now = time.time() * 1000.0
    last = _last_controller_action.get(key, 0)
    if now - last < debounce_ms:
        return True
    _last_controller_action[key] = now
    return False
