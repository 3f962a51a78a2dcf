"""Presence and host-disconnect detection.

Sockets report connect/disconnect explicitly and clients send a heartbeat
every 30 seconds. An explicit connection flag always wins; only when the
flag is unknown does the last heartbeat decide. A periodic sweep expires
players whose heartbeat went stale, and a running draft is paused when its
host drops so nobody gets auto-picked while the host is away.
"""
from typing import List, Optional

from flask import current_app

from cubedraft import db
from cubedraft.models import DraftPlayer, DraftSession
from . import timers
from .queries import get_session, require_player
from .sessions import auto_pause


def _threshold() -> int:
    return int(current_app.config.get('STALENESS_THRESHOLD_SEC', 45))


def is_stale(player: DraftPlayer, at: float, threshold: Optional[int] = None) -> bool:
    threshold = _threshold() if threshold is None else threshold
    if player.last_seen_at is None:
        return False
    return at - player.last_seen_at > threshold


def is_player_connected(player: DraftPlayer, at: float, threshold: Optional[int] = None) -> bool:
    if player.is_bot:
        return True
    if player.is_connected is False:
        return False
    if player.is_connected is True:
        return True
    return not is_stale(player, at, threshold)


def human_count(session: DraftSession) -> int:
    return sum(1 for p in session.players if not p.is_bot)


def should_monitor_host(session: DraftSession, viewer_user_id: Optional[str] = None) -> bool:
    if session.status != 'in_progress' or session.paused:
        return False
    if human_count(session) <= 1:
        return False
    return viewer_user_id is None or viewer_user_id != session.host_id


def is_host_connected(session: DraftSession, at: float) -> bool:
    host = session.host
    return host is not None and is_player_connected(host, at)


def is_paused_due_to_disconnect(session: DraftSession, at: float) -> bool:
    return bool(session.paused) and not is_host_connected(session, at)


def check_host_presence(session: DraftSession, at: Optional[float] = None) -> bool:
    """Pause the draft if its host is gone; True when a pause happened."""
    at = timers.now() if at is None else at
    if not should_monitor_host(session):
        return False
    if is_host_connected(session, at):
        return False
    current_app.logger.info(f"[presence] session={session.room_code} host disconnected, pausing")
    return auto_pause(session, 'host_disconnected', at)


def set_connected(room_code: str, user_id: str, connected: bool, at: Optional[float] = None) -> DraftPlayer:
    at = timers.now() if at is None else at
    session = get_session(room_code)
    player = require_player(session, user_id)
    player.is_connected = connected
    if connected:
        player.last_seen_at = at
    db.session.add(player)
    db.session.commit()
    current_app.logger.info(
        f"[presence] session={session.room_code} seat={player.seat_position} connected={connected}"
    )
    return player


def heartbeat(room_code: str, user_id: str, at: Optional[float] = None) -> DraftPlayer:
    at = timers.now() if at is None else at
    session = get_session(room_code)
    player = require_player(session, user_id)
    player.is_connected = True
    player.last_seen_at = at
    db.session.add(player)
    db.session.commit()
    return player


def sweep_stale_connections(at: Optional[float] = None) -> List[str]:
    """Expire stale heartbeats and pause drafts whose host is gone.

    Returns the room codes whose state changed.
    """
    at = timers.now() if at is None else at
    cutoff = at - _threshold()
    stale = (
        DraftPlayer.query.join(DraftSession)
        .filter(
            DraftSession.status == 'in_progress',
            DraftPlayer.is_bot == False,  # noqa: E712
            db.or_(DraftPlayer.is_connected.is_(None), DraftPlayer.is_connected == True),  # noqa: E712
            DraftPlayer.last_seen_at < cutoff,
        )
        .all()
    )
    touched = set()
    for player in stale:
        player.is_connected = False
        db.session.add(player)
        touched.add(player.session_id)
    if stale:
        db.session.commit()
        current_app.logger.info(f"[presence] expired {len(stale)} stale connection(s)")

    changed = []
    running = DraftSession.query.filter_by(status='in_progress', paused=False).all()
    for session in running:
        if check_host_presence(session, at) or session.id in touched:
            changed.append(session.room_code)
    return changed


def presence_summary(session: DraftSession, at: Optional[float] = None, viewer_user_id: Optional[str] = None) -> dict:
    at = timers.now() if at is None else at
    return {
        'players': [
            {
                'seat_position': p.seat_position,
                'name': p.name,
                'is_host': p.is_host,
                'is_bot': p.is_bot,
                'connected': is_player_connected(p, at),
                'last_seen_at': p.last_seen_at,
            }
            for p in session.players
        ],
        'host_connected': is_host_connected(session, at),
        'monitoring_host': should_monitor_host(session, viewer_user_id),
        'paused_due_to_disconnect': is_paused_due_to_disconnect(session, at),
    }
