import time
from typing import Optional, Set, Tuple

from cubedraft import db, socketio
from cubedraft.models import DraftSession
from . import auction, pack_draft, presence, timers
from .events import broadcast_state


_scheduled_turn_keys: Set[Tuple[int, str, float]] = set()
_watchdog_started = False


def _scheduler_enabled(app) -> bool:
    return not app.config.get('TESTING') or app.config.get('ENABLE_SCHEDULER_IN_TESTS')


def _turn_phase(session: DraftSession) -> str:
    if session.is_auction:
        return (session.auction or {}).get('phase') or 'selecting'
    return 'pick'


def _sleep(app, delay: float, tag: str) -> None:
    # heartbeat sleep loop if enabled
    try:
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
    except (TypeError, ValueError):
        hb = 0
    if hb and hb > 0:
        slept = 0.0
        while slept < delay:
            step = min(hb, delay - slept)
            time.sleep(step)
            slept += step
            app.logger.info(f"[timer-heartbeat] {tag} remaining={max(0.0, delay - slept):.0f}s")
    else:
        time.sleep(delay)


def schedule_turn_timer(app, session_id: int) -> None:
    """Act for idle players once the current turn's timer runs out.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Ensures a single timer per (session, phase, turn start)
    - Re-validates the turn after sleeping; pauses, picks and resumes all
      move the turn start, which turns a stale timer into a no-op
    - Reschedules itself for the next turn
    """
    if not _scheduler_enabled(app):
        return

    with app.app_context():
        session = DraftSession.query.filter_by(id=session_id).first()
        if not session or session.status != 'in_progress' or session.paused:
            return
        duration, started_at = timers.active_timer(session)
        if not duration or started_at is None:
            return
        phase = _turn_phase(session)
        key = (session.id, phase, started_at)
        if key in _scheduled_turn_keys:
            app.logger.info(f"[timer-skip] session={session.room_code} phase={phase} already scheduled")
            return
        _scheduled_turn_keys.add(key)

        grace = int(app.config.get('AUTO_PICK_GRACE_SEC', 5))
        delay = max(0.0, started_at + duration + grace - timers.now())
        room_code = session.room_code
        app.logger.info(
            f"[timer-set] session={room_code} phase={phase} duration={duration}s delay={delay:.1f}s"
        )

    def _worker(expected_key: Tuple[int, str, float], code: str, wait: float):
        _sleep(app, wait, f"session={code} phase={expected_key[1]}")
        with app.app_context():
            _scheduled_turn_keys.discard(expected_key)
            s = DraftSession.query.filter_by(id=expected_key[0]).first()
            if not s:
                return
            _duration, current_start = timers.active_timer(s)
            app.logger.info(
                f"[timer-fire] session={code} expected_phase={expected_key[1]} actual_phase={_turn_phase(s)}"
            )
            if (s.status != 'in_progress' or s.paused or _turn_phase(s) != expected_key[1]
                    or current_start != expected_key[2]):
                app.logger.info(f"[timer-abort] session={code} turn moved on")
                return

            if s.is_auction:
                result = auction.check_and_auto_act_timed_out(code)
                acted = result['action'] is not None
            else:
                result = pack_draft.check_and_auto_pick_timed_out(code)
                acted = result['auto_picked_count'] > 0
            if acted:
                broadcast_state(code, reason='timeout', **result)
            s = DraftSession.query.filter_by(id=expected_key[0]).first()
            if s and s.status == 'in_progress':
                schedule_turn_timer(app, s.id)

    if app.config.get('TESTING'):
        _worker(key, room_code, delay)
    else:
        socketio.start_background_task(_worker, key, room_code, delay)


def schedule_resume_update(app, room_code: str, resume_at: Optional[float]) -> None:
    """Broadcast once the resume countdown ends so clients restart their timers."""
    if not _scheduler_enabled(app) or not resume_at:
        return

    def _runner(code: str, deadline: float):
        time.sleep(max(0.0, deadline - timers.now()))
        with app.app_context():
            s = DraftSession.query.filter_by(room_code=code).first()
            if s and not s.paused and s.resume_at == deadline:
                broadcast_state(code, reason='resumed')
                schedule_turn_timer(app, s.id)

    if app.config.get('TESTING'):
        _runner(room_code, resume_at)
    else:
        socketio.start_background_task(_runner, room_code, resume_at)


def sweep_presence_once(app) -> None:
    """One watchdog pass; a failing sweep is logged and rolled back."""
    with app.app_context():
        try:
            for code in presence.sweep_stale_connections():
                broadcast_state(code, reason='presence')
        except Exception:
            db.session.rollback()
            app.logger.exception('[presence] sweep failed')


def _presence_loop(app, interval: int) -> None:
    while True:
        socketio.sleep(interval)
        sweep_presence_once(app)


def start_presence_watchdog(app) -> None:
    """Run the stale-connection sweep every PRESENCE_CHECK_SEC seconds."""
    global _watchdog_started
    if _watchdog_started or not _scheduler_enabled(app) or app.config.get('TESTING'):
        return
    interval = int(app.config.get('PRESENCE_CHECK_SEC', 10))
    if interval <= 0:
        return
    _watchdog_started = True

    app.logger.info(f"[presence] watchdog every {interval}s")
    socketio.start_background_task(_presence_loop, app, interval)
