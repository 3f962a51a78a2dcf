"""Pick/bid timer reconciliation.

All timers are stored as a duration plus the epoch timestamp the current
turn started at, so any client (or the scheduler) recomputes the remaining
time from the same record without drifting. Pausing freezes the remaining
time; resuming shows a short countdown and then rebases the start
timestamp so the saved time carries on where it stopped.

A timer is in one of three display modes:

- ``running``: ``max(0, duration - floor(now - started_at))``
- ``paused``: frozen at ``time_remaining_at_pause``
- ``resuming``: frozen at the saved value until ``resume_at``
"""
import math
import time
from typing import Any, Dict, Optional, Tuple

RUNNING = 'running'
PAUSED = 'paused'
RESUMING = 'resuming'


def now() -> float:
    return time.time()


def remaining_seconds(duration: int, started_at: Optional[float], at: float) -> int:
    if not duration or duration <= 0:
        return 0
    if started_at is None:
        return int(duration)
    elapsed = math.floor(at - started_at)
    return int(max(0, min(duration, duration - elapsed)))


def resume_countdown(resume_at: Optional[float], at: float) -> int:
    if not resume_at or resume_at <= at:
        return 0
    return int(math.ceil(resume_at - at))


def timer_snapshot(duration: int, started_at: Optional[float], paused: bool,
                   time_remaining_at_pause: Optional[int], resume_at: Optional[float],
                   at: float) -> Dict[str, Any]:
    if paused:
        if time_remaining_at_pause is not None:
            remaining = int(time_remaining_at_pause)
        else:
            remaining = remaining_seconds(duration, started_at, at)
        return {'mode': PAUSED, 'remaining': remaining, 'countdown': 0, 'duration': duration}

    countdown = resume_countdown(resume_at, at)
    if countdown > 0:
        if time_remaining_at_pause is not None:
            remaining = int(time_remaining_at_pause)
        else:
            remaining = remaining_seconds(duration, started_at, at)
        return {'mode': RESUMING, 'remaining': remaining, 'countdown': countdown, 'duration': duration}

    return {
        'mode': RUNNING,
        'remaining': remaining_seconds(duration, started_at, at),
        'countdown': 0,
        'duration': duration,
    }


def is_timed_out(duration: int, started_at: Optional[float], at: float, grace: float = 0) -> bool:
    """True once the timer plus grace has fully elapsed; 0 means untimed."""
    if not duration or duration <= 0 or started_at is None:
        return False
    return at - started_at >= duration + grace


# ---- Session bookkeeping ----

def active_timer(session) -> Tuple[int, Optional[float]]:
    """(duration, started_at) of the timer currently running for a session."""
    if session.is_auction:
        state = session.auction or {}
        if state.get('phase') == 'bidding':
            return int(state.get('bid_timer_seconds') or 0), state.get('bid_started_at')
        return int(session.timer_seconds or 0), session.selection_started_at
    return int(session.timer_seconds or 0), session.pick_started_at


def set_active_timer_start(session, started_at: float) -> None:
    if session.is_auction:
        state = session.auction or {}
        if state.get('phase') == 'bidding':
            state['bid_started_at'] = started_at
            session.auction = state
        else:
            session.selection_started_at = started_at
    else:
        session.pick_started_at = started_at


def is_resuming(session, at: float) -> bool:
    return resume_countdown(session.resume_at, at) > 0


def session_timer(session, at: float) -> Dict[str, Any]:
    duration, started_at = active_timer(session)
    return timer_snapshot(duration, started_at, session.paused, session.time_remaining_at_pause,
                          session.resume_at, at)


def pause_bookkeeping(session, at: float) -> None:
    duration, started_at = active_timer(session)
    if session.resume_at and session.resume_at > at and session.time_remaining_at_pause is not None:
        # paused again during the countdown; keep the already-saved value
        saved = session.time_remaining_at_pause
    else:
        saved = remaining_seconds(duration, started_at, at)
    session.paused = True
    session.paused_at = at
    session.time_remaining_at_pause = saved
    session.resume_at = None


def resume_bookkeeping(session, at: float, countdown_sec: int) -> None:
    duration, _started_at = active_timer(session)
    saved = session.time_remaining_at_pause
    if saved is None:
        saved = duration
    resume_at = at + countdown_sec
    session.paused = False
    session.paused_at = None
    session.resume_at = resume_at
    set_active_timer_start(session, resume_at - (duration - saved))


def restart_timer(session, at: float) -> None:
    """Start a fresh turn on whichever timer is active."""
    set_active_timer_start(session, at)
    session.time_remaining_at_pause = None
    session.resume_at = None
