from typing import Callable

from cubedraft.cubes import loader
from cubedraft.models import DraftSession, DraftPlayer
from . import timers
from .errors import DraftError, NotHost, SessionNotFound


DEFAULT_CARD_SCORE = 50


def get_session(room_code: str) -> DraftSession:
    session = DraftSession.query.filter_by(room_code=(room_code or '').upper()).first()
    if not session:
        raise SessionNotFound((room_code or '').upper())
    return session


def require_player(session: DraftSession, user_id: str) -> DraftPlayer:
    player = session.player_for(user_id)
    if not player:
        raise DraftError('You are not in this session', 403)
    return player


def require_host(session: DraftSession, user_id: str) -> None:
    if not user_id or session.host_id != user_id:
        raise NotHost()


def require_active(session: DraftSession, at: float) -> None:
    """Reject turn actions unless the draft is live and its timer running."""
    if session.status != 'in_progress':
        raise DraftError('Draft is not in progress', 400)
    if session.paused:
        raise DraftError('Draft is paused', 409)
    if timers.is_resuming(session, at):
        raise DraftError('Draft is resuming', 409)


def card_scorer(session: DraftSession) -> Callable[[int], float]:
    def score(card_id: int) -> float:
        return loader.card_score(session.cube_id, card_id, DEFAULT_CARD_SCORE)
    return score
