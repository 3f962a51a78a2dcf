import random
from typing import Any, Dict, Optional, Tuple

from flask import current_app

from cubedraft import db
from cubedraft.cubes import loader
from cubedraft.cubes.games import get_game
from cubedraft.models import AuctionBid, DraftBurnedCard, DraftPick, DraftPlayer, DraftSession
from . import auction, pack_draft, timers
from . import packs as pack_utils
from .errors import DraftError
from .events import forget_room
from .queries import get_session, require_host

MODES = ('pack', 'auction-grid')
MAX_PLAYERS = 12


def _int_setting(settings: Dict[str, Any], key: str, defaults: Dict[str, Any]) -> int:
    value = settings.get(key, defaults.get(key))
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DraftError(f"{key} must be a number", 400)


def create_session(host_user_id: str, host_name: Optional[str], cube_id: str,
                   settings: Optional[Dict[str, Any]] = None, bot_count: int = 0,
                   rng: Optional[random.Random] = None, at: Optional[float] = None) -> Tuple[DraftSession, DraftPlayer]:
    """Create a session, deal every pack (or grid) up front and seat the host and bots."""
    at = timers.now() if at is None else at
    settings = settings or {}
    if not host_user_id:
        raise DraftError('user_id is required', 400)
    try:
        cube = loader.load_cube(cube_id)
    except loader.CubeNotFound as exc:
        raise DraftError(str(exc), 404)
    game = get_game(cube['game_id'])
    defaults = game.draft_settings()

    mode = settings.get('mode') or 'pack'
    if mode not in MODES:
        raise DraftError(f"Unknown draft mode '{mode}'", 400)
    player_count = _int_setting(settings, 'player_count', defaults)
    cards_per_player = _int_setting(settings, 'cards_per_player', defaults)
    pack_size = _int_setting(settings, 'pack_size', defaults)
    burned_per_pack = _int_setting(settings, 'burned_per_pack', defaults)
    timer_seconds = _int_setting(settings, 'timer_seconds', defaults)
    if mode == 'auction-grid' and 'timer_seconds' not in settings:
        timer_seconds = int(current_app.config.get('AUCTION_SELECTION_TIMER_SEC', 30))

    if not 1 <= player_count <= MAX_PLAYERS:
        raise DraftError(f"player_count must be between 1 and {MAX_PLAYERS}", 400)
    if cards_per_player < 1:
        raise DraftError('cards_per_player must be positive', 400)
    if burned_per_pack < 0 or pack_size <= burned_per_pack:
        raise DraftError('pack_size must be larger than burned_per_pack', 400)
    if timer_seconds < 0:
        raise DraftError('timer_seconds cannot be negative', 400)
    if player_count == 1 and not 0 <= bot_count <= MAX_PLAYERS - 1:
        raise DraftError(f"bot_count must be between 0 and {MAX_PLAYERS - 1}", 400)

    total_players = 1 + bot_count if player_count == 1 else player_count
    card_ids = list(cube['card_map'].keys())

    session = DraftSession(
        host_id=host_user_id,
        cube_id=cube['id'],
        game_id=game.id,
        mode=mode,
        player_count=total_players,
        cards_per_player=cards_per_player,
        pack_size=pack_size,
        burned_per_pack=burned_per_pack,
        timer_seconds=timer_seconds,
        status='waiting',
        created_at=at,
    )
    if mode == 'auction-grid':
        session.grids = auction.build_grids(card_ids, total_players, cards_per_player, pack_size,
                                            burned_per_pack, rng)
    else:
        plan = pack_draft.pack_plan(total_players, cards_per_player, pack_size, burned_per_pack)
        if len(card_ids) < plan['required_cards']:
            raise DraftError(
                f"Cube has {len(card_ids)} cards but {plan['required_cards']} are needed "
                f"for {total_players} players", 400,
            )
        session.packs = pack_utils.build_packs(card_ids, total_players, plan['packs_per_player'], pack_size, rng)
    db.session.add(session)
    db.session.flush()

    points = int(current_app.config.get('AUCTION_BIDDING_POINTS', 100))
    host = DraftPlayer(
        session_id=session.id, user_id=host_user_id, name=host_name or game.default_player_name,
        seat_position=0, is_host=True, is_connected=True, last_seen_at=at, bidding_points=points,
    )
    db.session.add(host)
    if player_count == 1:
        for index in range(bot_count):
            db.session.add(DraftPlayer(
                session_id=session.id, user_id=f"bot-{index + 1}", name=game.bot_name(index),
                seat_position=index + 1, is_bot=True, is_connected=True, last_seen_at=at,
                bidding_points=points,
            ))
    db.session.commit()
    current_app.logger.info(
        f"[create] session={session.room_code} mode={mode} cube={cube['id']} players={total_players} bots={bot_count if player_count == 1 else 0}"
    )
    return session, host


def join_session(room_code: str, user_id: str, name: Optional[str] = None,
                 at: Optional[float] = None) -> Tuple[DraftSession, DraftPlayer, bool]:
    """Seat a player, or reconnect one already seated. Returns (session, player, reconnected)."""
    at = timers.now() if at is None else at
    if not user_id:
        raise DraftError('user_id is required', 400)
    session = get_session(room_code)
    existing = session.player_for(user_id)
    if existing:
        existing.is_connected = True
        existing.last_seen_at = at
        db.session.add(existing)
        db.session.commit()
        return session, existing, True

    if session.status != 'waiting':
        raise DraftError('This draft has already started', 403)
    if len(session.players) >= session.player_count:
        raise DraftError('This draft is full', 403)

    player = DraftPlayer(
        session_id=session.id,
        user_id=user_id,
        name=name or get_game(session.game_id).default_player_name,
        seat_position=len(session.players),
        is_connected=True,
        last_seen_at=at,
        bidding_points=int(current_app.config.get('AUCTION_BIDDING_POINTS', 100)),
    )
    db.session.add(player)
    db.session.commit()
    current_app.logger.info(f"[join] session={session.room_code} seat={player.seat_position} user={user_id}")
    return session, player, False


def start_draft(room_code: str, user_id: str, at: Optional[float] = None) -> DraftSession:
    at = timers.now() if at is None else at
    session = get_session(room_code)
    require_host(session, user_id)
    if session.status == 'in_progress':
        return session
    if session.status != 'waiting':
        raise DraftError('Draft cannot be started', 400)
    seated = len(session.players)
    if seated < session.player_count:
        raise DraftError(f"Waiting for players ({seated}/{session.player_count})", 400)

    session.status = 'in_progress'
    session.started_at = at
    session.current_pack = 1
    session.current_pick = 1
    if session.is_auction:
        auction.start_auction(session, at)
        auction.run_bots(session, at)
    else:
        pack_draft.deal_pack(session, 1)
        timers.restart_timer(session, at)
        pack_draft.run_bot_picks(session, at)
    db.session.add(session)
    db.session.commit()
    current_app.logger.info(f"[start] session={session.room_code} mode={session.mode} players={seated}")
    return session


def toggle_pause(room_code: str, user_id: str, at: Optional[float] = None) -> DraftSession:
    at = timers.now() if at is None else at
    session = get_session(room_code)
    require_host(session, user_id)
    if session.status != 'in_progress':
        raise DraftError('Only a running draft can be paused', 400)
    if session.paused:
        countdown = int(current_app.config.get('RESUME_COUNTDOWN_SEC', 5))
        timers.resume_bookkeeping(session, at, countdown)
        current_app.logger.info(f"[resume] session={session.room_code} resume_at={session.resume_at}")
    else:
        timers.pause_bookkeeping(session, at)
        current_app.logger.info(
            f"[pause] session={session.room_code} remaining={session.time_remaining_at_pause}"
        )
    db.session.add(session)
    db.session.commit()
    return session


def auto_pause(session: DraftSession, reason: str, at: Optional[float] = None) -> bool:
    """Pause without a host check; returns False if nothing changed."""
    at = timers.now() if at is None else at
    if session.status != 'in_progress' or session.paused:
        return False
    timers.pause_bookkeeping(session, at)
    db.session.add(session)
    db.session.commit()
    current_app.logger.info(f"[auto-pause] session={session.room_code} reason={reason}")
    return True


def delete_session(session: DraftSession) -> None:
    forget_room(session.room_code)
    DraftPick.query.filter_by(session_id=session.id).delete()
    AuctionBid.query.filter_by(session_id=session.id).delete()
    DraftBurnedCard.query.filter_by(session_id=session.id).delete()
    db.session.delete(session)


def cancel_session(room_code: str, user_id: str) -> str:
    session = get_session(room_code)
    require_host(session, user_id)
    code = session.room_code
    session.status = 'cancelled'
    db.session.add(session)
    db.session.commit()
    delete_session(session)
    db.session.commit()
    current_app.logger.info(f"[cancel] session={code}")
    return code


def get_active_session(user_id: str) -> Optional[DraftSession]:
    if not user_id:
        return None
    return (
        DraftSession.query.join(DraftPlayer)
        .filter(DraftPlayer.user_id == user_id, DraftSession.status.in_(('waiting', 'in_progress')))
        .order_by(DraftSession.created_at.desc())
        .first()
    )


def cleanup_old_sessions(at: Optional[float] = None) -> Dict[str, int]:
    """Delete finished, abandoned and cancelled sessions past their retention window."""
    at = timers.now() if at is None else at
    cfg = current_app.config
    windows = (
        ('completed', 'completed', DraftSession.completed_at, int(cfg.get('RETENTION_COMPLETED_HOURS', 72))),
        ('abandoned', 'waiting', DraftSession.created_at, int(cfg.get('RETENTION_ABANDONED_HOURS', 6))),
        ('cancelled', 'cancelled', DraftSession.created_at, int(cfg.get('RETENTION_CANCELLED_HOURS', 24))),
    )
    counts = {}
    for label, status, column, hours in windows:
        cutoff = at - hours * 3600
        stale = DraftSession.query.filter(DraftSession.status == status, column < cutoff).all()
        for session in stale:
            delete_session(session)
        counts[label] = len(stale)
    db.session.commit()
    current_app.logger.info(f"[cleanup] deleted={counts}")
    return counts
