"""Pack draft: pick a card, pass the rest.

Every seat holds a hand. Once every seat has picked, hands rotate one seat
(alternating direction per pack). When only the burned cards remain the pack
is finished, the leftovers are burned and the next pack is dealt.
"""
import math
from typing import Any, Dict, Optional

from flask import current_app

from cubedraft import db
from cubedraft.models import DraftBurnedCard, DraftPick, DraftPlayer, DraftSession
from . import packs as pack_utils
from . import timers
from .errors import DraftError
from .events import forget_room
from .queries import card_scorer, get_session, require_active, require_player


def deal_pack(session: DraftSession, pack_number: int) -> None:
    all_packs = session.packs
    for player in session.players:
        player.hand = pack_utils.pack_for(all_packs, player.seat_position, pack_number)
        player.pick_made = False
        db.session.add(player)


def _record_pick(session: DraftSession, player: DraftPlayer, card_id: int, pick_time: Optional[int],
                 auto: bool) -> DraftPick:
    hand = player.hand
    hand.remove(card_id)
    player.hand = hand
    player.pick_made = True
    pick = DraftPick(
        session_id=session.id,
        player_id=player.id,
        card_id=card_id,
        pack_number=session.current_pack,
        pick_number=session.current_pick,
        pick_time_seconds=pick_time,
        was_auto_pick=auto,
    )
    db.session.add(player)
    db.session.add(pick)
    return pick


def _elapsed(session: DraftSession, at: float) -> Optional[int]:
    if session.pick_started_at is None:
        return None
    return max(0, int(at - session.pick_started_at))


def run_bot_picks(session: DraftSession, at: float) -> int:
    """Let every bot that has not picked take its highest-scored card."""
    score = card_scorer(session)
    count = 0
    for player in session.players:
        if not player.is_bot or player.pick_made:
            continue
        choice = pack_utils.best_card(player.hand, score)
        if choice is None:
            continue
        _record_pick(session, player, choice, _elapsed(session, at), auto=False)
        count += 1
    return count


def all_picked(session: DraftSession) -> bool:
    return all(p.pick_made for p in session.players)


def pass_packs(session: DraftSession, at: float) -> None:
    hands = {p.seat_position: p.hand for p in session.players}
    if pack_utils.is_pack_finished(hands, session.burned_per_pack):
        for seat, leftovers in hands.items():
            for card_id in leftovers:
                db.session.add(DraftBurnedCard(
                    session_id=session.id,
                    card_id=card_id,
                    pack_number=session.current_pack,
                    burned_from_seat=seat,
                ))
        for player in session.players:
            player.hand = []
            player.pick_made = False
            db.session.add(player)

        if session.current_pack >= session.packs_per_player:
            session.status = 'completed'
            session.completed_at = at
            forget_room(session.room_code)
            current_app.logger.info(f"[complete] session={session.room_code} packs={session.current_pack}")
            db.session.add(session)
            return

        session.current_pack += 1
        session.current_pick = 1
        session.direction = pack_utils.flip_direction(session.direction)
        deal_pack(session, session.current_pack)
        current_app.logger.info(
            f"[next-pack] session={session.room_code} pack={session.current_pack} direction={session.direction}"
        )
    else:
        rotated = pack_utils.rotate_hands(hands, session.direction)
        for player in session.players:
            player.hand = rotated[player.seat_position]
            player.pick_made = False
            db.session.add(player)
        session.current_pick += 1

    timers.restart_timer(session, at)
    db.session.add(session)
    run_bot_picks(session, at)
    if all_picked(session):
        pass_packs(session, at)


def make_pick(room_code: str, user_id: str, card_id, at: Optional[float] = None) -> DraftPick:
    at = timers.now() if at is None else at
    session = get_session(room_code)
    if session.is_auction:
        raise DraftError('Picks are not used in auction drafts', 400)
    require_active(session, at)
    player = require_player(session, user_id)
    if player.pick_made:
        raise DraftError('You have already picked this round', 409)
    try:
        card_id = int(card_id)
    except (TypeError, ValueError):
        raise DraftError('card_id is required', 400)
    if card_id not in player.hand:
        raise DraftError('Card is not in your hand', 400)

    pick = _record_pick(session, player, card_id, _elapsed(session, at), auto=False)
    current_app.logger.info(
        f"[pick] session={session.room_code} seat={player.seat_position} card={card_id} "
        f"pack={session.current_pack} pick={session.current_pick}"
    )
    run_bot_picks(session, at)
    if all_picked(session):
        pass_packs(session, at)
    db.session.commit()
    return pick


def check_and_auto_pick_timed_out(room_code: str, at: Optional[float] = None) -> Dict[str, Any]:
    """Pick for every player whose timer (plus grace) ran out."""
    at = timers.now() if at is None else at
    result = {'auto_picked_count': 0, 'auto_picked_names': []}
    session = get_session(room_code)
    if session.is_auction or session.status != 'in_progress' or session.paused:
        return result
    if timers.is_resuming(session, at):
        return result
    grace = int(current_app.config.get('AUTO_PICK_GRACE_SEC', 5))
    if not timers.is_timed_out(session.timer_seconds, session.pick_started_at, at, grace):
        return result

    score = card_scorer(session)
    for player in session.players:
        if player.pick_made or not player.hand:
            continue
        choice = pack_utils.best_card(player.hand, score)
        _record_pick(session, player, choice, session.timer_seconds, auto=True)
        result['auto_picked_count'] += 1
        result['auto_picked_names'].append(player.name)

    if result['auto_picked_count']:
        current_app.logger.info(
            f"[auto-pick] session={session.room_code} pack={session.current_pack} pick={session.current_pick} "
            f"players={result['auto_picked_names']}"
        )
    if all_picked(session):
        pass_packs(session, at)
    db.session.commit()
    return result


def draft_stats(session: DraftSession, player: Optional[DraftPlayer] = None) -> Dict[str, Any]:
    query = DraftPick.query.filter_by(session_id=session.id)
    if player is not None:
        query = query.filter_by(player_id=player.id)
    picks = query.all()
    manual_times = [p.pick_time_seconds for p in picks if not p.was_auto_pick and p.pick_time_seconds is not None]
    average = round(sum(manual_times) / len(manual_times), 1) if manual_times else 0
    half_pack = session.pack_size / 2
    return {
        'total_picks': len(picks),
        'total_burned': DraftBurnedCard.query.filter_by(session_id=session.id).count(),
        'average_pick_time': average,
        'auto_picks': sum(1 for p in picks if p.was_auto_pick),
        'first_picks': sum(1 for p in picks if p.pick_number == 1),
        'wheeled_cards': sum(1 for p in picks if p.pick_number > half_pack),
        'packs_per_player': session.packs_per_player,
        'picks_per_pack': session.picks_per_pack,
    }


def pack_plan(player_count: int, cards_per_player: int, pack_size: int, burned_per_pack: int) -> Dict[str, int]:
    picks_per_pack = pack_size - burned_per_pack
    packs_per_player = math.ceil(cards_per_player / picks_per_pack)
    return {
        'picks_per_pack': picks_per_pack,
        'packs_per_player': packs_per_player,
        'required_cards': pack_utils.required_cards(player_count, packs_per_player, pack_size),
    }
