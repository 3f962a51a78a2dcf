"""Auction-grid draft.

Each grid is a face-up pool of cards. The selector puts one card up for
auction and players bid bidding points on it in seat order until everyone
else has passed. A player stops bidding once they hold ``pack_size`` cards
for the grid; when everyone is full (or the grid is empty) the leftovers go
to the graveyard and the next grid starts.
"""
import math
import random
from typing import Any, Callable, Dict, List, Optional

from flask import current_app

from cubedraft import db
from cubedraft.models import AuctionBid, DraftPick, DraftPlayer, DraftSession
from . import packs as pack_utils
from . import timers
from .errors import DraftError
from .events import forget_room
from .queries import card_scorer, get_session, require_active, require_player

SELECTING = 'selecting'
BIDDING = 'bidding'
GRID_COMPLETE = 'grid-complete'

_rng = random.Random()


def set_random(rng: random.Random) -> None:
    """Swap the generator used for bot bidding."""
    global _rng
    _rng = rng


def grid_plan(player_count: int, cards_per_player: int, acquired_per_grid: int, burned_per_grid: int) -> Dict[str, int]:
    grid_count = math.ceil(cards_per_player / acquired_per_grid)
    cards_per_grid = player_count * acquired_per_grid + burned_per_grid
    return {
        'grid_count': grid_count,
        'cards_per_grid': cards_per_grid,
        'required_cards': grid_count * cards_per_grid,
    }


def build_grids(card_ids, player_count: int, cards_per_player: int, acquired_per_grid: int,
                burned_per_grid: int, rng: Optional[random.Random] = None) -> List[dict]:
    plan = grid_plan(player_count, cards_per_player, acquired_per_grid, burned_per_grid)
    if len(card_ids) < plan['required_cards']:
        raise DraftError(
            f"Cube has {len(card_ids)} cards but {plan['required_cards']} are needed "
            f"for {plan['grid_count']} grids of {plan['cards_per_grid']}", 400,
        )
    pool = list(card_ids)
    (rng or random.Random()).shuffle(pool)
    grids = []
    size = plan['cards_per_grid']
    for index in range(plan['grid_count']):
        cards = pool[index * size:(index + 1) * size]
        grids.append({
            'grid_number': index + 1,
            'cards': cards,
            'remaining_cards': list(cards),
            'graveyard_cards': [],
        })
    return grids


def calculate_bot_bid(card_score: Optional[float], remaining_points: int, current_bid: int,
                      grid_number: int, cards_acquired_this_grid: int,
                      rng: Optional[random.Random] = None) -> Optional[int]:
    """How much a bot bids on a card, or None to pass."""
    rng = rng or _rng
    score = 50 if card_score is None else card_score
    if score >= 90:
        willingness = 18
    elif score >= 75:
        willingness = 12
    elif score >= 60:
        willingness = 8
    elif score >= 40:
        willingness = 4
    else:
        willingness = 2
    # save points for later grids
    grid_multiplier = 1 - (grid_number - 1) * 0.05
    urgency = 1.1 if cards_acquired_this_grid < 5 else 1.0
    max_bid = math.floor(willingness * grid_multiplier * urgency)

    min_bid = current_bid + 1
    if min_bid > max_bid or min_bid > remaining_points:
        return None
    if rng.random() > 0.5 and min_bid + 1 <= max_bid and min_bid + 1 <= remaining_points:
        return min_bid + math.floor(rng.random() * 2)
    return min_bid


# ---- state helpers ----

def _empty_state(phase: str) -> Dict[str, Any]:
    return {
        'phase': phase,
        'card_id': None,
        'current_bid': 0,
        'current_bidder_id': None,
        'bids': [],
        'passed_player_ids': [],
        'next_bidder_seat': None,
        'bid_timer_seconds': None,
        'bid_started_at': None,
    }


def current_grid(session: DraftSession) -> Optional[dict]:
    for grid in session.grids:
        if grid['grid_number'] == session.current_grid:
            return grid
    return None


def _save_grid(session: DraftSession, updated: dict) -> None:
    session.grids = [updated if g['grid_number'] == updated['grid_number'] else g for g in session.grids]


def is_maxed(session: DraftSession, player: DraftPlayer) -> bool:
    return player.cards_acquired_this_grid >= session.pack_size


def _player_at_seat(session: DraftSession, seat: Optional[int]) -> Optional[DraftPlayer]:
    return next((p for p in session.players if p.seat_position == seat), None)


def _next_seat(session: DraftSession, from_seat: int, skip: Callable[[DraftPlayer], bool]) -> Optional[int]:
    """Next seat clockwise from ``from_seat`` (wrapping back to it last)."""
    count = len(session.players)
    for step in range(1, count + 1):
        player = _player_at_seat(session, (from_seat + step) % count)
        if player is not None and not skip(player):
            return player.seat_position
    return None


def _active_bidders(session: DraftSession, state: Dict[str, Any]) -> List[DraftPlayer]:
    passed = set(state['passed_player_ids'])
    return [p for p in session.players if p.id not in passed and not is_maxed(session, p)]


# ---- transitions ----

def start_auction(session: DraftSession, at: float) -> None:
    session.current_grid = 1
    session.current_selector_seat = 0
    session.auction = _empty_state(SELECTING)
    timers.restart_timer(session, at)
    db.session.add(session)


def _select(session: DraftSession, card_id: int, at: float) -> None:
    state = _empty_state(BIDDING)
    state['card_id'] = card_id
    state['next_bidder_seat'] = _next_seat(
        session, session.current_selector_seat, lambda p: is_maxed(session, p)
    )
    state['bid_timer_seconds'] = int(current_app.config.get('AUCTION_BID_TIMER_SEC', 15))
    session.auction = state
    timers.restart_timer(session, at)
    db.session.add(session)
    current_app.logger.info(
        f"[auction-select] session={session.room_code} grid={session.current_grid} "
        f"selector={session.current_selector_seat} card={card_id}"
    )


def _bid(session: DraftSession, player: DraftPlayer, amount: int, at: float) -> None:
    state = session.auction
    db.session.add(AuctionBid(
        session_id=session.id, grid_number=session.current_grid, card_id=state['card_id'],
        player_id=player.id, bid_amount=amount, is_pass=False,
    ))
    state['current_bid'] = amount
    state['current_bidder_id'] = player.id
    state['bids'].append({'player_id': player.id, 'amount': amount})
    session.auction = state

    others = [p for p in _active_bidders(session, state) if p.id != player.id]
    if not others:
        resolve_auction(session, player, amount, at)
        return

    passed = set(state['passed_player_ids'])
    state['next_bidder_seat'] = _next_seat(
        session, player.seat_position, lambda p: p.id in passed or is_maxed(session, p)
    )
    session.auction = state
    timers.restart_timer(session, at)
    db.session.add(session)


def _pass(session: DraftSession, player: DraftPlayer, at: float) -> None:
    state = session.auction
    db.session.add(AuctionBid(
        session_id=session.id, grid_number=session.current_grid, card_id=state['card_id'],
        player_id=player.id, bid_amount=None, is_pass=True,
    ))
    if player.id not in state['passed_player_ids']:
        state['passed_player_ids'].append(player.id)
    session.auction = state

    active = _active_bidders(session, state)
    bidder = next((p for p in session.players if p.id == state['current_bidder_id']), None)
    if bidder is not None and len(active) <= 1:
        resolve_auction(session, bidder, state['current_bid'], at)
        return
    if not active:
        # nobody bid: the selector takes it for free if they have room
        selector = _player_at_seat(session, session.current_selector_seat)
        if selector is not None and not is_maxed(session, selector):
            resolve_auction(session, selector, 0, at)
        else:
            resolve_auction(session, None, 0, at)
        return

    passed = set(state['passed_player_ids'])
    state['next_bidder_seat'] = _next_seat(
        session, player.seat_position, lambda p: p.id in passed or is_maxed(session, p)
    )
    session.auction = state
    timers.restart_timer(session, at)
    db.session.add(session)


def resolve_auction(session: DraftSession, winner: Optional[DraftPlayer], price: int, at: float) -> None:
    state = session.auction
    card_id = state['card_id']
    grid = current_grid(session)
    if card_id in grid['remaining_cards']:
        grid['remaining_cards'].remove(card_id)

    if winner is not None:
        winner.bidding_points -= price
        winner.cards_acquired_this_grid += 1
        db.session.add(winner)
        db.session.add(DraftPick(
            session_id=session.id,
            player_id=winner.id,
            card_id=card_id,
            pack_number=session.current_grid,
            pick_number=winner.cards_acquired_this_grid,
            pick_time_seconds=None,
            was_auto_pick=False,
        ))
        current_app.logger.info(
            f"[auction-win] session={session.room_code} grid={session.current_grid} card={card_id} "
            f"seat={winner.seat_position} price={price}"
        )
    else:
        grid['graveyard_cards'].append(card_id)
        current_app.logger.info(f"[auction-graveyard] session={session.room_code} card={card_id}")
    _save_grid(session, grid)
    advance(session, at)


def advance(session: DraftSession, at: float) -> None:
    grid = current_grid(session)
    all_maxed = all(is_maxed(session, p) for p in session.players)
    if all_maxed or not grid['remaining_cards']:
        grid['graveyard_cards'].extend(grid['remaining_cards'])
        grid['remaining_cards'] = []
        _save_grid(session, grid)

        if session.current_grid >= len(session.grids):
            session.status = 'completed'
            session.completed_at = at
            forget_room(session.room_code)
            session.auction = _empty_state(GRID_COMPLETE)
            db.session.add(session)
            current_app.logger.info(f"[complete] session={session.room_code} grids={session.current_grid}")
            return

        session.current_grid += 1
        for player in session.players:
            player.cards_acquired_this_grid = 0
            db.session.add(player)
        session.current_selector_seat = _next_seat(session, session.current_selector_seat, lambda p: False)
        current_app.logger.info(f"[next-grid] session={session.room_code} grid={session.current_grid}")
    else:
        session.current_selector_seat = _next_seat(
            session, session.current_selector_seat, lambda p: is_maxed(session, p)
        )

    session.auction = _empty_state(SELECTING)
    timers.restart_timer(session, at)
    db.session.add(session)


def run_bots(session: DraftSession, at: float) -> None:
    """Play bot turns until a human has to act or the draft ends."""
    score = card_scorer(session)
    while session.status == 'in_progress':
        state = session.auction or {}
        if state.get('phase') == SELECTING:
            selector = _player_at_seat(session, session.current_selector_seat)
            if selector is None or not selector.is_bot:
                return
            choice = pack_utils.best_card(current_grid(session)['remaining_cards'], score)
            if choice is None:
                advance(session, at)
                continue
            _select(session, choice, at)
        elif state.get('phase') == BIDDING:
            bidder = _player_at_seat(session, state.get('next_bidder_seat'))
            if bidder is None or not bidder.is_bot:
                return
            amount = calculate_bot_bid(
                score(state['card_id']), bidder.bidding_points, state['current_bid'],
                session.current_grid, bidder.cards_acquired_this_grid,
            )
            if amount is None:
                _pass(session, bidder, at)
            else:
                _bid(session, bidder, amount, at)
        else:
            return


# ---- public operations ----

def _load_bidding(room_code: str, user_id: str, at: float):
    session = get_session(room_code)
    if not session.is_auction:
        raise DraftError('Not an auction draft', 400)
    require_active(session, at)
    player = require_player(session, user_id)
    state = session.auction or {}
    if state.get('phase') != BIDDING:
        raise DraftError('No card is up for auction', 400)
    if player.seat_position != state.get('next_bidder_seat'):
        raise DraftError('It is not your turn to bid', 403)
    if player.id in state['passed_player_ids']:
        raise DraftError('You already passed on this card', 400)
    return session, player, state


def select_card_for_auction(room_code: str, user_id: str, card_id, at: Optional[float] = None) -> DraftSession:
    at = timers.now() if at is None else at
    session = get_session(room_code)
    if not session.is_auction:
        raise DraftError('Not an auction draft', 400)
    require_active(session, at)
    player = require_player(session, user_id)
    if (session.auction or {}).get('phase') != SELECTING:
        raise DraftError('A card is already up for auction', 409)
    if player.seat_position != session.current_selector_seat:
        raise DraftError('It is not your turn to select', 403)
    try:
        card_id = int(card_id)
    except (TypeError, ValueError):
        raise DraftError('card_id is required', 400)
    if card_id not in current_grid(session)['remaining_cards']:
        raise DraftError('Card is not available in this grid', 400)

    _select(session, card_id, at)
    run_bots(session, at)
    db.session.commit()
    return session


def place_bid(room_code: str, user_id: str, amount, at: Optional[float] = None) -> DraftSession:
    at = timers.now() if at is None else at
    session, player, state = _load_bidding(room_code, user_id, at)
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise DraftError('amount is required', 400)
    if amount <= state['current_bid']:
        raise DraftError(f"Bid must be higher than {state['current_bid']}", 400)
    if amount > player.bidding_points:
        raise DraftError('Not enough bidding points', 400)
    if is_maxed(session, player):
        raise DraftError('You already have the maximum cards for this grid', 400)

    _bid(session, player, amount, at)
    current_app.logger.info(f"[auction-bid] session={session.room_code} seat={player.seat_position} amount={amount}")
    run_bots(session, at)
    db.session.commit()
    return session


def pass_bid(room_code: str, user_id: str, at: Optional[float] = None) -> DraftSession:
    at = timers.now() if at is None else at
    session, player, _state = _load_bidding(room_code, user_id, at)
    _pass(session, player, at)
    current_app.logger.info(f"[auction-pass] session={session.room_code} seat={player.seat_position}")
    run_bots(session, at)
    db.session.commit()
    return session


def check_and_auto_act_timed_out(room_code: str, at: Optional[float] = None) -> Dict[str, Any]:
    """Auto-select for an idle selector or auto-pass for an idle bidder."""
    at = timers.now() if at is None else at
    result = {'action': None, 'seat': None}
    session = get_session(room_code)
    if not session.is_auction or session.status != 'in_progress' or session.paused:
        return result
    if timers.is_resuming(session, at):
        return result
    grace = int(current_app.config.get('AUTO_PICK_GRACE_SEC', 5))
    duration, started_at = timers.active_timer(session)
    if not timers.is_timed_out(duration, started_at, at, grace):
        return result

    state = session.auction or {}
    if state.get('phase') == SELECTING:
        selector = _player_at_seat(session, session.current_selector_seat)
        choice = pack_utils.best_card(current_grid(session)['remaining_cards'], card_scorer(session))
        if selector is None or choice is None:
            return result
        _select(session, choice, at)
        result = {'action': 'auto_select', 'seat': selector.seat_position, 'card_id': choice}
    elif state.get('phase') == BIDDING:
        bidder = _player_at_seat(session, state.get('next_bidder_seat'))
        if bidder is None:
            return result
        _pass(session, bidder, at)
        result = {'action': 'auto_pass', 'seat': bidder.seat_position}
    else:
        return result

    current_app.logger.info(f"[auto-act] session={session.room_code} action={result['action']} seat={result['seat']}")
    run_bots(session, at)
    db.session.commit()
    return result
