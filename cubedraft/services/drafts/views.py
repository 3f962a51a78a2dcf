from typing import Any, Dict, Optional

from cubedraft.cubes import loader
from cubedraft.models import DraftPick, DraftSession
from . import presence, timers
from .auction import current_grid


def _cards(session: DraftSession, card_ids):
    return loader.get_cards(session.cube_id, card_ids)


def session_view(session: DraftSession, viewer_user_id: Optional[str] = None,
                 at: Optional[float] = None) -> Dict[str, Any]:
    """Everything a client needs to render a draft, from one viewer's seat.

    Only the viewer's own hand is included; other seats only expose sizes.
    """
    at = timers.now() if at is None else at
    payload = session.to_dict()
    payload['players'] = [p.to_dict() for p in session.players]
    payload['timer'] = timers.session_timer(session, at)
    payload['presence'] = presence.presence_summary(session, at, viewer_user_id)

    viewer = session.player_for(viewer_user_id) if viewer_user_id else None
    payload['me'] = None
    if viewer is not None:
        me = viewer.to_dict(include_hand=True)
        me['hand_cards'] = _cards(session, viewer.hand)
        picks = (
            DraftPick.query.filter_by(session_id=session.id, player_id=viewer.id)
            .order_by(DraftPick.pack_number, DraftPick.pick_number)
            .all()
        )
        me['picked_cards'] = _cards(session, [p.card_id for p in picks])
        payload['me'] = me

    if session.is_auction and session.current_grid:
        grid = current_grid(session)
        if grid is not None:
            state = session.auction or {}
            payload['grid'] = {
                'grid_number': grid['grid_number'],
                'grid_count': len(session.grids),
                'remaining_cards': _cards(session, grid['remaining_cards']),
                'graveyard_cards': _cards(session, grid['graveyard_cards']),
                'auction_card': loader.get_card(session.cube_id, state['card_id']) if state.get('card_id') else None,
            }
    return payload
