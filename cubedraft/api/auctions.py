from flask import Blueprint, jsonify, current_app

from cubedraft.models import AuctionBid
from cubedraft.services.drafts import auction
from cubedraft.services.drafts.events import broadcast_state
from cubedraft.services.drafts.queries import get_session
from cubedraft.services.drafts.scheduler import schedule_turn_timer
from cubedraft.services.drafts.views import session_view
from .common import request_data, request_user_id


auctions = Blueprint('auctions', __name__)


def _respond(session, user_id, reason: str, **extra):
    broadcast_state(session.room_code, reason=reason, **extra)
    schedule_turn_timer(current_app._get_current_object(), session.id)
    return jsonify(session_view(session, user_id))


@auctions.route('/<string:room_code>/auction/select', methods=['POST'])
def select_card(room_code):
    data = request_data()
    user_id = request_user_id(data)
    if data.get('card_id') is None:
        return jsonify({'error': 'card_id is required'}), 400
    session = auction.select_card_for_auction(room_code, user_id, data.get('card_id'))
    return _respond(session, user_id, 'auction_select', card_id=data.get('card_id'))


@auctions.route('/<string:room_code>/auction/bid', methods=['POST'])
def place_bid(room_code):
    data = request_data()
    user_id = request_user_id(data)
    if data.get('amount') is None:
        return jsonify({'error': 'amount is required'}), 400
    session = auction.place_bid(room_code, user_id, data.get('amount'))
    return _respond(session, user_id, 'auction_bid')


@auctions.route('/<string:room_code>/auction/pass', methods=['POST'])
def pass_bid(room_code):
    user_id = request_user_id()
    session = auction.pass_bid(room_code, user_id)
    return _respond(session, user_id, 'auction_pass')


@auctions.route('/<string:room_code>/auction/timeouts', methods=['POST'])
def check_timeouts(room_code):
    result = auction.check_and_auto_act_timed_out(room_code)
    if result['action'] is not None:
        session = get_session(room_code)
        broadcast_state(session.room_code, reason='timeout', **result)
        schedule_turn_timer(current_app._get_current_object(), session.id)
    return jsonify(result)


@auctions.route('/<string:room_code>/auction/bids', methods=['GET'])
def bid_history(room_code):
    session = get_session(room_code)
    bids = AuctionBid.query.filter_by(session_id=session.id).order_by(AuctionBid.id).all()
    return jsonify([b.to_dict() for b in bids])
