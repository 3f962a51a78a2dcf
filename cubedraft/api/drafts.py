from flask import Blueprint, jsonify, request, current_app

from cubedraft.cubes import loader
from cubedraft.cubes.exports import UnknownExportFormat, export_deck, export_formats
from cubedraft.models import DraftBurnedCard, DraftPick
from cubedraft.services.drafts import auction, pack_draft, presence, sessions, timers
from cubedraft.services.drafts.errors import DraftError
from cubedraft.services.drafts.events import broadcast_ended, broadcast_state
from cubedraft.services.drafts.queries import get_session, require_player
from cubedraft.services.drafts.scheduler import schedule_resume_update, schedule_turn_timer
from cubedraft.services.drafts.views import session_view
from .common import is_debounced, request_data, request_user_id


drafts = Blueprint('drafts', __name__)


@drafts.app_errorhandler(DraftError)
def handle_draft_error(exc: DraftError):
    return jsonify(exc.to_dict()), exc.status_code


def _changed(session, reason: str, **extra) -> None:
    """Push the new state to the room and arm the timer for the current turn."""
    broadcast_state(session.room_code, reason=reason, **extra)
    schedule_turn_timer(current_app._get_current_object(), session.id)


@drafts.route('/create', methods=['POST'])
def create_draft():
    data = request_data()
    user_id = request_user_id(data)
    cube_id = data.get('cube_id')
    if not cube_id:
        return jsonify({'error': 'cube_id is required'}), 400
    try:
        bot_count = int(data.get('bot_count') or 0)
    except (TypeError, ValueError):
        return jsonify({'error': 'bot_count must be a number'}), 400
    session, host = sessions.create_session(
        user_id, data.get('name'), cube_id, data.get('settings') or {}, bot_count=bot_count,
    )
    return jsonify({
        'message': 'Draft created!',
        'room_code': session.room_code,
        'player': host.to_dict(),
        'session': session_view(session, user_id),
    }), 201


@drafts.route('/join', methods=['POST'])
def join_draft():
    data = request_data()
    room_code = data.get('room_code')
    if not room_code:
        return jsonify({'error': 'room_code is required'}), 400
    user_id = request_user_id(data)
    session, player, reconnected = sessions.join_session(room_code, user_id, data.get('name'))
    broadcast_state(session.room_code, reason='joined', seat=player.seat_position)
    return jsonify({
        'room_code': session.room_code,
        'player': player.to_dict(),
        'reconnected': reconnected,
    }), 200 if reconnected else 201


@drafts.route('/active', methods=['GET'])
def active_draft():
    session = sessions.get_active_session(request_user_id({}))
    return jsonify({'session': session.to_dict() if session else None})


@drafts.route('/<string:room_code>/state', methods=['GET'])
def draft_state(room_code):
    session = get_session(room_code)
    return jsonify(session_view(session, request_user_id({})))


@drafts.route('/<string:room_code>/start', methods=['POST'])
def start_draft(room_code):
    data = request_data()
    user_id = request_user_id(data)
    if is_debounced('start', room_code, user_id):
        return jsonify({'message': 'debounced'}), 202
    session = sessions.start_draft(room_code, user_id)
    _changed(session, 'started')
    return jsonify(session_view(session, user_id))


@drafts.route('/<string:room_code>/pick', methods=['POST'])
def make_pick(room_code):
    data = request_data()
    user_id = request_user_id(data)
    if data.get('card_id') is None:
        return jsonify({'error': 'card_id is required'}), 400
    pick = pack_draft.make_pick(room_code, user_id, data.get('card_id'))
    session = get_session(room_code)
    _changed(session, 'pick')
    return jsonify({'pick': pick.to_dict(), 'session': session_view(session, user_id)}), 201


@drafts.route('/<string:room_code>/pause', methods=['POST'])
def toggle_pause(room_code):
    data = request_data()
    user_id = request_user_id(data)
    if is_debounced('pause', room_code, user_id):
        return jsonify({'message': 'debounced'}), 202
    session = sessions.toggle_pause(room_code, user_id)
    broadcast_state(session.room_code, reason='paused' if session.paused else 'resuming')
    if not session.paused:
        schedule_resume_update(current_app._get_current_object(), session.room_code, session.resume_at)
    return jsonify(session_view(session, user_id))


@drafts.route('/<string:room_code>/timeouts', methods=['POST'])
def check_timeouts(room_code):
    session = get_session(room_code)
    if session.is_auction:
        result = auction.check_and_auto_act_timed_out(room_code)
        acted = result['action'] is not None
    else:
        result = pack_draft.check_and_auto_pick_timed_out(room_code)
        acted = result['auto_picked_count'] > 0
    if acted:
        _changed(get_session(room_code), 'timeout', **result)
    return jsonify(result)


@drafts.route('/<string:room_code>/cancel', methods=['POST'])
def cancel_draft(room_code):
    code = sessions.cancel_session(room_code, request_user_id())
    broadcast_ended(code, 'cancelled')
    return jsonify({'message': 'Draft cancelled', 'room_code': code})


@drafts.route('/<string:room_code>/picks', methods=['GET'])
def list_picks(room_code):
    session = get_session(room_code)
    query = DraftPick.query.filter_by(session_id=session.id)
    user_id = request_user_id({})
    if user_id:
        query = query.filter_by(player_id=require_player(session, user_id).id)
    picks = query.order_by(DraftPick.pack_number, DraftPick.pick_number, DraftPick.player_id).all()
    result = []
    for pick in picks:
        item = pick.to_dict()
        item['card'] = loader.get_card(session.cube_id, pick.card_id)
        result.append(item)
    return jsonify(result)


@drafts.route('/<string:room_code>/burned', methods=['GET'])
def list_burned(room_code):
    session = get_session(room_code)
    burned = DraftBurnedCard.query.filter_by(session_id=session.id).order_by(DraftBurnedCard.id).all()
    result = []
    for row in burned:
        item = row.to_dict()
        item['card'] = loader.get_card(session.cube_id, row.card_id)
        result.append(item)
    return jsonify(result)


@drafts.route('/<string:room_code>/stats', methods=['GET'])
def draft_stats(room_code):
    session = get_session(room_code)
    user_id = request_user_id({})
    player = require_player(session, user_id) if user_id else None
    return jsonify(pack_draft.draft_stats(session, player))


@drafts.route('/<string:room_code>/presence', methods=['GET'])
def presence_status(room_code):
    session = get_session(room_code)
    return jsonify(presence.presence_summary(session, timers.now(), request_user_id({})))


@drafts.route('/<string:room_code>/heartbeat', methods=['POST'])
def heartbeat(room_code):
    player = presence.heartbeat(room_code, request_user_id())
    session = get_session(room_code)
    return jsonify({'seat_position': player.seat_position, 'last_seen_at': player.last_seen_at,
                    'paused': session.paused})


@drafts.route('/<string:room_code>/export', methods=['GET'])
def export_picks(room_code):
    session = get_session(room_code)
    player = require_player(session, request_user_id({}))
    format_id = request.args.get('format')
    if not format_id:
        return jsonify({'error': 'format is required', 'formats': export_formats(session.game_id)}), 400
    picks = (
        DraftPick.query.filter_by(session_id=session.id, player_id=player.id)
        .order_by(DraftPick.pack_number, DraftPick.pick_number)
        .all()
    )
    cards = loader.get_cards(session.cube_id, [p.card_id for p in picks])
    try:
        exported = export_deck(session.game_id, format_id, cards)
    except UnknownExportFormat as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(exported)
