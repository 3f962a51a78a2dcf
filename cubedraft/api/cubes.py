from flask import Blueprint, jsonify, request

from cubedraft.cubes import loader
from cubedraft.cubes.exports import export_formats
from cubedraft.cubes.filters import apply_filters, filter_state_from_args
from cubedraft.cubes.games import GAMES, get_game


cubes = Blueprint('cubes', __name__)
games = Blueprint('games', __name__)


@cubes.errorhandler(loader.CubeNotFound)
def handle_cube_not_found(exc):
    return jsonify({'error': str(exc)}), 404


@cubes.route('', methods=['GET'])
def list_cubes():
    return jsonify(loader.list_cubes(request.args.get('game')))


@cubes.route('/<string:cube_id>', methods=['GET'])
def cube_meta(cube_id):
    cube = loader.load_cube(cube_id)
    payload = loader.cube_info(cube)
    payload['game'] = get_game(cube['game_id']).to_dict()
    return jsonify(payload)


@cubes.route('/<string:cube_id>/cards', methods=['GET'])
def cube_cards(cube_id):
    """Cards of a cube, filtered and sorted the way the card browser asks."""
    cube = loader.load_cube(cube_id)
    game = get_game(cube['game_id'])
    try:
        state = filter_state_from_args(request.args, game)
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    cards = apply_filters(cube['cards'], game, state,
                          request.args.get('sort') or 'name', request.args.get('dir') or 'asc')
    return jsonify({
        'cube_id': cube['id'],
        'total': cube['card_count'],
        'count': len(cards),
        'active_filter_count': state.active_filter_count,
        'cards': cards,
    })


@cubes.route('/<string:cube_id>/validate', methods=['GET'])
def validate_cube(cube_id):
    try:
        players = int(request.args.get('players', 0))
        cards_per_player = int(request.args.get('cards_per_player', 0))
    except ValueError:
        return jsonify({'error': 'players and cards_per_player must be numbers'}), 400
    return jsonify(loader.validate_cube_for_draft(cube_id, players, cards_per_player))


@games.route('', methods=['GET'])
def list_games():
    return jsonify([{'id': g.id, 'name': g.name, 'short_name': g.short_name} for g in GAMES.values()])


@games.route('/<string:game_id>', methods=['GET'])
def game_config(game_id):
    if game_id not in GAMES:
        return jsonify({'error': f"Unknown game '{game_id}'"}), 404
    payload = GAMES[game_id].to_dict()
    payload['export_formats'] = export_formats(game_id)
    return jsonify(payload)
