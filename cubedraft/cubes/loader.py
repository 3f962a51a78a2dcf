import json
import os
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from .games import DEFAULT_GAME_ID

LEGACY_NUMERIC_FIELDS = ('atk', 'def', 'level', 'linkval')
LEGACY_TEXT_FIELDS = ('attribute', 'race', 'archetype')

# resolved path -> (mtime, processed cube)
_cube_cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}


class CubeNotFound(LookupError):
    pass


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_card(raw: Dict[str, Any], card_id: int) -> Dict[str, Any]:
    """Normalize a raw cube card into the shared card dict.

    Cards carrying an ``attributes`` dict are in the generic format; anything
    else is a flat Yu-Gi-Oh record whose stats are folded into ``attributes``.
    """
    score = raw.get('score')
    card = {
        'id': card_id,
        'name': str(raw.get('name') or ''),
        'type': str(raw.get('type') or ''),
        'description': str(raw.get('description') or raw.get('desc') or ''),
        'score': score if _is_number(score) else None,
        'image_url': raw.get('imageUrl') or raw.get('image_url'),
    }
    attrs = raw.get('attributes')
    if isinstance(attrs, dict):
        card['attributes'] = dict(attrs)
        return card

    legacy = {}
    for field in LEGACY_NUMERIC_FIELDS:
        if _is_number(raw.get(field)):
            legacy[field] = raw[field]
    for field in LEGACY_TEXT_FIELDS:
        if isinstance(raw.get(field), str):
            legacy[field] = raw[field]
    card['attributes'] = legacy
    return card


def process_cube_data(raw: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValueError("cube file must hold a JSON object")
    raw_map = raw.get('cardMap') or {}
    if not isinstance(raw_map, dict):
        raise ValueError("cardMap must be an object keyed by card id")
    card_map: Dict[int, Dict[str, Any]] = {}
    for key, value in raw_map.items():
        try:
            card_id = int(key)
        except (TypeError, ValueError):
            continue
        if not isinstance(value, dict):
            continue
        card_map[card_id] = normalize_card(value, card_id)

    cards = list(card_map.values())
    return {
        'id': raw.get('id'),
        'name': raw.get('name') or raw.get('id'),
        'description': raw.get('description') or '',
        'game_id': raw.get('gameId') or DEFAULT_GAME_ID,
        'version': raw.get('version'),
        'generated_at': raw.get('generatedAt'),
        'card_count': len(cards),
        'card_map': card_map,
        'cards': cards,
        'has_scores': any(c['score'] is not None for c in cards),
    }


def _cubes_dir(cubes_dir: Optional[str] = None) -> str:
    return cubes_dir or current_app.config['CUBES_DIR']


def _cube_path(cube_id: str, cubes_dir: Optional[str] = None) -> str:
    # Cube ids double as file names; keep lookups inside the cubes directory
    safe_id = os.path.basename(cube_id)
    return os.path.join(_cubes_dir(cubes_dir), f"{safe_id}.json")


def load_cube(cube_id: str, cubes_dir: Optional[str] = None) -> Dict[str, Any]:
    """Load and normalize a cube file, reloading it when the file changes on disk."""
    path = os.path.realpath(_cube_path(cube_id, cubes_dir))
    if not os.path.isfile(path):
        raise CubeNotFound(f"Cube '{cube_id}' not found")
    mtime = os.path.getmtime(path)
    cached = _cube_cache.get(path)
    if cached and cached[0] == mtime:
        return cached[1]
    with open(path, 'r', encoding='utf-8') as fh:
        raw = json.load(fh)
    cube = process_cube_data(raw)
    # the file name is the id lookups use
    cube['id'] = cube_id
    _cube_cache[path] = (mtime, cube)
    current_app.logger.info(f"[cube-load] cube={cube_id} cards={cube['card_count']} game={cube['game_id']}")
    return cube


def clear_cache() -> None:
    _cube_cache.clear()


def cube_info(cube: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': cube['id'],
        'name': cube['name'],
        'description': cube['description'],
        'card_count': cube['card_count'],
        'game_id': cube['game_id'],
        'version': cube['version'],
        'generated_at': cube['generated_at'],
        'has_scores': cube['has_scores'],
    }


def list_cubes(game_id: Optional[str] = None, cubes_dir: Optional[str] = None) -> List[Dict[str, Any]]:
    """Describe every cube file on disk, optionally only those for one game."""
    directory = _cubes_dir(cubes_dir)
    if not os.path.isdir(directory):
        return []
    result = []
    for filename in sorted(os.listdir(directory)):
        if not filename.endswith('.json'):
            continue
        cube_id = filename[:-len('.json')]
        try:
            cube = load_cube(cube_id, directory)
        except (OSError, ValueError) as exc:
            current_app.logger.warning(f"[cube-load] skipping {filename}: {exc}")
            continue
        if game_id and cube['game_id'] != game_id:
            continue
        result.append(cube_info(cube))
    return result


def get_card(cube_id: str, card_id: int, cubes_dir: Optional[str] = None) -> Optional[Dict[str, Any]]:
    return load_cube(cube_id, cubes_dir)['card_map'].get(int(card_id))


def get_cards(cube_id: str, card_ids, cubes_dir: Optional[str] = None) -> List[Dict[str, Any]]:
    """Resolve ids in order; ids missing from the cube are dropped."""
    card_map = load_cube(cube_id, cubes_dir)['card_map']
    return [card_map[int(cid)] for cid in card_ids if int(cid) in card_map]


def get_card_from_any_cube(card_id: int) -> Optional[Dict[str, Any]]:
    for _mtime, cube in _cube_cache.values():
        card = cube['card_map'].get(int(card_id))
        if card:
            return card
    return None


def get_cube_card_ids(cube_id: str, cubes_dir: Optional[str] = None) -> List[int]:
    return list(load_cube(cube_id, cubes_dir)['card_map'].keys())


def card_score(cube_id: str, card_id: int, default: int = 50) -> float:
    card = get_card(cube_id, card_id)
    if not card or card['score'] is None:
        return default
    return card['score']


def has_scores(cube_id: str, cubes_dir: Optional[str] = None) -> bool:
    return load_cube(cube_id, cubes_dir)['has_scores']


def validate_cube_for_draft(cube_id: str, player_count: int, cards_per_player: int,
                            cubes_dir: Optional[str] = None) -> Dict[str, Any]:
    """Check the cube holds enough cards for every seat."""
    required = player_count * cards_per_player
    available = load_cube(cube_id, cubes_dir)['card_count']
    if available < required:
        return {
            'valid': False,
            'error': f"Cube has {available} cards but {required} are needed for {player_count} players",
            'required': required,
            'available': available,
        }
    return {'valid': True, 'required': required, 'available': available}
