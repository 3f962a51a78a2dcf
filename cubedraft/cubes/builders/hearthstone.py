from typing import Dict, List, Optional

import requests
from flask import current_app

from . import CubeBuildError, generated_at, http_session, write_cube

API_URL = 'https://api.hearthstonejson.com/v1/latest/enUS/cards.json'
IMAGE_URL = 'https://art.hearthstonejson.com/v1/render/latest/enUS/512x/{card_id}.png'
CUBE_ID = 'hearthstone-classic-cube'
TARGET_SIZE = 360
NEUTRAL_SHARE = 0.6

RARITY_SCORES = {'FREE': 40, 'COMMON': 50, 'RARE': 65, 'EPIC': 75, 'LEGENDARY': 90}
MECHANIC_BONUSES = {
    'TAUNT': 5, 'DIVINE_SHIELD': 5, 'CHARGE': 5, 'LIFESTEAL': 5, 'DISCOVER': 5,
    'RUSH': 3, 'DEATHRATTLE': 3,
    'BATTLECRY': 2,
}
VALID_TYPES = ('MINION', 'SPELL', 'WEAPON')
CLASSES = (
    'NEUTRAL', 'DRUID', 'HUNTER', 'MAGE', 'PALADIN', 'PRIEST', 'ROGUE',
    'SHAMAN', 'WARLOCK', 'WARRIOR', 'DEMONHUNTER', 'DEATHKNIGHT',
)


def fetch_cards(session: requests.Session) -> List[dict]:
    try:
        response = session.get(API_URL, timeout=60)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as exc:
        raise CubeBuildError(f"Failed to fetch cards: {exc}") from exc


def is_draftable(card: dict) -> bool:
    return bool(
        card.get('collectible')
        and card.get('type') in VALID_TYPES
        and card.get('dbfId')
        and card.get('name')
        and card.get('id')
        and card.get('cost') is not None
    )


def score_card(card: dict) -> int:
    score = RARITY_SCORES.get(card.get('rarity'), 50)
    mechanics = card.get('mechanics') or []
    score += sum(bonus for mechanic, bonus in MECHANIC_BONUSES.items() if mechanic in mechanics)
    if card.get('rarity') == 'LEGENDARY' and card.get('type') == 'MINION':
        score += 5
    return min(100, score)


def select_cards(cards: List[dict], target_size: int = TARGET_SIZE) -> List[dict]:
    """Pick the best cards: most of the cube neutral, the rest split evenly across classes."""
    by_class: Dict[str, List[dict]] = {cls: [] for cls in CLASSES}
    for card in cards:
        if card.get('cardClass') in by_class:
            by_class[card['cardClass']].append(card)

    neutral_target = int(target_size * NEUTRAL_SHARE)
    per_class = (target_size - neutral_target) // (len(CLASSES) - 1)

    selected = sorted(by_class['NEUTRAL'], key=score_card, reverse=True)[:neutral_target]
    for cls in CLASSES[1:]:
        selected.extend(sorted(by_class[cls], key=score_card, reverse=True)[:per_class])
    return selected


def format_cube(cards: List[dict]) -> dict:
    card_map = {}
    for index, card in enumerate(cards, start=1):
        card_map[str(index)] = {
            'id': index,
            'name': card['name'],
            'type': card['type'],
            'description': card.get('text') or '',
            'imageUrl': IMAGE_URL.format(card_id=card['id']),
            'attributes': {
                'cost': card.get('cost'),
                'attack': card.get('attack'),
                'health': card.get('health'),
                'cardClass': card.get('cardClass'),
                'rarity': card.get('rarity'),
                'cardType': card.get('type'),
                'mechanics': card.get('mechanics') or [],
                'dbfId': card.get('dbfId'),
                'set': card.get('set'),
                'hsCardId': card['id'],
            },
            'score': score_card(card),
        }
    return {
        'id': CUBE_ID,
        'name': 'Classic Hearthstone Cube',
        'description': 'Iconic cards from across Hearthstone, heavy on neutrals for flexible class picks.',
        'gameId': 'hearthstone',
        'version': '1.0',
        'cardCount': len(card_map),
        'generatedAt': generated_at(),
        'cardMap': card_map,
    }


def build_hearthstone_cube(output_path: str, target_size: int = TARGET_SIZE,
                           session: Optional[requests.Session] = None) -> dict:
    session = session or http_session()
    all_cards = fetch_cards(session)
    valid = [card for card in all_cards if is_draftable(card)]
    current_app.logger.info(f"[builder] hearthstone fetched={len(all_cards)} draftable={len(valid)}")
    cube = format_cube(select_cards(valid, target_size))
    write_cube(output_path, cube, pretty=True)
    current_app.logger.info(f"[builder] hearthstone saved={cube['cardCount']} path={output_path}")
    return {'cube_id': cube['id'], 'path': output_path, 'card_count': cube['cardCount'], 'failed': []}
