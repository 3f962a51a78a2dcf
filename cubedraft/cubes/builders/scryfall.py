import os
from typing import List, Optional, Tuple

import requests
from flask import current_app

from . import CubeBuildError, generated_at, http_session, pause_between_requests, write_cube

BASE = 'https://api.scryfall.com'
DEFAULT_SCORE = 70
CUBE_VERSION = '2.0'


def parse_card_list(content: str) -> List[Tuple[str, int]]:
    """Parse ``name,score`` lines; names may contain commas, the score is the last field."""
    cards = []
    for line in content.lstrip('\ufeff').splitlines():
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        name, _sep, tail = line.rpartition(',')
        score = None
        if name:
            try:
                score = int(tail.strip())
            except ValueError:
                name = line
        else:
            name = line
        cards.append((name.strip().strip('"'), DEFAULT_SCORE if score is None else score))
    return cards


def fetch_card(session: requests.Session, name: str) -> Optional[dict]:
    response = session.get(f"{BASE}/cards/named", params={'exact': name}, timeout=30)
    if not response.ok:
        current_app.logger.warning(f"[builder] card not found: {name}")
        return None
    return response.json()


def _int_or_text(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def transform_card(card: dict, score: int = DEFAULT_SCORE) -> dict:
    """Flatten a Scryfall card, merging faces for split and double-faced cards."""
    faces = card.get('card_faces') or []
    primary = faces[0] if faces else card

    pt_source = primary if 'power' in primary else card
    power = _int_or_text(pt_source['power']) if pt_source.get('power') else None
    toughness = _int_or_text(pt_source['toughness']) if pt_source.get('toughness') else None

    images = card.get('image_uris') or {}
    image_url = images.get('normal') or images.get('large') or ''
    if not image_url and faces and primary.get('image_uris'):
        image_url = primary['image_uris'].get('normal') or primary['image_uris'].get('large') or ''

    oracle_text = card.get('oracle_text') or ''
    if not oracle_text and faces:
        oracle_text = '\n\n---\n\n'.join(
            f"{face.get('name')}\n{face['oracle_text']}" for face in faces if face.get('oracle_text')
        )

    mana_cost = card.get('mana_cost') or ''
    if not mana_cost and faces:
        mana_cost = ' // '.join(face['mana_cost'] for face in faces if face.get('mana_cost'))

    colors = card.get('colors') or []
    if not colors and faces:
        colors = []
        for face in faces:
            for color in face.get('colors') or []:
                if color not in colors:
                    colors.append(color)

    loyalty = card.get('loyalty')
    attributes = {
        'manaCost': mana_cost,
        'cmc': card.get('cmc') or 0,
        'colors': colors,
        'colorIdentity': card.get('color_identity') or [],
        'power': power,
        'toughness': toughness,
        'loyalty': _int_or_text(loyalty) if loyalty else None,
        'rarity': card.get('rarity'),
        'setCode': card.get('set'),
        'collectorNumber': card.get('collector_number'),
        'scryfallId': card.get('id'),
    }
    return {
        'name': card.get('name'),
        'type': card.get('type_line'),
        'description': oracle_text,
        'imageUrl': image_url,
        'attributes': {k: v for k, v in attributes.items() if v is not None},
        'score': score,
    }


def build_mtg_cube(list_path: str, output_path: str, cube_id: Optional[str] = None, name: Optional[str] = None,
                   session: Optional[requests.Session] = None) -> dict:
    """Build a Magic cube from a ``name,score`` list using Scryfall exact-name lookups."""
    if not os.path.isfile(list_path):
        raise CubeBuildError(f"Card list not found: {list_path}")
    with open(list_path, 'r', encoding='utf-8') as fh:
        entries = parse_card_list(fh.read())
    if not entries:
        raise CubeBuildError(f"No cards found in {list_path}")

    cube_id = cube_id or os.path.splitext(os.path.basename(output_path))[0]
    session = session or http_session()
    current_app.logger.info(f"[builder] mtg cube={cube_id} names={len(entries)}")

    cards: List[dict] = []
    failed: List[str] = []
    for card_name, score in entries:
        try:
            card = fetch_card(session, card_name)
        except (requests.RequestException, ValueError) as exc:
            current_app.logger.warning(f"[builder] error fetching {card_name}: {exc}")
            card = None
        if card:
            cards.append(transform_card(card, score))
        else:
            failed.append(card_name)
        pause_between_requests()

    card_map = {}
    for index, card in enumerate(cards, start=1):
        card_map[str(index)] = dict(card, id=index)
    cube = {
        'id': cube_id,
        'name': name or cube_id,
        'gameId': 'mtg',
        'version': CUBE_VERSION,
        'cardCount': len(card_map),
        'generatedAt': generated_at(),
        'cardMap': card_map,
    }
    write_cube(output_path, cube, pretty=True)
    current_app.logger.info(f"[builder] mtg cube={cube_id} saved={len(card_map)} failed={len(failed)}")
    return {'cube_id': cube_id, 'path': output_path, 'card_count': len(card_map), 'failed': failed}
