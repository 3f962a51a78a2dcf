import csv
import os
from io import StringIO
from typing import Dict, List, Optional, Tuple

import requests
from flask import current_app

from . import CubeBuildError, generated_at, http_session, pause_between_requests, write_cube

API_URL = 'https://db.ygoprodeck.com/api/v7/cardinfo.php'
BATCH_SIZE = 50
DEFAULT_SCORE = 50

# Fields kept from the API payload, in the flat Yu-Gi-Oh cube format
FLAT_FIELDS = ('name', 'type', 'desc', 'atk', 'def', 'level', 'attribute', 'race', 'linkval', 'archetype')


def _to_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_score_csv(content: str) -> List[Tuple[int, int]]:
    """Parse ``ID,Score`` or ``ID,Name,Score`` rows into (id, score) pairs.

    The header is optional; rows with a missing or bad score get the default.
    """
    content = content.lstrip('\ufeff')
    rows = [row for row in csv.reader(StringIO(content)) if row and any(cell.strip() for cell in row)]
    if not rows:
        return []
    header = [cell.strip().lower() for cell in rows[0]]
    has_header = bool(header) and header[0] == 'id'
    has_name = has_header and 'name' in header
    score_index = 2 if has_name else 1

    cards = []
    for row in rows[1 if has_header else 0:]:
        card_id = _to_int(row[0].strip())
        if card_id is None or card_id <= 0:
            continue
        score = _to_int(row[score_index].strip()) if len(row) > score_index else None
        cards.append((card_id, DEFAULT_SCORE if score is None else score))
    return cards


def fetch_card_batch(session: requests.Session, card_ids: List[int]) -> List[dict]:
    response = session.get(API_URL, params={'id': ','.join(str(cid) for cid in card_ids)}, timeout=30)
    response.raise_for_status()
    return response.json().get('data') or []


def flat_card(card: dict, score: int) -> dict:
    result = {'id': card['id']}
    for field in FLAT_FIELDS:
        if card.get(field) is not None:
            result[field] = card[field]
    result['score'] = score
    return result


def write_named_csv(csv_path: str, cards: List[Tuple[int, int]], card_map: Dict[int, dict]) -> None:
    with open(csv_path, 'w', encoding='utf-8', newline='') as fh:
        writer = csv.writer(fh, lineterminator='\n')
        writer.writerow(['ID', 'Name', 'Score'])
        for card_id, score in cards:
            name = (card_map.get(card_id) or {}).get('name') or 'Unknown Card'
            writer.writerow([card_id, name, score])


def build_ygo_cube(csv_path: str, output_path: Optional[str] = None, name: Optional[str] = None,
                   session: Optional[requests.Session] = None) -> dict:
    """Build a Yu-Gi-Oh cube from a CSV of card ids and scores.

    Cards are fetched from YGOPRODeck in batches. Ids the API does not return
    are reported under ``failed``. The CSV is rewritten with card names.
    """
    if not os.path.isfile(csv_path):
        raise CubeBuildError(f"CSV file not found: {csv_path}")
    with open(csv_path, 'r', encoding='utf-8') as fh:
        csv_cards = parse_score_csv(fh.read())
    if not csv_cards:
        raise CubeBuildError(f"No card ids found in {csv_path}")

    cube_id = os.path.splitext(os.path.basename(csv_path))[0]
    output_path = output_path or os.path.join(os.path.dirname(os.path.abspath(csv_path)), f"{cube_id}.json")
    scores = dict(csv_cards)
    card_ids = [card_id for card_id, _score in csv_cards]
    session = session or http_session()
    current_app.logger.info(f"[builder] ygo cube={cube_id} ids={len(card_ids)}")

    fetched: List[dict] = []
    failed_ids: List[int] = []
    for start in range(0, len(card_ids), BATCH_SIZE):
        batch = card_ids[start:start + BATCH_SIZE]
        try:
            cards = fetch_card_batch(session, batch)
        except (requests.RequestException, ValueError) as exc:
            current_app.logger.warning(f"[builder] batch at {start} failed: {exc}")
            failed_ids.extend(batch)
        else:
            fetched.extend(cards)
            returned = {card.get('id') for card in cards}
            failed_ids.extend(cid for cid in batch if cid not in returned)
        if start + BATCH_SIZE < len(card_ids):
            pause_between_requests()

    card_map = {card['id']: flat_card(card, scores.get(card['id'], DEFAULT_SCORE)) for card in fetched}
    cube = {
        'id': cube_id,
        'name': name or cube_id,
        'gameId': 'yugioh',
        'cardCount': len(card_map),
        'generatedAt': generated_at(),
        'cardMap': {str(cid): card for cid, card in card_map.items()},
    }
    size = write_cube(output_path, cube)
    write_named_csv(csv_path, csv_cards, card_map)
    current_app.logger.info(
        f"[builder] ygo cube={cube_id} saved={len(card_map)} failed={len(failed_ids)} bytes={size}"
    )
    return {'cube_id': cube_id, 'path': output_path, 'card_count': len(card_map), 'failed': failed_ids}
