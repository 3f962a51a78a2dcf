import os
from typing import Dict, Optional

import requests
from flask import current_app

from cubedraft.cubes import loader
from . import http_session, pause_between_requests

FULL_URL = 'https://images.ygoprodeck.com/images/cards/{card_id}.jpg'
SMALL_URL = 'https://images.ygoprodeck.com/images/cards_small/{card_id}.jpg'
PAUSE_EVERY = 10


def download_file(session: requests.Session, url: str, dest_path: str) -> str:
    """Fetch ``url`` into ``dest_path``; returns 'skipped' when the file exists."""
    if os.path.exists(dest_path):
        return 'skipped'
    response = session.get(url, timeout=30)
    response.raise_for_status()
    tmp_path = dest_path + '.part'
    with open(tmp_path, 'wb') as fh:
        fh.write(response.content)
    os.replace(tmp_path, dest_path)
    return 'downloaded'


def download_cube_images(cube_id: str, images_dir: str, session: Optional[requests.Session] = None) -> Dict:
    """Download full and small images for every card of a Yu-Gi-Oh cube.

    Existing files are skipped; failures are counted and reported, not retried.
    """
    full_dir = os.path.join(images_dir, 'cards')
    small_dir = os.path.join(images_dir, 'cards_small')
    os.makedirs(full_dir, exist_ok=True)
    os.makedirs(small_dir, exist_ok=True)
    session = session or http_session(retries=0)

    card_ids = loader.get_cube_card_ids(cube_id)
    summary = {'downloaded': 0, 'skipped': 0, 'failed': 0, 'errors': []}
    for index, card_id in enumerate(card_ids, start=1):
        try:
            results = [
                download_file(session, FULL_URL.format(card_id=card_id), os.path.join(full_dir, f"{card_id}.jpg")),
                download_file(session, SMALL_URL.format(card_id=card_id), os.path.join(small_dir, f"{card_id}.jpg")),
            ]
        except (requests.RequestException, OSError) as exc:
            summary['failed'] += 1
            summary['errors'].append({'card_id': card_id, 'error': str(exc)})
            current_app.logger.warning(f"[images] card={card_id} failed: {exc}")
        else:
            if all(result == 'skipped' for result in results):
                summary['skipped'] += 1
            else:
                summary['downloaded'] += 1
        if index % PAUSE_EVERY == 0:
            pause_between_requests()

    current_app.logger.info(
        f"[images] cube={cube_id} downloaded={summary['downloaded']} skipped={summary['skipped']} failed={summary['failed']}"
    )
    return summary
