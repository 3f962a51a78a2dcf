"""Offline cube builders.

Each builder pulls card data from a public card database, scores it and
writes a cube JSON file in the format ``loader.py`` reads. They are run
from the ``flask build-cube`` command, never while serving requests.
"""
import json
import os
import time
from datetime import datetime, timezone

import requests
from requests.adapters import HTTPAdapter, Retry
from flask import current_app

UA = os.getenv("CUBEDRAFT_UA", "cubedraft/1.0 (+https://github.com/)")


class CubeBuildError(Exception):
    pass


def http_session(retries: int = 5) -> requests.Session:
    """Session for the card APIs; ``retries=0`` mounts an adapter that never retries."""
    s = requests.Session()
    retry = Retry(total=retries, backoff_factor=0.5, status_forcelist=(429, 500, 502, 503, 504))
    s.mount("https://", HTTPAdapter(max_retries=retry))
    s.headers.update({"User-Agent": UA})
    return s


def request_delay() -> float:
    try:
        return int(current_app.config.get('BUILDER_REQUEST_DELAY_MS', 100)) / 1000.0
    except (TypeError, ValueError):
        return 0.1


def pause_between_requests() -> None:
    delay = request_delay()
    if delay > 0:
        time.sleep(delay)


def generated_at() -> str:
    return datetime.now(timezone.utc).isoformat()


def write_cube(path: str, cube: dict, pretty: bool = False) -> int:
    """Write a cube file and return its size in bytes."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as fh:
        if pretty:
            json.dump(cube, fh, indent=2)
        else:
            json.dump(cube, fh, separators=(',', ':'))
    return os.path.getsize(path)
