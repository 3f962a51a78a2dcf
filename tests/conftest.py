import json
import os
import random
import sys
import pytest
import requests

# Ensure the project root (containing the `cubedraft` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from cubedraft import create_app, db, socketio
from cubedraft.cubes import loader
from cubedraft.services.drafts import sessions, timers


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BUILDER_REQUEST_DELAY_MS = 0
    RESUME_COUNTDOWN_SEC = 5
    AUTO_PICK_GRACE_SEC = 5
    STALENESS_THRESHOLD_SEC = 45
    AUCTION_BIDDING_POINTS = 100
    AUCTION_SELECTION_TIMER_SEC = 30
    AUCTION_BID_TIMER_SEC = 15


YGO_TYPES = ('Effect Monster', 'Spell Card', 'Trap Card', 'Fusion Monster')


def ygo_card(index):
    """Card 1001 + index; scores fall from 99 so every card has a distinct score."""
    card_type = YGO_TYPES[index % len(YGO_TYPES)]
    card = {
        'id': 1001 + index,
        'name': f"Card {index:02d}",
        'type': card_type,
        'desc': f"Description of card {index}",
        'score': 99 - index,
    }
    if 'Monster' in card_type:
        card.update({
            'atk': 100 * index,
            'def': 50 * index,
            'level': index % 12 + 1,
            'attribute': 'DARK' if index % 8 == 0 else 'LIGHT',
            'race': 'Dragon' if index % 3 == 0 else 'Warrior',
        })
    return card


def write_cube_file(directory, cube_id, cards, game_id=None, name=None):
    data = {
        'id': cube_id,
        'name': name or cube_id,
        'cardCount': len(cards),
        'cardMap': {str(card['id']): card for card in cards},
    }
    if game_id:
        data['gameId'] = game_id
    path = os.path.join(directory, f"{cube_id}.json")
    with open(path, 'w', encoding='utf-8') as fh:
        json.dump(data, fh)
    return path


@pytest.fixture()
def cubes_dir(tmp_path):
    directory = tmp_path / 'cubes'
    directory.mkdir()
    write_cube_file(str(directory), 'test-cube', [ygo_card(i) for i in range(60)], name='Test Cube')
    mtg_cards = [
        {
            'id': i,
            'name': name,
            'type': card_type,
            'description': '',
            'score': score,
            'attributes': {'cmc': cmc, 'colors': colors},
        }
        for i, (name, card_type, score, cmc, colors) in enumerate([
            ('Lightning Bolt', 'Instant', 95, 1, ['R']),
            ('Counterspell', 'Instant', 90, 2, ['U']),
            ('Llanowar Elves', 'Creature - Elf Druid', 80, 1, ['G']),
            ('Serra Angel', 'Creature - Angel', 70, 5, ['W']),
            ('Island', 'Basic Land - Island', 10, 0, []),
        ], start=1)
    ]
    write_cube_file(str(directory), 'mtg-cube', mtg_cards, game_id='mtg')
    return directory


@pytest.fixture()
def flask_app(cubes_dir, tmp_path):
    application = create_app(TestConfig)
    application.config['CUBES_DIR'] = str(cubes_dir)
    application.config['IMAGES_DIR'] = str(tmp_path / 'images')
    loader.clear_cache()
    with application.app_context():
        # Ensure models are imported so tables are created
        import cubedraft.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    loader.clear_cache()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def clock(monkeypatch):
    """A settable clock behind timers.now()."""
    class Clock:
        def __init__(self):
            self.value = 1000.0

        def __call__(self):
            return self.value

        def advance(self, seconds):
            self.value += seconds

    fake = Clock()
    monkeypatch.setattr(timers, 'now', fake)
    return fake


SMALL_PACK_SETTINGS = {
    'player_count': 2,
    'cards_per_player': 4,
    'pack_size': 3,
    'burned_per_pack': 1,
    'timer_seconds': 60,
}

SMALL_AUCTION_SETTINGS = {
    'mode': 'auction-grid',
    'player_count': 2,
    'cards_per_player': 4,
    'pack_size': 2,
    'burned_per_pack': 1,
}


def start_two_player_draft(settings=None, start=True):
    """Seat u1 (host) and u2 in a small draft on the test cube; returns the room code."""
    session, _host = sessions.create_session(
        'u1', 'Alice', 'test-cube', dict(settings or SMALL_PACK_SETTINGS), rng=random.Random(3),
    )
    sessions.join_session(session.room_code, 'u2', 'Bob')
    if start:
        sessions.start_draft(session.room_code, 'u1')
    return session.room_code


class FakeResponse:
    def __init__(self, payload=None, status_code=200, content=b''):
        self.payload = payload
        self.status_code = status_code
        self.content = content

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self.payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Stands in for requests.Session; ``handler(url, params)`` builds each response."""

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        return self.handler(url, params or {})
