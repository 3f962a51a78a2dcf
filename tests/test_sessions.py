import random

import pytest

from cubedraft import db
from cubedraft.models import DraftPick, DraftPlayer, DraftSession
from cubedraft.cubes import games
from cubedraft.services.drafts import events, sessions
from cubedraft.services.drafts.errors import DraftError, NotHost, SessionNotFound
from cubedraft.services.drafts.queries import get_session

from conftest import SMALL_AUCTION_SETTINGS, SMALL_PACK_SETTINGS, start_two_player_draft


def test_create_session_deals_packs_and_seats_host(flask_app, clock):
    session, host = sessions.create_session('u1', 'Alice', 'test-cube', SMALL_PACK_SETTINGS,
                                            rng=random.Random(1))

    assert len(session.room_code) == 4
    assert session.status == 'waiting'
    assert session.game_id == 'yugioh'
    assert session.created_at == 1000.0
    assert host.is_host and host.seat_position == 0 and host.name == 'Alice'
    assert host.bidding_points == 100

    dealt = session.packs
    assert len(dealt) == 4
    assert all(len(p['cards']) == 3 for p in dealt)
    all_cards = [c for p in dealt for c in p['cards']]
    assert len(set(all_cards)) == 12


def test_create_session_with_bots(flask_app, clock):
    settings = dict(SMALL_PACK_SETTINGS, player_count=1)
    session, host = sessions.create_session('u1', None, 'test-cube', settings, bot_count=3)

    assert session.player_count == 4
    assert host.name == 'Duelist'
    bots = [p for p in session.players if p.is_bot]
    assert [b.name for b in bots] == ['Kaiba Bot', 'Yugi Bot', 'Joey Bot']
    assert [b.seat_position for b in bots] == [1, 2, 3]


def test_bot_count_ignored_for_multiplayer(flask_app, clock):
    session, _host = sessions.create_session('u1', 'Alice', 'test-cube', SMALL_PACK_SETTINGS, bot_count=3)
    assert session.player_count == 2
    assert len(session.players) == 1


def test_auction_session_uses_selection_timer_default(flask_app, clock):
    session, _host = sessions.create_session('u1', 'Alice', 'test-cube', SMALL_AUCTION_SETTINGS)
    assert session.is_auction
    assert session.timer_seconds == 30
    grids = session.grids
    assert [g['grid_number'] for g in grids] == [1, 2]
    assert all(len(g['cards']) == 5 for g in grids)
    assert session.packs == []


@pytest.mark.parametrize('settings, status', [
    ({'mode': 'sealed'}, 400),
    ({'pack_size': 3, 'burned_per_pack': 3}, 400),
    ({'player_count': 13}, 400),
    ({'timer_seconds': -1}, 400),
    ({'cards_per_player': 'lots'}, 400),
    ({'player_count': 4, 'cards_per_player': 45, 'pack_size': 15}, 400),
])
def test_create_session_rejects_bad_settings(flask_app, clock, settings, status):
    values = dict(SMALL_PACK_SETTINGS)
    values.update(settings)
    with pytest.raises(DraftError) as excinfo:
        sessions.create_session('u1', 'Alice', 'test-cube', values)
    assert excinfo.value.status_code == status


def test_create_session_unknown_cube(flask_app, clock):
    with pytest.raises(DraftError) as excinfo:
        sessions.create_session('u1', 'Alice', 'missing-cube', SMALL_PACK_SETTINGS)
    assert excinfo.value.status_code == 404


def test_create_session_falls_back_to_game_draft_defaults(flask_app, clock, monkeypatch):
    monkeypatch.setattr(games.YUGIOH, 'draft_defaults', {'pack_size': 4, 'timer_seconds': 30})
    session, _host = sessions.create_session('u1', 'Alice', 'test-cube',
                                             {'player_count': 2, 'cards_per_player': 4})
    assert session.pack_size == 4
    assert session.timer_seconds == 30
    assert session.burned_per_pack == games.DEFAULT_DRAFT_SETTINGS['burned_per_pack']
    assert games.YUGIOH.to_dict()['draft_defaults']['pack_size'] == 4


def test_join_reconnect_and_full(flask_app, clock):
    session, _host = sessions.create_session('u1', 'Alice', 'test-cube', SMALL_PACK_SETTINGS)
    code = session.room_code

    _session, player, reconnected = sessions.join_session(code.lower(), 'u2', 'Bob')
    assert player.seat_position == 1
    assert reconnected is False

    clock.advance(30)
    _session, again, reconnected = sessions.join_session(code, 'u2')
    assert reconnected is True
    assert again.id == player.id
    assert again.last_seen_at == 1030.0

    with pytest.raises(DraftError) as excinfo:
        sessions.join_session(code, 'u3', 'Carol')
    assert excinfo.value.status_code == 403


def test_join_after_start_is_rejected_but_reconnect_works(flask_app, clock):
    code = start_two_player_draft()
    with pytest.raises(DraftError):
        sessions.join_session(code, 'late', 'Late')
    _session, _player, reconnected = sessions.join_session(code, 'u1')
    assert reconnected


def test_join_unknown_room(flask_app, clock):
    with pytest.raises(SessionNotFound):
        sessions.join_session('ZZZZ', 'u1')


def test_start_requires_host_and_full_table(flask_app, clock):
    session, _host = sessions.create_session('u1', 'Alice', 'test-cube', SMALL_PACK_SETTINGS)
    with pytest.raises(DraftError) as excinfo:
        sessions.start_draft(session.room_code, 'u1')
    assert 'Waiting for players' in excinfo.value.message

    sessions.join_session(session.room_code, 'u2', 'Bob')
    with pytest.raises(NotHost):
        sessions.start_draft(session.room_code, 'u2')

    started = sessions.start_draft(session.room_code, 'u1')
    assert started.status == 'in_progress'
    assert started.started_at == 1000.0
    assert started.pick_started_at == 1000.0
    assert all(len(p.hand) == 3 for p in started.players)

    clock.advance(10)
    # starting twice is a no-op
    assert sessions.start_draft(session.room_code, 'u1').pick_started_at == 1000.0


def test_toggle_pause_requires_running_draft(flask_app, clock):
    code = start_two_player_draft(start=False)
    with pytest.raises(DraftError):
        sessions.toggle_pause(code, 'u1')


def test_toggle_pause_and_resume(flask_app, clock):
    code = start_two_player_draft()
    with pytest.raises(NotHost):
        sessions.toggle_pause(code, 'u2')

    clock.advance(20)
    paused = sessions.toggle_pause(code, 'u1')
    assert paused.paused
    assert paused.time_remaining_at_pause == 40

    clock.value = 1100.0
    resumed = sessions.toggle_pause(code, 'u1')
    assert not resumed.paused
    assert resumed.resume_at == 1105.0
    assert resumed.pick_started_at == 1085.0


def test_auto_pause_only_pauses_running_drafts(flask_app, clock):
    code = start_two_player_draft(start=False)
    session = get_session(code)
    assert sessions.auto_pause(session, 'test') is False

    sessions.start_draft(code, 'u1')
    session = get_session(code)
    assert sessions.auto_pause(session, 'test') is True
    assert session.paused
    assert sessions.auto_pause(session, 'test') is False


def test_cancel_deletes_the_session(flask_app, clock):
    code = start_two_player_draft()
    with pytest.raises(NotHost):
        sessions.cancel_session(code, 'u2')

    assert sessions.cancel_session(code, 'u1') == code
    with pytest.raises(SessionNotFound):
        get_session(code)
    assert DraftPlayer.query.count() == 0


def test_cancel_drops_host_tracking(flask_app, clock):
    code = start_two_player_draft()
    events.host_connections[code] = 2
    events.pending_host_pauses[code] = 1500.0

    sessions.cancel_session(code, 'u1')
    assert code not in events.host_connections
    assert code not in events.pending_host_pauses


def test_get_active_session(flask_app, clock):
    assert sessions.get_active_session(None) is None
    assert sessions.get_active_session('u2') is None
    code = start_two_player_draft()
    assert sessions.get_active_session('u2').room_code == code

    session = get_session(code)
    session.status = 'completed'
    db.session.commit()
    assert sessions.get_active_session('u2') is None


def test_cleanup_old_sessions(flask_app, clock):
    completed = start_two_player_draft()
    abandoned = start_two_player_draft(start=False)
    cancelled = start_two_player_draft(start=False)

    session = get_session(completed)
    session.status = 'completed'
    session.completed_at = 1000.0
    db.session.add(DraftPick(session_id=session.id, player_id=session.players[0].id, card_id=1001,
                             pack_number=1, pick_number=1))
    get_session(cancelled).status = 'cancelled'
    db.session.commit()

    later = 1000.0 + 80 * 3600
    fresh, _host = sessions.create_session('u9', 'Fresh', 'test-cube', SMALL_PACK_SETTINGS, at=later - 60)

    counts = sessions.cleanup_old_sessions(at=later)

    assert counts == {'completed': 1, 'abandoned': 1, 'cancelled': 1}
    remaining = [s.room_code for s in DraftSession.query.all()]
    assert remaining == [fresh.room_code]
    assert abandoned not in remaining
    assert DraftPick.query.count() == 0


def test_cleanup_keeps_recent_sessions(flask_app, clock):
    start_two_player_draft(start=False)
    counts = sessions.cleanup_old_sessions(at=1000.0 + 5 * 3600)
    assert counts['abandoned'] == 0
    assert DraftSession.query.count() == 1
