from conftest import SMALL_AUCTION_SETTINGS, SMALL_PACK_SETTINGS


def _create(client, user_id='u1', settings=None, **extra):
    body = {'user_id': user_id, 'name': 'Alice', 'cube_id': 'test-cube',
            'settings': settings or SMALL_PACK_SETTINGS}
    body.update(extra)
    return client.post('/api/drafts/create', json=body)


def _started_room(client, settings=None):
    code = _create(client, settings=settings).get_json()['room_code']
    client.post('/api/drafts/join', json={'room_code': code, 'user_id': 'u2', 'name': 'Bob'})
    client.post(f'/api/drafts/{code}/start', json={'user_id': 'u1'})
    return code


def _hand(client, code, user_id):
    state = client.get(f'/api/drafts/{code}/state?user_id={user_id}').get_json()
    return state['me']['current_hand']


def test_list_games_and_game_config(client):
    games = client.get('/api/games').get_json()
    assert [g['id'] for g in games] == ['yugioh', 'mtg', 'hearthstone']

    mtg = client.get('/api/games/mtg').get_json()
    assert mtg['short_name'] == 'MTG'
    assert [f['id'] for f in mtg['export_formats']] == ['arena', 'mtgo']
    assert any(g['id'] == 'cmc' and g['type'] == 'range' for g in mtg['filter_groups'])

    res = client.get('/api/games/pokemon')
    assert res.status_code == 404


def test_list_and_describe_cubes(client):
    cubes = client.get('/api/cubes').get_json()
    assert [c['id'] for c in cubes] == ['mtg-cube', 'test-cube']
    assert [c['id'] for c in client.get('/api/cubes?game=mtg').get_json()] == ['mtg-cube']

    meta = client.get('/api/cubes/test-cube').get_json()
    assert meta['name'] == 'Test Cube'
    assert meta['card_count'] == 60
    assert meta['game']['id'] == 'yugioh'

    res = client.get('/api/cubes/missing')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_cube_cards_filter_and_sort(client):
    data = client.get('/api/cubes/test-cube/cards?type=monsters&sort=atk&dir=desc').get_json()
    assert data['total'] == 60
    assert data['count'] == 30
    assert data['active_filter_count'] == 1
    assert data['cards'][0]['id'] == 1060

    dark = client.get('/api/cubes/test-cube/cards?f.attribute=DARK&tier=S').get_json()
    assert [c['id'] for c in dark['cards']] == [1001]

    res = client.get('/api/cubes/test-cube/cards?r.level=3')
    assert res.status_code == 400


def test_validate_cube(client):
    ok = client.get('/api/cubes/test-cube/validate?players=2&cards_per_player=30').get_json()
    assert ok['valid'] is True
    short = client.get('/api/cubes/test-cube/validate?players=2&cards_per_player=40').get_json()
    assert short['valid'] is False
    assert client.get('/api/cubes/test-cube/validate?players=two').status_code == 400


def test_create_draft(client):
    res = _create(client)
    assert res.status_code == 201
    data = res.get_json()
    assert len(data['room_code']) == 4
    assert data['player']['is_host'] is True
    assert data['session']['status'] == 'waiting'
    assert data['session']['me']['user_id'] == 'u1'

    assert client.post('/api/drafts/create', json={'user_id': 'u1'}).status_code == 400
    assert _create(client, cube_id='missing').status_code == 404
    assert _create(client, settings={'mode': 'rochester'}).status_code == 400


def test_join_and_state(client):
    code = _create(client).get_json()['room_code']
    # join as Bob
    res = client.post('/api/drafts/join', json={'room_code': code, 'user_id': 'u2', 'name': 'Bob'})
    assert res.status_code == 201
    assert res.get_json()['player']['seat_position'] == 1
    # joining again is a reconnect
    res = client.post('/api/drafts/join', json={'room_code': code, 'user_id': 'u2'})
    assert res.status_code == 200
    assert res.get_json()['reconnected'] is True

    state = client.get(f'/api/drafts/{code}/state').get_json()
    assert state['room_code'] == code
    assert [p['name'] for p in state['players']] == ['Alice', 'Bob']
    assert state['me'] is None

    res = client.post('/api/drafts/join', json={'room_code': 'ZZZZ', 'user_id': 'u3'})
    assert res.status_code == 404


def test_start_and_pick(client, clock):
    code = _create(client).get_json()['room_code']
    client.post('/api/drafts/join', json={'room_code': code, 'user_id': 'u2', 'name': 'Bob'})

    res = client.post(f'/api/drafts/{code}/start', json={'user_id': 'u2'})
    assert res.status_code == 403
    res = client.post(f'/api/drafts/{code}/start', json={'user_id': 'u1'})
    assert res.status_code == 200
    started = res.get_json()
    assert started['status'] == 'in_progress'
    assert started['timer'] == {'mode': 'running', 'remaining': 60, 'countdown': 0, 'duration': 60}
    assert len(started['me']['hand_cards']) == 3
    # other seats only expose hand sizes
    assert all('current_hand' not in p for p in started['players'])

    hand = _hand(client, code, 'u1')
    clock.advance(7)
    res = client.post(f'/api/drafts/{code}/pick', json={'user_id': 'u1', 'card_id': hand[0]})
    assert res.status_code == 201
    data = res.get_json()
    assert data['pick']['card_id'] == hand[0]
    assert data['pick']['pick_time_seconds'] == 7
    assert data['session']['me']['pick_made'] is True
    assert [c['id'] for c in data['session']['me']['picked_cards']] == [hand[0]]

    res = client.post(f'/api/drafts/{code}/pick', json={'user_id': 'u1'})
    assert res.status_code == 400
    res = client.post(f'/api/drafts/{code}/pick', json={'user_id': 'u1', 'card_id': hand[1]})
    assert res.status_code == 409


def test_pause_resume_and_timer(client, clock):
    code = _started_room(client)
    clock.advance(20)
    paused = client.post(f'/api/drafts/{code}/pause', json={'user_id': 'u1'}).get_json()
    assert paused['paused'] is True
    assert paused['timer']['mode'] == 'paused'
    assert paused['timer']['remaining'] == 40

    hand = _hand(client, code, 'u2')
    res = client.post(f'/api/drafts/{code}/pick', json={'user_id': 'u2', 'card_id': hand[0]})
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Draft is paused'

    clock.value = 1100.0
    resumed = client.post(f'/api/drafts/{code}/pause', json={'user_id': 'u1'}).get_json()
    assert resumed['paused'] is False
    assert resumed['timer'] == {'mode': 'resuming', 'remaining': 40, 'countdown': 5, 'duration': 60}

    assert client.post(f'/api/drafts/{code}/pause', json={'user_id': 'u2'}).status_code == 403


def test_timeouts_route_auto_picks(client, clock):
    code = _started_room(client)
    clock.value = 1065.0
    result = client.post(f'/api/drafts/{code}/timeouts').get_json()
    assert result['auto_picked_count'] == 2

    picks = client.get(f'/api/drafts/{code}/picks').get_json()
    assert len(picks) == 2
    assert all(p['was_auto_pick'] for p in picks)
    assert all(p['card']['id'] == p['card_id'] for p in picks)


def test_finished_draft_exports_and_history(client, clock):
    code = _started_room(client)
    for _round in range(4):
        for user_id in ('u1', 'u2'):
            hand = _hand(client, code, user_id)
            client.post(f'/api/drafts/{code}/pick', json={'user_id': user_id, 'card_id': hand[0]})

    state = client.get(f'/api/drafts/{code}/state?user_id=u1').get_json()
    assert state['status'] == 'completed'

    mine = client.get(f'/api/drafts/{code}/picks?user_id=u1').get_json()
    assert len(mine) == 4
    assert len(client.get(f'/api/drafts/{code}/burned').get_json()) == 4
    stats = client.get(f'/api/drafts/{code}/stats').get_json()
    assert stats['total_picks'] == 8
    assert client.get(f'/api/drafts/{code}/stats?user_id=u2').get_json()['total_picks'] == 4

    res = client.get(f'/api/drafts/{code}/export?user_id=u1&format=ydk')
    assert res.status_code == 200
    exported = res.get_json()
    assert exported['extension'] == '.ydk'
    lines = exported['content'].splitlines()
    assert lines[0] == '#created by CubeCraft'
    picked_ids = {str(p['card_id']) for p in mine}
    assert picked_ids == {line for line in lines if not line.startswith(('#', '!'))}

    res = client.get(f'/api/drafts/{code}/export?user_id=u1')
    assert res.status_code == 400
    assert res.get_json()['formats'][0]['id'] == 'ydk'
    assert client.get(f'/api/drafts/{code}/export?user_id=u1&format=arena').status_code == 400
    assert client.get(f'/api/drafts/{code}/export?user_id=nobody&format=ydk').status_code == 403


def test_presence_and_heartbeat(client, clock):
    code = _started_room(client)
    clock.advance(10)
    beat = client.post(f'/api/drafts/{code}/heartbeat', json={'user_id': 'u2'}).get_json()
    assert beat == {'seat_position': 1, 'last_seen_at': 1010.0, 'paused': False}

    summary = client.get(f'/api/drafts/{code}/presence?user_id=u2').get_json()
    assert summary['host_connected'] is True
    assert summary['monitoring_host'] is True
    assert len(summary['players']) == 2

    assert client.post(f'/api/drafts/{code}/heartbeat', json={'user_id': 'ghost'}).status_code == 403


def test_cancel_draft(client):
    code = _started_room(client)
    assert client.post(f'/api/drafts/{code}/cancel', json={'user_id': 'u2'}).status_code == 403
    res = client.post(f'/api/drafts/{code}/cancel', json={'user_id': 'u1'})
    assert res.status_code == 200
    assert res.get_json()['room_code'] == code

    res = client.get(f'/api/drafts/{code}/state')
    assert res.status_code == 404
    assert res.get_json()['error'] == f"Session {code} not found"


def test_auction_routes(client, clock):
    code = _started_room(client, settings=SMALL_AUCTION_SETTINGS)
    state = client.get(f'/api/drafts/{code}/state?user_id=u1').get_json()
    assert state['grid']['grid_count'] == 2
    card_id = state['grid']['remaining_cards'][0]['id']

    res = client.post(f'/api/drafts/{code}/auction/select', json={'user_id': 'u1'})
    assert res.status_code == 400
    selected = client.post(f'/api/drafts/{code}/auction/select', json={'user_id': 'u1', 'card_id': card_id}).get_json()
    assert selected['auction_state']['phase'] == 'bidding'
    assert selected['grid']['auction_card']['id'] == card_id

    res = client.post(f'/api/drafts/{code}/auction/bid', json={'user_id': 'u2', 'amount': 7})
    assert res.status_code == 200
    res = client.post(f'/api/drafts/{code}/auction/pass', json={'user_id': 'u1'})
    assert res.status_code == 200
    after = client.get(f'/api/drafts/{code}/state?user_id=u2').get_json()
    assert after['me']['bidding_points'] == 93
    assert [c['id'] for c in after['me']['picked_cards']] == [card_id]

    bids = client.get(f'/api/drafts/{code}/auction/bids').get_json()
    assert [(b['bid_amount'], b['is_pass']) for b in bids] == [(7, False), (None, True)]

    clock.value = 1200.0
    result = client.post(f'/api/drafts/{code}/auction/timeouts').get_json()
    assert result['action'] == 'auto_select'
    assert result['seat'] == 1


def test_register_login_and_active_draft(client):
    res = client.post('/register', json={'username': 'alice', 'password': 'secret'})
    assert res.status_code == 201
    user = res.get_json()['user']
    assert client.get('/check_login').get_json()['user']['username'] == 'alice'

    # logged-in players are seated under their account id
    res = client.post('/api/drafts/create', json={'cube_id': 'test-cube', 'settings': SMALL_PACK_SETTINGS})
    assert res.get_json()['player']['user_id'] == user['draft_user_id']
    code = res.get_json()['room_code']
    assert client.get('/drafts/active').get_json()['session']['room_code'] == code
    assert client.get('/api/drafts/active').get_json()['session']['room_code'] == code

    assert client.post('/logout').get_json() == {'success': True}
    assert client.get('/check_login').status_code == 401
    assert client.get('/api/drafts/active').get_json()['session'] is None

    assert client.post('/login', json={'username': 'alice', 'password': 'wrong'}).status_code == 401
    assert client.post('/login', json={'username': 'alice', 'password': 'secret'}).get_json()['success'] is True
    assert client.post('/register', json={'username': 'alice', 'password': 'x'}).status_code == 400
