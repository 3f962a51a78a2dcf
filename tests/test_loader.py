import json
import os

import pytest

from cubedraft.cubes import loader

from conftest import write_cube_file, ygo_card


def test_load_cube_normalizes_flat_yugioh_cards(flask_app):
    cube = loader.load_cube('test-cube')

    assert cube['id'] == 'test-cube'
    assert cube['name'] == 'Test Cube'
    assert cube['game_id'] == 'yugioh'
    assert cube['card_count'] == 60
    assert cube['has_scores'] is True

    card = cube['card_map'][1001]
    assert card['description'] == 'Description of card 0'
    assert card['score'] == 99
    assert card['attributes'] == {'atk': 0, 'def': 0, 'level': 1, 'attribute': 'DARK', 'race': 'Dragon'}
    assert cube['card_map'][1002]['attributes'] == {}


def test_load_cube_keeps_generic_attributes(flask_app):
    card = loader.get_card('mtg-cube', 1)
    assert card['name'] == 'Lightning Bolt'
    assert card['attributes'] == {'cmc': 1, 'colors': ['R']}
    assert loader.load_cube('mtg-cube')['game_id'] == 'mtg'


def test_file_name_is_the_cube_id(flask_app, cubes_dir):
    write_cube_file(str(cubes_dir), 'renamed', [ygo_card(0)])
    with open(cubes_dir / 'renamed.json') as fh:
        data = json.load(fh)
    data['id'] = 'something-else'
    with open(cubes_dir / 'renamed.json', 'w') as fh:
        json.dump(data, fh)

    assert loader.load_cube('renamed')['id'] == 'renamed'


def test_non_numeric_card_keys_and_scores_are_dropped(flask_app, cubes_dir):
    (cubes_dir / 'messy.json').write_text(json.dumps({
        'id': 'messy',
        'cardMap': {
            'abc': {'name': 'Bad key'},
            '7': {'name': 'Seven', 'score': 'high'},
            '8': 'not a card',
        },
    }))
    cube = loader.load_cube('messy')
    assert list(cube['card_map']) == [7]
    assert cube['card_map'][7]['score'] is None
    assert cube['has_scores'] is False


def test_missing_cube_raises(flask_app, tmp_path):
    with pytest.raises(loader.CubeNotFound):
        loader.load_cube('nope')
    # ids cannot walk out of the cubes directory
    write_cube_file(str(tmp_path), 'outside', [ygo_card(0)])
    with pytest.raises(loader.CubeNotFound):
        loader.load_cube('../outside')


def test_load_cube_reloads_when_file_changes(flask_app, cubes_dir):
    first = loader.load_cube('test-cube')
    assert loader.load_cube('test-cube') is first

    path = write_cube_file(str(cubes_dir), 'test-cube', [ygo_card(0)], name='Rebuilt')
    stat = os.stat(path)
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))

    rebuilt = loader.load_cube('test-cube')
    assert rebuilt['card_count'] == 1
    assert rebuilt['name'] == 'Rebuilt'


def test_load_cube_cache_is_per_directory(flask_app, cubes_dir, tmp_path):
    other = tmp_path / 'other'
    other.mkdir()
    write_cube_file(str(other), 'test-cube', [ygo_card(0), ygo_card(1)])

    assert loader.load_cube('test-cube')['card_count'] == 60
    assert loader.load_cube('test-cube', str(other))['card_count'] == 2


def test_deleted_cube_is_not_served_from_cache(flask_app, cubes_dir):
    loader.load_cube('mtg-cube')
    (cubes_dir / 'mtg-cube.json').unlink()
    with pytest.raises(loader.CubeNotFound):
        loader.load_cube('mtg-cube')


def test_list_cubes_filters_by_game_and_skips_broken_files(flask_app, cubes_dir):
    (cubes_dir / 'broken.json').write_text('{not json')
    (cubes_dir / 'array.json').write_text('[1, 2, 3]')
    (cubes_dir / 'listmap.json').write_text(json.dumps({'id': 'listmap', 'cardMap': [1, 2]}))
    (cubes_dir / 'notes.txt').write_text('ignored')

    ids = [c['id'] for c in loader.list_cubes()]
    assert ids == ['mtg-cube', 'test-cube']
    assert [c['id'] for c in loader.list_cubes(game_id='mtg')] == ['mtg-cube']
    info = loader.list_cubes(game_id='yugioh')[0]
    assert info['card_count'] == 60
    assert 'card_map' not in info


def test_get_cards_keeps_order_and_drops_unknown_ids(flask_app):
    cards = loader.get_cards('test-cube', [1003, 9999, 1001])
    assert [c['id'] for c in cards] == [1003, 1001]
    assert loader.get_cube_card_ids('mtg-cube') == [1, 2, 3, 4, 5]


def test_card_score_defaults_for_unknown_cards(flask_app):
    assert loader.card_score('test-cube', 1001) == 99
    assert loader.card_score('test-cube', 424242) == 50
    assert loader.card_score('test-cube', 424242, default=10) == 10


def test_get_card_from_any_cube_searches_loaded_cubes(flask_app):
    assert loader.get_card_from_any_cube(3) is None
    loader.load_cube('mtg-cube')
    assert loader.get_card_from_any_cube(3)['name'] == 'Llanowar Elves'


def test_validate_cube_for_draft(flask_app):
    ok = loader.validate_cube_for_draft('test-cube', 4, 15)
    assert ok == {'valid': True, 'required': 60, 'available': 60}

    short = loader.validate_cube_for_draft('test-cube', 4, 16)
    assert short['valid'] is False
    assert short['required'] == 64
    assert '60 cards' in short['error']
