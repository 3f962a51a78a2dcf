import random

from cubedraft.services.drafts import packs
from cubedraft.services.drafts.pack_draft import pack_plan


def test_build_packs_deals_every_seat_distinct_cards():
    card_ids = list(range(1, 31))
    dealt = packs.build_packs(card_ids, 3, 2, 5, rng=random.Random(1))

    assert len(dealt) == 6
    assert {(p['player_seat'], p['pack_number']) for p in dealt} == {
        (seat, number) for seat in range(3) for number in (1, 2)
    }
    all_cards = [c for p in dealt for c in p['cards']]
    assert len(all_cards) == 30
    assert sorted(all_cards) == card_ids


def test_build_packs_is_reproducible_with_a_seeded_rng():
    first = packs.build_packs(range(20), 2, 2, 5, rng=random.Random(7))
    second = packs.build_packs(range(20), 2, 2, 5, rng=random.Random(7))
    assert first == second


def test_pack_for_returns_a_copy():
    dealt = [{'player_seat': 0, 'pack_number': 1, 'cards': [1, 2, 3]}]
    hand = packs.pack_for(dealt, 0, 1)
    hand.remove(1)
    assert dealt[0]['cards'] == [1, 2, 3]
    assert packs.pack_for(dealt, 1, 1) == []


def test_rotate_hands_left_and_right():
    hands = {0: ['a'], 1: ['b'], 2: ['c']}
    assert packs.rotate_hands(hands, 'left') == {0: ['b'], 1: ['c'], 2: ['a']}
    assert packs.rotate_hands(hands, 'right') == {0: ['c'], 1: ['a'], 2: ['b']}


def test_flip_direction():
    assert packs.flip_direction('left') == 'right'
    assert packs.flip_direction('right') == 'left'


def test_is_pack_finished_respects_burn_count():
    assert packs.is_pack_finished({0: [], 1: []}, 0)
    assert not packs.is_pack_finished({0: [5], 1: []}, 0)
    assert packs.is_pack_finished({0: [5], 1: [6]}, 1)
    assert not packs.is_pack_finished({0: [5, 7], 1: [6]}, 1)


def test_best_card_prefers_score_then_hand_order():
    scores = {1: 40, 2: 90, 3: 90, 4: 10}
    assert packs.best_card([1, 2, 3, 4], scores.get) == 2
    assert packs.best_card([3, 2], scores.get) == 3
    assert packs.best_card([], scores.get) is None


def test_pack_plan_rounds_packs_up():
    plan = pack_plan(player_count=4, cards_per_player=45, pack_size=15, burned_per_pack=0)
    assert plan == {'picks_per_pack': 15, 'packs_per_player': 3, 'required_cards': 180}

    burned = pack_plan(player_count=2, cards_per_player=4, pack_size=3, burned_per_pack=1)
    assert burned == {'picks_per_pack': 2, 'packs_per_player': 2, 'required_cards': 12}

    assert packs.required_cards(3, 2, 10) == 60
