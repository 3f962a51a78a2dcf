import random
from typing import Callable, Dict, List, Optional, Sequence


def required_cards(total_players: int, packs_per_player: int, pack_size: int) -> int:
    return total_players * packs_per_player * pack_size


def build_packs(card_ids: Sequence[int], total_players: int, packs_per_player: int, pack_size: int,
                rng: Optional[random.Random] = None) -> List[dict]:
    """Shuffle the pool and deal ``packs_per_player`` packs to every seat."""
    rng = rng or random.Random()
    pool = list(card_ids)
    rng.shuffle(pool)
    packs = []
    cursor = 0
    for seat in range(total_players):
        for pack_number in range(1, packs_per_player + 1):
            packs.append({
                'player_seat': seat,
                'pack_number': pack_number,
                'cards': pool[cursor:cursor + pack_size],
            })
            cursor += pack_size
    return packs


def pack_for(packs: List[dict], seat: int, pack_number: int) -> List[int]:
    for pack in packs:
        if pack['player_seat'] == seat and pack['pack_number'] == pack_number:
            return list(pack['cards'])
    return []


def is_pack_finished(hands: Dict[int, List[int]], burned_per_pack: int) -> bool:
    return all(len(hand) <= burned_per_pack for hand in hands.values())


def rotate_hands(hands: Dict[int, List[int]], direction: str) -> Dict[int, List[int]]:
    """Pass every hand one seat along.

    Passing ``left`` means seat *s* receives the hand of seat *s+1*;
    ``right`` means it receives the hand of seat *s-1*.
    """
    seats = sorted(hands)
    count = len(seats)
    rotated = {}
    for idx, seat in enumerate(seats):
        offset = 1 if direction == 'left' else -1
        rotated[seat] = list(hands[seats[(idx + offset) % count]])
    return rotated


def flip_direction(direction: str) -> str:
    return 'right' if direction == 'left' else 'left'


def best_card(card_ids: Sequence[int], score: Callable[[int], float]) -> Optional[int]:
    """Highest-scored card; ties go to the earliest card in the hand."""
    best = None
    best_score = None
    for card_id in card_ids:
        value = score(card_id)
        if best_score is None or value > best_score:
            best, best_score = card_id, value
    return best
