import base64
from collections import Counter
from typing import Any, Dict, List

from .games import hs_card_class, is_extra_deck_card

Card = Dict[str, Any]

HERO_DBF_IDS = {
    'DEATHKNIGHT': 78065,
    'DEMONHUNTER': 56550,
    'DRUID': 274,
    'HUNTER': 31,
    'MAGE': 637,
    'PALADIN': 671,
    'PRIEST': 813,
    'ROGUE': 930,
    'SHAMAN': 1066,
    'WARLOCK': 893,
    'WARRIOR': 7,
}


class UnknownExportFormat(LookupError):
    pass


def generate_ydk(cards: List[Card]) -> str:
    """YGOPro/EDOPro deck file; an explicit ``_exportZone`` wins over type."""
    zones = {'main': [], 'extra': [], 'side': []}
    for card in cards:
        zone = (card.get('attributes') or {}).get('_exportZone')
        if zone not in zones:
            zone = 'extra' if is_extra_deck_card(card) else 'main'
        zones[zone].append(str(card['id']))

    lines = ['#created by CubeCraft', '#main', *zones['main'], '#extra', *zones['extra'], '!side', *zones['side']]
    return '\n'.join(lines) + '\n'


def _count_by_name(cards: List[Card]) -> Counter:
    # Counter keeps first-seen order
    return Counter(card['name'] for card in cards)


def generate_arena(cards: List[Card]) -> str:
    return '\n'.join(f"{count} {name}" for name, count in _count_by_name(cards).items())


def encode_varint(value: int) -> bytes:
    out = bytearray()
    while value > 127:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def generate_deck_code(cards: List[Card], hero_class: str) -> str:
    hero_dbf_id = HERO_DBF_IDS.get(hero_class, HERO_DBF_IDS['MAGE'])
    counts = Counter()
    for card in cards:
        dbf_id = (card.get('attributes') or {}).get('dbfId')
        if dbf_id:
            counts[int(dbf_id)] += 1

    singles = sorted(d for d, n in counts.items() if n == 1)
    doubles = sorted(d for d, n in counts.items() if n == 2)
    multiples = sorted((d, n) for d, n in counts.items() if n > 2)

    # reserved, version, format (1 = wild), hero count
    buf = bytearray([0, 1, 1, 1])
    buf += encode_varint(hero_dbf_id)
    buf += encode_varint(len(singles))
    for dbf_id in singles:
        buf += encode_varint(dbf_id)
    buf += encode_varint(len(doubles))
    for dbf_id in doubles:
        buf += encode_varint(dbf_id)
    buf += encode_varint(len(multiples))
    for dbf_id, count in multiples:
        buf += encode_varint(dbf_id)
        buf += encode_varint(count)
    return base64.b64encode(bytes(buf)).decode('ascii')


def dominant_class(cards: List[Card]) -> str:
    counts = Counter(hs_card_class(c) for c in cards if hs_card_class(c) != 'NEUTRAL')
    if not counts:
        return 'MAGE'
    return counts.most_common(1)[0][0]


def generate_hearthstone_deck(cards: List[Card]) -> str:
    hero = dominant_class(cards)
    code = generate_deck_code(cards, hero)
    return f"### CubeCraft Draft Deck\n# Class: {hero}\n# Format: Wild\n#\n{code}\n#\n# Generated by CubeCraft"


def generate_hearthstone_list(cards: List[Card]) -> str:
    counts = _count_by_name(cards)
    return '\n'.join(f"{count}x {name}" for name, count in sorted(counts.items()))


# game id -> format id -> (label, extension, generator)
EXPORT_FORMATS: Dict[str, Dict[str, tuple]] = {
    'yugioh': {
        'ydk': ('YDK (YGOPro/EDOPro)', '.ydk', generate_ydk),
    },
    'mtg': {
        'arena': ('MTG Arena', '.txt', generate_arena),
        'mtgo': ('MTGO', '.dec', generate_arena),
    },
    'hearthstone': {
        'deckcode': ('Deck Code', '.txt', generate_hearthstone_deck),
        'list': ('Card List', '.txt', generate_hearthstone_list),
    },
}


def export_formats(game_id: str) -> List[Dict[str, str]]:
    return [
        {'id': fmt_id, 'name': label, 'extension': ext}
        for fmt_id, (label, ext, _gen) in EXPORT_FORMATS.get(game_id, {}).items()
    ]


def export_deck(game_id: str, format_id: str, cards: List[Card]) -> Dict[str, str]:
    formats = EXPORT_FORMATS.get(game_id, {})
    if format_id not in formats:
        raise UnknownExportFormat(f"Unknown export format '{format_id}' for {game_id}")
    label, extension, generate = formats[format_id]
    return {'format': format_id, 'name': label, 'extension': extension, 'content': generate(cards)}
