"""Declarative per-game configuration.

Each game describes how its cards are classified, which filter groups and
sort options the card browser offers, bot names and draft defaults. The
filter engine in ``filters.py`` is driven entirely by these objects.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


Card = Dict[str, Any]

DEFAULT_DRAFT_SETTINGS = {
    'mode': 'pack',
    'player_count': 4,
    'cards_per_player': 45,
    'pack_size': 15,
    'burned_per_pack': 0,
    'timer_seconds': 60,
}


@dataclass
class FilterOption:
    id: str
    label: str
    predicate: Callable[[Card], bool]

    def to_dict(self):
        return {'id': self.id, 'label': self.label}


@dataclass
class FilterGroup:
    id: str
    label: str
    type: str  # multi-select, range
    options: List[FilterOption] = field(default_factory=list)
    min: Optional[float] = None
    max: Optional[float] = None
    get_value: Optional[Callable[[Card], Optional[float]]] = None

    def option(self, option_id: str) -> Optional[FilterOption]:
        return next((o for o in self.options if o.id == option_id), None)

    def to_dict(self):
        data = {'id': self.id, 'label': self.label, 'type': self.type}
        if self.type == 'range':
            data['min'] = self.min
            data['max'] = self.max
        else:
            data['options'] = [o.to_dict() for o in self.options]
        return data


@dataclass
class SortOption:
    id: str
    label: str
    key: Callable[[Card], Any]

    def to_dict(self):
        return {'id': self.id, 'label': self.label}


@dataclass
class GameConfig:
    id: str
    name: str
    short_name: str
    default_player_name: str
    bot_names: List[str]
    filter_options: List[FilterOption]
    filter_groups: List[FilterGroup]
    sort_options: List[SortOption]
    is_creature: Optional[Callable[[Card], bool]] = None
    is_spell: Optional[Callable[[Card], bool]] = None
    is_trap: Optional[Callable[[Card], bool]] = None
    draft_defaults: Dict[str, Any] = field(default_factory=dict)

    def filter_option(self, option_id: str) -> Optional[FilterOption]:
        return next((o for o in self.filter_options if o.id == option_id), None)

    def filter_group(self, group_id: str) -> Optional[FilterGroup]:
        return next((g for g in self.filter_groups if g.id == group_id), None)

    def sort_option(self, sort_id: str) -> Optional[SortOption]:
        return next((s for s in self.sort_options if s.id == sort_id), None)

    def bot_name(self, index: int) -> str:
        if not self.bot_names:
            return f"Bot {index + 1}"
        return self.bot_names[index % len(self.bot_names)]

    def draft_settings(self) -> Dict[str, Any]:
        """Global draft defaults with this game's overrides applied."""
        defaults = dict(DEFAULT_DRAFT_SETTINGS)
        defaults.update(self.draft_defaults)
        return defaults

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'short_name': self.short_name,
            'default_player_name': self.default_player_name,
            'bot_names': list(self.bot_names),
            'filter_options': [o.to_dict() for o in self.filter_options],
            'filter_groups': [g.to_dict() for g in self.filter_groups],
            'sort_options': [s.to_dict() for s in self.sort_options],
            'draft_defaults': self.draft_settings(),
        }


def _attrs(card: Card) -> Dict[str, Any]:
    return card.get('attributes') or {}


def _type(card: Card) -> str:
    return (card.get('type') or '').lower()


def _name_key(card: Card) -> str:
    return (card.get('name') or '').casefold()


def _score_key(card: Card) -> float:
    score = card.get('score')
    return score if score is not None else 0


# ---- Yu-Gi-Oh! ----

YUGIOH_EXTRA_DECK_TYPES = (
    'Fusion Monster',
    'Synchro Monster',
    'XYZ Monster',
    'Link Monster',
    'Pendulum Effect Fusion Monster',
    'Synchro Pendulum Effect Monster',
    'XYZ Pendulum Effect Monster',
)

YUGIOH_ATTRIBUTES = ('DARK', 'LIGHT', 'EARTH', 'WATER', 'FIRE', 'WIND', 'DIVINE')

YUGIOH_MONSTER_TYPES = (
    'Aqua', 'Beast', 'Beast-Warrior', 'Cyberse', 'Dinosaur', 'Divine-Beast',
    'Dragon', 'Fairy', 'Fiend', 'Fish', 'Insect', 'Machine', 'Plant',
    'Psychic', 'Pyro', 'Reptile', 'Rock', 'Sea Serpent', 'Spellcaster',
    'Thunder', 'Warrior', 'Winged Beast', 'Wyrm', 'Zombie',
)


def is_extra_deck_card(card: Card) -> bool:
    card_type = card.get('type') or ''
    return any(t in card_type for t in YUGIOH_EXTRA_DECK_TYPES)


def is_monster_card(card: Card) -> bool:
    return 'monster' in _type(card)


def is_spell_card(card: Card) -> bool:
    return 'spell' in _type(card)


def is_trap_card(card: Card) -> bool:
    return 'trap' in _type(card)


def _type_contains(word: str, monster_only: bool = False) -> Callable[[Card], bool]:
    def predicate(card: Card) -> bool:
        if monster_only and not is_monster_card(card):
            return False
        return word in _type(card)
    return predicate


def _attr_equals(name: str, value: Any) -> Callable[[Card], bool]:
    return lambda card: _attrs(card).get(name) == value


def _stat_key(name: str, missing: int) -> Callable[[Card], int]:
    def key(card: Card) -> int:
        value = _attrs(card).get(name)
        return value if value is not None else missing
    return key


YUGIOH = GameConfig(
    id='yugioh',
    name='Yu-Gi-Oh!',
    short_name='YGO',
    default_player_name='Duelist',
    bot_names=[
        'Kaiba Bot', 'Yugi Bot', 'Joey Bot', 'Mai Bot',
        'Pegasus Bot', 'Marik Bot', 'Bakura Bot', 'Ishizu Bot',
    ],
    filter_options=[
        FilterOption('all', 'All Cards', lambda card: True),
        FilterOption('monsters', 'Monsters', is_monster_card),
        FilterOption('spells', 'Spells', is_spell_card),
        FilterOption('traps', 'Traps', is_trap_card),
        FilterOption('main', 'Main Deck', lambda card: not is_extra_deck_card(card)),
        FilterOption('extra', 'Extra Deck', is_extra_deck_card),
    ],
    filter_groups=[
        FilterGroup('monsterType', 'Monster Type', 'multi-select', options=[
            FilterOption('normal', 'Normal', _type_contains('normal monster')),
            FilterOption('effect', 'Effect', _type_contains('effect', monster_only=True)),
            FilterOption('ritual', 'Ritual', _type_contains('ritual', monster_only=True)),
            FilterOption('fusion', 'Fusion', _type_contains('fusion')),
            FilterOption('synchro', 'Synchro', _type_contains('synchro')),
            FilterOption('xyz', 'XYZ', _type_contains('xyz')),
            FilterOption('pendulum', 'Pendulum', _type_contains('pendulum')),
            FilterOption('link', 'Link', _type_contains('link')),
            FilterOption('tuner', 'Tuner', _type_contains('tuner')),
        ]),
        FilterGroup('attribute', 'Attribute', 'multi-select', options=[
            FilterOption(attr, attr, _attr_equals('attribute', attr)) for attr in YUGIOH_ATTRIBUTES
        ]),
        FilterGroup('race', 'Monster Race', 'multi-select', options=[
            FilterOption(race.lower().replace('-', '_').replace(' ', '_'), race, _attr_equals('race', race))
            for race in YUGIOH_MONSTER_TYPES
        ]),
        FilterGroup('level', 'Level/Rank', 'range', min=1, max=12,
                    get_value=lambda card: _attrs(card).get('level')),
    ],
    sort_options=[
        SortOption('name', 'Name', _name_key),
        SortOption('type', 'Type', lambda card: _type(card)),
        SortOption('level', 'Level', _stat_key('level', 0)),
        SortOption('atk', 'ATK', _stat_key('atk', -1)),
        SortOption('def', 'DEF', _stat_key('def', -1)),
        SortOption('score', 'Score', _score_key),
    ],
    is_creature=is_monster_card,
    is_spell=is_spell_card,
    is_trap=is_trap_card,
)


# ---- Magic: The Gathering ----

def _mtg_colors(card: Card) -> List[str]:
    return _attrs(card).get('colors') or []


def _has_color(color: str) -> Callable[[Card], bool]:
    return lambda card: color in _mtg_colors(card)


def is_mtg_creature(card: Card) -> bool:
    return 'creature' in _type(card)


def is_mtg_spell(card: Card) -> bool:
    return 'instant' in _type(card) or 'sorcery' in _type(card)


def is_mtg_land(card: Card) -> bool:
    return 'land' in _type(card)


MTG = GameConfig(
    id='mtg',
    name='Magic: The Gathering',
    short_name='MTG',
    default_player_name='Planeswalker',
    bot_names=[
        'Jace Bot', 'Liliana Bot', 'Chandra Bot', 'Nissa Bot',
        'Gideon Bot', 'Ajani Bot', 'Sorin Bot', 'Elspeth Bot',
    ],
    filter_options=[
        FilterOption('all', 'All Cards', lambda card: True),
        FilterOption('creatures', 'Creatures', is_mtg_creature),
        FilterOption('spells', 'Spells', is_mtg_spell),
        FilterOption('lands', 'Lands', is_mtg_land),
    ],
    filter_groups=[
        FilterGroup('colors', 'Colors', 'multi-select', options=[
            FilterOption('W', 'White', _has_color('W')),
            FilterOption('U', 'Blue', _has_color('U')),
            FilterOption('B', 'Black', _has_color('B')),
            FilterOption('R', 'Red', _has_color('R')),
            FilterOption('G', 'Green', _has_color('G')),
            FilterOption('C', 'Colorless', lambda card: not _mtg_colors(card)),
            FilterOption('M', 'Multicolor', lambda card: len(_mtg_colors(card)) > 1),
        ]),
        FilterGroup('cardTypes', 'Card Type', 'multi-select', options=[
            FilterOption(t, t.capitalize(), _type_contains(t))
            for t in ('creature', 'instant', 'sorcery', 'enchantment', 'artifact', 'planeswalker', 'land')
        ]),
        FilterGroup('cmc', 'Mana Value', 'range', min=0, max=16,
                    get_value=lambda card: _attrs(card).get('cmc')),
    ],
    sort_options=[
        SortOption('name', 'Name', _name_key),
        SortOption('type', 'Type', lambda card: _type(card)),
        SortOption('cmc', 'Mana Value', lambda card: _attrs(card).get('cmc') or 0),
        SortOption('score', 'Score', _score_key),
    ],
    is_creature=is_mtg_creature,
    is_spell=is_mtg_spell,
)


# ---- Hearthstone ----

HEARTHSTONE_CLASSES = (
    'NEUTRAL', 'DEATHKNIGHT', 'DEMONHUNTER', 'DRUID', 'HUNTER', 'MAGE',
    'PALADIN', 'PRIEST', 'ROGUE', 'SHAMAN', 'WARLOCK', 'WARRIOR',
)
HEARTHSTONE_RARITY_ORDER = {'FREE': 0, 'COMMON': 1, 'RARE': 2, 'EPIC': 3, 'LEGENDARY': 4}


def hs_card_class(card: Card) -> str:
    return _attrs(card).get('cardClass') or 'NEUTRAL'


def _hs_card_type(value: str) -> Callable[[Card], bool]:
    return _attr_equals('cardType', value)


HEARTHSTONE = GameConfig(
    id='hearthstone',
    name='Hearthstone',
    short_name='HS',
    default_player_name='Player',
    bot_names=[
        'Jaina', 'Thrall', 'Garrosh', 'Uther', 'Rexxar', 'Malfurion', 'Valeera', "Gul'dan", 'Anduin',
        'Medivh', 'Alleria', 'Magni', 'Khadgar', 'Lady Liadrin', 'Morgl', 'Tyrande',
        'Arthas', 'Illidan', 'Ragnaros', 'Sylvanas', 'Dr. Boom', "Kel'Thuzad", 'Yogg-Saron',
        'Innkeeper', 'Reno', 'Elise', 'Brann', 'Finley', 'Zephrys',
    ],
    filter_options=[
        FilterOption('all', 'All Cards', lambda card: True),
        FilterOption('minions', 'Minions', _hs_card_type('MINION')),
        FilterOption('spells', 'Spells', _hs_card_type('SPELL')),
        FilterOption('weapons', 'Weapons', _hs_card_type('WEAPON')),
    ],
    filter_groups=[
        FilterGroup('cardType', 'Card Type', 'multi-select', options=[
            FilterOption('minion', 'Minion', _hs_card_type('MINION')),
            FilterOption('spell', 'Spell', _hs_card_type('SPELL')),
            FilterOption('weapon', 'Weapon', _hs_card_type('WEAPON')),
            FilterOption('hero', 'Hero', _hs_card_type('HERO')),
        ]),
        FilterGroup('cardClass', 'Class', 'multi-select', options=[
            FilterOption(cls.lower(), cls.title(), (lambda c: lambda card: hs_card_class(card) == c)(cls))
            for cls in HEARTHSTONE_CLASSES
        ]),
        FilterGroup('rarity', 'Rarity', 'multi-select', options=[
            FilterOption(r.lower(), r.title(), _attr_equals('rarity', r)) for r in HEARTHSTONE_RARITY_ORDER
        ]),
        FilterGroup('manaCost', 'Mana Cost', 'range', min=0, max=10,
                    get_value=lambda card: _attrs(card).get('cost')),
    ],
    sort_options=[
        SortOption('name', 'Name', _name_key),
        SortOption('cost', 'Mana Cost', lambda card: _attrs(card).get('cost') or 0),
        SortOption('rarity', 'Rarity',
                   lambda card: HEARTHSTONE_RARITY_ORDER.get(_attrs(card).get('rarity') or 'FREE', 0)),
        SortOption('score', 'Score', _score_key),
    ],
    is_creature=_hs_card_type('MINION'),
    is_spell=_hs_card_type('SPELL'),
    draft_defaults={'player_count': 4, 'cards_per_player': 45, 'pack_size': 15, 'timer_seconds': 60},
)


GAMES: Dict[str, GameConfig] = {g.id: g for g in (YUGIOH, MTG, HEARTHSTONE)}
DEFAULT_GAME_ID = YUGIOH.id


def get_game(game_id: Optional[str]) -> GameConfig:
    """Look up a game, falling back to Yu-Gi-Oh for unknown ids."""
    return GAMES.get(game_id or DEFAULT_GAME_ID, YUGIOH)
