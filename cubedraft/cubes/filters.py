from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .games import GameConfig

Card = Dict[str, Any]

TIER_OPTIONS = ('S', 'A', 'B', 'C', 'E', 'F')
# Numeric sorts keep monsters, spells and traps in separate blocks
CATEGORY_GROUPED_SORTS = ('level', 'atk', 'def')


def tier_from_score(score: Optional[float]) -> str:
    if score is None:
        return 'F'
    if score >= 95:
        return 'S'
    if score >= 90:
        return 'A'
    if score >= 75:
        return 'B'
    if score >= 60:
        return 'C'
    if score >= 50:
        return 'E'
    return 'F'


@dataclass
class CardFilterState:
    search: str = ''
    type_filter: str = 'all'
    tier_filter: List[str] = field(default_factory=list)
    advanced_filters: Dict[str, List[str]] = field(default_factory=dict)
    range_filters: Dict[str, Tuple[float, float]] = field(default_factory=dict)

    @property
    def active_filter_count(self) -> int:
        count = 0
        if self.search:
            count += 1
        if self.type_filter != 'all':
            count += 1
        if self.tier_filter:
            count += 1
        count += sum(1 for selected in self.advanced_filters.values() if selected)
        count += len(self.range_filters)
        return count

    @property
    def has_active_filters(self) -> bool:
        return self.active_filter_count > 0


def _matches_search(card: Card, term: str) -> bool:
    term = term.lower()
    return (
        term in (card.get('name') or '').lower()
        or term in (card.get('type') or '').lower()
        or term in (card.get('description') or '').lower()
    )


def filter_cards(cards: Iterable[Card], game: GameConfig, state: CardFilterState) -> List[Card]:
    filtered = list(cards)

    if state.search.strip():
        filtered = [c for c in filtered if _matches_search(c, state.search)]

    if state.type_filter != 'all':
        option = game.filter_option(state.type_filter)
        if option:
            filtered = [c for c in filtered if option.predicate(c)]

    if state.tier_filter:
        tiers = set(state.tier_filter)
        filtered = [c for c in filtered if tier_from_score(c.get('score')) in tiers]

    for group in game.filter_groups:
        if group.type == 'multi-select':
            selected = [group.option(oid) for oid in state.advanced_filters.get(group.id) or []]
            selected = [o for o in selected if o is not None]
            if selected:
                filtered = [c for c in filtered if any(o.predicate(c) for o in selected)]
        elif group.type == 'range' and group.get_value:
            bounds = state.range_filters.get(group.id)
            if bounds:
                low, high = bounds
                filtered = [
                    c for c in filtered
                    if group.get_value(c) is not None and low <= group.get_value(c) <= high
                ]

    return filtered


def _category(card: Card, game: GameConfig) -> int:
    if game.is_creature and game.is_creature(card):
        return 0
    if game.is_spell and game.is_spell(card):
        return 1
    if game.is_trap and game.is_trap(card):
        return 2
    return 3


def sort_cards(cards: List[Card], game: GameConfig, sort_by: str = 'name', direction: str = 'asc') -> List[Card]:
    """Sort cards by a game sort option.

    ``pick`` keeps the given order and ``score`` lists the best first.
    Unknown options sort by name.
    """
    if sort_by == 'pick':
        ordered = list(cards)
    else:
        option = game.sort_option(sort_by)
        if option:
            key = option.key
        elif sort_by == 'score':
            key = lambda card: card.get('score') if card.get('score') is not None else 0
        else:
            key = lambda card: (card.get('name') or '').casefold()
        reverse = direction == 'desc'
        if sort_by == 'score':
            # best first unless flipped
            reverse = not reverse
        ordered = sorted(cards, key=key, reverse=reverse)

    if sort_by in CATEGORY_GROUPED_SORTS and game.is_creature:
        # stable, so the value order within each category survives
        ordered = sorted(ordered, key=lambda card: _category(card, game))
    return ordered


def apply_filters(cards: Iterable[Card], game: GameConfig, state: CardFilterState,
                  sort_by: str = 'name', direction: str = 'asc') -> List[Card]:
    return sort_cards(filter_cards(cards, game, state), game, sort_by, direction)


def filter_state_from_args(args, game: GameConfig) -> CardFilterState:
    """Build a filter state from query args.

    Multi-select groups use ``f.<group>=a,b`` and ranges ``r.<group>=min,max``.
    """
    tiers = [t.strip().upper() for t in (args.get('tier') or '').split(',') if t.strip()]
    state = CardFilterState(
        search=args.get('search') or '',
        type_filter=args.get('type') or 'all',
        tier_filter=[t for t in tiers if t in TIER_OPTIONS],
    )
    for group in game.filter_groups:
        if group.type == 'multi-select':
            raw = args.get(f"f.{group.id}")
            if raw:
                state.advanced_filters[group.id] = [v for v in raw.split(',') if v]
        elif group.type == 'range':
            raw = args.get(f"r.{group.id}")
            if raw:
                parts = raw.split(',')
                if len(parts) != 2:
                    raise ValueError(f"Range for {group.id} must be min,max")
                state.range_filters[group.id] = (float(parts[0]), float(parts[1]))
    return state
