# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Field-aware fuzzy filtering for the command, flag and argument panels.

A query is split on whitespace into terms that must all match (logical AND).
Each term may carry a sigil:

    foo     fuzzy match, characters in order with gaps allowed
    'foo    exact substring
    ^foo    prefix
    foo$    suffix
    ^foo$   whole field
    !foo    field must NOT contain `foo`

Matching is smart-case: case-insensitive unless the query contains an uppercase
character.

Every item is scored per field (`name`, `help` and, for commands, the full `path`)
and each field keeps its own highlight positions. An item matches when any field
scores above zero, but a field only shows highlights when that field matched on its
own. This keeps a help-text hit from lighting up characters of the name.

The fuzzy scorer follows the two-pass approach popularised by fzf: a forward scan
finds the first window containing the pattern, a backward scan shrinks it to the
tightest window ending at the same position, and the window is then scored with
bonuses for word boundaries, camelCase humps and consecutive runs, minus gap
penalties.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1
BONUS_BOUNDARY = 8
BONUS_BOUNDARY_WHITE = 10
BONUS_BOUNDARY_DELIMITER = 9
BONUS_CAMEL = 7
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR_MULTIPLIER = 2

DELIMITERS = "/,:;|-_."


class CharClass(Enum):
    WHITE = 0
    NONWORD = 1
    DELIMITER = 2
    LOWER = 3
    UPPER = 4
    LETTER = 5
    NUMBER = 6


def char_class(char: str) -> CharClass:
    if char.isspace():
        return CharClass.WHITE
    if char in DELIMITERS:
        return CharClass.DELIMITER
    if char.isdigit():
        return CharClass.NUMBER
    if char.islower():
        return CharClass.LOWER
    if char.isupper():
        return CharClass.UPPER
    if char.isalpha():
        return CharClass.LETTER
    return CharClass.NONWORD


def _is_word(cls: CharClass) -> bool:
    return cls.value > CharClass.DELIMITER.value


def position_bonus(prev: CharClass, current: CharClass) -> int:
    if _is_word(current):
        if prev is CharClass.WHITE:
            return BONUS_BOUNDARY_WHITE
        if prev is CharClass.DELIMITER:
            return BONUS_BOUNDARY_DELIMITER
        if prev is CharClass.NONWORD:
            return BONUS_BOUNDARY
    if prev is CharClass.LOWER and current is CharClass.UPPER:
        return BONUS_CAMEL
    if prev is not CharClass.NUMBER and current is CharClass.NUMBER:
        return BONUS_CAMEL
    if current is CharClass.WHITE:
        return BONUS_BOUNDARY_WHITE
    if current in (CharClass.NONWORD, CharClass.DELIMITER):
        return BONUS_BOUNDARY
    return 0


def fold(text: str, case_sensitive: bool) -> str:
    """Lower-case `text` one character at a time so indices stay aligned."""
    if case_sensitive:
        return text
    folded = []
    for char in text:
        lowered = char.lower()
        folded.append(lowered if len(lowered) == 1 else char)
    return "".join(folded)


class TermKind(Enum):
    FUZZY = "fuzzy"
    EXACT = "exact"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    EQUAL = "equal"


@dataclass(frozen=True)
class Term:
    text: str
    kind: TermKind = TermKind.FUZZY
    negate: bool = False


def parse_query(query: str) -> list[Term]:
    terms = []
    for word in query.split():
        negate = False
        kind = TermKind.FUZZY
        if word.startswith("!"):
            negate = True
            kind = TermKind.EXACT
            word = word[1:]
        if word.startswith("'"):
            kind = TermKind.EXACT
            word = word[1:]
        elif word.startswith("^"):
            kind = TermKind.PREFIX
            word = word[1:]
        if word.endswith("$") and len(word) > 1:
            kind = TermKind.EQUAL if kind is TermKind.PREFIX else TermKind.SUFFIX
            word = word[:-1]
        if word:
            terms.append(Term(word, kind, negate))
    return terms


@dataclass(frozen=True)
class FieldMatch:
    score: int = 0
    indices: tuple[int, ...] = ()

    def __bool__(self) -> bool:
        return self.score > 0


NO_MATCH = FieldMatch()


@dataclass(frozen=True)
class MatchScores:
    """Independent scores of one item's fields."""

    name: FieldMatch = NO_MATCH
    help: FieldMatch = NO_MATCH
    path: FieldMatch = NO_MATCH

    @property
    def overall(self) -> int:
        return max(self.name.score, self.help.score, self.path.score)

    @property
    def matched(self) -> bool:
        return self.overall > 0


@dataclass(frozen=True)
class FilterItem:
    """Text fields of one filterable row."""

    name: str
    help: str = ""
    path: str | None = None


def _score_window(
    pattern: str, text: str, folded: str, start: int, end: int
) -> tuple[int, list[int]]:
    score = 0
    indices: list[int] = []
    pattern_index = 0
    in_gap = False
    consecutive = 0
    first_bonus = 0
    prev = char_class(text[start - 1]) if start > 0 else CharClass.WHITE
    for index in range(start, end):
        current = char_class(text[index])
        if pattern_index < len(pattern) and folded[index] == pattern[pattern_index]:
            indices.append(index)
            score += SCORE_MATCH
            bonus = position_bonus(prev, current)
            if consecutive == 0:
                first_bonus = bonus
            else:
                if bonus >= BONUS_BOUNDARY and bonus > first_bonus:
                    first_bonus = bonus
                bonus = max(bonus, first_bonus, BONUS_CONSECUTIVE)
            if pattern_index == 0:
                score += bonus * BONUS_FIRST_CHAR_MULTIPLIER
            else:
                score += bonus
            in_gap = False
            consecutive += 1
            pattern_index += 1
        else:
            score += SCORE_GAP_EXTENSION if in_gap else SCORE_GAP_START
            in_gap = True
            consecutive = 0
            first_bonus = 0
        prev = current
    return max(score, 1), indices


def fuzzy_match(pattern: str, text: str, folded: str) -> tuple[int, list[int]]:
    """Score `pattern` against `text`; `folded` is `text` prepared for comparison."""
    if not pattern:
        return 0, []
    pattern_index = 0
    end = -1
    for index, char in enumerate(folded):
        if char == pattern[pattern_index]:
            pattern_index += 1
            if pattern_index == len(pattern):
                end = index + 1
                break
    if end < 0:
        return 0, []
    pattern_index = len(pattern) - 1
    start = 0
    for index in range(end - 1, -1, -1):
        if folded[index] == pattern[pattern_index]:
            pattern_index -= 1
            if pattern_index < 0:
                start = index
                break
    return _score_window(pattern, text, folded, start, end)


def _anchored_match(term: Term, text: str, folded: str) -> tuple[int, list[int]]:
    pattern = term.text
    if term.kind is TermKind.EXACT:
        start = folded.find(pattern)
    elif term.kind is TermKind.PREFIX:
        start = 0 if folded.startswith(pattern) else -1
    elif term.kind is TermKind.SUFFIX:
        start = len(folded) - len(pattern) if folded.endswith(pattern) else -1
    else:
        start = 0 if folded == pattern else -1
    if start < 0:
        return 0, []
    return _score_window(pattern, text, folded, start, start + len(pattern))


def match_term(term: Term, text: str, folded: str) -> tuple[int, list[int]]:
    if term.kind is TermKind.FUZZY:
        return fuzzy_match(term.text, text, folded)
    return _anchored_match(term, text, folded)


class FilterEngine:
    """
    A compiled query.

    An engine built from an empty (or whitespace-only) query is inactive: every item
    counts as a match and no field is highlighted.
    """

    def __init__(self, query: str = "") -> None:
        self.query = query
        self.case_sensitive = any(char.isupper() for char in query)
        terms = parse_query(query)
        if not self.case_sensitive:
            terms = [
                Term(fold(term.text, False), term.kind, term.negate) for term in terms
            ]
        self.terms = terms

    @property
    def active(self) -> bool:
        return bool(self.terms)

    def excludes(self, text: str | None) -> bool:
        """Whether a negated term occurs in `text`."""
        if not text:
            return False
        folded = fold(text, self.case_sensitive)
        return any(
            match_term(term, text, folded)[0] for term in self.terms if term.negate
        )

    def score_field(self, text: str | None) -> FieldMatch:
        """Score one field against the positive terms of the query."""
        if not self.active or not text:
            return NO_MATCH
        folded = fold(text, self.case_sensitive)
        total = 0
        positions: set[int] = set()
        for term in self.terms:
            if term.negate:
                continue
            score, indices = match_term(term, text, folded)
            if not score:
                return NO_MATCH
            total += score
            positions.update(indices)
        return FieldMatch(max(total, 1), tuple(sorted(positions)))

    def score(self, item: FilterItem) -> MatchScores:
        if not self.active:
            return MatchScores()
        if any(self.excludes(text) for text in (item.name, item.help, item.path)):
            return MatchScores()
        return MatchScores(
            name=self.score_field(item.name),
            help=self.score_field(item.help),
            path=self.score_field(item.path),
        )

    def matches(self, item: FilterItem) -> bool:
        return not self.active or self.score(item).matched

    def best_initial_match(self, items: Sequence[FilterItem]) -> int | None:
        for index, item in enumerate(items):
            if self.matches(item):
                return index
        return None

    def next_match(
        self, items: Sequence[FilterItem], from_index: int, direction: int
    ) -> int | None:
        """
        Index of the next matching item after `from_index` in `direction` (+1 / -1),
        wrapping around the list once. `from_index` itself is the last candidate.
        """
        total = len(items)
        if total == 0:
            return None
        step = 1 if direction >= 0 else -1
        for offset in range(1, total + 1):
            index = (from_index + step * offset) % total
            if self.matches(items[index]):
                return index
        return None


def best_initial_match(items: Sequence[FilterItem], query: str) -> int | None:
    return FilterEngine(query).best_initial_match(items)


def next_match(
    items: Sequence[FilterItem], from_index: int, direction: int, query: str
) -> int | None:
    return FilterEngine(query).next_match(items, from_index, direction)
