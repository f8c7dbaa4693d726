"""
Formula parser.

Formula text is tokenized into a tree of element, isotope and group tokens,
which is then reduced into a Composition:

    "(CH3)2CO"      -> C3H6O
    "C[13C]2H6"     -> C1 13C2 H6
    "CD3OD"         -> C1 2H4 O1

Grammar:
    formula := item+
    item    := element count? | '[' label ']' count? | '(' formula ')' count?
    element := uppercase lowercase*
    label   := digits? element
"""
from __future__ import annotations

import re
from collections import Counter
from typing import NamedTuple

from .composition import Composition
from .elements import ElementTable, default_table
from ..exceptions import FormatError

ALLOWED_CHARACTERS = re.compile(r'^[A-Za-z0-9\(\)\[\]]+$')
_ISOTOPE_LABEL = re.compile(r'^[0-9]*[A-Z][a-z]*$')

ELEMENT = 'element'
ISOTOPE = 'isotope'
GROUP = 'group'


class Token(NamedTuple):
    """
    A parsed formula item.

    `value` is a symbol for element/isotope tokens and a list of tokens for
    group tokens.
    """
    kind: str
    value: str | list['Token']
    count: int


def parse_formula(
    text: str,
    table: ElementTable | None = None,
) -> Composition:
    """
    Parse formula text into a Composition.

    Args:
        text: Formula such as "C6H12O6", "(CH3)2CO", "[13C]C5H12O6" or "CD4".
            Round brackets may be nested and take an optional multiplier;
            a missing or zero multiplier means 1.

        table: ElementTable used to resolve symbols.
            Default: the molmass-backed default table

    Returns:
        Composition keyed by element symbol or isotope tag ("D" is stored
        as "2H")

    Raises:
        FormatError: Empty text, disallowed characters, unmatched brackets,
            or a malformed token
        UnknownEntityError: A symbol or isotope not present in the table

    Example:
        >>> parse_formula("(CH3)2CO") == parse_formula("C3H6O")
        True
    """
    if table is None:
        table = default_table()

    text = text.strip()
    if not text:
        raise FormatError("Formula is empty")
    if not ALLOWED_CHARACTERS.match(text):
        raise FormatError(
            f"Formula '{text}' contains characters other than letters, "
            f"digits, and round or square brackets"
        )

    tokens = tokenize(text)
    counts: Counter[str] = Counter()
    _reduce(tokens, 1, counts, table)
    return Composition(counts)


def tokenize(text: str) -> list[Token]:
    """
    Split formula text into a token tree, without resolving symbols
    """
    tokens, end = _parse_items(text, 0, depth=0)
    if end != len(text):
        # Only a stray closing bracket stops the top level early
        raise FormatError(f"Unmatched ')' at position {end} in '{text}'")
    return tokens


def _parse_items(
    text: str,
    pos: int,
    depth: int,
) -> tuple[list[Token], int]:
    tokens: list[Token] = []
    n = len(text)

    while pos < n:
        c = text[pos]

        if c == '(':
            group, pos = _parse_items(text, pos + 1, depth + 1)
            if pos >= n or text[pos] != ')':
                raise FormatError(f"Unmatched '(' in '{text}'")
            if not group:
                raise FormatError(f"Empty group '()' in '{text}'")
            count, pos = _read_count(text, pos + 1)
            tokens.append(Token(GROUP, group, count or 1))

        elif c == ')':
            if depth == 0:
                raise FormatError(f"Unmatched ')' at position {pos} in '{text}'")
            return tokens, pos

        elif c == '[':
            close = text.find(']', pos)
            if close == -1:
                raise FormatError(f"Unmatched '[' in '{text}'")
            label = text[pos + 1:close]
            if not _ISOTOPE_LABEL.match(label):
                raise FormatError(
                    f"Invalid isotope label '[{label}]' in '{text}'"
                )
            count, pos = _read_count(text, close + 1)
            tokens.append(Token(ISOTOPE, label, _positive(count, label)))

        elif c == ']':
            raise FormatError(f"Unmatched ']' at position {pos} in '{text}'")

        elif 'A' <= c <= 'Z':
            end = pos + 1
            while end < n and 'a' <= text[end] <= 'z':
                end += 1
            symbol = text[pos:end]
            count, pos = _read_count(text, end)
            tokens.append(Token(ELEMENT, symbol, _positive(count, symbol)))

        else:
            raise FormatError(
                f"Unexpected '{c}' at position {pos} in '{text}'"
            )

    return tokens, pos


def _read_count(
    text: str,
    pos: int,
) -> tuple[int | None, int]:
    """Read an optional decimal count starting at `pos`"""
    end = pos
    while end < len(text) and '0' <= text[end] <= '9':
        end += 1
    if end == pos:
        return None, pos
    return int(text[pos:end]), end


def _positive(
    count: int | None,
    symbol: str,
) -> int:
    if count is None:
        return 1
    if count == 0:
        raise FormatError(f"Count of '{symbol}' must be positive")
    return count


def _reduce(
    tokens: list[Token],
    multiplier: int,
    counts: Counter,
    table: ElementTable,
) -> None:
    for token in tokens:
        if token.kind == GROUP:
            _reduce(token.value, multiplier * token.count, counts, table)
        else:
            key = table.canonical_key(token.value)
            counts[key] += token.count * multiplier
