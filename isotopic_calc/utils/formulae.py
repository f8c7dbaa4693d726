"""
This module has helpers for manipulating formula strings and atom keys
"""
import re

from molmass import ELEMENTS

from ..exceptions import FormatError, UnknownEntityError

_ATOM_KEY = re.compile(r'^([0-9]*)([A-Z][a-z]*)$')
_BOUNDS_STRING = re.compile(r'^(?:[A-Z][a-z]?[0-9]*)*$')


def split_atom_key(
    key: str,
) -> tuple[str, int]:
    """
    Split an atom key into (element, mass_number).

    Plain element symbols get a mass number of 0, so that they sort ahead
    of their own isotopes.

    Examples:
        >>> split_atom_key("C")
        ('C', 0)
        >>> split_atom_key("13C")
        ('C', 13)
        >>> split_atom_key("D")
        ('H', 2)
    """
    if key == 'D':
        return 'H', 2

    match = _ATOM_KEY.match(key)
    if match is None:
        raise FormatError(f"Invalid atom key: '{key}'")

    mass_number, element = match.groups()
    return element, int(mass_number) if mass_number else 0


def hill_sort_key(
    key: str,
    has_carbon: bool,
) -> tuple:
    """
    Sort key placing atom keys in Hill order.

    With carbon present: carbon first, hydrogen second, then the rest
    alphabetically. Without carbon everything is alphabetical, hydrogen
    included. Isotopes follow their base element.
    """
    element, mass_number = split_atom_key(key)
    if has_carbon:
        if element == 'C':
            return (0, '', mass_number)
        if element == 'H':
            return (1, '', mass_number)
    return (2, element, mass_number)


def format_atom(
    key: str,
    count: int,
) -> str:
    """
    Render one atom key and its count, e.g. ("C", 6) -> "C6",
    ("13C", 2) -> "[13C]2", ("O", 1) -> "O"
    """
    element, mass_number = split_atom_key(key)
    symbol = f'[{mass_number}{element}]' if mass_number else element
    return symbol if count == 1 else f'{symbol}{count}'


def to_bounds_dict(
    formula: str,
) -> dict[str, int]:
    """
    Convert constraint strings like "C20H100O10N10" into a dict that can be
    used as the `atom_pool` argument of FormulaFinder.find_formula()

    Behaviour:
    - Elements mentioned in the string get their specified counts (i.e. "C20" → C: 20)
    - Elements without counts default to 1 (i.e. "S" → S: 1)
    - Zero counts are explicit and allowed (i.e. "P0" → P: 0)

    Args:
        formula: Constraint string like "C20H10O5" or "C12H22O11S0"

    Returns:
        Dict mapping element symbols to their maximum counts

    Raises:
        FormatError: If the string is not a sequence of symbol/count pairs
        UnknownEntityError: If the string contains invalid element symbols

    Examples:
        >>> to_bounds_dict("C20H10O5")
        {'C': 20, 'H': 10, 'O': 5}

        >>> to_bounds_dict("C12H22O11S0")
        {'C': 12, 'H': 22, 'O': 11, 'S': 0}
    """
    formula = formula.strip()
    if not _BOUNDS_STRING.match(formula):
        raise FormatError(
            f"Invalid atom pool string: '{formula}'"
        )

    parsed = {}
    for symbol, count in re.findall(r'([A-Z][a-z]?)([0-9]*)', formula):
        if symbol not in ELEMENTS:
            raise UnknownEntityError(
                f"Invalid element symbol: '{symbol}'"
            )

        # "S" means "S1"
        parsed[symbol] = int(count) if count else 1

    return parsed
