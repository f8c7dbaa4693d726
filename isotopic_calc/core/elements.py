"""
Element/isotope reference table.

An ElementTable maps element symbols to their isotopes (exact mass and
natural abundance) and keeps the electron mass. The default table is built
once from the element data shipped with molmass; tables can also be read
from JSON records of the form

    {"C": {"Relative Atomic Mass": [12.0, 13.00335483507],
           "Isotopic Composition": [0.9893, 0.0107],
           "Symbol": ["12C", "13C"]},
     "e": {"Relative Atomic Mass": [0.000548579909065]}}
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Mapping, TYPE_CHECKING

from molmass.elements import ELEMENTS, ELECTRON

from ..exceptions import FormatError, UnknownEntityError

if TYPE_CHECKING:
    from .composition import Composition

logger = logging.getLogger(__name__)

ELECTRON_KEY = 'e'
DEUTERIUM_ALIAS = 'D'

_ISOTOPE_TAG = re.compile(r'^([0-9]+)([A-Z][a-z]*)$')


@dataclass(frozen=True, slots=True)
class Isotope:
    """
    A single isotope.

    Attributes:
        symbol: Isotope tag, mass number followed by element (e.g. "13C")
        element: Base element symbol (e.g. "C")
        mass_number: Number of nucleons
        mass: Exact mass in Da
        abundance: Natural fractional abundance in [0, 1]
    """
    symbol: str
    element: str
    mass_number: int
    mass: float
    abundance: float


class ElementTable:
    """
    Read-only lookup of isotope masses and abundances.

    Keys accepted by the lookup methods are either plain element symbols
    ("C", "Cl") or isotope tags ("13C", "37Cl"). "D" is accepted as an
    alias for "2H".

    Example:
        >>> table = ElementTable.from_molmass()
        >>> table.monoisotopic_mass('C')
        12.0
        >>> [iso.symbol for iso in table.isotopes('C')]
        ['12C', '13C']
        >>> table.isotopes('13C')[0].abundance
        1.0
    """

    def __init__(
        self,
        isotopes: Mapping[str, Iterable[Isotope]],
        electron_mass: float,
    ):
        self._elements: dict[str, tuple[Isotope, ...]] = {}
        self._by_tag: dict[str, Isotope] = {}

        for symbol, element_isotopes in isotopes.items():
            ordered = tuple(sorted(element_isotopes, key=lambda x: x.mass))
            self._elements[symbol] = ordered
            for isotope in ordered:
                self._by_tag[isotope.symbol] = isotope

        self._electron_mass = float(electron_mass)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_records(
        cls,
        records: Mapping[str, Mapping[str, list]],
    ) -> 'ElementTable':
        """
        Build a table from per-element records of parallel lists.

        Args:
            records: Mapping of element symbol to a record holding
                "Relative Atomic Mass", "Isotopic Composition" and "Symbol"
                lists. The special "e" record holds the electron mass.

        Returns:
            ElementTable

        Raises:
            FormatError: If a record is missing lists, or its lists have
                different lengths
        """
        isotopes: dict[str, list[Isotope]] = {}
        electron_mass = ELECTRON.mass

        for symbol, record in records.items():
            masses = record.get('Relative Atomic Mass')
            if not masses:
                raise FormatError(
                    f"Record for '{symbol}' has no 'Relative Atomic Mass'"
                )

            if symbol == ELECTRON_KEY:
                electron_mass = float(masses[0])
                continue

            abundances = record.get('Isotopic Composition')
            if abundances is None or len(abundances) != len(masses):
                raise FormatError(
                    f"Record for '{symbol}' must have as many isotopic "
                    f"compositions as atomic masses"
                )

            tags = record.get('Symbol')
            if tags is None:
                tags = [f'{round(float(m))}{symbol}' for m in masses]
            elif len(tags) != len(masses):
                raise FormatError(
                    f"Record for '{symbol}' must have as many isotope "
                    f"symbols as atomic masses"
                )

            element_isotopes = []
            for tag, mass, abundance in zip(tags, masses, abundances):
                match = _ISOTOPE_TAG.match(tag)
                if match is None or match.group(2) != symbol:
                    raise FormatError(
                        f"Invalid isotope symbol '{tag}' for element '{symbol}'"
                    )
                element_isotopes.append(
                    Isotope(
                        symbol=tag,
                        element=symbol,
                        mass_number=int(match.group(1)),
                        mass=float(mass),
                        # Missing compositions mean "not naturally occurring"
                        abundance=float(abundance) if abundance else 0.0,
                    )
                )
            isotopes[symbol] = element_isotopes

        if ELECTRON_KEY not in records:
            logger.debug("No electron record, using molmass electron mass")

        return cls(isotopes, electron_mass)

    @classmethod
    def from_json(
        cls,
        path: str | Path,
    ) -> 'ElementTable':
        """
        Load a table from a JSON file in the format described in
        `from_records()`.
        """
        with open(path, encoding='utf-8') as f:
            records = json.load(f)

        table = cls.from_records(records)
        logger.debug("Loaded %d elements from %s", len(table), path)
        return table

    @classmethod
    def from_molmass(cls) -> 'ElementTable':
        """
        Build a table from the element data shipped with molmass
        """
        isotopes: dict[str, list[Isotope]] = {}
        for element in ELEMENTS:
            if not element.isotopes:
                continue
            isotopes[element.symbol] = [
                Isotope(
                    symbol=f'{mass_number}{element.symbol}',
                    element=element.symbol,
                    mass_number=mass_number,
                    mass=isotope.mass,
                    abundance=isotope.abundance,
                )
                for mass_number, isotope in element.isotopes.items()
            ]

        table = cls(isotopes, ELECTRON.mass)
        logger.debug("Built element table with %d elements from molmass", len(table))
        return table

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def electron_mass(self) -> float:
        return self._electron_mass

    @property
    def symbols(self) -> list[str]:
        """Element symbols known to this table"""
        return list(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key = self.canonical_key(key, strict=False)
        return key in self._elements or key in self._by_tag

    def canonical_key(
        self,
        key: str,
        strict: bool = True,
    ) -> str:
        """
        Map aliases to the key used inside compositions ("D" -> "2H").

        With `strict`, raises UnknownEntityError if the key is neither an
        element nor an isotope of this table.
        """
        if key == DEUTERIUM_ALIAS:
            key = '2H'
        if strict and key not in self._elements and key not in self._by_tag:
            raise UnknownEntityError(
                f"Unknown element or isotope: '{key}'"
            )
        return key

    def isotope(self, tag: str) -> Isotope:
        """Return the Isotope record for an isotope tag such as "13C" """
        tag = self.canonical_key(tag, strict=False)
        try:
            return self._by_tag[tag]
        except KeyError:
            raise UnknownEntityError(f"Unknown isotope: '{tag}'") from None

    def base_element(self, key: str) -> str:
        """Element symbol for an element or isotope key ("13C" -> "C")"""
        key = self.canonical_key(key)
        if key in self._elements:
            return key
        return self._by_tag[key].element

    def isotopes(self, key: str) -> tuple[Isotope, ...]:
        """
        Isotopes contributing to one atom of `key`.

        For an element this is the list of naturally occurring isotopes,
        sorted by mass. For an isotope tag this is that single isotope with
        an abundance of 1.0.

        Raises:
            UnknownEntityError: If the key is unknown, or names an element
                without naturally occurring isotopes
        """
        key = self.canonical_key(key)
        if key in self._elements:
            natural = tuple(x for x in self._elements[key] if x.abundance > 0)
            if not natural:
                raise UnknownEntityError(
                    f"Element '{key}' has no naturally occurring isotopes"
                )
            return natural

        return (replace(self._by_tag[key], abundance=1.0),)

    def monoisotopic_mass(self, key: str) -> float:
        """
        Mass of the most abundant isotope of an element, or the mass of
        the given isotope for an isotope tag.
        """
        isotopes = self.isotopes(key)
        return max(isotopes, key=lambda x: x.abundance).mass

    def nominal_mass(self, key: str) -> int:
        """Integer mass used for the nitrogen rule"""
        return round(self.monoisotopic_mass(key))

    def mass_of(self, composition: 'Composition | Mapping[str, int]') -> float:
        """Monoisotopic mass of a composition, electrons excluded"""
        return sum(
            count * self.monoisotopic_mass(key)
            for key, count in composition.items()
            if key != ELECTRON_KEY
        )

    def __repr__(self) -> str:
        return f"ElementTable(n_elements={len(self)})"


_default_table: ElementTable | None = None


def default_table() -> ElementTable:
    """
    Return the process-wide ElementTable built from molmass.

    The table is created on first use and never mutated afterwards.
    """
    global _default_table
    if _default_table is None:
        _default_table = ElementTable.from_molmass()
    return _default_table
