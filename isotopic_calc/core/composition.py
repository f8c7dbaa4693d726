"""
Immutable element/isotope composition.

A Composition maps atom keys (element symbols such as "C", or isotope tags
such as "13C") to positive integer counts. It is what the parser produces
and what the distribution engine and the formula finder consume.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Iterable, Iterator

from ..exceptions import ValidationError
from ..utils.formulae import format_atom, hill_sort_key, split_atom_key


class Composition(Mapping):
    """
    Read-only mapping of atom key -> count. Missing keys have a count of 0.

    Example:
        >>> water = Composition({'H': 2, 'O': 1})
        >>> water['H'], water['C']
        (2, 0)
        >>> (water * 2).formula
        'H4O2'
        >>> (Composition({'C': 1, 'O': 2}) + Composition({'H': 1})).formula
        'CHO2'
    """

    __slots__ = ('_counts', '_formula_str', '_hash')

    def __init__(
        self,
        counts: Mapping[str, int] | Iterable[tuple[str, int]] | None = None,
    ):
        items = counts.items() if isinstance(counts, Mapping) else (counts or ())

        merged: dict[str, int] = {}
        for key, count in items:
            count = int(count)
            if count < 0:
                raise ValidationError(
                    f"Atom counts must be non-negative; got {key}: {count}"
                )
            if count:
                merged[key] = merged.get(key, 0) + count

        self._counts = merged
        self._formula_str: str | None = None
        self._hash: int | None = None

    @classmethod
    def from_counts(
        cls,
        symbols: list[str] | tuple[str, ...],
        counts: Iterable[int],
    ) -> 'Composition':
        """Construct from parallel symbols/counts, zeros are dropped"""
        return cls(zip(symbols, counts))

    # ------------------------------------------------------------------
    # Mapping interface
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> int:
        return self._counts.get(key, 0)

    def __contains__(self, key: object) -> bool:
        return key in self._counts

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Composition):
            return self._counts == other._counts
        if isinstance(other, Mapping):
            return self._counts == {k: v for k, v in other.items() if v}
        return NotImplemented

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._counts.items()))
        return self._hash

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def atoms(self) -> int:
        """Total number of atoms"""
        return sum(self._counts.values())

    @property
    def elements(self) -> set[str]:
        """Base elements present, isotope tags folded into their element"""
        return {split_atom_key(k)[0] for k in self._counts}

    def element_count(self, element: str) -> int:
        """Count of `element` including any of its specific isotopes"""
        return sum(
            count for key, count in self._counts.items()
            if split_atom_key(key)[0] == element
        )

    @property
    def formula(self) -> str:
        """
        Hill-notation formula string. Specific isotopes are written in
        bracket notation, so the string parses back to this composition.
        """
        if self._formula_str is None:
            has_carbon = 'C' in self.elements
            ordered = sorted(
                self._counts,
                key=lambda k: hill_sort_key(k, has_carbon),
            )
            self._formula_str = ''.join(
                format_atom(k, self._counts[k]) for k in ordered
            )
        return self._formula_str

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def __add__(self, other: Mapping[str, int]) -> 'Composition':
        if not isinstance(other, Mapping):
            return NotImplemented
        merged = dict(self._counts)
        for key, count in other.items():
            merged[key] = merged.get(key, 0) + count
        return Composition(merged)

    def __sub__(self, other: Mapping[str, int]) -> 'Composition':
        if not isinstance(other, Mapping):
            return NotImplemented
        merged = dict(self._counts)
        for key, count in other.items():
            remaining = merged.get(key, 0) - count
            if remaining < 0:
                raise ValidationError(
                    f"Cannot remove {count} {key} from {self.formula}"
                )
            merged[key] = remaining
        return Composition(merged)

    def __mul__(self, factor: int) -> 'Composition':
        if not isinstance(factor, int):
            return NotImplemented
        if factor < 0:
            raise ValidationError(f"Cannot multiply a composition by {factor}")
        return Composition({k: v * factor for k, v in self._counts.items()})

    __rmul__ = __mul__

    # ------------------------------------------------------------------
    # String representations
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return self.formula

    def __repr__(self) -> str:
        return f"Composition('{self.formula}')"
