"""
Main API entry point for the formula search

This module contains FormulaFinder, which orchestrates
- adduct and atom pool resolution
- bounded enumeration of candidate compositions
- plausibility filtering and ppm scoring
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Mapping, Optional, TYPE_CHECKING

import numpy as np

from .adducts import AdductSpec, resolve_adduct
from .algorithms import _enumerate_candidates
from .composition import Composition
from .elements import ElementTable, default_table
from .validator import PlausibilityRules
from ..exceptions import UnknownEntityError, ValidationError
from ..utils.filtering import HALOGENS, get_dbe
from ..utils.formulae import to_bounds_dict

if TYPE_CHECKING:
    from .results import FormulaSearchResults

logger = logging.getLogger(__name__)

DEFAULT_ATOM_POOL: dict[str, int] = {'C': 20, 'H': 100, 'O': 10, 'N': 10}

# Elements the plausibility rules look at, in kernel order
RULE_ELEMENTS: tuple[str, ...] = ('C', 'H', 'N', 'O', 'S', 'P')


@dataclass(frozen=True, slots=True)
class CandidateFormula:
    """
    A composition matching the searched m/z.

    Comparisons with other CandidateFormulas use the absolute ppm error
    (i.e. for expressions such as `cand_a < cand_b`)

    Attributes:
        formula: Hill-notation formula of the neutral core molecule
        adduct: Adduct display name, e.g. "M+H", or "" for none
        charge: Charge of the ion
        mz: Calculated m/z of the ion
        ppm: (target_mz - mz) / mz * 1e6
        dbe: Double Bond Equivalents of the core molecule
            (None if it contains an element without a known valence)
        composition: Composition of the core molecule
    """
    formula: str
    adduct: str
    charge: int
    mz: float
    ppm: float
    dbe: Optional[float] = None
    composition: Composition = field(
        default_factory=Composition, compare=False, repr=False,
    )

    def __lt__(self, other: 'CandidateFormula'):
        return abs(self.ppm) < abs(other.ppm)

    def __le__(self, other: 'CandidateFormula'):
        return abs(self.ppm) <= abs(other.ppm)

    def __gt__(self, other: 'CandidateFormula'):
        return abs(self.ppm) > abs(other.ppm)

    def __ge__(self, other: 'CandidateFormula'):
        return abs(self.ppm) >= abs(other.ppm)


class FormulaFinder:
    """
    API for finding molecular formulae from an observed m/z

    A finder holds the reference table and plausibility rules, and can be
    used for any number of queries.

    Example:
        >>> finder = FormulaFinder()
        >>>
        >>> # Acetone, protonated
        >>> results = finder.find_formula(
        >>>     target_mz=59.0491,
        >>>     tolerance_ppm=5,
        >>>     atom_pool={"C": 5, "H": 12, "O": 3},
        >>>     adduct="H+",
        >>> )
        >>> results[0].formula
        'C3H6O'
    """

    def __init__(
        self,
        table: ElementTable | None = None,
        rules: PlausibilityRules | None = None,
    ):
        """
        Args:
            table: ElementTable providing element masses.
                Default: the molmass-backed default table

            rules: Plausibility rules applied to every candidate.
                Default: PlausibilityRules()
        """
        self.table = table if table is not None else default_table()
        self.rules = rules if rules is not None else PlausibilityRules()

    def find_formula(
        self,
        target_mz: float,
        tolerance_ppm: float = 100,
        atom_pool: Mapping[str, int] | str | None = None,
        adduct: str = '',
    ) -> 'FormulaSearchResults':
        """
        Find molecular formula candidates for an observed m/z.

        Every composition within the atom pool is enumerated (pruned by
        mass), filtered by the plausibility rules and kept if its ion m/z
        is within `tolerance_ppm` of `target_mz`.

        Args:
            target_mz: Observed m/z. Must be positive.

            tolerance_ppm: Maximum absolute ppm error. Must be non-negative.
                Default: 100

            atom_pool: Maximum count per element, as a dict like
                {"C": 20, "H": 40} or a string like "C20H40". Elements are
                searched in the given order.
                Default: {"C": 20, "H": 100, "O": 10, "N": 10}

            adduct: Adduct notation, e.g. "H+", "Na+", "H-", "2H+2" or "+".
                Default: "" (neutral molecule)

        Returns:
            FormulaSearchResults sorted by absolute ppm error (smallest
            first). May be empty. With a loss adduct such as "H-", only
            cores containing the removed atoms are reported.

        Raises:
            ValidationError: If target_mz, tolerance_ppm or a pool count is
                out of range, or the adduct removes atoms the pool cannot
                provide
            FormatError: If the adduct or pool string cannot be parsed
            UnknownEntityError: If the adduct or pool names unknown elements

        Example:
            >>> finder = FormulaFinder()
            >>> # Hydrogen-free ions are found too
            >>> finder.find_formula(45.0, tolerance_ppm=15000, adduct="H+")
        """
        if not target_mz > 0:
            raise ValidationError(
                f"target_mz must be positive. Given: {target_mz}"
            )
        if tolerance_ppm < 0:
            raise ValidationError(
                f"tolerance_ppm must be non-negative. Given: {tolerance_ppm}"
            )

        # Inputs are fully resolved before any enumeration work
        adduct_spec = resolve_adduct(adduct, table=self.table)
        pool = self._resolve_pool(atom_pool)
        required = self._required_counts(adduct_spec, pool)

        query_params = {
            'target_mz': target_mz,
            'tolerance_ppm': tolerance_ppm,
            'atom_pool': dict(pool),
            'adduct': adduct_spec.name,
            'charge': adduct_spec.charge,
        }

        from .results import FormulaSearchResults

        symbols = [s for s, n in pool.items() if n > 0]
        if not symbols:
            return FormulaSearchResults(
                candidates=[], query_mz=target_mz, query_params=query_params,
            )

        masses = np.array(
            [self.table.monoisotopic_mass(s) for s in symbols],
            dtype=np.float64,
        )
        max_core_mass = self._max_core_mass(target_mz, tolerance_ppm, adduct_spec)
        bounds = self._bounds(symbols, masses, pool, max_core_mass)
        min_counts = np.array(
            [required.get(s, 0) for s in symbols],
            dtype=np.int64,
        )

        logger.debug(
            "Searching m/z %.6f (%s, %g ppm) over %s with bounds %s",
            target_mz,
            'neutral' if adduct_spec.is_neutral else adduct_spec.name,
            tolerance_ppm, symbols, bounds.tolist(),
        )

        counts, mz, ppm = _enumerate_candidates(
            masses,
            bounds,
            min_counts,
            float(target_mz),
            float(tolerance_ppm),
            float(adduct_spec.mass_delta),
            int(adduct_spec.charge),
            float(self.table.electron_mass),
            float(max_core_mass),
            np.array(
                [symbols.index(s) if s in symbols else -1 for s in RULE_ELEMENTS],
                dtype=np.int64,
            ),
            np.array(
                [i for i, s in enumerate(symbols) if s in HALOGENS],
                dtype=np.int64,
            ),
            np.array(self.rules.ratio_limits, dtype=np.float64),
            float(self.rules.min_dbe),
            np.array(
                [self.table.nominal_mass(s) for s in symbols],
                dtype=np.int64,
            ),
            bool(self.rules.nitrogen_rule),
        )

        order = np.argsort(np.abs(ppm), kind='stable')
        candidates = []
        for idx in order:
            composition = Composition.from_counts(symbols, counts[idx].tolist())
            candidates.append(
                CandidateFormula(
                    formula=composition.formula,
                    adduct=adduct_spec.name,
                    charge=adduct_spec.charge,
                    mz=float(mz[idx]),
                    ppm=float(ppm[idx]),
                    dbe=get_dbe(composition),
                    composition=composition,
                )
            )

        logger.debug("Found %d candidates for m/z %.6f", len(candidates), target_mz)

        return FormulaSearchResults(
            candidates=candidates,
            query_mz=target_mz,
            query_params=query_params,
        )

    def _resolve_pool(
        self,
        atom_pool: Mapping[str, int] | str | None,
    ) -> dict[str, int]:
        """
        Convert the user's atom pool into {element: max count}
        """
        if atom_pool is None:
            atom_pool = DEFAULT_ATOM_POOL
        elif isinstance(atom_pool, str):
            atom_pool = to_bounds_dict(atom_pool)

        known = set(self.table.symbols)
        pool: dict[str, int] = {}
        for symbol, max_count in atom_pool.items():
            if symbol not in known:
                raise UnknownEntityError(
                    f"Unknown element in atom pool: '{symbol}'"
                )
            if max_count < 0:
                raise ValidationError(
                    f"Atom pool counts must be non-negative; "
                    f"got {symbol}: {max_count}"
                )
            # Fails early for elements without natural isotopes
            self.table.monoisotopic_mass(symbol)
            pool[symbol] = int(max_count)

        return pool

    def _required_counts(
        self,
        adduct: AdductSpec,
        pool: dict[str, int],
    ) -> dict[str, int]:
        """
        Minimum count per element a core needs so the adduct can remove
        its atoms (e.g. one H for "H-")
        """
        required: dict[str, int] = {}
        for key, count in adduct.losses.items():
            if key not in pool:
                raise ValidationError(
                    f"Adduct '{adduct.name}' removes {key}, which is not "
                    f"in the atom pool"
                )
            if pool[key] < count:
                raise ValidationError(
                    f"Adduct '{adduct.name}' removes {count} {key}, but the "
                    f"atom pool allows at most {pool[key]}"
                )
            required[key] = count
        return required

    def _max_core_mass(
        self,
        target_mz: float,
        tolerance_ppm: float,
        adduct: AdductSpec,
    ) -> float:
        """
        Heaviest neutral core whose ion can still be within tolerance
        """
        if tolerance_ppm >= 1e6:
            return math.inf

        max_mz = target_mz / (1 - tolerance_ppm * 1e-6)
        return adduct.neutral_mass(max_mz, self.table.electron_mass)

    @staticmethod
    def _bounds(
        symbols: list[str],
        masses: np.ndarray,
        pool: dict[str, int],
        max_core_mass: float,
    ) -> np.ndarray:
        """
        Per-element maximum count: the pool limit, or how many atoms of
        the element alone fit into `max_core_mass`, whichever is smaller
        """
        bounds = np.empty(len(symbols), dtype=np.int64)
        for i, symbol in enumerate(symbols):
            if math.isinf(max_core_mass):
                bounds[i] = pool[symbol]
            else:
                fit = max(0, math.floor(max_core_mass / masses[i]))
                bounds[i] = min(pool[symbol], fit)
        return bounds
