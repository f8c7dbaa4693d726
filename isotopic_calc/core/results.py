"""
This module has the FormulaSearchResults class, which contains
CandidateFormula objects, and provides convenience methods for
filtering and sorting
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, overload

from .finder import CandidateFormula


@dataclass
class FormulaSearchResults:
    """
    Container for formula search results

    This class wraps a list of CandidateFormula objects and provides:
    - Iterator/indexing support for easy access to candidates
    - Post-hoc filtering methods that return new FormulaSearchResults

    Attributes:
        candidates: List of formula candidates, best match first
        query_mz: The m/z that was searched
        query_params: Dictionary of search parameters used

    Example:
        >>> finder: 'FormulaFinder'
        >>> results = finder.find_formula(target_mz=180.063, tolerance_ppm=5.0)
        >>> for candidate in results:  # Iterate
        ...     print(candidate.formula)
        >>> # Post-hoc filter:
        >>> filtered: FormulaSearchResults = results.filter_by_dbe(0, 10)
    """
    candidates: list[CandidateFormula]
    query_mz: float
    query_params: dict = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self):
        return iter(self.candidates)

    @overload
    def __getitem__(self, idx: int) -> CandidateFormula: ...

    @overload
    def __getitem__(self, idx: slice) -> 'FormulaSearchResults': ...

    def __getitem__(
        self,
        idx: int | slice,
    ) -> 'CandidateFormula | FormulaSearchResults':
        if isinstance(idx, slice):
            return FormulaSearchResults(
                candidates=self.candidates[idx],
                query_mz=self.query_mz,
                query_params=self.query_params,
            )
        return self.candidates[idx]

    def __repr__(self) -> str:
        parts = [
            f"query_mz={self.query_mz:.4f}",
            f"n_results={len(self)}",
        ]
        adduct = self.query_params.get('adduct')
        if adduct:
            parts.append(f"adduct={adduct}")
        return f"FormulaSearchResults({', '.join(parts)})"

    @property
    def formulas(self) -> list[str]:
        """Formula strings of all candidates, in order"""
        return [c.formula for c in self.candidates]

    def sort_by_error(
        self,
        reverse: bool = False,
    ) -> 'FormulaSearchResults':
        """
        Sort candidates by absolute ppm error.

        Args:
            reverse: If True, sort in descending order (largest error first)

        Returns:
            New FormulaSearchResults with sorted candidates
        """
        return FormulaSearchResults(
            candidates=sorted(self.candidates, key=lambda c: abs(c.ppm), reverse=reverse),
            query_mz=self.query_mz,
            query_params=self.query_params,
        )

    def filter_by_error(
        self,
        max_ppm: float,
    ) -> 'FormulaSearchResults':
        """
        Filter candidates by maximum absolute ppm error.

        Args:
            max_ppm: Maximum absolute error in ppm

        Returns:
            New FormulaSearchResults with filtered candidates

        Raises:
            ValueError: If max_ppm is negative
        """
        if max_ppm < 0:
            raise ValueError(
                f"max_ppm must be non-negative. Given: {max_ppm}"
            )

        return FormulaSearchResults(
            candidates=[c for c in self.candidates if abs(c.ppm) <= max_ppm],
            query_mz=self.query_mz,
            query_params={
                **self.query_params,
                'max_error_ppm': max_ppm,
            }
        )

    def filter_by_dbe(
        self,
        min_dbe: Optional[float] = None,
        max_dbe: Optional[float] = None,
    ) -> 'FormulaSearchResults':
        """
        Filter candidates by DBE range. Candidates without a DBE value
        (unknown valences) are dropped.

        Args:
            min_dbe: Minimum DBE value (inclusive)
            max_dbe: Maximum DBE value (inclusive)

        Returns:
            New FormulaSearchResults with filtered candidates
        """
        filtered = [
            c for c in self.candidates
            if c.dbe is not None
            and (min_dbe is None or c.dbe >= min_dbe)
            and (max_dbe is None or c.dbe <= max_dbe)
        ]

        return FormulaSearchResults(
            candidates=filtered,
            query_mz=self.query_mz,
            query_params={
                **self.query_params,
                'filter_dbe': (min_dbe, max_dbe),
            }
        )

    def top(
        self,
        n: int = 10,
    ) -> 'FormulaSearchResults':
        """
        Return top N candidates by error.

        Args:
            n: Number of top candidates to return

        Returns:
            New FormulaSearchResults with top N candidates
        """
        return self[:n]
