"""
This module provides the FormulaValidator class for checking molecular
formulae against chemical plausibility rules
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .composition import Composition
from .elements import ElementTable, default_table
from .parser import parse_formula
from ..exceptions import ValidationError
from ..utils.filtering import HALOGENS, passes_nitrogen_rule


@dataclass(frozen=True, slots=True)
class PlausibilityRules:
    """
    Heuristics a candidate composition has to satisfy.

    Ratio limits are maximum heteroatom-to-carbon ratios and are only
    applied to compositions that contain carbon.

    Attributes:
        max_oxygen_ratio: O <= ratio * C. Default: 3
        max_nitrogen_ratio: N <= ratio * C. Default: 4
        max_sulfur_ratio: S <= ratio * C. Default: 1
        max_phosphorus_ratio: P <= ratio * C. Default: 2
        max_halogen_ratio: F + Cl + Br + I <= ratio * C. Default: 2
        min_dbe: Minimum double bond equivalents, (2C + 2 + N - H) / 2.
            Default: 0.0
        nitrogen_rule: Require the nominal mass and the nitrogen count to
            have the same parity. Default: True
    """
    max_oxygen_ratio: float = 3
    max_nitrogen_ratio: float = 4
    max_sulfur_ratio: float = 1
    max_phosphorus_ratio: float = 2
    max_halogen_ratio: float = 2
    min_dbe: float = 0.0
    nitrogen_rule: bool = True

    def __post_init__(self):
        for name in (
            'max_oxygen_ratio',
            'max_nitrogen_ratio',
            'max_sulfur_ratio',
            'max_phosphorus_ratio',
            'max_halogen_ratio',
        ):
            if getattr(self, name) < 0:
                raise ValidationError(
                    f"{name} must be non-negative. Given: {getattr(self, name)}"
                )

    @property
    def ratio_limits(self) -> tuple[float, float, float, float, float]:
        """Ratio limits in the order O, N, S, P, halogens"""
        return (
            self.max_oxygen_ratio,
            self.max_nitrogen_ratio,
            self.max_sulfur_ratio,
            self.max_phosphorus_ratio,
            self.max_halogen_ratio,
        )


class FormulaValidator:
    """
    Validates molecular formulae against chemical plausibility rules.

    The rules are the ones FormulaFinder applies during its search, so
    every candidate it returns passes `validate()` with the same rules.

    Example:
        >>> validator = FormulaValidator()
        >>> validator.validate("C6H12O6")
        True
        >>> validator.validate("CH10")   # more H than 2C + 2 + N
        False
    """

    def __init__(
        self,
        rules: PlausibilityRules | None = None,
        table: ElementTable | None = None,
    ):
        self.rules = rules if rules is not None else PlausibilityRules()
        self.table = table if table is not None else default_table()

    def validate(
        self,
        formula: str | Mapping[str, int],
    ) -> bool:
        """
        Check a formula against all rules.

        Args:
            formula: Formula text or a Composition. Isotope keys count
                towards their base element.

        Returns:
            True if every rule passes
        """
        composition = self._as_composition(formula)

        c = composition.element_count('C')
        h = composition.element_count('H')
        n = composition.element_count('N')

        if h > 2 * c + 2 + n:
            return False

        if c > 0 and not self.validate_ratios(composition):
            return False

        if not self.validate_dbe(composition):
            return False

        if self.rules.nitrogen_rule and not passes_nitrogen_rule(
            composition, self.table,
        ):
            return False

        return True

    def validate_ratios(
        self,
        composition: Composition,
    ) -> bool:
        """Heteroatom-to-carbon ratio rules; never called without carbon"""
        c = composition.element_count('C')
        o_max, n_max, s_max, p_max, x_max = self.rules.ratio_limits

        if composition.element_count('O') > o_max * c:
            return False
        if composition.element_count('N') > n_max * c:
            return False
        if composition.element_count('S') > s_max * c:
            return False
        if composition.element_count('P') > p_max * c:
            return False

        halogens = sum(composition.element_count(x) for x in HALOGENS)
        return halogens <= x_max * c

    def validate_dbe(
        self,
        composition: Composition,
    ) -> bool:
        c = composition.element_count('C')
        h = composition.element_count('H')
        n = composition.element_count('N')
        return 2 * c + 2 + n - h >= 2 * self.rules.min_dbe

    def _as_composition(
        self,
        formula: str | Mapping[str, int],
    ) -> Composition:
        if isinstance(formula, Composition):
            return formula
        if isinstance(formula, str):
            return parse_formula(formula, table=self.table)
        return Composition(formula)
