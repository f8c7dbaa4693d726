"""
isotopic_calc: isotopic distributions and molecular formula search for
mass spectrometry data.

This package computes the isotopologue masses and relative abundances of a
formula (with optional adducts and specific isotope labels), and performs
the inverse search: enumerating chemically plausible formulae whose m/z
matches an observed value.
"""
import logging

__version__ = "0.1.0"

# Main API
from .core.finder import FormulaFinder, CandidateFormula
from .core.results import FormulaSearchResults

# Data model
from .core.adducts import AdductSpec, resolve_adduct
from .core.composition import Composition
from .core.elements import ElementTable, Isotope, default_table
from .core.parser import parse_formula
from .core.validator import FormulaValidator, PlausibilityRules

# Isotopic distributions
from .isotopes.config import ResolutionPolicy
from .isotopes.distribution import (
    composition_distribution,
    isotopic_distribution,
    isotopic_distribution_protonated,
    monoisotopic_mass,
    monoisotopic_mass_protonated,
)

from .exceptions import (
    IsotopicCalcError,
    FormatError,
    UnknownEntityError,
    ValidationError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Module-level singletons for the convenience functions
_default_finder = None
_default_validator = None


def find_formula(
    target_mz: float,
    tolerance_ppm: float = 100,
    atom_pool: dict[str, int] | str | None = None,
    adduct: str = '',
) -> FormulaSearchResults:
    """
    Convenience function for finding formulae right away.

    Calling this function is equivalent to creating a FormulaFinder object
    then calling the FormulaFinder.find_formula() method, with the default
    element table and plausibility rules.

    For finer control (i.e. custom rules or element tables) consider
    instantiating FormulaFinder directly.

    Args:
        target_mz: Observed m/z

        tolerance_ppm: Maximum absolute ppm error
            Default: 100

        atom_pool: Maximum count per element, as a dict or a string such
            as "C20H100O10N10"
            Default: {"C": 20, "H": 100, "O": 10, "N": 10}

        adduct: Adduct notation, e.g. "H+", "Na+", "H-"
            Default: "" (neutral)

    Returns:
        FormulaSearchResults object containing candidates

    Example:
        >>> from isotopic_calc import find_formula
        >>>
        >>> # Methanol, protonated
        >>> results = find_formula(
        >>>     33.034,
        >>>     tolerance_ppm=20,
        >>>     atom_pool={"C": 5, "H": 10, "N": 2, "O": 3},
        >>>     adduct="H+",
        >>> )
        >>> results[0].formula
        'CH4O'
    """
    global _default_finder
    if _default_finder is None:
        _default_finder = FormulaFinder()

    return _default_finder.find_formula(
        target_mz=target_mz,
        tolerance_ppm=tolerance_ppm,
        atom_pool=atom_pool,
        adduct=adduct,
    )


def validate_formula(
    formula: str,
) -> bool:
    """
    Check a formula against the default plausibility rules.

    Example:
        >>> validate_formula("C6H12O6")
        True
    """
    global _default_validator
    if _default_validator is None:
        _default_validator = FormulaValidator()

    return _default_validator.validate(formula)


__all__ = [
    # Primary API
    "parse_formula",
    "resolve_adduct",
    "isotopic_distribution",
    "isotopic_distribution_protonated",
    "monoisotopic_mass",
    "monoisotopic_mass_protonated",
    "composition_distribution",
    "find_formula",
    "validate_formula",

    # Core components
    "FormulaFinder",
    "CandidateFormula",
    "FormulaSearchResults",
    "FormulaValidator",
    "PlausibilityRules",
    "ResolutionPolicy",

    # Data model
    "AdductSpec",
    "Composition",
    "ElementTable",
    "Isotope",
    "default_table",

    # Errors
    "IsotopicCalcError",
    "FormatError",
    "UnknownEntityError",
    "ValidationError",
]
