"""
Composition data model, parsing, adducts and the formula search
"""
from .adducts import AdductSpec, NEUTRAL, resolve_adduct
from .composition import Composition
from .elements import ElementTable, Isotope, default_table
from .finder import CandidateFormula, FormulaFinder
from .parser import parse_formula
from .results import FormulaSearchResults
from .validator import FormulaValidator, PlausibilityRules

__all__ = [
    "AdductSpec",
    "NEUTRAL",
    "resolve_adduct",
    "Composition",
    "ElementTable",
    "Isotope",
    "default_table",
    "CandidateFormula",
    "FormulaFinder",
    "parse_formula",
    "FormulaSearchResults",
    "FormulaValidator",
    "PlausibilityRules",
]
