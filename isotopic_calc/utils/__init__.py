"""
Chemical validation rules and formula helpers
"""

from isotopic_calc.utils.filtering import (
    get_dbe,
    passes_nitrogen_rule,
)
from isotopic_calc.utils.formulae import to_bounds_dict

__all__ = [
    "get_dbe",
    "passes_nitrogen_rule",
    "to_bounds_dict",
]
