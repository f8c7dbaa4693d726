"""
Isotopic distribution calculation
"""
from .config import ResolutionPolicy
from .distribution import (
    composition_distribution,
    isotopic_distribution,
    isotopic_distribution_protonated,
    monoisotopic_mass,
    monoisotopic_mass_protonated,
)

__all__ = [
    "ResolutionPolicy",
    "composition_distribution",
    "isotopic_distribution",
    "isotopic_distribution_protonated",
    "monoisotopic_mass",
    "monoisotopic_mass_protonated",
]
