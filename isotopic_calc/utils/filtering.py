"""
This module contains functions for checking compositions against
valence-based rules: double bond equivalents and the nitrogen rule
"""
from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from .formulae import split_atom_key

if TYPE_CHECKING:
    from ..core.composition import Composition
    from ..core.elements import ElementTable

BOND_ELECTRONS: dict[str, int] = {
    'H': 1,
    'Li': 1,
    'Na': 1,
    'K': 1,
    'C': 4,
    'N': 3,
    'O': 2,
    'F': 1,
    'Cl': 1,
    'Br': 1,
    'I': 1,
    'S': 2,
    'P': 5,
    'Si': 4,
    'B': 3,
}

HALOGENS: tuple[str, ...] = ('F', 'Cl', 'Br', 'I')


def get_dbe(
    composition: Composition,
) -> Optional[float]:
    """
    Calculate Double Bond Equivalents (rings plus pi bonds) for a
    composition.

    ***NOTE***: This assumes no funny business is going on! i.e.
    no sulfoxides/sulfones, phosphine stuff, radicals, etc.
    This calculation should not be used in those cases.

    Formula:
        DBE = 0.5 × Σ[n_i × (b_i - 2)] + 1

    where n_i is the number of atoms with b_i bonding electrons.
    For C, H, N and O this is (2C + 2 + N - H) / 2.

    See:
    A Novel Formalism To Characterize the Degree of Unsaturation of
    Organic Molecules. Badertscher, M. et al. (2001)
    doi: 10.1021/ci000135o

    Args:
        composition: Composition of the neutral molecule

    Returns:
        DBE value as float, or None if the composition contains an element
        without a known valence
    """
    n_b_sub_2: list[int] = []
    for key, count in composition.items():
        element, _ = split_atom_key(key)
        num_bond_eles = get_bond_electrons(element)

        if not num_bond_eles:
            return None

        n_b_sub_2.append(
            count * (num_bond_eles - 2)
        )

    return (0.5 * sum(n_b_sub_2)) + 1


def get_bond_electrons(
    symbol: str,
) -> Optional[int]:
    return BOND_ELECTRONS.get(symbol, None)


def passes_nitrogen_rule(
    composition: Composition,
    table: ElementTable,
) -> bool:
    """
    Check that the nominal mass of a neutral composition has the same
    parity as its number of nitrogen atoms.

    The nominal mass is the sum of the integer masses of every atom, so
    isotope keys contribute their own mass number.
    """
    nominal = sum(
        count * table.nominal_mass(key) for key, count in composition.items()
    )
    nitrogen = composition.element_count('N')
    return nominal % 2 == nitrogen % 2
