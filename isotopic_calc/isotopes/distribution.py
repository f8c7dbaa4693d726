"""
Isotopic distribution calculation.

A distribution is built by convolving the isotope list of every atom of a
composition, one atom at a time, pruning peaks below an abundance cutoff
after every step. The result is merged at the given resolving power,
scaled so that the tallest peak is 1.0, and sorted by mass.

Distributions are returned as (n, 2) arrays: column 0 holds masses and
column 1 relative abundances.

***NOTE: the abundance cutoff applies to the absolute probability of each
intermediate peak, before scaling. Very large molecules can lose their
lightest isotopologue with the default cutoff.***
"""
from __future__ import annotations

import logging
from typing import Mapping

import numpy as np

from .config import ResolutionPolicy
from ..core.adducts import resolve_adduct
from ..core.elements import ELECTRON_KEY, ElementTable, default_table
from ..core.parser import parse_formula
from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

# Convolved masses are rounded to this many decimals so that the same
# isotopologue reached through different orders of addition is one peak
MASS_PRECISION_DECIMALS = 9

_DEFAULT_POLICY = ResolutionPolicy()


def isotopic_distribution(
    formula: str,
    abundance_cutoff: float = 1e-5,
    resolution: float = 10000,
    adduct: str = '',
    *,
    table: ElementTable | None = None,
    policy: ResolutionPolicy | None = None,
) -> np.ndarray:
    """
    Calculate the isotopic distribution of a formula.

    Args:
        formula: Formula text, e.g. "C6H12O6", "(CH3)2CO" or "[13C]CH4"

        abundance_cutoff: Peaks whose abundance falls below this value
            after any convolution step are discarded. Must be in [0, 1].
            Default: 1e-5

        resolution: Resolving power used to merge close peaks. Must be
            positive.
            Default: 10000

        adduct: Adduct notation, e.g. "H+", "Na+", "H-", "+".
            The adduct atoms are added to (or removed from) the formula
            and masses are shifted by the electrons of the net charge.
            Default: "" (neutral molecule)

        table: ElementTable with isotope masses and abundances.
            Default: the molmass-backed default table

        policy: ResolutionPolicy controlling peak merging.
            Default: ResolutionPolicy()

    Returns:
        Array of [mass, relative abundance] pairs sorted by mass, where
        the most abundant peak is 1.0

    Raises:
        ValidationError: If abundance_cutoff or resolution are out of range,
            or if the adduct removes atoms the formula does not have
        FormatError: If the formula or adduct cannot be parsed
        UnknownEntityError: If the formula uses unknown elements/isotopes

    Example:
        >>> dist = isotopic_distribution("C6H12O6", abundance_cutoff=1e-3)
        >>> float(dist[0, 0])
        180.063
    """
    _check_parameters(abundance_cutoff, resolution)

    if table is None:
        table = default_table()

    composition = parse_formula(formula, table=table)
    adduct_spec = resolve_adduct(adduct, table=table)
    composition = (composition + adduct_spec.gains) - adduct_spec.losses

    return composition_distribution(
        composition,
        abundance_cutoff=abundance_cutoff,
        resolution=resolution,
        charge=adduct_spec.charge,
        table=table,
        policy=policy,
    )


def isotopic_distribution_protonated(
    formula: str,
    abundance_cutoff: float = 1e-5,
    resolution: float = 10000,
    *,
    table: ElementTable | None = None,
    policy: ResolutionPolicy | None = None,
) -> np.ndarray:
    """Isotopic distribution of the [M+H]+ ion of `formula`"""
    return isotopic_distribution(
        formula,
        abundance_cutoff=abundance_cutoff,
        resolution=resolution,
        adduct='H+',
        table=table,
        policy=policy,
    )


def monoisotopic_mass(
    formula: str,
    table: ElementTable | None = None,
) -> float:
    """
    Lowest mass of the default distribution of `formula`, rounded at
    the default resolving power
    """
    return float(isotopic_distribution(formula, table=table)[0, 0])


def monoisotopic_mass_protonated(
    formula: str,
    table: ElementTable | None = None,
) -> float:
    """Lowest mass of the [M+H]+ ion of `formula`"""
    return float(isotopic_distribution_protonated(formula, table=table)[0, 0])


def composition_distribution(
    composition: Mapping[str, int],
    abundance_cutoff: float = 1e-5,
    resolution: float = 10000,
    charge: int = 0,
    table: ElementTable | None = None,
    policy: ResolutionPolicy | None = None,
) -> np.ndarray:
    """
    Calculate the isotopic distribution of an already parsed composition.

    Atom keys are processed in sorted order; the pseudo-element "e" is
    skipped. After all atoms are convolved, masses are shifted by
    `-charge * electron_mass`. Masses are not divided by the charge.

    Raises:
        ValidationError: On out-of-range parameters, an empty composition,
            or a cutoff that removes every peak
    """
    _check_parameters(abundance_cutoff, resolution)

    if table is None:
        table = default_table()
    if policy is None:
        policy = _DEFAULT_POLICY

    keys = sorted(k for k, n in composition.items() if n > 0 and k != ELECTRON_KEY)
    if not keys:
        raise ValidationError("Cannot calculate the distribution of an empty composition")

    distribution = np.array([[0.0, 1.0]], dtype=np.float64)
    for key in keys:
        isotopes = np.array(
            [(x.mass, x.abundance) for x in table.isotopes(key)],
            dtype=np.float64,
        )
        for _ in range(composition[key]):
            distribution = convolve(distribution, isotopes, abundance_cutoff)

        if distribution.shape[0] == 0:
            raise ValidationError(
                f"abundance_cutoff={abundance_cutoff} removes every peak"
            )

    distribution[:, 0] -= charge * table.electron_mass

    distribution = group_by_resolution(distribution, resolution, policy)
    distribution = rescale_distribution(distribution)

    logger.debug(
        "Distribution with %d peaks (cutoff=%g, resolution=%g)",
        distribution.shape[0], abundance_cutoff, resolution,
    )
    return distribution


def convolve(
    distribution: np.ndarray,
    isotopes: np.ndarray,
    abundance_cutoff: float,
) -> np.ndarray:
    """
    Add one atom to a distribution.

    Every peak of `distribution` is combined with every isotope: masses
    are summed and abundances multiplied. Abundances of identical masses
    are summed, then peaks below `abundance_cutoff` are dropped.

    Args:
        distribution: Array of [mass, abundance] pairs
        isotopes: Array of [mass, abundance] pairs for one atom
        abundance_cutoff: Minimum abundance kept

    Returns:
        Array of [mass, abundance] pairs sorted by mass
    """
    masses = np.add.outer(distribution[:, 0], isotopes[:, 0]).ravel()
    abundances = np.multiply.outer(distribution[:, 1], isotopes[:, 1]).ravel()

    masses = np.round(masses, MASS_PRECISION_DECIMALS)
    unique_masses, inverse = np.unique(masses, return_inverse=True)
    summed = np.bincount(inverse.ravel(), weights=abundances)

    keep = summed >= abundance_cutoff
    return np.column_stack((unique_masses[keep], summed[keep]))


def group_by_resolution(
    distribution: np.ndarray,
    resolution: float,
    policy: ResolutionPolicy | None = None,
) -> np.ndarray:
    """
    Merge peaks a spectrometer of resolving power `resolution` could not
    tell apart.

    Each mass is rounded to the number of decimals given by `policy`;
    abundances of peaks with the same rounded mass are summed.

    Returns:
        Array of [rounded mass, abundance] pairs sorted by mass
    """
    if policy is None:
        policy = _DEFAULT_POLICY

    merged: dict[float, float] = {}
    for mass, abundance in distribution:
        rounded = round(float(mass), policy.digits(float(mass), resolution))
        merged[rounded] = merged.get(rounded, 0.0) + float(abundance)

    grouped = np.array(sorted(merged.items()), dtype=np.float64)
    return grouped.reshape(-1, 2)


def rescale_distribution(
    distribution: np.ndarray,
) -> np.ndarray:
    """
    Normalizes abundances so that the tallest peak is 1.0
    """
    distribution[:, 1] = distribution[:, 1] / distribution[:, 1].max()
    return distribution


def _check_parameters(
    abundance_cutoff: float,
    resolution: float,
) -> None:
    if not 0.0 <= abundance_cutoff <= 1.0:
        raise ValidationError(
            f"abundance_cutoff must be between 0.0 and 1.0. "
            f"Given: {abundance_cutoff}"
        )
    if resolution <= 0:
        raise ValidationError(
            f"resolution must be positive. Given: {resolution}"
        )
