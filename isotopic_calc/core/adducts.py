"""
Adduct resolution.

Adduct notation strings are turned into an AdductSpec holding the mass
change, the net charge and a display name:

    ""      -> neutral,        0.0,        charge 0
    "+"     -> M,              0.0,        charge +1
    "-2"    -> M,              0.0,        charge -2
    "H+"    -> M+H,            +1 H,       charge +1
    "2H+2"  -> M+2H,           +2 H,       charge +2
    "H-"    -> M-H,            -1 H,       charge -1
    "Na+"   -> M+Na,           +1 Na,      charge +1
    "NH4+"  -> M+NH4,          +1 NH4,     charge +1
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from .composition import Composition
from .elements import ElementTable, default_table
from .parser import parse_formula
from ..exceptions import FormatError

_CHARGE_ONLY = re.compile(r'^([+-])([0-9]*)$')
_ATOMS_AND_CHARGE = re.compile(r'^([0-9]*)([A-Z][A-Za-z0-9]*?)([+-])([0-9]*)$')


@dataclass(frozen=True, slots=True)
class AdductSpec:
    """
    Ionizing modification applied to a neutral molecule.

    Attributes:
        mass_delta: Mass added to (or removed from, if negative) the neutral
            molecule, electrons not included
        charge: Net charge of the resulting ion
        name: Display name, e.g. "M+H", "M-H", "M" for radical ions and ""
            for no adduct
        gains: Atoms added to the molecule
        losses: Atoms removed from the molecule
    """
    mass_delta: float = 0.0
    charge: int = 0
    name: str = ''
    gains: Composition = field(default_factory=Composition)
    losses: Composition = field(default_factory=Composition)

    @property
    def is_neutral(self) -> bool:
        return self.charge == 0 and self.mass_delta == 0.0

    def neutral_mass(
        self,
        mz: float,
        electron_mass: float,
    ) -> float:
        """Mass of the neutral molecule whose ion is observed at `mz`"""
        ion_mass = mz * max(1, abs(self.charge))
        return ion_mass - self.mass_delta + self.charge * electron_mass


NEUTRAL = AdductSpec()


def resolve_adduct(
    text: str,
    table: ElementTable | None = None,
) -> AdductSpec:
    """
    Resolve adduct notation into an AdductSpec.

    Args:
        text: "" for no adduct, a bare charge such as "+" or "-2" for a
            radical ion, or `<atom-count?><atoms><sign><charge-count?>`
            such as "H+", "2H+2", "H-", "Na+", "NH4+". The atom count
            multiplies the mass; the charge count sets the net charge.

        table: ElementTable used for element masses.
            Default: the molmass-backed default table

    Returns:
        AdductSpec

    Raises:
        FormatError: If the text does not follow the grammar above
        UnknownEntityError: If the atoms are not in the table

    Example:
        >>> spec = resolve_adduct("2H+2")
        >>> spec.name, spec.charge
        ('M+2H', 2)
    """
    if table is None:
        table = default_table()

    text = text.strip()
    if not text:
        return NEUTRAL

    match = _CHARGE_ONLY.match(text)
    if match is not None:
        sign, magnitude = match.groups()
        charge = _magnitude(magnitude, text)
        return AdductSpec(
            mass_delta=0.0,
            charge=charge if sign == '+' else -charge,
            name='M',
        )

    match = _ATOMS_AND_CHARGE.match(text)
    if match is None:
        raise FormatError(f"Unrecognized adduct notation: '{text}'")

    atom_count, atoms, sign, magnitude = match.groups()
    multiplier = _magnitude(atom_count, text)
    charge = _magnitude(magnitude, text)

    composition = parse_formula(atoms, table=table) * multiplier
    mass = table.mass_of(composition)
    name = f"M{sign}{atom_count}{atoms}"

    if sign == '+':
        return AdductSpec(
            mass_delta=mass,
            charge=charge,
            name=name,
            gains=composition,
        )

    return AdductSpec(
        mass_delta=-mass,
        charge=-charge,
        name=name,
        losses=composition,
    )


def _magnitude(
    digits: str,
    text: str,
) -> int:
    if not digits:
        return 1
    value = int(digits)
    if value == 0:
        raise FormatError(f"Counts in adduct '{text}' must be positive")
    return value
