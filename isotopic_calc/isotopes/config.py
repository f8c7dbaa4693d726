"""
Tunable settings for isotopic distribution calculation
"""
from dataclasses import dataclass
from math import log10

from ..exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class ResolutionPolicy:
    """
    Decides how finely peak masses are rounded when merging unresolved
    isotopologues.

    A peak at mass m, measured at resolving power R, is rounded to

        max(floor_digits, round(1 - log10((m / R) / width_constant)))

    decimal places; peaks that round to the same mass are merged. Higher
    masses and lower resolving powers give fewer digits, i.e. coarser
    merging.

    Attributes:
        floor_digits: Minimum number of decimal places ever kept.
            Default: 3
        width_constant: Divisor applied to the peak width m/R.
            Default: 3.0
    """
    floor_digits: int = 3
    width_constant: float = 3.0

    def __post_init__(self):
        if self.floor_digits < 0:
            raise ValidationError(
                f"floor_digits must be non-negative. Given: {self.floor_digits}"
            )
        if self.width_constant <= 0:
            raise ValidationError(
                f"width_constant must be positive. Given: {self.width_constant}"
            )

    def digits(
        self,
        mass: float,
        resolution: float,
    ) -> int:
        """Number of decimal places kept for a peak at `mass`"""
        if mass <= 0:
            return self.floor_digits
        width = mass / resolution
        return max(
            self.floor_digits,
            round(1 - log10(width / self.width_constant)),
        )
