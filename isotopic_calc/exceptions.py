"""
Exceptions raised by isotopic_calc.

All of them derive from ValueError, so callers that only care about
"bad input" can keep catching ValueError.
"""


class IsotopicCalcError(ValueError):
    """Base class for all isotopic_calc errors"""


class FormatError(IsotopicCalcError):
    """Malformed formula or adduct text, or malformed reference records"""


class UnknownEntityError(FormatError):
    """Element or isotope symbol not present in the reference table"""


class ValidationError(IsotopicCalcError):
    """Numeric parameter out of range, or an impossible composition"""
