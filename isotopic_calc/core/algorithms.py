"""
Compiled kernels for the formula search.

Candidate compositions are enumerated depth-first with an odometer over an
explicit counts array: the last element changes fastest, and once a prefix
is too heavy the whole subtree below it is skipped.
"""
import numpy as np
from numba import njit

# Positions of C, H, N, O, S and P in the `rule_indices` array
C_IDX, H_IDX, N_IDX, O_IDX, S_IDX, P_IDX = 0, 1, 2, 3, 4, 5

_INITIAL_CAPACITY = 1024


@njit(cache=True, inline='always')
def _count_at(
        counts: np.ndarray,
        index: int,
) -> int:
    """
    Count of the element at `index`, or 0 if the element is not searched
    (index < 0)
    """
    if index < 0:
        return 0
    return counts[index]


@njit(cache=True, inline='always')
def _has_required(
        counts: np.ndarray,
        min_counts: np.ndarray,
) -> bool:
    """True if every count is at least its minimum"""
    for j in range(len(counts)):
        if counts[j] < min_counts[j]:
            return False
    return True


@njit(cache=True)
def _is_plausible(
        counts: np.ndarray,
        rule_indices: np.ndarray,
        halogen_indices: np.ndarray,
        ratio_limits: np.ndarray,
        min_dbe: float,
        nominal_masses: np.ndarray,
        check_nitrogen_rule: bool,
) -> bool:
    """
    Apply the plausibility rules to one composition, cheapest first.

    `ratio_limits` holds the maximum O/C, N/C, S/C, P/C and halogen/C
    ratios; they are skipped for compositions without carbon.
    """
    c = _count_at(counts, rule_indices[C_IDX])
    h = _count_at(counts, rule_indices[H_IDX])
    n = _count_at(counts, rule_indices[N_IDX])

    if h > 2 * c + 2 + n:
        return False

    if c > 0:
        if _count_at(counts, rule_indices[O_IDX]) > ratio_limits[0] * c:
            return False
        if n > ratio_limits[1] * c:
            return False
        if _count_at(counts, rule_indices[S_IDX]) > ratio_limits[2] * c:
            return False
        if _count_at(counts, rule_indices[P_IDX]) > ratio_limits[3] * c:
            return False

        halogens = 0
        for j in range(len(halogen_indices)):
            halogens += counts[halogen_indices[j]]
        if halogens > ratio_limits[4] * c:
            return False

    if 2 * c + 2 + n - h < 2.0 * min_dbe:
        return False

    if check_nitrogen_rule:
        nominal = 0
        for j in range(len(counts)):
            nominal += counts[j] * nominal_masses[j]
        if nominal % 2 != n % 2:
            return False

    return True


@njit(cache=True)
def _enumerate_candidates(
        masses: np.ndarray,
        bounds: np.ndarray,
        min_counts: np.ndarray,
        target_mz: float,
        tolerance_ppm: float,
        adduct_mass: float,
        charge: int,
        electron_mass: float,
        max_core_mass: float,
        rule_indices: np.ndarray,
        halogen_indices: np.ndarray,
        ratio_limits: np.ndarray,
        min_dbe: float,
        nominal_masses: np.ndarray,
        check_nitrogen_rule: bool,
):
    """
    Enumerate every composition within `bounds` whose ion m/z lies within
    `tolerance_ppm` of `target_mz`.

    The ion mass of a core composition is
        sum(counts * masses) + adduct_mass - charge * electron_mass
    and its m/z is that mass divided by |charge| (or the mass itself for
    neutral searches).

    Compositions with fewer atoms than `min_counts` are skipped; these
    are the atoms a loss adduct such as "H-" removes.

    Output buffers start small and double whenever they fill up.

    Returns:
        Tuple of (counts, mz, ppm) arrays, one row per candidate, in
        enumeration order
    """
    num_elements = len(masses)
    last = num_elements - 1
    abs_charge = abs(charge)

    capacity = _INITIAL_CAPACITY
    out_counts = np.empty((capacity, num_elements), dtype=np.int64)
    out_mz = np.empty(capacity, dtype=np.float64)
    out_ppm = np.empty(capacity, dtype=np.float64)
    n_found = 0

    counts = np.zeros(num_elements, dtype=np.int64)

    while True:
        core_mass = 0.0
        total = 0
        for j in range(num_elements):
            core_mass += counts[j] * masses[j]
            total += counts[j]

        if core_mass > max_core_mass:
            # Every later state sharing this prefix is heavier: skip it
            k = last
            while k > 0 and counts[k] == 0:
                k -= 1
            for j in range(k, num_elements):
                counts[j] = bounds[j]

        elif total > 0 and _has_required(counts, min_counts) and _is_plausible(
                counts,
                rule_indices,
                halogen_indices,
                ratio_limits,
                min_dbe,
                nominal_masses,
                check_nitrogen_rule,
        ):
            ion_mass = core_mass + adduct_mass - charge * electron_mass
            if ion_mass > 0.0:
                if charge == 0:
                    mz = ion_mass
                else:
                    mz = ion_mass / abs_charge
                ppm = (target_mz - mz) / mz * 1e6

                if abs(ppm) <= tolerance_ppm:
                    if n_found == capacity:
                        capacity *= 2
                        grown_counts = np.empty((capacity, num_elements), dtype=np.int64)
                        grown_counts[:n_found] = out_counts
                        out_counts = grown_counts
                        grown_mz = np.empty(capacity, dtype=np.float64)
                        grown_mz[:n_found] = out_mz
                        out_mz = grown_mz
                        grown_ppm = np.empty(capacity, dtype=np.float64)
                        grown_ppm[:n_found] = out_ppm
                        out_ppm = grown_ppm

                    for j in range(num_elements):
                        out_counts[n_found, j] = counts[j]
                    out_mz[n_found] = mz
                    out_ppm[n_found] = ppm
                    n_found += 1

        # Advance the odometer
        j = last
        while j >= 0 and counts[j] >= bounds[j]:
            counts[j] = 0
            j -= 1
        if j < 0:
            break
        counts[j] += 1

    return out_counts[:n_found], out_mz[:n_found], out_ppm[:n_found]
