"""
Timing script for the formula search and isotopic distributions.

Measures median timing for representative queries at different mass ranges.
Run with: python benchmarks/bench_find_formula.py
"""
import time
import statistics

from isotopic_calc import FormulaFinder, isotopic_distribution


def bench_find_formula(
    finder: FormulaFinder,
    target_mz: float,
    tolerance_ppm: float = 5.0,
    atom_pool: dict[str, int] | None = None,
    adduct: str = '',
    label: str = "",
    n_runs: int = 10,
    warmup: int = 2,
):
    """Run a single search configuration and report median timing."""
    times = []
    result_count = 0

    for i in range(warmup + n_runs):
        t0 = time.perf_counter()
        results = finder.find_formula(
            target_mz=target_mz,
            tolerance_ppm=tolerance_ppm,
            atom_pool=atom_pool,
            adduct=adduct,
        )
        t1 = time.perf_counter()

        if i >= warmup:
            times.append(t1 - t0)
            result_count = len(results)

    report(label, times, f"candidates: {result_count}")


def bench_distribution(
    formula: str,
    abundance_cutoff: float = 1e-5,
    label: str = "",
    n_runs: int = 10,
):
    """Time isotopic_distribution() for one formula."""
    times = []
    n_peaks = 0

    for _ in range(n_runs):
        t0 = time.perf_counter()
        distribution = isotopic_distribution(formula, abundance_cutoff=abundance_cutoff)
        times.append(time.perf_counter() - t0)
        n_peaks = distribution.shape[0]

    report(label, times, f"peaks: {n_peaks}")


def report(label: str, times: list[float], detail: str):
    median_ms = statistics.median(times) * 1000
    min_ms = min(times) * 1000
    max_ms = max(times) * 1000

    print(f"  {label}")
    print(f"    {detail}")
    print(f"    median: {median_ms:.2f} ms  (min: {min_ms:.2f}, max: {max_ms:.2f})")
    print()


def main():
    finder = FormulaFinder()

    # Warm up Numba JIT
    print("Warming up Numba JIT...")
    finder.find_formula(100.0, tolerance_ppm=5.0)
    print()

    chnops = {"C": 40, "H": 80, "N": 10, "O": 15, "S": 3, "P": 2}
    configs = [
        {
            "target_mz": 180.063,
            "label": "180 Da / 5 ppm, default pool",
        },
        {
            "target_mz": 203.0526,
            "adduct": "Na+",
            "label": "203 Da / 5 ppm, default pool, [M+Na]+",
        },
        {
            "target_mz": 500.0,
            "atom_pool": chnops,
            "label": "500 Da / 5 ppm, CHNOPS",
        },
        {
            "target_mz": 500.0,
            "atom_pool": chnops,
            "adduct": "2H+2",
            "label": "500 m/z / 5 ppm, CHNOPS, [M+2H]2+",
        },
    ]

    print("=" * 60)
    print("Formula search (median of 10 runs, 2 warmup)")
    print("=" * 60)

    for cfg in configs:
        bench_find_formula(finder, **cfg)

    print("=" * 60)
    print("Isotopic distributions (median of 10 runs)")
    print("=" * 60)

    bench_distribution("C6H12O6", label="Glucose")
    bench_distribution("C100H150N30O30S2", abundance_cutoff=1e-3, label="Peptide, cutoff 1e-3")
    bench_distribution("C254H377N65O75S6", abundance_cutoff=1e-4, label="Insulin, cutoff 1e-4")


if __name__ == "__main__":
    main()
