"""
Tests for the formula search
"""
import itertools

import pytest
from molmass import Formula

import isotopic_calc
from isotopic_calc import (
    CandidateFormula,
    Composition,
    FormatError,
    FormulaFinder,
    FormulaSearchResults,
    FormulaValidator,
    PlausibilityRules,
    UnknownEntityError,
    ValidationError,
    default_table,
    find_formula,
    monoisotopic_mass,
    parse_formula,
    resolve_adduct,
)

ACETONE_POOL = {"C": 5, "H": 10, "O": 3}


@pytest.fixture(autouse=True)
def reset_default_finder():
    """Reset the module-level singleton before each test."""
    isotopic_calc._default_finder = None
    yield
    isotopic_calc._default_finder = None


@pytest.fixture(scope="module")
def finder():
    """Shared FormulaFinder instance for the module."""
    return FormulaFinder()


class TestFindFormula:

    def test_acetone(self, finder):
        target = monoisotopic_mass("C3H6O")
        results = finder.find_formula(target, tolerance_ppm=10, atom_pool=ACETONE_POOL)

        assert isinstance(results, FormulaSearchResults)
        matches = [c for c in results if c.formula == "C3H6O"]
        assert len(matches) == 1
        assert abs(matches[0].ppm) <= 10
        assert matches[0].adduct == ""
        assert matches[0].charge == 0

    def test_methanol_protonated(self):
        results = find_formula(
            33.034,
            tolerance_ppm=20,
            atom_pool={"C": 5, "H": 10, "N": 2, "O": 3},
            adduct="H+",
        )
        assert results[0].formula == "CH4O"
        assert results[0].adduct == "M+H"
        assert results[0].charge == 1
        assert results[0].mz == pytest.approx(33.033491, abs=1e-5)

    def test_glucose_sodiated(self, finder):
        target = Formula("C6H12O6").monoisotopic_mass + Formula("Na").monoisotopic_mass - 0.00054858
        results = finder.find_formula(
            target,
            tolerance_ppm=5,
            atom_pool={"C": 10, "H": 20, "O": 10},
            adduct="Na+",
        )
        assert "C6H12O6" in results.formulas
        assert results[0].adduct == "M+Na"

    def test_deprotonated(self, finder):
        target = Formula("C6H12O6").monoisotopic_mass - Formula("H").monoisotopic_mass + 0.00054858
        results = finder.find_formula(
            target,
            tolerance_ppm=5,
            atom_pool={"C": 10, "H": 20, "O": 10},
            adduct="H-",
        )
        assert "C6H12O6" in results.formulas
        assert all(c.charge == -1 for c in results)

    def test_deprotonated_cores_contain_hydrogen(self, finder):
        """
        [M-H]- needs a hydrogen to remove: CO2 and N2O are close in mass
        but cannot lose one
        """
        results = finder.find_formula(
            42.99,
            tolerance_ppm=5000,
            atom_pool={"C": 3, "H": 6, "N": 3, "O": 3},
            adduct="H-",
        )
        assert len(results) > 0
        assert all(c.composition["H"] >= 1 for c in results)
        assert "CO2" not in results.formulas
        assert "N2O" not in results.formulas

    def test_doubly_deprotonated_cores_contain_two_hydrogens(self, finder):
        results = finder.find_formula(
            50.0,
            tolerance_ppm=20000,
            atom_pool={"C": 6, "H": 12, "O": 6},
            adduct="2H-2",
        )
        assert len(results) > 0
        assert all(c.composition["H"] >= 2 for c in results)

    def test_doubly_protonated(self, finder):
        neutral = Formula("C6H12O6").monoisotopic_mass
        target = (neutral + 2 * Formula("H").monoisotopic_mass - 2 * 0.00054858) / 2
        results = finder.find_formula(
            target,
            tolerance_ppm=5,
            atom_pool={"C": 10, "H": 20, "O": 10},
            adduct="2H+2",
        )
        assert "C6H12O6" in results.formulas
        match = results[results.formulas.index("C6H12O6")]
        assert match.charge == 2
        assert match.mz == pytest.approx(target, abs=1e-5)

    def test_hydrogen_free_formula(self):
        """
        CO2 carries no hydrogen and must still be reported
        """
        results = find_formula(45.0, tolerance_ppm=15000, adduct="H+")
        assert "CO2" in results.formulas

    def test_hill_notation(self, finder):
        results = finder.find_formula(
            Formula("CH5N").monoisotopic_mass,
            tolerance_ppm=5,
            atom_pool={"N": 2, "H": 10, "C": 3},
        )
        assert "CH5N" in results.formulas

    def test_without_carbon_alphabetical(self, finder):
        results = finder.find_formula(
            Formula("NH3").monoisotopic_mass,
            tolerance_ppm=5,
            atom_pool={"N": 2, "H": 10},
        )
        assert results.formulas == ["H3N"]

    def test_pool_string(self, finder):
        target = monoisotopic_mass("C3H6O")
        from_dict = finder.find_formula(target, tolerance_ppm=10, atom_pool=ACETONE_POOL)
        from_string = finder.find_formula(target, tolerance_ppm=10, atom_pool="C5H10O3")
        assert from_dict.formulas == from_string.formulas

    def test_default_pool(self):
        results = find_formula(monoisotopic_mass("C3H6O"), tolerance_ppm=10)
        assert "C3H6O" in results.formulas
        assert results.query_params["atom_pool"] == {"C": 20, "H": 100, "O": 10, "N": 10}

    def test_empty_result(self, finder):
        results = finder.find_formula(0.5, tolerance_ppm=1, atom_pool=ACETONE_POOL)
        assert len(results) == 0

    def test_zero_pool(self, finder):
        results = finder.find_formula(58.0, atom_pool={"C": 0, "H": 0})
        assert len(results) == 0


class TestResultInvariants:

    @pytest.fixture(scope="class")
    def results(self):
        return FormulaFinder().find_formula(
            180.063,
            tolerance_ppm=50,
            atom_pool={"C": 15, "H": 30, "N": 5, "O": 10},
        )

    def test_within_tolerance(self, results):
        assert len(results) > 0
        assert all(abs(c.ppm) <= 50 for c in results)

    def test_sorted_by_absolute_ppm(self, results):
        errors = [abs(c.ppm) for c in results]
        assert errors == sorted(errors)

    def test_ppm_definition(self, results):
        for c in results:
            assert c.ppm == pytest.approx((180.063 - c.mz) / c.mz * 1e6)

    def test_mz_matches_composition(self, results):
        for c in results:
            assert c.mz == pytest.approx(Formula(c.formula).monoisotopic_mass, abs=1e-6)

    def test_formula_parses_back(self, results):
        for c in results:
            assert parse_formula(c.formula) == c.composition

    def test_candidates_pass_validator(self, results):
        validator = FormulaValidator()
        assert all(validator.validate(c.composition) for c in results)

    def test_glucose_found(self, results):
        assert "C6H12O6" in results.formulas

    def test_dbe(self, results):
        glucose = results[results.formulas.index("C6H12O6")]
        assert glucose.dbe == 1.0

    def test_candidate_ordering(self, results):
        if len(results) > 1:
            assert results[0] <= results[1]
            assert not results[1] < results[0]


def enumerate_formulas(target_mz, tolerance_ppm, atom_pool, adduct, rules=None):
    """
    Every formula within `atom_pool` matching `target_mz`, found by trying
    all count combinations and checking each with FormulaValidator
    """
    table = default_table()
    spec = resolve_adduct(adduct)
    validator = FormulaValidator(rules=rules)
    symbols = list(atom_pool)

    found = set()
    for counts in itertools.product(*(range(atom_pool[s] + 1) for s in symbols)):
        composition = Composition.from_counts(symbols, counts)
        if composition.atoms == 0 or not validator.validate(composition):
            continue
        if any(composition[k] < n for k, n in spec.losses.items()):
            continue

        ion_mass = (
            table.mass_of(composition)
            + spec.mass_delta
            - spec.charge * table.electron_mass
        )
        mz = ion_mass / max(1, abs(spec.charge))
        if abs((target_mz - mz) / mz * 1e6) <= tolerance_ppm:
            found.add(composition.formula)
    return found


class TestExhaustiveSearch:
    """
    The pruned search must report exactly the formulas a full enumeration
    of the atom pool finds
    """
    POOL = {"C": 4, "H": 10, "N": 2, "O": 3}

    @pytest.mark.parametrize("target_mz,adduct", [
        (58.0419, ""),
        (44.0262, ""),
        (59.0491, "H+"),
        (74.0600, "H+"),
        (30.0282, "2H+2"),
        (57.0346, "H-"),
        (81.0335, "Na+"),
    ])
    def test_matches_full_enumeration(self, finder, target_mz, adduct):
        results = finder.find_formula(
            target_mz, tolerance_ppm=3000, atom_pool=self.POOL, adduct=adduct,
        )
        expected = enumerate_formulas(target_mz, 3000, self.POOL, adduct)

        assert len(expected) > 0
        assert sorted(results.formulas) == sorted(expected)

    def test_matches_full_enumeration_with_custom_rules(self):
        rules = PlausibilityRules(nitrogen_rule=False, min_dbe=1, max_oxygen_ratio=1)
        finder = FormulaFinder(rules=rules)
        results = finder.find_formula(
            70.04, tolerance_ppm=5000, atom_pool=self.POOL, adduct="H+",
        )
        expected = enumerate_formulas(70.04, 5000, self.POOL, "H+", rules=rules)

        assert len(expected) > 0
        assert sorted(results.formulas) == sorted(expected)


class TestTolerance:

    @pytest.mark.parametrize("strict,loose", [(1, 10), (10, 100), (100, 1000)])
    def test_monotonic_filtering(self, finder, strict, loose):
        pool = {"C": 10, "H": 20, "N": 3, "O": 5}
        strict_results = finder.find_formula(150.05, tolerance_ppm=strict, atom_pool=pool)
        loose_results = finder.find_formula(150.05, tolerance_ppm=loose, atom_pool=pool)
        assert len(strict_results) <= len(loose_results)
        assert set(strict_results.formulas) <= set(loose_results.formulas)

    def test_zero_tolerance(self, finder):
        results = finder.find_formula(150.05, tolerance_ppm=0, atom_pool={"C": 10, "H": 20})
        assert all(c.ppm == 0 for c in results)


class TestPlausibilityRules:

    def test_nitrogen_rule_can_be_disabled(self):
        target = Formula("CH3N").monoisotopic_mass  # odd N, odd nominal mass: fine
        relaxed = FormulaFinder(rules=PlausibilityRules(nitrogen_rule=False))
        strict = FormulaFinder()
        pool = {"C": 3, "H": 10, "N": 3, "O": 3}
        assert len(strict.find_formula(target, 2000, pool)) <= len(
            relaxed.find_formula(target, 2000, pool)
        )

    def test_min_dbe(self):
        finder = FormulaFinder(rules=PlausibilityRules(min_dbe=2))
        results = finder.find_formula(
            180.063, tolerance_ppm=50, atom_pool={"C": 15, "H": 30, "O": 10},
        )
        assert "C6H12O6" not in results.formulas
        assert all(c.dbe >= 2 for c in results)

    def test_halogen_ratio(self, finder):
        results = finder.find_formula(
            Formula("CCl4").monoisotopic_mass,
            tolerance_ppm=5,
            atom_pool={"C": 2, "Cl": 4},
        )
        # Four chlorines on one carbon exceed the default 2:1 halogen ratio
        assert "CCl4" not in results.formulas

    def test_halogen_ratio_relaxed(self):
        finder = FormulaFinder(rules=PlausibilityRules(max_halogen_ratio=4))
        results = finder.find_formula(
            Formula("CCl4").monoisotopic_mass,
            tolerance_ppm=5,
            atom_pool={"C": 2, "Cl": 4},
        )
        assert "CCl4" in results.formulas


class TestSearchErrors:

    @pytest.mark.parametrize("target", [0, -10.0])
    def test_non_positive_target(self, finder, target):
        with pytest.raises(ValidationError):
            finder.find_formula(target)

    def test_negative_tolerance(self, finder):
        with pytest.raises(ValidationError):
            finder.find_formula(100.0, tolerance_ppm=-1)

    def test_negative_pool_count(self, finder):
        with pytest.raises(ValidationError):
            finder.find_formula(100.0, atom_pool={"C": -1})

    @pytest.mark.parametrize("atom_pool,adduct", [
        ({"C": 3, "O": 3}, "H-"),
        ({"C": 3, "H": 0, "O": 3}, "H-"),
        ({"C": 3, "H": 1, "O": 3}, "2H-2"),
    ])
    def test_pool_cannot_supply_lost_atoms(self, finder, atom_pool, adduct):
        with pytest.raises(ValidationError):
            finder.find_formula(100.0, atom_pool=atom_pool, adduct=adduct)

    def test_unknown_pool_element(self, finder):
        with pytest.raises(UnknownEntityError):
            finder.find_formula(100.0, atom_pool={"C": 5, "Xx": 2})

    def test_isotope_in_pool(self, finder):
        with pytest.raises(UnknownEntityError):
            finder.find_formula(100.0, atom_pool={"13C": 5})

    @pytest.mark.parametrize("adduct", ["H", "M+H", "[M+H]+"])
    def test_bad_adduct(self, finder, adduct):
        with pytest.raises(FormatError):
            finder.find_formula(100.0, adduct=adduct)

    def test_unknown_adduct_element(self, finder):
        with pytest.raises(UnknownEntityError):
            finder.find_formula(100.0, adduct="Xx+")


class TestSearchResults:

    def setup_method(self):
        self.results = FormulaFinder().find_formula(
            180.063, tolerance_ppm=100, atom_pool={"C": 15, "H": 30, "N": 5, "O": 10},
        )

    def test_indexing(self):
        assert isinstance(self.results[0], CandidateFormula)
        assert self.results[-1] == self.results.candidates[-1]
        sliced = self.results[:2]
        assert isinstance(sliced, FormulaSearchResults)
        assert len(sliced) == min(2, len(self.results))

    def test_top(self):
        assert self.results.top(3).formulas == self.results.formulas[:3]

    def test_filter_by_error(self):
        filtered = self.results.filter_by_error(5)
        assert all(abs(c.ppm) <= 5 for c in filtered)
        assert filtered.query_params["max_error_ppm"] == 5
        with pytest.raises(ValueError):
            self.results.filter_by_error(-1)

    def test_filter_by_dbe(self):
        filtered = self.results.filter_by_dbe(0, 2)
        assert all(0 <= c.dbe <= 2 for c in filtered)
        assert "C6H12O6" in filtered.formulas

    def test_sort_by_error(self):
        reverse = self.results.sort_by_error(reverse=True)
        assert [abs(c.ppm) for c in reverse] == sorted(
            (abs(c.ppm) for c in self.results), reverse=True
        )

    def test_repr(self):
        assert repr(self.results).startswith("FormulaSearchResults(query_mz=180.0630")
