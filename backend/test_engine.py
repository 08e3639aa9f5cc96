import unittest
from decimal import Decimal

from dka_engine import DKAProtocolEngine, _parse_number, _round_half_up, _to_units
from models import PatientInput, Severity, PotassiumStatus

class TestSeverityClassifier(unittest.TestCase):

    def test_severe_by_ph(self):
        self.assertEqual(DKAProtocolEngine.classify_severity(7.09, 20.0), (Severity.SEVERE, 0.10))

    def test_severe_by_hco3(self):
        self.assertEqual(DKAProtocolEngine.classify_severity(7.35, 4.9), (Severity.SEVERE, 0.10))

    def test_moderate(self):
        self.assertEqual(DKAProtocolEngine.classify_severity(7.15, 12.0), (Severity.MODERATE, 0.07))
        self.assertEqual(DKAProtocolEngine.classify_severity(7.30, 8.0), (Severity.MODERATE, 0.07))

    def test_mild(self):
        self.assertEqual(DKAProtocolEngine.classify_severity(7.25, 12.0), (Severity.MILD, 0.05))

    def test_boundaries_fall_to_milder_class(self):
        """Strict '<': exactly 7.10 / 5 / 7.20 / 10 are not the worse class."""
        self.assertEqual(DKAProtocolEngine.classify_severity(7.10, 20.0)[0], Severity.MODERATE)
        self.assertEqual(DKAProtocolEngine.classify_severity(7.30, 5.0)[0], Severity.MODERATE)
        self.assertEqual(DKAProtocolEngine.classify_severity(7.20, 20.0)[0], Severity.MILD)
        self.assertEqual(DKAProtocolEngine.classify_severity(7.30, 10.0)[0], Severity.MILD)

    def test_first_match_wins(self):
        # Moderate pH but severe HCO3 -> Severe
        self.assertEqual(DKAProtocolEngine.classify_severity(7.15, 3.0)[0], Severity.SEVERE)


class TestFluids(unittest.TestCase):

    def test_bolus(self):
        self.assertEqual(DKAProtocolEngine.calculate_bolus(20.0, False), 200.0)
        self.assertEqual(DKAProtocolEngine.calculate_bolus(20.0, True), 400.0)

    def test_shock_doubles_bolus(self):
        for w in (0.8, 3.5, 10.0, 27.3, 64.0, 120.0):
            self.assertAlmostEqual(DKAProtocolEngine.calculate_bolus(w, True),
                                   2 * DKAProtocolEngine.calculate_bolus(w, False))

    def test_bolus_is_not_capped(self):
        self.assertEqual(DKAProtocolEngine.calculate_bolus(80.0, True), 1600.0)

    def test_holliday_segar_bands(self):
        m = DKAProtocolEngine.calculate_maintenance_24h
        self.assertAlmostEqual(m(5.0), 500.0)
        self.assertAlmostEqual(m(10.0), 1000.0)
        self.assertAlmostEqual(m(15.0), 1250.0)
        self.assertAlmostEqual(m(20.0), 1500.0)
        self.assertAlmostEqual(m(30.0), 1700.0)

    def test_maintenance_continuous_and_monotonic(self):
        m = DKAProtocolEngine.calculate_maintenance_24h
        previous = m(0.1)
        w = 0.2
        while w <= 80.0:
            current = m(w)
            self.assertGreaterEqual(current, previous)
            previous = current
            w += 0.1
        for breakpoint in (10.0, 20.0):
            self.assertAlmostEqual(m(breakpoint - 1e-9), m(breakpoint), places=5)
            self.assertAlmostEqual(m(breakpoint + 1e-9), m(breakpoint), places=5)

    def test_deficit_and_rate(self):
        deficit, rate = DKAProtocolEngine.calculate_deficit_and_rate(20.0, 0.10, 200.0, 1500.0)
        self.assertEqual(deficit, 1800)
        self.assertEqual(rate, 100)

    def test_deficit_floored_at_zero(self):
        # 5% of 10kg = 500 mL, bolus bigger than the whole deficit
        deficit, rate = DKAProtocolEngine.calculate_deficit_and_rate(10.0, 0.05, 900.0, 1000.0)
        self.assertEqual(deficit, 0)
        self.assertEqual(rate, 42)  # maintenance only: 1000/24 = 41.67

    def test_deficit_never_negative(self):
        for bolus in (0.0, 100.0, 1000.0, 1e6):
            deficit, rate = DKAProtocolEngine.calculate_deficit_and_rate(12.0, 0.07, bolus, 1100.0)
            self.assertGreaterEqual(deficit, 0)
            self.assertGreaterEqual(rate, 0)

    def test_deficit_is_rounded_before_rate(self):
        # total = 2.5 * 0.07 * 1000 = 175.0 (float noise aside), bolus 24.6 -> 150.4 -> 150
        deficit, rate = DKAProtocolEngine.calculate_deficit_and_rate(2.5, 0.07, 24.6, 0.0)
        self.assertEqual(deficit, 150)
        self.assertEqual(rate, _round_half_up(150 / 48))


class TestInsulinAndElectrolytes(unittest.TestCase):

    def test_insulin_two_decimals(self):
        standard, low = DKAProtocolEngine.calculate_insulin_doses(20.0)
        self.assertEqual(str(standard), "2.00")
        self.assertEqual(str(low), "1.00")

    def test_insulin_half_up(self):
        standard, low = DKAProtocolEngine.calculate_insulin_doses(12.5)
        self.assertEqual(standard, Decimal("1.25"))
        self.assertEqual(low, Decimal("0.63"))

    def test_insulin_quantized_from_shortest_repr(self):
        """1.005 is stored just below 1.005; JS toFixed(2) gives 1.00, we give 1.01."""
        self.assertEqual(_to_units(1.005), Decimal("1.01"))
        self.assertEqual(_to_units(0.125), Decimal("0.13"))

    def test_corrected_sodium(self):
        self.assertEqual(DKAProtocolEngine.calculate_corrected_sodium(140.0, 600.0), 148)
        self.assertEqual(DKAProtocolEngine.calculate_corrected_sodium(135.0, 100.0), 135)

    def test_corrected_sodium_below_reference_glucose(self):
        # No floor: low glucose pulls the value under the measured one
        self.assertEqual(DKAProtocolEngine.calculate_corrected_sodium(140.0, 0.0), 138)

    def test_potassium_boundaries(self):
        k = DKAProtocolEngine.classify_potassium
        self.assertEqual(k(3.0), PotassiumStatus.NORMAL)
        self.assertEqual(k(2.99), PotassiumStatus.CRITICAL_LOW)
        self.assertEqual(k(5.5), PotassiumStatus.NORMAL)
        self.assertEqual(k(5.51), PotassiumStatus.HIGH)


class TestInputParsing(unittest.TestCase):

    def test_parse_number(self):
        self.assertEqual(_parse_number("7.05"), 7.05)
        self.assertEqual(_parse_number(" 20 "), 20.0)
        self.assertEqual(_parse_number(12), 12.0)
        self.assertEqual(_parse_number(Decimal("4.5")), 4.5)

    def test_parse_rejects_junk(self):
        for value in (None, "", "   ", "abc", "nan", "inf", float("nan"), True, False, [1]):
            self.assertIsNone(_parse_number(value), f"{value!r} should not parse")

    def test_parse_rejects_underscore_digits(self):
        self.assertIsNone(_parse_number("1_000"))
        self.assertIsNone(_parse_number("7._05"))

    def test_parse_rejects_out_of_float_range(self):
        self.assertIsNone(_parse_number(10 ** 400))
        self.assertIsNone(_parse_number(Decimal("sNaN")))
        self.assertIsNone(_parse_number("1e400"))

    def test_huge_weight_gives_no_result_instead_of_raising(self):
        for weight in (10 ** 400, "1e308", "1e27"):
            patient = PatientInput(weight_kg=weight, glucose_mg_dl=600, ph_venous=7.05)
            self.assertIsNone(DKAProtocolEngine.calculate(patient), f"weight {weight!r}")
            self.assertIsNone(DKAProtocolEngine.evaluate(patient).result)

    def test_round_half_up(self):
        self.assertEqual(_round_half_up(0.5), 1)
        self.assertEqual(_round_half_up(2.5), 3)
        self.assertEqual(_round_half_up(47.9), 48)
        self.assertEqual(_round_half_up(-1.5), -1)

    def test_required_fields(self):
        base = dict(weight_kg="20", glucose_mg_dl="600", ph_venous="7.05")
        self.assertIsNotNone(DKAProtocolEngine.calculate(PatientInput(**base)))
        for name in base:
            data = dict(base)
            data[name] = ""
            self.assertIsNone(DKAProtocolEngine.calculate(PatientInput(**data)))
            data[name] = "x"
            self.assertIsNone(DKAProtocolEngine.calculate(PatientInput(**data)))

    def test_non_positive_weight_gives_no_result(self):
        patient = PatientInput(weight_kg=0, glucose_mg_dl=600, ph_venous=7.05)
        self.assertIsNone(DKAProtocolEngine.calculate(patient))
        self.assertEqual(DKAProtocolEngine.missing_required_fields(patient), ["weight_kg"])

    def test_optional_defaults(self):
        """Blank/unparseable secondary labs fall back to HCO3 0, Na 135, K 4.0."""
        res = DKAProtocolEngine.calculate(PatientInput(
            weight_kg=10, glucose_mg_dl=100, ph_venous=7.30,
            hco3_mmol_l="??", sodium_mmol_l="", potassium_mmol_l=None
        ))
        # HCO3 0 < 5 -> Severe even though pH is mild
        self.assertEqual(res.severity, Severity.SEVERE)
        self.assertEqual(res.corrected_sodium_mmol_l, 135)
        self.assertEqual(res.potassium_status, PotassiumStatus.NORMAL)

    def test_age_is_informational(self):
        base = dict(weight_kg=15, glucose_mg_dl=400, ph_venous=7.12, hco3_mmol_l=8)
        a = DKAProtocolEngine.calculate(PatientInput(age_years=2, **base))
        b = DKAProtocolEngine.calculate(PatientInput(age_years=14, **base))
        self.assertEqual(a, b)

if __name__ == '__main__':
    unittest.main()
