"""
DKAFlow: Protocol Engine
========================
The pure calculation core. Translates a form snapshot into the ISPAD 2022
DKA numbers: severity, bolus, maintenance, 48h deficit, infusion rate,
insulin options, corrected sodium and potassium status.

No state is kept between calls; the caller re-runs `calculate` after every
input change.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional, Tuple

from models import (
    PatientInput,
    DerivationResult,
    ProtocolOutput,
    Severity,
    PotassiumStatus
)
from constants import (
    SEVERITY_THRESHOLDS,
    FLUID_CONSTANTS,
    INSULIN_CONSTANTS,
    ELECTROLYTE_CONSTANTS,
    INPUT_DEFAULTS
)
from safety import SafetySupervisor
from protocols import GuidanceBuilder

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("weight_kg", "glucose_mg_dl", "ph_venous")

_TWO_PLACES = Decimal("0.01")


def _parse_number(value: Any) -> Optional[float]:
    """
    Best-effort decimal parse of a form field.
    Returns None for blanks, junk, booleans, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        raw = value
    elif isinstance(value, str):
        raw = value.strip()
        # float() accepts "1_000"; a form field should not
        if not raw or "_" in raw:
            return None
    else:
        return None

    try:
        number = float(raw)
    except (ValueError, OverflowError):
        return None

    if not math.isfinite(number):
        return None
    return number


def _round_half_up(value: float) -> int:
    """Integer display rounding (.5 goes up), not Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def _to_units(value: float) -> Decimal:
    return Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


class DKAProtocolEngine:
    """
    The Mathematical Core.
    Translates Form Inputs -> Severity -> Fluids -> Insulin -> Electrolytes.
    """

    @staticmethod
    def classify_severity(ph: float, hco3: float) -> Tuple[Severity, float]:
        """
        Returns (severity, dehydration fraction). First match wins.
        """
        if ph < SEVERITY_THRESHOLDS.SEVERE_PH or hco3 < SEVERITY_THRESHOLDS.SEVERE_HCO3:
            return Severity.SEVERE, SEVERITY_THRESHOLDS.SEVERE_DEHYDRATION
        if ph < SEVERITY_THRESHOLDS.MODERATE_PH or hco3 < SEVERITY_THRESHOLDS.MODERATE_HCO3:
            return Severity.MODERATE, SEVERITY_THRESHOLDS.MODERATE_DEHYDRATION
        return Severity.MILD, SEVERITY_THRESHOLDS.MILD_DEHYDRATION

    @staticmethod
    def calculate_bolus(weight_kg: float, in_shock: bool) -> float:
        # No 1000 mL cap here; SafetySupervisor flags large volumes instead
        if in_shock:
            return weight_kg * FLUID_CONSTANTS.SHOCK_BOLUS_ML_PER_KG
        return weight_kg * FLUID_CONSTANTS.BOLUS_ML_PER_KG

    @staticmethod
    def calculate_maintenance_24h(weight_kg: float) -> float:
        """
        Holliday-Segar 100/50/20 rule (mL per day).
        """
        fc = FLUID_CONSTANTS
        if weight_kg <= fc.FIRST_BAND_KG:
            return weight_kg * fc.FIRST_BAND_ML_PER_KG

        first_band_total = fc.FIRST_BAND_KG * fc.FIRST_BAND_ML_PER_KG
        if weight_kg <= fc.SECOND_BAND_KG:
            return first_band_total + (weight_kg - fc.FIRST_BAND_KG) * fc.SECOND_BAND_ML_PER_KG

        second_band_total = first_band_total + \
            (fc.SECOND_BAND_KG - fc.FIRST_BAND_KG) * fc.SECOND_BAND_ML_PER_KG
        return second_band_total + (weight_kg - fc.SECOND_BAND_KG) * fc.THIRD_BAND_ML_PER_KG

    @staticmethod
    def calculate_deficit_and_rate(weight_kg: float, dehydration_fraction: float,
                                   bolus_volume_ml: float,
                                   maintenance_24h_ml: float) -> Tuple[int, int]:
        """
        Remaining deficit (net of the bolus already given) and the single
        pump rate: deficit over 48h plus maintenance over 24h.

        The deficit is rounded BEFORE it is divided into the rate so the
        displayed numbers agree with each other.
        """
        total_deficit_ml = weight_kg * dehydration_fraction * FLUID_CONSTANTS.ML_PER_LITRE
        deficit_ml = _round_half_up(max(0.0, total_deficit_ml - bolus_volume_ml))

        deficit_hourly = deficit_ml / FLUID_CONSTANTS.DEFICIT_REPLACEMENT_HOURS
        maintenance_hourly = maintenance_24h_ml / FLUID_CONSTANTS.MAINTENANCE_HOURS
        return deficit_ml, _round_half_up(deficit_hourly + maintenance_hourly)

    @staticmethod
    def calculate_insulin_doses(weight_kg: float) -> Tuple[Decimal, Decimal]:
        # Both options are reported; the clinician chooses
        standard = weight_kg * INSULIN_CONSTANTS.STANDARD_UNITS_PER_KG_HR
        low = weight_kg * INSULIN_CONSTANTS.LOW_UNITS_PER_KG_HR
        return _to_units(standard), _to_units(low)

    @staticmethod
    def calculate_corrected_sodium(sodium_mmol_l: float, glucose_mg_dl: float) -> int:
        """
        Katz correction. Glucose under 100 mg/dL lowers the value; no floor.
        """
        ec = ELECTROLYTE_CONSTANTS
        excess = (glucose_mg_dl - ec.GLUCOSE_REFERENCE_MG_DL) / 100.0
        return _round_half_up(sodium_mmol_l + ec.SODIUM_CORRECTION_FACTOR * excess)

    @staticmethod
    def classify_potassium(potassium_mmol_l: float) -> PotassiumStatus:
        if potassium_mmol_l < ELECTROLYTE_CONSTANTS.POTASSIUM_CRITICAL_LOW:
            return PotassiumStatus.CRITICAL_LOW
        if potassium_mmol_l > ELECTROLYTE_CONSTANTS.POTASSIUM_HIGH:
            return PotassiumStatus.HIGH
        return PotassiumStatus.NORMAL

    @staticmethod
    def missing_required_fields(patient: PatientInput) -> List[str]:
        """Names of required fields that are blank or not usable numbers."""
        missing = [name for name in REQUIRED_FIELDS
                   if _parse_number(getattr(patient, name)) is None]
        weight = _parse_number(patient.weight_kg)
        if weight is not None and weight <= 0:
            missing.insert(0, "weight_kg")
        return missing

    @staticmethod
    def calculate(patient: PatientInput) -> Optional[DerivationResult]:
        """
        Runs the whole pipeline on one snapshot.
        Returns None (not an error) while a required field is missing or the
        values are too large to compute with.
        """
        missing = DKAProtocolEngine.missing_required_fields(patient)
        if missing:
            logger.debug("Incomplete snapshot, missing: %s", ", ".join(missing))
            return None

        weight = _parse_number(patient.weight_kg)
        glucose = _parse_number(patient.glucose_mg_dl)
        ph = _parse_number(patient.ph_venous)

        # Secondary labs fail open to their defaults
        hco3 = _parse_number(patient.hco3_mmol_l)
        if hco3 is None:
            hco3 = INPUT_DEFAULTS.HCO3_MMOL_L
        sodium = _parse_number(patient.sodium_mmol_l)
        if sodium is None:
            sodium = INPUT_DEFAULTS.SODIUM_MMOL_L
        potassium = _parse_number(patient.potassium_mmol_l)
        if potassium is None:
            potassium = INPUT_DEFAULTS.POTASSIUM_MMOL_L

        try:
            return DKAProtocolEngine._derive(weight, glucose, ph, hco3, sodium,
                                             potassium, bool(patient.in_shock))
        except ArithmeticError as e:
            # Finite but absurd inputs (e.g. 1e308 kg) overflow the rounding steps
            logger.debug("Inputs out of computable range: %s", e)
            return None

    @staticmethod
    def _derive(weight: float, glucose: float, ph: float, hco3: float,
                sodium: float, potassium: float, in_shock: bool) -> DerivationResult:
        # 1. Severity
        severity, dehydration = DKAProtocolEngine.classify_severity(ph, hco3)

        # 2. Resuscitation bolus
        bolus = DKAProtocolEngine.calculate_bolus(weight, in_shock)

        # 3. Maintenance
        maintenance = DKAProtocolEngine.calculate_maintenance_24h(weight)

        # 4. Deficit + pump rate
        deficit, hourly_rate = DKAProtocolEngine.calculate_deficit_and_rate(
            weight, dehydration, bolus, maintenance
        )

        # 5. Insulin
        insulin_standard, insulin_low = DKAProtocolEngine.calculate_insulin_doses(weight)

        # 6. Corrected sodium
        corrected_na = DKAProtocolEngine.calculate_corrected_sodium(sodium, glucose)

        # 7. Potassium
        k_status = DKAProtocolEngine.classify_potassium(potassium)

        return DerivationResult(
            severity=severity,
            dehydration_fraction=dehydration,
            bolus_volume_ml=_round_half_up(bolus),
            maintenance_24h_ml=_round_half_up(maintenance),
            deficit_volume_ml=deficit,
            hourly_rate_ml_hr=hourly_rate,
            insulin_standard_units_hr=insulin_standard,
            insulin_low_units_hr=insulin_low,
            corrected_sodium_mmol_l=corrected_na,
            potassium_status=k_status
        )

    @staticmethod
    def evaluate(patient: PatientInput) -> ProtocolOutput:
        """
        calculate() plus the alert flags and bedside notes for the UI.
        """
        result = DKAProtocolEngine.calculate(patient)
        if result is None:
            return ProtocolOutput(
                result=None,
                alerts=None,
                missing_fields=DKAProtocolEngine.missing_required_fields(patient)
            )

        alerts = SafetySupervisor.check(patient, result)
        guidance = GuidanceBuilder.build(patient, result, alerts)
        return ProtocolOutput(result=result, alerts=alerts, guidance=guidance)
