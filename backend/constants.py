# --- METADATA & COMPLIANCE ---
VERSION = "1.0.0"
GUIDELINE_VERSION = "ISPAD Clinical Practice Consensus Guidelines 2022 (DKA/HHS)"
__validation_status__ = "Clinical validation pending"

MEDICAL_DISCLAIMER = (
    "DECISION SUPPORT TOOL - NOT A PRESCRIPTION. "
    "Based on ISPAD 2022 guidelines. All decisions must be confirmed clinically; "
    "the treating physician's judgment prevails."
)


class SEVERITY_THRESHOLDS:
    # Strict '<' comparisons: a value sitting exactly on a threshold
    # falls to the milder class.
    SEVERE_PH = 7.10
    SEVERE_HCO3 = 5.0
    MODERATE_PH = 7.20
    MODERATE_HCO3 = 10.0

    # Estimated dehydration (fraction of body weight)
    SEVERE_DEHYDRATION = 0.10
    MODERATE_DEHYDRATION = 0.07
    MILD_DEHYDRATION = 0.05


class FLUID_CONSTANTS:
    BOLUS_ML_PER_KG = 10.0
    SHOCK_BOLUS_ML_PER_KG = 20.0   # Shock doubles the per-kg bolus

    # Holliday-Segar breakpoints
    FIRST_BAND_KG = 10.0
    SECOND_BAND_KG = 20.0
    FIRST_BAND_ML_PER_KG = 100.0
    SECOND_BAND_ML_PER_KG = 50.0
    THIRD_BAND_ML_PER_KG = 20.0

    DEFICIT_REPLACEMENT_HOURS = 48.0
    MAINTENANCE_HOURS = 24.0
    ML_PER_LITRE = 1000.0


class INSULIN_CONSTANTS:
    STANDARD_UNITS_PER_KG_HR = 0.1
    LOW_UNITS_PER_KG_HR = 0.05
    WAIT_AFTER_FLUIDS_MIN = 60


class ELECTROLYTE_CONSTANTS:
    # Katz correction: +1.6 mmol/L Na per 100 mg/dL glucose above 100
    SODIUM_CORRECTION_FACTOR = 1.6
    GLUCOSE_REFERENCE_MG_DL = 100.0

    POTASSIUM_CRITICAL_LOW = 3.0
    POTASSIUM_HIGH = 5.5
    POTASSIUM_REPLACEMENT_MMOL_L = 40


class INPUT_DEFAULTS:
    """Fallbacks for secondary lab values that are blank or unparseable."""
    HCO3_MMOL_L = 0.0
    SODIUM_MMOL_L = 135.0
    POTASSIUM_MMOL_L = 4.0


class SAFETY_LIMITS:
    # Many protocols cap the first bolus here. The engine does NOT apply it,
    # it only raises a flag for clinical review.
    USUAL_BOLUS_CAP_ML = 1000
