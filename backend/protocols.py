# protocols.py
from typing import List

from models import PatientInput, DerivationResult, SafetyAlerts
from constants import INSULIN_CONSTANTS, ELECTROLYTE_CONSTANTS, SAFETY_LIMITS

class GuidanceBuilder:
    """
    Turns the numbers into the ordered bedside steps (ISPAD 2022 flow):
    1. Volume expansion  2. 48h replacement  3. Insulin  4. Potassium
    """
    @staticmethod
    def bolus_note(patient: PatientInput, result: DerivationResult) -> str:
        if patient.in_shock:
            timing = "as fast as possible (shock)"
        else:
            timing = "over 20-30 minutes"
        return (f"1. Bolus: {result.bolus_volume_ml} ml 0.9% NaCl {timing}. "
                "Repeat if perfusion does not improve.")

    @staticmethod
    def replacement_note(result: DerivationResult) -> str:
        return (f"2. Replacement: pump at {result.hourly_rate_ml_hr} ml/hr "
                f"(maintenance {result.maintenance_24h_ml} ml/24h + remaining deficit "
                f"{result.deficit_volume_ml} ml over 48h, bolus already deducted). "
                "Use 0.45% to 0.9% saline; add K+ per protocol.")

    @staticmethod
    def insulin_notes(result: DerivationResult, alerts: SafetyAlerts) -> List[str]:
        notes = []
        if alerts.hold_insulin_replace_potassium:
            notes.append("3. Insulin: DO NOT START while K+ < "
                         f"{ELECTROLYTE_CONSTANTS.POTASSIUM_CRITICAL_LOW} mmol/L. Replace K+ first.")
        else:
            notes.append(f"3. Insulin: wait {INSULIN_CONSTANTS.WAIT_AFTER_FLUIDS_MIN} minutes "
                         "after starting fluids before the infusion.")
        notes.append(f"   Standard (0.1 U/kg/h): {result.insulin_standard_units_hr} U/hr "
                     "- usual dose for moderate/severe DKA.")
        notes.append(f"   Low (0.05 U/kg/h): {result.insulin_low_units_hr} U/hr "
                     "- consider if pH > 7.15 or young child.")
        return notes

    @staticmethod
    def potassium_note(alerts: SafetyAlerts) -> str:
        low = ELECTROLYTE_CONSTANTS.POTASSIUM_CRITICAL_LOW
        high = ELECTROLYTE_CONSTANTS.POTASSIUM_HIGH
        if alerts.hold_insulin_replace_potassium:
            return f"4. Potassium: CRITICAL K+ < {low} mmol/L. Replace K+ before any insulin."
        if alerts.defer_potassium_replacement:
            return (f"4. Potassium: K+ > {high} mmol/L. Defer replacement until K+ falls "
                    "or urine output is documented.")
        return (f"4. Potassium: K+ between {low} and {high}. Start replacement "
                f"({ELECTROLYTE_CONSTANTS.POTASSIUM_REPLACEMENT_MMOL_L} mmol/L) with the fluids.")

    @staticmethod
    def build(patient: PatientInput, result: DerivationResult,
              alerts: SafetyAlerts) -> List[str]:
        notes = [GuidanceBuilder.bolus_note(patient, result)]
        if alerts.bolus_exceeds_usual_cap:
            notes.append(f"   Note: bolus above {SAFETY_LIMITS.USUAL_BOLUS_CAP_ML} ml. "
                         "Not capped by the calculator; review clinically.")
        notes.append(GuidanceBuilder.replacement_note(result))
        notes.extend(GuidanceBuilder.insulin_notes(result, alerts))
        notes.append(GuidanceBuilder.potassium_note(alerts))
        notes.append("   Monitor ECG for T-wave changes if lab results are delayed.")
        return notes
