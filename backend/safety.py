# safety.py
from models import PatientInput, DerivationResult, SafetyAlerts, Severity, PotassiumStatus
from constants import SAFETY_LIMITS

class SafetySupervisor:
    """
    Bedside safety checks on a finished calculation.
    Returns a SafetyAlerts object (Flags). Never changes a number.
    """
    @staticmethod
    def check(patient: PatientInput, result: DerivationResult) -> SafetyAlerts:
        alerts = SafetyAlerts()

        # 1. Potassium gate for insulin
        # K+ < 3.0: insulin drives K+ into cells -> arrhythmia. Replace first.
        if result.potassium_status == PotassiumStatus.CRITICAL_LOW:
            alerts.hold_insulin_replace_potassium = True
        elif result.potassium_status == PotassiumStatus.HIGH:
            # Wait for K+ to fall or for urine output before adding K+
            alerts.defer_potassium_replacement = True
        else:
            alerts.start_potassium_replacement = True

        # 2. Shock
        if patient.in_shock:
            alerts.shock_present = True

        # 3. Uncapped bolus
        # Kept as computed; flagged so the team can decide on a cap.
        if result.bolus_volume_ml > SAFETY_LIMITS.USUAL_BOLUS_CAP_ML:
            alerts.bolus_exceeds_usual_cap = True

        # 4. Severe DKA (cerebral edema risk group)
        if result.severity == Severity.SEVERE:
            alerts.severe_dka = True

        return alerts
