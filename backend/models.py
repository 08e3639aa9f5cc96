"""
DKAFlow: Data Dictionary & Variable Definitions
===============================================
This module defines the inputs (what the clinician types into the form),
the derived protocol values (what the engine computes) and the outputs
(alerts and notes handed to the presentation layer).

NO LOGIC is implemented here apart from trivial helpers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from constants import VERSION

# --- 1. ENUMS (Standardizing the Outputs) ---

class Severity(Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

class PotassiumStatus(Enum):
    CRITICAL_LOW = "critical_low"   # K+ < 3.0: do not start insulin
    HIGH = "high"                   # K+ > 5.5: defer replacement
    NORMAL = "normal"

# --- 2. INPUT LAYER (What the Clinician Enters) ---

@dataclass
class PatientInput:
    """
    Raw snapshot of the form.
    Numeric fields may hold numbers, numeric strings or None; the engine
    parses them. Nothing is validated here so a half-filled form is legal.
    """
    # Required for any result
    weight_kg: Any = None
    glucose_mg_dl: Any = None
    ph_venous: Any = None

    # Secondary labs (fall back to defaults)
    hco3_mmol_l: Any = None
    sodium_mmol_l: Any = None
    potassium_mmol_l: Any = None

    # Informational only, not used by any calculation
    age_years: Any = None

    in_shock: bool = False

# --- 3. DERIVED VALUES (The Protocol Numbers) ---

@dataclass(frozen=True)
class DerivationResult:
    """
    Immutable. Rebuilt from scratch for every input snapshot.
    """
    severity: Severity
    dehydration_fraction: float

    # Fluids (mL)
    bolus_volume_ml: int
    maintenance_24h_ml: int
    deficit_volume_ml: int        # Already net of the bolus, floored at 0
    hourly_rate_ml_hr: int        # Deficit over 48h + maintenance over 24h

    # Insulin (U/hr, 2 decimal places)
    insulin_standard_units_hr: Decimal
    insulin_low_units_hr: Decimal

    # Electrolytes
    corrected_sodium_mmol_l: int
    potassium_status: PotassiumStatus

# --- 4. OUTPUT LAYER (The Actionable Results) ---

@dataclass
class SafetyAlerts:
    """
    Boolean flags for the UI. None of them change a computed number.
    """
    hold_insulin_replace_potassium: bool = False  # K+ critically low
    defer_potassium_replacement: bool = False     # K+ high
    start_potassium_replacement: bool = False     # K+ in range
    shock_present: bool = False
    bolus_exceeds_usual_cap: bool = False         # Uncapped bolus > 1000 mL
    severe_dka: bool = False

@dataclass
class AuditLog:
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    action: str = "dka_calculation"
    inputs_hash: int = 0
    model_version: str = VERSION

@dataclass
class ProtocolOutput:
    """
    Everything the presentation layer needs for one snapshot.
    result/alerts are None while the form is incomplete.
    """
    result: Optional[DerivationResult]
    alerts: Optional[SafetyAlerts]
    guidance: List[str] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.result is not None
