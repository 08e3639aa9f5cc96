# main.py

import logging
import os
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

# Import Data Models & Logic
from models import (
    AuditLog,
    PatientInput,
    PotassiumStatus,
    ProtocolOutput,
    SafetyAlerts,
    Severity
)
from constants import (
    VERSION,
    GUIDELINE_VERSION,
    MEDICAL_DISCLAIMER,
    SEVERITY_THRESHOLDS,
    FLUID_CONSTANTS,
    INSULIN_CONSTANTS,
    ELECTROLYTE_CONSTANTS,
    INPUT_DEFAULTS,
    SAFETY_LIMITS
)
from dka_engine import DKAProtocolEngine

# --- 1. CONFIGURATION & LOGGING ---
logging.basicConfig(level=os.environ.get("DKAFLOW_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("dkaflow-api")

app = FastAPI(
    title="DKAFlow API",
    version=VERSION,
    description="Pediatric DKA fluid, insulin and electrolyte calculator (ISPAD 2022). \n\n"
                "**WARNING**: Decision Support Tool Only. Not for autonomous clinical use.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def read_root():
    return {"status": "active", "message": "DKAFlow API is running successfully!"}

@app.get("/health")
def health_check():
    """K8s/AWS Health Probe"""
    return {"status": "active", "version": VERSION, "module": "dkaflow-protocol-engine"}

@app.get("/protocol")
def protocol_info():
    """The guideline and thresholds the engine is running with."""
    return {
        "guideline": GUIDELINE_VERSION,
        "version": VERSION,
        "disclaimer": MEDICAL_DISCLAIMER,
        "severity": {
            "severe": {"ph_below": SEVERITY_THRESHOLDS.SEVERE_PH,
                       "hco3_below": SEVERITY_THRESHOLDS.SEVERE_HCO3,
                       "dehydration": SEVERITY_THRESHOLDS.SEVERE_DEHYDRATION},
            "moderate": {"ph_below": SEVERITY_THRESHOLDS.MODERATE_PH,
                         "hco3_below": SEVERITY_THRESHOLDS.MODERATE_HCO3,
                         "dehydration": SEVERITY_THRESHOLDS.MODERATE_DEHYDRATION},
            "mild": {"dehydration": SEVERITY_THRESHOLDS.MILD_DEHYDRATION},
        },
        "bolus_ml_per_kg": {"standard": FLUID_CONSTANTS.BOLUS_ML_PER_KG,
                            "shock": FLUID_CONSTANTS.SHOCK_BOLUS_ML_PER_KG},
        "deficit_replacement_hours": FLUID_CONSTANTS.DEFICIT_REPLACEMENT_HOURS,
        "insulin_units_per_kg_hr": {"standard": INSULIN_CONSTANTS.STANDARD_UNITS_PER_KG_HR,
                                    "low": INSULIN_CONSTANTS.LOW_UNITS_PER_KG_HR},
        "potassium_mmol_l": {"critical_low_below": ELECTROLYTE_CONSTANTS.POTASSIUM_CRITICAL_LOW,
                             "high_above": ELECTROLYTE_CONSTANTS.POTASSIUM_HIGH},
        "defaults": {"hco3_mmol_l": INPUT_DEFAULTS.HCO3_MMOL_L,
                     "sodium_mmol_l": INPUT_DEFAULTS.SODIUM_MMOL_L,
                     "potassium_mmol_l": INPUT_DEFAULTS.POTASSIUM_MMOL_L},
        "usual_bolus_cap_ml": SAFETY_LIMITS.USUAL_BOLUS_CAP_ML,
    }

# --- 2. INPUT SCHEMA (A form that may still be half-filled) ---
# Every numeric field takes a number or the raw text of the input box.
# Blank/unparseable values are resolved by the engine, not rejected here.
FormValue = Optional[Union[float, str]]

class CalculationRequest(BaseModel):
    weight_kg: FormValue = Field(None, description="Weight in kg (required for a result)")
    glucose_mg_dl: FormValue = Field(None, description="Glucose in mg/dL (required)")
    ph_venous: FormValue = Field(None, description="Venous pH (required)")
    hco3_mmol_l: FormValue = Field(None, description="Bicarbonate, defaults to 0")
    sodium_mmol_l: FormValue = Field(None, description="Measured Na+, defaults to 135")
    potassium_mmol_l: FormValue = Field(None, description="K+, defaults to 4.0")
    age_years: FormValue = Field(None, description="Informational only")
    in_shock: bool = Field(False, description="Signs of shock / hypotension")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "weight_kg": 20, "glucose_mg_dl": 600, "ph_venous": 7.05,
                "hco3_mmol_l": 4, "sodium_mmol_l": 140, "potassium_mmol_l": 4.0,
                "age_years": 8, "in_shock": False
            }
        }
    )

# --- 3. EXPLICIT RESPONSE SCHEMA (The Contract) ---
class DerivationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    severity: Severity
    dehydration_fraction: float
    bolus_volume_ml: int
    maintenance_24h_ml: int
    deficit_volume_ml: int
    hourly_rate_ml_hr: int
    insulin_standard_units_hr: Decimal
    insulin_low_units_hr: Decimal
    corrected_sodium_mmol_l: int
    potassium_status: PotassiumStatus

class CalculationResponse(BaseModel):
    status: str                       # "complete" | "incomplete"
    result: Optional[DerivationResponse] = None
    alerts: Optional[SafetyAlerts] = None
    guidance: List[str] = Field(default_factory=list)
    missing_fields: List[str] = Field(default_factory=list)
    disclaimer: str = MEDICAL_DISCLAIMER
    audit_log: Optional[AuditLog] = None
    generated_at: datetime = Field(default_factory=datetime.now)

# --- 4. ENDPOINTS ---

@app.post("/calculate", response_model=CalculationResponse)
def calculate(request: CalculationRequest):
    """
    Recomputes the whole DKA plan from the current form snapshot.
    An incomplete form is not an error: status is 'incomplete'.
    """
    payload = request.model_dump()
    try:
        patient = PatientInput(**payload)
        output: ProtocolOutput = DKAProtocolEngine.evaluate(patient)
    except Exception as e:
        logger.error(f"Internal Engine Failure: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Protocol Engine Error")

    audit = AuditLog(inputs_hash=hash(tuple(sorted(payload.items()))))

    if not output.is_complete:
        logger.info(f"Incomplete input, missing: {output.missing_fields}")
        return CalculationResponse(
            status="incomplete",
            missing_fields=output.missing_fields,
            audit_log=audit
        )

    logger.info(f"DKA plan computed for Wt: {payload['weight_kg']}kg, "
                f"Severity: {output.result.severity.value}")
    if output.alerts.hold_insulin_replace_potassium:
        logger.warning("Critical hypokalemia: insulin on hold")

    return CalculationResponse(
        status="complete",
        result=DerivationResponse.model_validate(output.result),
        alerts=output.alerts,
        guidance=output.guidance,
        audit_log=audit
    )
