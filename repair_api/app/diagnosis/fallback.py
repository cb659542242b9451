"""Static, safety-biased diagnosis used when no dynamic source answers."""

from __future__ import annotations

from app.diagnosis.parser import build_service_reason
from app.diagnosis.schemas import DiagnosisResult, Recommendations

HAZARD_KEYWORDS = ("smoke", "sparking", "burning")

FALLBACK_COST = "£109-£149"
FALLBACK_TIME = "1-2 hours"

FALLBACK_CAUSES = [
    "Component wear and tear",
    "Electrical connection or control board fault",
    "Mechanical blockage or damage",
]
FALLBACK_DIY_STEPS = [
    "Check the appliance is plugged in and the socket and fuse are working",
    "Clean any visible debris or build-up from filters and seals",
    "Consult your user manual for basic troubleshooting steps",
]
FALLBACK_PROFESSIONAL_STEPS = [
    "Professional diagnostic inspection by a qualified engineer",
    "Component replacement with genuine parts if needed",
    "Safety check and performance testing after the repair",
]
HAZARD_WARNINGS = [
    "Disconnect the appliance from the mains power immediately",
    "Stop using the appliance until it has been inspected by an engineer",
    "If there is visible smoke or fire, leave the area and call emergency services",
]
ADVISORY_WARNINGS = [
    "Always unplug the appliance before carrying out any checks",
    "Do not remove internal panels or attempt electrical repairs yourself",
]
FALLBACK_SKILLS = [
    "Appliance fault diagnostics",
    "Electrical safety testing",
    "Component replacement",
]


def has_hazard(problem: str) -> bool:
    lowered = (problem or "").lower()
    return any(keyword in lowered for keyword in HAZARD_KEYWORDS)


def generate_fallback_diagnosis(
    appliance: str, brand: str, problem: str
) -> DiagnosisResult:
    """Build the conservative professional-service diagnosis."""
    hazard = has_hazard(problem)
    return DiagnosisResult(
        possible_causes=list(FALLBACK_CAUSES),
        recommendations=Recommendations(
            diy=list(FALLBACK_DIY_STEPS),
            professional=list(FALLBACK_PROFESSIONAL_STEPS),
        ),
        urgency="high" if hazard else "medium",
        estimated_cost=FALLBACK_COST,
        difficulty="expert",
        recommended_service="professional",
        service_reason=build_service_reason(None, appliance, brand, "professional"),
        skills_required=list(FALLBACK_SKILLS),
        time_estimate=FALLBACK_TIME,
        safety_warnings=list(HAZARD_WARNINGS if hazard else ADVISORY_WARNINGS),
    )
