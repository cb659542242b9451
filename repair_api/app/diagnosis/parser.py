"""Parse the expert model's sectioned text reply into a ``DiagnosisResult``.

The model is asked for a fixed set of headed sections (see
:mod:`app.expert.prompts`), but replies drift: headings get bolded, numbered
or renamed, sections go missing, costs come back in any shape.  Everything
here is pure so it can be tested against literal reply fixtures.

Every field has a default, so parsing never fails.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Tuple

from app.diagnosis.schemas import (
    MAX_CAUSES,
    MAX_DIY_STEPS,
    MAX_PROFESSIONAL_STEPS,
    MAX_SAFETY_WARNINGS,
    MAX_SKILLS,
    DiagnosisResult,
    Recommendations,
)

# ---------------------------------------------------------------------------
# Heading table
# ---------------------------------------------------------------------------

# Bump when a heading is added or removed so fixture tests can pin it.
SECTION_HEADINGS_VERSION = 2

SECTION_HEADINGS: Dict[str, Tuple[str, ...]] = {
    "error_code_meaning": (
        "ERROR CODE MEANING",
        "ERROR CODE EXPLANATION",
        "ERROR MEANING",
    ),
    "possible_causes": ("POSSIBLE CAUSES", "LIKELY CAUSES", "CAUSES"),
    "diy": ("DIY STEPS", "DIY SOLUTIONS", "DIY RECOMMENDATIONS"),
    "professional": (
        "PROFESSIONAL STEPS",
        "PROFESSIONAL SERVICES",
        "PROFESSIONAL RECOMMENDATIONS",
    ),
    "service_type": ("RECOMMENDED SERVICE", "SERVICE TYPE"),
    "difficulty": ("DIFFICULTY LEVEL", "DIFFICULTY"),
    "urgency": ("URGENCY LEVEL", "URGENCY"),
    "time_estimate": ("TIME ESTIMATE", "ESTIMATED TIME"),
    "estimated_cost": ("ESTIMATED COST", "COST ESTIMATE"),
    "skills_required": ("SKILLS REQUIRED", "REQUIRED SKILLS"),
    "safety_warnings": ("SAFETY WARNINGS", "SAFETY PRECAUTIONS"),
    "service_reason": ("SERVICE REASON", "REASON FOR RECOMMENDATION"),
}

# Optional markdown/numbering in front of a heading, optional bold after it.
_HEADING_PREFIX = r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\d+[.)][ \t]*)?(?:\*\*)?[ \t]*"
_HEADING_SUFFIX = r"[ \t]*(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?"


def _heading_regex(headings: Tuple[str, ...]) -> Pattern[str]:
    alternatives = "|".join(
        re.escape(h) for h in sorted(headings, key=len, reverse=True)
    )
    return re.compile(
        rf"{_HEADING_PREFIX}(?:{alternatives}){_HEADING_SUFFIX}",
        re.IGNORECASE | re.MULTILINE,
    )


_FIELD_RES: Dict[str, Pattern[str]] = {
    field: _heading_regex(headings) for field, headings in SECTION_HEADINGS.items()
}
_ANY_HEADING_RE = _heading_regex(
    tuple(h for headings in SECTION_HEADINGS.values() for h in headings)
)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CAUSES = [
    "Worn or faulty internal component",
    "Electrical connection or wiring fault",
    "Blockage or build-up affecting normal operation",
]
DEFAULT_DIY_STEPS = [
    "Check the appliance is properly plugged in and the fuse has not blown",
    "Clean any accessible filters and remove visible debris",
    "Consult the user manual's troubleshooting section",
]
DEFAULT_PROFESSIONAL_STEPS = [
    "Full diagnostic inspection by a qualified engineer",
    "Replacement of any faulty components with genuine parts",
    "Safety and performance testing after the repair",
]
DEFAULT_SAFETY_WARNINGS = [
    "Always disconnect the appliance from the mains before inspecting it",
    "Do not attempt repairs on internal electrical or gas components",
]
DEFAULT_DIY_SKILLS = [
    "Basic hand tool use",
    "Following manufacturer instructions",
    "Safe isolation of mains power",
]
DEFAULT_PROFESSIONAL_SKILLS = [
    "Appliance fault diagnostics",
    "Electrical testing",
    "Component replacement",
]

DEFAULT_TIME_ESTIMATE = "1-2 hours"
DIY_TIME_ESTIMATE = "30-60 minutes"
DEFAULT_DIY_COST = "£0-£50"
DEFAULT_PROFESSIONAL_COST = "£109-£149"
PROFESSIONAL_COST_FLOOR = 80
PROFESSIONAL_COST_CEILING = 149

MIN_LIST_ITEM_LENGTH = 10
MAX_LIST_ITEM_LENGTH = 200
MIN_SERVICE_REASON_LENGTH = 20

_BULLET_RE = re.compile(r"^\s*(?:[-*•●▪–]+|\d+[.)]|[a-z][.)])\s*", re.IGNORECASE)
_BOLD_RE = re.compile(r"\*\*|__")

_AMOUNT = r"£\s?(\d+(?:,\d{3})*(?:\.\d{1,2})?)"
_COST_RANGE_RE = re.compile(
    rf"{_AMOUNT}\s*(?:-|–|to)\s*£?\s?(\d+(?:,\d{{3}})*(?:\.\d{{1,2}})?)",
    re.IGNORECASE,
)
_COST_SINGLE_RE = re.compile(_AMOUNT)
_DIY_COST_RE = re.compile(
    rf"DIY[^£\n]*?{_AMOUNT}(?:\s*(?:-|–|to)\s*£?\s?(\d+(?:,\d{{3}})*(?:\.\d{{1,2}})?))?",
    re.IGNORECASE,
)
_PROFESSIONAL_COST_RE = re.compile(
    rf"(?:Professional|Engineer)[^£\n]*?{_AMOUNT}(?:\s*(?:-|–|to)\s*£?\s?(\d+(?:,\d{{3}})*(?:\.\d{{1,2}})?))?",
    re.IGNORECASE,
)
_ZERO_RANGE_RE = re.compile(
    r"£\s?0(?:\.00)?\s*(?:-|–|to)\s*£?\s?(\d+(?:,\d{3})*(?:\.\d{1,2})?)",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Section extraction
# ---------------------------------------------------------------------------


def extract_section(raw_text: str, field: str) -> Optional[str]:
    """Return the text between *field*'s heading and the next heading."""
    match = _FIELD_RES[field].search(raw_text)
    if match is None:
        return None
    following = _ANY_HEADING_RE.search(raw_text, match.end())
    end = following.start() if following else len(raw_text)
    section = raw_text[match.end():end].strip()
    return section or None


def extract_list(raw_text: str, field: str) -> List[str]:
    """Collect list items under *field*, bullets and numbering stripped."""
    section = extract_section(raw_text, field)
    if not section:
        return []

    items: List[str] = []
    for line in section.splitlines():
        item = _BOLD_RE.sub("", _BULLET_RE.sub("", line)).strip()
        if MIN_LIST_ITEM_LENGTH < len(item) < MAX_LIST_ITEM_LENGTH:
            items.append(item)
    return items


def extract_scalar(raw_text: str, field: str) -> Optional[str]:
    """Return the heading's text run collapsed onto one line."""
    section = extract_section(raw_text, field)
    if not section:
        return None
    value = " ".join(_BOLD_RE.sub("", section).split())
    return value or None


# ---------------------------------------------------------------------------
# Field normalisation
# ---------------------------------------------------------------------------


def classify_service(text: Optional[str]) -> str:
    lowered = (text or "").lower()
    if "diy" in lowered:
        return "diy"
    if "warranty" in lowered:
        return "warranty"
    return "professional"


def classify_difficulty(text: Optional[str]) -> str:
    lowered = (text or "").lower()
    for level in ("easy", "moderate", "difficult", "expert"):
        if level in lowered:
            return level
    return "moderate"


def classify_urgency(text: Optional[str]) -> str:
    lowered = (text or "").lower()
    if "low" in lowered:
        return "low"
    if "high" in lowered:
        return "high"
    return "medium"


def normalize_time_estimate(text: Optional[str], service: str) -> str:
    estimate = text or DEFAULT_TIME_ESTIMATE
    if service == "diy" and "minutes" not in estimate.lower():
        return DIY_TIME_ESTIMATE
    return estimate


def _to_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def _format_amount(value: float) -> str:
    return f"£{int(value)}" if float(value).is_integer() else f"£{value:.2f}"


def _format_range(low: float, high: float) -> str:
    if low == high:
        return _format_amount(low)
    return f"{_format_amount(low)}-{_format_amount(high)}"


def extract_diy_cost(text: Optional[str]) -> str:
    """Pick the DIY part of a cost line, e.g. ``DIY: £10-£30 (parts)``."""
    if not text:
        return DEFAULT_DIY_COST

    match = _DIY_COST_RE.search(text)
    if match:
        low = _to_number(match.group(1))
        high = _to_number(match.group(2)) if match.group(2) else low
        return _format_range(min(low, high), max(low, high))

    match = _ZERO_RANGE_RE.search(text)
    if match:
        return _format_range(0, _to_number(match.group(1)))

    return DEFAULT_DIY_COST


def cap_professional_cost(text: Optional[str]) -> str:
    """Clamp a quoted cost into the £80-£149 professional call-out band.

    A ``Professional: £A-£B`` part of the line wins over any earlier figure.
    A single figure is treated as the lower bound of the range.
    """
    if not text:
        return DEFAULT_PROFESSIONAL_COST

    def clamp(value: float) -> float:
        return min(max(value, PROFESSIONAL_COST_FLOOR), PROFESSIONAL_COST_CEILING)

    match = _PROFESSIONAL_COST_RE.search(text)
    if match:
        low = clamp(_to_number(match.group(1)))
        if match.group(2):
            high = clamp(_to_number(match.group(2)))
            return _format_range(min(low, high), max(low, high))
        return _format_range(low, PROFESSIONAL_COST_CEILING)

    match = _COST_RANGE_RE.search(text)
    if match:
        low = clamp(_to_number(match.group(1)))
        high = clamp(_to_number(match.group(2)))
        return _format_range(min(low, high), max(low, high))

    match = _COST_SINGLE_RE.search(text)
    if match:
        low = clamp(_to_number(match.group(1)))
        return _format_range(low, PROFESSIONAL_COST_CEILING)

    return DEFAULT_PROFESSIONAL_COST


def normalize_cost(text: Optional[str], service: str) -> str:
    if service == "diy":
        return extract_diy_cost(text)
    return cap_professional_cost(text)


def parse_skills(text: Optional[str], service: str) -> List[str]:
    skills = [
        s.strip(" .")
        for s in (text or "").split(",")
        if s.strip(" .") and s.strip(" .").lower() not in ("n/a", "none")
    ]
    if not skills:
        skills = DEFAULT_DIY_SKILLS if service == "diy" else DEFAULT_PROFESSIONAL_SKILLS
    return skills[:MAX_SKILLS]


def build_service_reason(
    text: Optional[str], appliance: str, brand: str, service: str
) -> str:
    if text and len(text) >= MIN_SERVICE_REASON_LENGTH:
        return text

    subject = " ".join(part for part in (brand, appliance) if part) or "appliance"
    if service == "diy":
        return (
            f"This {subject} fault looks like something you can safely fix "
            f"yourself with basic tools and care."
        )
    if service == "warranty":
        return (
            f"This {subject} fault may be covered by the manufacturer's "
            f"warranty, so check your cover before paying for a repair."
        )
    return (
        f"This {subject} fault needs a qualified engineer to diagnose and "
        f"repair it safely."
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def parse_diagnosis_response(
    raw_text: str,
    appliance: str,
    brand: str,
    problem: str,
    error_code: Optional[str],
) -> DiagnosisResult:
    """Convert the model's reply into a schema-valid :class:`DiagnosisResult`.

    Args:
        raw_text: Model output, possibly empty or malformed.
        appliance: Normalised appliance type, used in generated text.
        brand: Appliance brand, used in generated text.
        problem: Sanitised problem description (kept for signature parity
            with the fallback generator).
        error_code: Detected error code; the meaning section is only kept
            when one was detected.
    """
    raw_text = raw_text or ""

    meaning = extract_scalar(raw_text, "error_code_meaning")
    if not error_code or (meaning and "N/A" in meaning):
        meaning = None

    service = classify_service(extract_scalar(raw_text, "service_type"))

    causes = extract_list(raw_text, "possible_causes") or DEFAULT_CAUSES
    diy = extract_list(raw_text, "diy") or DEFAULT_DIY_STEPS
    professional = (
        extract_list(raw_text, "professional") or DEFAULT_PROFESSIONAL_STEPS
    )
    safety = extract_list(raw_text, "safety_warnings") or DEFAULT_SAFETY_WARNINGS

    return DiagnosisResult(
        error_code_meaning=meaning,
        possible_causes=list(causes[:MAX_CAUSES]),
        recommendations=Recommendations(
            diy=list(diy[:MAX_DIY_STEPS]),
            professional=list(professional[:MAX_PROFESSIONAL_STEPS]),
        ),
        urgency=classify_urgency(extract_scalar(raw_text, "urgency")),
        estimated_cost=normalize_cost(
            extract_scalar(raw_text, "estimated_cost"), service
        ),
        difficulty=classify_difficulty(extract_scalar(raw_text, "difficulty")),
        recommended_service=service,
        service_reason=build_service_reason(
            extract_scalar(raw_text, "service_reason"), appliance, brand, service
        ),
        skills_required=parse_skills(
            extract_scalar(raw_text, "skills_required"), service
        ),
        time_estimate=normalize_time_estimate(
            extract_scalar(raw_text, "time_estimate"), service
        ),
        safety_warnings=list(safety[:MAX_SAFETY_WARNINGS]),
    )
