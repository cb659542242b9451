"""Input validation and sanitisation for diagnosis requests."""

import re
from dataclasses import dataclass
from typing import List

import structlog

from app.diagnosis.errors import InputValidationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class SanitizedInput:
    """Cleaned request fields handed to the rest of the pipeline."""
    appliance: str
    brand: str
    problem: str
    email: str


class InputSanitizer:
    """Validates and strips unsafe content from free-text fields."""

    # RFC 5322 simplified
    EMAIL_PATTERN = (
        r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9]"
        r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
        r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
    )
    MAX_EMAIL_LENGTH = 255

    # Patterns rejected at validation time
    SUSPICIOUS_PATTERNS = (
        r"<script[\s\S]*?</script>",
        r"<iframe[\s\S]*?>",
        r"javascript:",
        r"\bon\w+\s*=",
    )

    # Patterns removed at sanitisation time
    DANGEROUS_PATTERNS = (
        r"<script[\s\S]*?</script>",
        r"<style[\s\S]*?</style>",
        r"<iframe[\s\S]*?>",
        r"<object[\s\S]*?>",
        r"<embed[\s\S]*?>",
        r"javascript:",
        r"\bon\w+\s*=",
    )
    TAG_PATTERN = r"<[^>]+>"

    # "Washing Machine Spares" -> "Washing Machine"
    APPLIANCE_NOISE_PATTERN = r"(?:\s+(?:spares?|parts?|accessories))+\s*$"

    # (min, max) lengths after trimming
    APPLIANCE_LIMITS = (2, 50)
    BRAND_LIMITS = (2, 50)
    PROBLEM_LIMITS = (10, 500)

    @staticmethod
    def validate_email(email: str) -> List[str]:
        errors: List[str] = []
        if not email or not isinstance(email, str) or not email.strip():
            return ["Email is required"]
        trimmed = email.strip()
        if len(trimmed) > InputSanitizer.MAX_EMAIL_LENGTH:
            errors.append(
                f"Email is too long (max {InputSanitizer.MAX_EMAIL_LENGTH} characters)"
            )
        if not re.match(InputSanitizer.EMAIL_PATTERN, trimmed):
            errors.append("Invalid email format")
        return errors

    @staticmethod
    def validate_text_field(
        text: str, field_name: str, min_length: int, max_length: int
    ) -> List[str]:
        if not text or not isinstance(text, str) or not text.strip():
            return [f"{field_name} is required"]

        errors: List[str] = []
        trimmed = text.strip()
        if len(trimmed) < min_length:
            errors.append(f"{field_name} is too short (min {min_length} characters)")
        if len(trimmed) > max_length:
            errors.append(f"{field_name} is too long (max {max_length} characters)")

        for pattern in InputSanitizer.SUSPICIOUS_PATTERNS:
            if re.search(pattern, trimmed, flags=re.IGNORECASE):
                errors.append(f"{field_name} contains potentially unsafe content")
                break
        return errors

    @staticmethod
    def validate(appliance: str, brand: str, problem: str, email: str) -> None:
        """Raise :class:`InputValidationError` listing every failed rule."""
        errors = (
            InputSanitizer.validate_email(email)
            + InputSanitizer.validate_text_field(
                appliance, "Appliance", *InputSanitizer.APPLIANCE_LIMITS
            )
            + InputSanitizer.validate_text_field(
                brand, "Brand", *InputSanitizer.BRAND_LIMITS
            )
            + InputSanitizer.validate_text_field(
                problem, "Problem description", *InputSanitizer.PROBLEM_LIMITS
            )
        )
        if errors:
            logger.info("diagnosis_input_rejected", error_count=len(errors))
            raise InputValidationError(errors)

    @staticmethod
    def sanitize_text(
        text: str, max_length: int = 1000, allow_newlines: bool = True
    ) -> str:
        """Strip tags, script handlers and dangerous URLs; enforce length."""
        if not text:
            return ""

        cleaned = text.strip()
        for pattern in InputSanitizer.DANGEROUS_PATTERNS:
            cleaned = re.sub(pattern, "", cleaned, flags=re.IGNORECASE)
        cleaned = re.sub(InputSanitizer.TAG_PATTERN, "", cleaned)

        if not allow_newlines:
            cleaned = re.sub(r"[\r\n]+", " ", cleaned)

        cleaned = cleaned.strip()
        if len(cleaned) > max_length:
            cleaned = cleaned[:max_length]
        return cleaned

    @staticmethod
    def normalize_appliance(appliance: str) -> str:
        """Drop trailing catalogue noise words from an appliance name."""
        cleaned = re.sub(
            InputSanitizer.APPLIANCE_NOISE_PATTERN, "", appliance, flags=re.IGNORECASE
        ).strip()
        # Never normalise a name away entirely ("Spares" on its own)
        return cleaned or appliance.strip()

    @staticmethod
    def normalize_identity(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def sanitize(
        appliance: str, brand: str, problem: str, email: str
    ) -> SanitizedInput:
        appliance_clean = InputSanitizer.sanitize_text(
            appliance, max_length=InputSanitizer.APPLIANCE_LIMITS[1], allow_newlines=False
        )
        return SanitizedInput(
            appliance=InputSanitizer.normalize_appliance(appliance_clean),
            brand=InputSanitizer.sanitize_text(
                brand, max_length=InputSanitizer.BRAND_LIMITS[1], allow_newlines=False
            ),
            problem=InputSanitizer.sanitize_text(
                problem, max_length=InputSanitizer.PROBLEM_LIMITS[1]
            ),
            email=InputSanitizer.normalize_identity(email),
        )


def mask_email(email: str) -> str:
    """Log-safe form of an email address: ``j***@example.com``."""
    local, sep, domain = (email or "").partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"
