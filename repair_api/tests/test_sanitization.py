"""Tests for request validation and sanitisation."""

from __future__ import annotations

import pytest

from app.diagnosis.errors import InputValidationError
from app.diagnosis.sanitization import InputSanitizer, mask_email

VALID = dict(
    appliance="Washing Machine",
    brand="Bosch",
    problem="Machine shows E13 and will not drain",
    email="jane@example.com",
)


class TestValidate:
    def test_valid_request(self):
        InputSanitizer.validate(**VALID)

    def test_collects_every_error(self):
        with pytest.raises(InputValidationError) as exc_info:
            InputSanitizer.validate(
                appliance="W", brand="", problem="broken", email="not-an-email"
            )
        errors = exc_info.value.errors
        assert "Invalid email format" in errors
        assert "Appliance is too short (min 2 characters)" in errors
        assert "Brand is required" in errors
        assert "Problem description is too short (min 10 characters)" in errors

    def test_problem_too_long(self):
        with pytest.raises(InputValidationError) as exc_info:
            InputSanitizer.validate(**{**VALID, "problem": "x" * 501})
        assert exc_info.value.errors == [
            "Problem description is too long (max 500 characters)"
        ]

    @pytest.mark.parametrize(
        "brand",
        ["<script>alert(1)</script>", "javascript:void", "Bosch onclick=x"],
    )
    def test_unsafe_content_rejected(self, brand):
        with pytest.raises(InputValidationError) as exc_info:
            InputSanitizer.validate(**{**VALID, "brand": brand})
        assert "Brand contains potentially unsafe content" in exc_info.value.errors

    def test_words_containing_on_are_allowed(self):
        InputSanitizer.validate(
            **{**VALID, "problem": "Door condition = poor, seal is torn"}
        )

    def test_email_too_long(self):
        errors = InputSanitizer.validate_email("a" * 250 + "@example.com")
        assert "Email is too long (max 255 characters)" in errors


class TestSanitize:
    def test_strips_markup(self):
        cleaned = InputSanitizer.sanitize_text("<b>Bosch</b> <script>alert(1)</script>")
        assert cleaned == "Bosch"

    def test_strips_javascript_urls(self):
        assert InputSanitizer.sanitize_text("javascript:alert(1)") == "alert(1)"

    def test_newlines_collapsed_when_not_allowed(self):
        cleaned = InputSanitizer.sanitize_text("line one\r\nline two", allow_newlines=False)
        assert cleaned == "line one line two"

    def test_truncates(self):
        assert InputSanitizer.sanitize_text("abcdef", max_length=3) == "abc"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Washing Machine Spares", "Washing Machine"),
            ("Fridge Freezer Parts", "Fridge Freezer"),
            ("Cooker Spare Parts", "Cooker"),
            ("Spares", "Spares"),
            ("Dishwasher", "Dishwasher"),
        ],
    )
    def test_normalize_appliance(self, raw, expected):
        assert InputSanitizer.normalize_appliance(raw) == expected

    def test_sanitize_request(self):
        clean = InputSanitizer.sanitize(
            appliance="  Washing Machine Spares ",
            brand="<i>Bosch</i>",
            problem="Shows E13\nand will not drain",
            email=" Jane@Example.COM ",
        )
        assert clean.appliance == "Washing Machine"
        assert clean.brand == "Bosch"
        assert clean.problem == "Shows E13\nand will not drain"
        assert clean.email == "jane@example.com"


def test_mask_email():
    assert mask_email("jane@example.com") == "j***@example.com"
    assert mask_email("not-an-email") == "***"
