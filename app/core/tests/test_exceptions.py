"""
Tests for the application exception hierarchy.
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class TestBaseApplicationError:
    def test_default_error_code(self):
        assert BaseApplicationError("boom").error_code == "APPLICATION_ERROR"
        assert ValidationError("bad").error_code == "VALIDATION_ERROR"
        assert NotFoundError("gone").error_code == "NOT_FOUND"
        assert ExternalServiceError("down").error_code == "EXTERNAL_SERVICE_ERROR"

    def test_explicit_error_code_wins(self):
        error = ExternalServiceError("down", error_code="PROVIDER_HTTP_ERROR")

        assert error.error_code == "PROVIDER_HTTP_ERROR"

    def test_to_dict_without_details(self):
        assert NotFoundError("gone").to_dict() == {"error": "gone", "error_code": "NOT_FOUND"}

    def test_to_dict_with_details(self):
        error = ValidationError("bad", details={"api_key": ["This field is required."]})

        assert error.to_dict() == {
            "error": "bad",
            "error_code": "VALIDATION_ERROR",
            "details": {"api_key": ["This field is required."]},
        }

    def test_str_includes_code(self):
        assert str(NotFoundError("gone")) == "[NOT_FOUND] gone"
