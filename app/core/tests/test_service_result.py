"""
Tests for ServiceResult and BaseService.
"""

from __future__ import annotations

import pytest
from django.contrib.auth import get_user_model
from django.db import IntegrityError

from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success_is_truthy(self):
        result = ServiceResult.success({"id": 1})

        assert result
        assert result.data == {"id": 1}
        assert result.error is None

    def test_failure_is_falsy(self):
        result = ServiceResult.failure("Thread is archived", error_code="THREAD_ARCHIVED")

        assert not result
        assert result.data is None
        assert result.error_code == "THREAD_ARCHIVED"

    def test_success_response(self):
        assert ServiceResult.success(3).to_response() == {"success": True, "data": 3}

    def test_failure_response_omits_empty_fields(self):
        assert ServiceResult.failure("Nope").to_response() == {"success": False, "error": "Nope"}

    def test_failure_response_with_field_errors(self):
        result = ServiceResult.failure(
            "Invalid",
            error_code="VALIDATION_ERROR",
            errors={"content": ["Message content cannot be empty."]},
        )

        assert result.to_response() == {
            "success": False,
            "error": "Invalid",
            "error_code": "VALIDATION_ERROR",
            "errors": {"content": ["Message content cannot be empty."]},
        }


class ExampleService(BaseService):
    pass


class TestBaseService:
    def test_logger_named_after_service(self):
        assert ExampleService.get_logger().name == f"{__name__}.ExampleService"

    @pytest.mark.django_db
    def test_atomic_rolls_back_inner_block_only(self):
        User = get_user_model()
        User.objects.create(username="kept")

        with pytest.raises(IntegrityError), ExampleService.atomic():
            User.objects.create(username="kept")

        assert User.objects.filter(username="kept").count() == 1
