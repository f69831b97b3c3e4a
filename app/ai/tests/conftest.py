"""
Test configuration and fixtures for AI tests.

This module provides:
- User fixtures (owner, collaborators, outsider)
- Thread fixtures with stored provider keys
- FakeProvider, patched in place of the real HTTP adapters
- API client helpers for authenticated requests

Usage:
    def test_example(thread, fake_provider, owner_client):
        response = owner_client.post(messages_url(thread.id), {"content": "Hi"})
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from ai.models import MemberPermission, ModelProvider
from ai.providers.base import ProviderVariant
from ai.tests.factories import (
    TEST_ENCRYPTION_SECRET,
    AIThreadFactory,
    AIThreadMemberFactory,
    UserFactory,
    UserLLMKeyFactory,
)

OWNER_API_KEY = "sk-owner-secret-9876"


class FakeProvider:
    """
    In-memory provider recording every call.

    Streams ``deltas`` through on_delta and returns their concatenation,
    or raises ``error`` after running ``before_reply`` (if set).
    """

    def __init__(self, deltas=("Hello", " there"), error=None, variant=ProviderVariant.STREAMING):
        self.deltas = list(deltas)
        self.error = error
        self.variant = variant
        self.attributes_speakers = variant is ProviderVariant.STREAMING
        self.before_reply = None
        self.calls = []

    def generate(self, messages, model, system_prompt, api_key, on_delta):
        self.calls.append(
            {
                "messages": list(messages),
                "model": model,
                "system_prompt": system_prompt,
                "api_key": api_key,
            }
        )
        if self.before_reply is not None:
            self.before_reply()
        if self.error is not None:
            raise self.error
        if self.variant is ProviderVariant.STREAMING:
            for delta in self.deltas:
                on_delta(delta)
        return "".join(self.deltas)


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def ai_settings(settings):
    """Known encryption secret, auto-drain off."""
    settings.AI_ENCRYPTION_SECRET = TEST_ENCRYPTION_SECRET
    settings.AI_AUTO_DRAIN_ON_COMPLETE = False
    settings.AI_STALE_RUN_THRESHOLD_SECONDS = 120
    return settings


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def owner(db):
    """Thread owner."""
    return UserFactory(first_name="Ada", last_name="Lovelace")


@pytest.fixture
def collaborator(db):
    """User with INTERVENE permission on ``thread``."""
    return UserFactory(first_name="Grace", last_name="Hopper")


@pytest.fixture
def viewer(db):
    """User with VIEW permission on ``thread``."""
    return UserFactory()


@pytest.fixture
def outsider(db):
    """User with no access to ``thread``."""
    return UserFactory()


# =============================================================================
# Thread Fixtures
# =============================================================================


@pytest.fixture
def owner_key(db, owner):
    """Server-encrypted OpenAI key of the owner."""
    return UserLLMKeyFactory(user=owner, provider=ModelProvider.OPENAI, plaintext=OWNER_API_KEY)


@pytest.fixture
def thread(db, owner, owner_key, collaborator, viewer):
    """OpenAI thread with one collaborator and one viewer."""
    thread = AIThreadFactory(owner=owner, model="gpt-4o")
    AIThreadMemberFactory(thread=thread, user=collaborator, permission=MemberPermission.INTERVENE)
    AIThreadMemberFactory(thread=thread, user=viewer, permission=MemberPermission.VIEW)
    return thread


@pytest.fixture
def gemini_thread(db, owner):
    """Gemini thread with a stored Google key."""
    UserLLMKeyFactory(user=owner, provider=ModelProvider.GOOGLE, plaintext="gm-key-5555")
    return AIThreadFactory(owner=owner, model="gemini-2.0-flash")


# =============================================================================
# Provider Fixtures
# =============================================================================


@pytest.fixture
def fake_provider(mocker):
    """Replace provider lookup in the orchestrator with a FakeProvider."""
    provider = FakeProvider()
    mocker.patch("ai.services.orchestrator.get_provider", return_value=provider)
    return provider


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, some_user):
            client = authenticated_client_factory(some_user)
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def owner_client(authenticated_client_factory, owner):
    return authenticated_client_factory(owner)


@pytest.fixture
def collaborator_client(authenticated_client_factory, collaborator):
    return authenticated_client_factory(collaborator)


@pytest.fixture
def viewer_client(authenticated_client_factory, viewer):
    return authenticated_client_factory(viewer)


@pytest.fixture
def outsider_client(authenticated_client_factory, outsider):
    return authenticated_client_factory(outsider)
