"""
Provider API key storage and resolution.

Keys are stored per (user, provider). The server encrypts keys it
receives in plaintext (``v1:``); keys the client already encrypted
(``v2:``) are stored untouched and can only be used when the client
sends the decrypted key along with its request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings

from ai.constants import PROVIDER_CONFIG
from ai.crypto import decrypt_api_key, encrypt_api_key, is_client_encrypted
from ai.exceptions import ClientDecryptionRequiredError, CredentialNotFoundError
from ai.models import UserLLMKey
from core.exceptions import ValidationError
from core.services import BaseService

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser


class CredentialResolver(BaseService):
    """Store and resolve users' provider API keys."""

    @classmethod
    def resolve(
        cls,
        owner: AbstractBaseUser,
        provider: str,
        client_api_key: str | None = None,
    ) -> str:
        """
        Return the plaintext API key the owner stored for a provider.

        Args:
            owner: Thread owner whose key pays for the generation
            provider: ModelProvider value
            client_api_key: Plaintext key decrypted by the client, used
                only when the stored key is client-encrypted

        Raises:
            CredentialNotFoundError: No key stored for the provider
            ClientDecryptionRequiredError: Stored key is ``v2:`` and no
                plaintext was supplied
            CredentialDecryptionError: Stored ``v1:`` key cannot be decrypted
        """
        record = (
            UserLLMKey.objects.filter(user=owner, provider=provider)
            .only("encrypted_key")
            .first()
        )
        if record is None or not record.encrypted_key:
            raise CredentialNotFoundError(
                f"No API Key found for {provider}",
                details={"provider": provider},
            )

        if is_client_encrypted(record.encrypted_key):
            if client_api_key and client_api_key.strip():
                return client_api_key.strip()
            raise ClientDecryptionRequiredError(
                f"The {provider} API key is encrypted on your device. "
                "Unlock it in the client and retry.",
                details={"provider": provider},
            )

        return decrypt_api_key(record.encrypted_key, settings.AI_ENCRYPTION_SECRET)

    @classmethod
    def store(
        cls,
        user: AbstractBaseUser,
        provider: str,
        api_key: str,
        last4: str | None = None,
    ) -> UserLLMKey:
        """
        Save a user's key for a provider, replacing any previous one.

        Plaintext keys are encrypted to ``v1:`` and their last four
        characters are kept for display. Client-encrypted ``v2:`` payloads
        are stored as given, with the ``last4`` the client reports.

        Raises:
            ValidationError: Blank key
            CredentialError: Server secret missing for a plaintext key
        """
        api_key = (api_key or "").strip()
        if not api_key:
            raise ValidationError(
                "API key is required",
                details={"api_key": ["This field is required."]},
            )

        if is_client_encrypted(api_key):
            encrypted_key = api_key
            key_last4 = (last4 or "").strip()[-4:] or PROVIDER_CONFIG.UNKNOWN_KEY_LAST4
        else:
            encrypted_key = encrypt_api_key(api_key, settings.AI_ENCRYPTION_SECRET)
            key_last4 = api_key[-4:]

        record, created = UserLLMKey.objects.update_or_create(
            user=user,
            provider=provider,
            defaults={"encrypted_key": encrypted_key, "key_last4": key_last4},
        )

        cls.get_logger().info(
            "Stored provider API key",
            extra={
                "user_id": user.pk,
                "provider": provider,
                "key_created": created,
                "client_encrypted": is_client_encrypted(encrypted_key),
            },
        )
        return record
