"""
One-time clinician access keys.

Key patterns:
- Key material comes from the ``secrets`` module (CSPRNG), never ``random``
- Storage is a Protocol, so the service works with any backend
- Redemption failures are expected, so they come back as Result values
- Exhausting display-key retries is exceptional and raises
"""

import secrets
import string
from datetime import UTC, datetime, timedelta
from typing import Protocol

import structlog

from core.config import AccessKeyConfig
from core.domain.models import AccessGrant, AccessToken, as_utc
from core.result import Result

logger = structlog.get_logger(__name__)

DISPLAY_KEY_ALPHABET = string.ascii_uppercase + string.digits
HASH_ALPHABET = "0123456789abcdef"
DISPLAY_KEY_GROUPS = 4
DISPLAY_KEY_GROUP_LENGTH = 4
HASH_LENGTH = 64


def _random_string(length: int, alphabet: str) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_access_key() -> AccessToken:
    """Generate a display key like ``7QK2-M0ZD-A9LX-3RTB`` and a 64-char hex hash."""
    display_key = "-".join(
        _random_string(DISPLAY_KEY_GROUP_LENGTH, DISPLAY_KEY_ALPHABET)
        for _ in range(DISPLAY_KEY_GROUPS)
    )
    opaque_hash = _random_string(HASH_LENGTH, HASH_ALPHABET)
    return AccessToken(display_key=display_key, opaque_hash=opaque_hash)


def normalize_display_key(display_key: str) -> str:
    """Keys are typed by hand, so lookups ignore case and surrounding whitespace."""
    return display_key.strip().upper()


class AccessKeyError(Exception):
    """Base class for access key failures."""


class InvalidAccessKeyError(AccessKeyError):
    """The key was empty or blank."""


class AccessKeyNotFoundError(AccessKeyError):
    """No key with this display value was ever issued."""


class AccessKeyExpiredError(AccessKeyError):
    """The key's validity window has passed."""


class AccessKeyAlreadyUsedError(AccessKeyError):
    """The key was redeemed before."""


class AccessKeyCollisionError(AccessKeyError):
    """No unused display key could be generated."""


class AccessKeyStore(Protocol):
    """
    Persistence for issued access keys.

    ``mark_used`` must be atomic: of two concurrent redemptions of the same
    key, exactly one gets the updated grant back.
    """

    def exists(self, display_key: str) -> bool: ...

    def add(self, grant: AccessGrant) -> None: ...

    def get(self, display_key: str) -> AccessGrant | None: ...

    def mark_used(self, display_key: str, used_at: datetime) -> AccessGrant | None:
        """Return the updated grant, or None if the key is missing or already used."""
        ...

    def list_for_patient(self, patient_id: str, limit: int) -> list[AccessGrant]:
        """Most recently created first."""
        ...


class AccessKeyService:
    """Issues and redeems single-use, expiring access keys."""

    def __init__(self, store: AccessKeyStore, config: AccessKeyConfig | None = None) -> None:
        self.store = store
        self.config = config or AccessKeyConfig()
        self.logger = logger.bind(component="access_key_service")

    def issue(
        self,
        patient_id: str,
        *,
        doctor_name: str | None = None,
        hospital_name: str | None = None,
        purpose: str | None = None,
        now: datetime | None = None,
    ) -> AccessGrant:
        """Create and store a new key for ``patient_id``."""
        created_at = as_utc(now or datetime.now(UTC))

        for attempt in range(1, self.config.max_generation_attempts + 1):
            token = generate_access_key()
            if self.store.exists(token.display_key):
                self.logger.warning("access_key_collision", attempt=attempt)
                continue

            grant = AccessGrant(
                patient_id=patient_id,
                display_key=token.display_key,
                opaque_hash=token.opaque_hash,
                doctor_name=doctor_name,
                hospital_name=hospital_name,
                purpose=purpose,
                created_at=created_at,
                expires_at=created_at + timedelta(hours=self.config.ttl_hours),
            )
            self.store.add(grant)
            self.logger.info(
                "access_key_issued",
                patient_id=patient_id,
                grant_id=str(grant.id),
                expires_at=grant.expires_at.isoformat(),
            )
            return grant

        raise AccessKeyCollisionError(
            f"No unused display key after {self.config.max_generation_attempts} attempts"
        )

    def redeem(
        self, display_key: str, *, now: datetime | None = None
    ) -> Result[AccessGrant, AccessKeyError]:
        """
        Consume a key on behalf of a clinician.

        Checks run in order: unknown key, expired, already used. A key that
        passes is marked used, so a second redemption always fails.
        """
        redeemed_at = as_utc(now or datetime.now(UTC))
        key = normalize_display_key(display_key)

        if not key:
            return Result.err(InvalidAccessKeyError("Please enter an access key"))

        grant = self.store.get(key)
        if grant is None:
            self.logger.info("access_key_rejected", reason="not_found")
            return Result.err(AccessKeyNotFoundError(f"Access key {key} does not exist"))

        if grant.is_expired(redeemed_at):
            self.logger.info("access_key_rejected", reason="expired", grant_id=str(grant.id))
            return Result.err(AccessKeyExpiredError(f"Access key {key} has expired"))

        if grant.is_used:
            self.logger.info("access_key_rejected", reason="already_used", grant_id=str(grant.id))
            return Result.err(AccessKeyAlreadyUsedError(f"Access key {key} was already used"))

        updated = self.store.mark_used(key, redeemed_at)
        if updated is None:
            # Lost a race with another redemption of the same key
            self.logger.info("access_key_rejected", reason="already_used", grant_id=str(grant.id))
            return Result.err(AccessKeyAlreadyUsedError(f"Access key {key} was already used"))

        self.logger.info(
            "access_key_redeemed", grant_id=str(updated.id), patient_id=updated.patient_id
        )
        return Result.ok(updated)

    def recent_keys(self, patient_id: str, limit: int = 5) -> list[AccessGrant]:
        """Keys shown to the patient, newest first."""
        return self.store.list_for_patient(patient_id, limit)
