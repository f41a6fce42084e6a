"""Secret bundle model.

The bundle is a fixed set of service slots, each holding one named secret
field. SERVICE_SLOTS is the single catalog of known slots: it drives
generation, serialization, migration and environment export.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from credvault.exceptions import InvalidBundleError, InvalidParameterError
from credvault.security.crypto import generate_secret


@dataclass(frozen=True, slots=True)
class ServiceSlot:
    """A known secret slot.

    Attributes:
        service: Bundle key of the service (e.g., "postgres")
        field: Name of the secret field inside the service record
        length: Length of generated secrets for this slot
        env_var: Environment variable the secret is exported as
        label: Human-readable service name
    """

    service: str
    field: str
    length: int
    env_var: str
    label: str


SERVICE_SLOTS: tuple[ServiceSlot, ...] = (
    ServiceSlot("postgres", "password", 24, "POSTGRES_PASSWORD", "PostgreSQL"),
    ServiceSlot("redis", "password", 24, "REDIS_PASSWORD", "Redis"),
    ServiceSlot("mail", "password", 24, "MAIL_PASSWORD", "Mail"),
    ServiceSlot("roundcube", "password", 24, "ROUNDCUBE_PASSWORD", "Roundcube"),
    ServiceSlot("admin", "password", 16, "ADMIN_PASSWORD", "Admin panel"),
    ServiceSlot("session", "secret", 32, "SESSION_SECRET", "Session"),
)

SLOTS_BY_SERVICE: dict[str, ServiceSlot] = {slot.service: slot for slot in SERVICE_SLOTS}


def get_slot(service: str) -> ServiceSlot:
    """Look up a slot by service name.

    Raises:
        InvalidParameterError: If the service is not a known slot
    """
    try:
        return SLOTS_BY_SERVICE[service]
    except KeyError:
        known = ", ".join(SLOTS_BY_SERVICE)
        raise InvalidParameterError(f"Unknown service {service!r} (known: {known})") from None


def _check_secret(value: object) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidParameterError("Secret values must be non-empty strings")


@dataclass(frozen=True, slots=True)
class PasswordRecord:
    """Record for services authenticated by a password."""

    password: str = field(repr=False)

    def __post_init__(self) -> None:
        _check_secret(self.password)


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """Record holding the web session signing secret."""

    secret: str = field(repr=False)

    def __post_init__(self) -> None:
        _check_secret(self.secret)


_RECORD_TYPES: dict[str, type[PasswordRecord] | type[SessionRecord]] = {
    "password": PasswordRecord,
    "secret": SessionRecord,
}


def _make_record(slot: ServiceSlot, value: str) -> PasswordRecord | SessionRecord:
    return _RECORD_TYPES[slot.field](value)


def _utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision we store."""
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def encode_time(dt: datetime) -> str:
    """Encode a datetime as ISO-8601 UTC with milliseconds and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def decode_time(value: str) -> datetime:
    """Decode an ISO-8601 timestamp, assuming UTC when no offset is given."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@dataclass(slots=True)
class SecretBundle:
    """Decrypted set of per-service secrets.

    The bundle is the unit of encryption: it is always serialized and
    encrypted as a whole.

    Attributes:
        postgres: PostgreSQL password
        redis: Redis password
        mail: Mail server password
        roundcube: Roundcube webmail database password
        admin: Admin panel password
        session: Web session signing secret
        created_at: When the bundle was first generated
        updated_at: When a secret was last changed (never before created_at)
    """

    postgres: PasswordRecord
    redis: PasswordRecord
    mail: PasswordRecord
    roundcube: PasswordRecord
    admin: PasswordRecord
    session: SessionRecord
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        for slot in SERVICE_SLOTS:
            record = getattr(self, slot.service)
            if not isinstance(record, _RECORD_TYPES[slot.field]):
                raise InvalidParameterError(
                    f"{slot.service} must be a {_RECORD_TYPES[slot.field].__name__}"
                )
        if self.updated_at < self.created_at:
            raise InvalidParameterError("updated_at must not be earlier than created_at")

    # --- Construction ---

    @classmethod
    def generate(
        cls,
        secret_factory: Callable[[int], str] = generate_secret,
    ) -> SecretBundle:
        """Create a bundle with a fresh random secret in every slot.

        Args:
            secret_factory: Callable returning a secret of the given length

        Returns:
            New SecretBundle with created_at == updated_at == now
        """
        now = _utcnow()
        records = {
            slot.service: _make_record(slot, secret_factory(slot.length))
            for slot in SERVICE_SLOTS
        }
        return cls(**records, created_at=now, updated_at=now)

    @classmethod
    def from_legacy(
        cls,
        values: Mapping[str, str | None],
        secret_factory: Callable[[int], str] = generate_secret,
    ) -> tuple[SecretBundle, list[str]]:
        """Build a bundle from plaintext secrets keyed by environment variable.

        Slots whose variable is missing or empty get a generated secret.

        Args:
            values: Mapping such as os.environ (POSTGRES_PASSWORD, ...)
            secret_factory: Callable returning a secret of the given length

        Returns:
            Tuple of (bundle, services whose secret was generated)
        """
        now = _utcnow()
        records: dict[str, Any] = {}
        generated: list[str] = []
        for slot in SERVICE_SLOTS:
            value = values.get(slot.env_var)
            if not value:
                value = secret_factory(slot.length)
                generated.append(slot.service)
            records[slot.service] = _make_record(slot, value)
        return cls(**records, created_at=now, updated_at=now), generated

    # --- Secret access ---

    def get_secret(self, service: str) -> str:
        """Return the secret value for a service."""
        slot = get_slot(service)
        return getattr(getattr(self, slot.service), slot.field)

    def set_secret(self, service: str, value: str) -> None:
        """Replace the secret for a service and bump updated_at."""
        slot = get_slot(service)
        setattr(self, slot.service, _make_record(slot, value))
        self.touch()

    def regenerate(
        self,
        service: str,
        secret_factory: Callable[[int], str] = generate_secret,
    ) -> None:
        """Replace a service secret with a fresh random one."""
        slot = get_slot(service)
        self.set_secret(service, secret_factory(slot.length))

    def touch(self) -> None:
        """Record a mutation. updated_at never moves backwards."""
        self.updated_at = max(_utcnow(), self.updated_at)

    def iter_secrets(self) -> Iterator[tuple[ServiceSlot, str]]:
        """Iterate over (slot, secret) pairs in catalog order."""
        for slot in SERVICE_SLOTS:
            yield slot, getattr(getattr(self, slot.service), slot.field)

    # --- Serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON structure stored inside the envelope."""
        data: dict[str, Any] = {
            "createdAt": encode_time(self.created_at),
            "updatedAt": encode_time(self.updated_at),
        }
        for slot, value in self.iter_secrets():
            data[slot.service] = {slot.field: value}
        return data

    @classmethod
    def from_dict(cls, data: Any) -> SecretBundle:
        """Build a bundle from its JSON structure.

        Unknown top-level keys are ignored.

        Raises:
            InvalidBundleError: If a slot is missing or invalid
        """
        if not isinstance(data, dict):
            raise InvalidBundleError("Secret bundle must be a JSON object")

        records: dict[str, Any] = {}
        for slot in SERVICE_SLOTS:
            section = data.get(slot.service)
            if not isinstance(section, dict):
                raise InvalidBundleError(f"Secret bundle is missing service {slot.service!r}")
            value = section.get(slot.field)
            if not isinstance(value, str) or not value:
                raise InvalidBundleError(
                    f"Secret bundle has no valid {slot.service}.{slot.field}"
                )
            records[slot.service] = _make_record(slot, value)

        try:
            created_at = decode_time(data["createdAt"])
            updated_at = decode_time(data.get("updatedAt", data["createdAt"]))
        except (KeyError, TypeError, ValueError, AttributeError):
            raise InvalidBundleError("Secret bundle has invalid timestamps") from None

        try:
            return cls(**records, created_at=created_at, updated_at=updated_at)
        except InvalidParameterError as e:
            raise InvalidBundleError(str(e)) from None

    def to_json(self) -> bytes:
        """Serialize to compact UTF-8 JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes) -> SecretBundle:
        """Deserialize from UTF-8 JSON.

        Raises:
            InvalidBundleError: If data is not valid JSON or not a valid bundle
        """
        try:
            parsed = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise InvalidBundleError("Decrypted payload is not valid JSON") from None
        return cls.from_dict(parsed)

    def __repr__(self) -> str:
        """Return string representation (hides secrets)."""
        return (
            f"SecretBundle(services={[slot.service for slot in SERVICE_SLOTS]}, "
            f"created_at={self.created_at.isoformat()}, "
            f"updated_at={self.updated_at.isoformat()})"
        )
