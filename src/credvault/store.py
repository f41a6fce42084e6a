"""Encrypted credential store.

The store keeps a SecretBundle in a single envelope file protected by the
master password:

    master password + salt --PBKDF2--> key
    bundle JSON --AES-256-GCM(key, nonce)--> ciphertext, tag
    [salt | nonce | tag | ciphertext] --> credentials.enc

Every save uses a new salt and a new nonce and replaces the file
atomically, so concurrent readers see either the previous envelope or the
new one, never a partial write.

Security Note:
    The master password and derived keys are never logged, persisted or
    placed in exception messages. Keys are zeroized right after use.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from .config import MIN_MASTER_PASSWORD_LENGTH, StoreSettings
from .exceptions import (
    InvalidParameterError,
    MalformedEnvelopeError,
    StoreError,
    StoreExistsError,
    StoreNotFoundError,
    WeakMasterPasswordError,
)
from .models import SERVICE_SLOTS, SecretBundle, get_slot
from .parsing import Envelope, parse_envelope
from .security import crypto, kdf

logger = logging.getLogger(__name__)

FILE_MODE = 0o600
DIR_MODE = 0o700


def _require_password(master_password: str) -> None:
    if not isinstance(master_password, str) or not master_password:
        raise InvalidParameterError("Master password is required")


def check_master_password(master_password: str) -> None:
    """Enforce the master password policy for newly written envelopes.

    Raises:
        InvalidParameterError: If the password is empty or not a string
        WeakMasterPasswordError: If the password is shorter than 12 characters
    """
    _require_password(master_password)
    if len(master_password) < MIN_MASTER_PASSWORD_LENGTH:
        raise WeakMasterPasswordError(MIN_MASTER_PASSWORD_LENGTH)


def _check_envelope_sizes(envelope: Envelope) -> None:
    """Reject envelopes whose sections cannot belong to our cipher suite."""
    if len(envelope.salt) < kdf.MIN_SALT_LENGTH:
        raise MalformedEnvelopeError(f"Envelope salt too short: {len(envelope.salt)} bytes")
    if len(envelope.nonce) < crypto.MIN_NONCE_SIZE:
        raise MalformedEnvelopeError(f"Envelope nonce too short: {len(envelope.nonce)} bytes")
    if len(envelope.tag) != crypto.TAG_SIZE:
        raise MalformedEnvelopeError(
            f"Envelope tag must be {crypto.TAG_SIZE} bytes, got {len(envelope.tag)}"
        )


class CredentialStore:
    """Master-password protected store for service secrets.

    Example usage:
        store = CredentialStore("/var/server/credentials/credentials.enc")

        # First start generates secrets, later starts load them
        bundle = store.initialize_or_load(master_password)

        # Hand the secrets to dependent services
        env = {**os.environ, **store.export_environment(bundle)}
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize store.

        Args:
            path: Location of the envelope file
        """
        self._path = Path(path)

    @classmethod
    def from_settings(cls, settings: StoreSettings | None = None) -> CredentialStore:
        """Create a store from settings (read from the environment if omitted)."""
        settings = settings or StoreSettings.from_env()
        return cls(settings.path)

    @property
    def path(self) -> Path:
        """Get the envelope file path."""
        return self._path

    @property
    def exists(self) -> bool:
        """Whether an envelope file is present."""
        return self._path.is_file()

    # --- Loading ---

    def load(self, master_password: str) -> SecretBundle | None:
        """Decrypt the stored bundle.

        Args:
            master_password: Master password

        Returns:
            The decrypted bundle, or None if no envelope exists

        Raises:
            InvalidParameterError: If master_password is empty
            MalformedEnvelopeError: If the file is structurally invalid
            AuthenticationError: If the password is wrong or the file was modified
            StoreError: If the store path is a directory
        """
        _require_password(master_password)

        try:
            data = self._path.read_bytes()
        except FileNotFoundError:
            logger.debug("No credential store at %s", self._path)
            return None
        except IsADirectoryError:
            raise StoreError(f"Credential store path is a directory: {self._path}") from None

        envelope = parse_envelope(data)
        _check_envelope_sizes(envelope)

        with kdf.derive_key(master_password, envelope.salt) as key:
            plaintext = crypto.decrypt(envelope.ciphertext, key.data, envelope.nonce, envelope.tag)

        bundle = SecretBundle.from_json(plaintext)
        logger.debug("Loaded credential store from %s", self._path)
        return bundle

    def initialize_or_load(self, master_password: str) -> SecretBundle:
        """Load the bundle, generating and saving a new one if none exists.

        An existing envelope is never overwritten.

        Args:
            master_password: Master password

        Returns:
            The loaded or newly generated bundle
        """
        bundle = self.load(master_password)
        if bundle is not None:
            return bundle

        check_master_password(master_password)
        logger.info("Generating new service credentials")
        bundle = SecretBundle.generate(self.generate_secret)
        self.save(bundle, master_password)
        logger.info("New credentials generated and saved to %s", self._path)
        return bundle

    # --- Saving ---

    def save(self, bundle: SecretBundle, master_password: str) -> None:
        """Encrypt the bundle with a fresh salt and nonce and replace the file.

        Args:
            bundle: Bundle to persist
            master_password: Master password (at least 12 characters)

        Raises:
            InvalidParameterError: If master_password is empty
            WeakMasterPasswordError: If master_password is too short
        """
        check_master_password(master_password)

        salt = kdf.generate_salt()
        with kdf.derive_key(master_password, salt) as key:
            payload = crypto.encrypt(bundle.to_json(), key.data)

        envelope = Envelope(
            salt=salt,
            nonce=payload.nonce,
            tag=payload.tag,
            ciphertext=payload.ciphertext,
        )
        self._write_atomic(envelope.to_bytes())
        logger.info("Saved credential store to %s", self._path)

    def _write_atomic(self, data: bytes) -> None:
        """Write data to a temp file beside the target and rename it into place."""
        directory = self._path.parent
        directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=directory, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        if os.name == "posix":
            dir_fd = os.open(directory, os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)

    # --- Lifecycle ---

    def _load_existing(self, master_password: str) -> SecretBundle:
        bundle = self.load(master_password)
        if bundle is None:
            raise StoreNotFoundError(self._path)
        return bundle

    def rotate(
        self,
        master_password: str,
        services: Iterable[str] | None = None,
    ) -> SecretBundle:
        """Regenerate service secrets and save the bundle.

        Args:
            master_password: Master password
            services: Services to rotate (all known services if None)

        Returns:
            The updated bundle

        Raises:
            StoreNotFoundError: If no envelope exists
            InvalidParameterError: If services is empty or names an unknown service
        """
        names = [slot.service for slot in SERVICE_SLOTS] if services is None else list(services)
        if not names:
            raise InvalidParameterError("No services selected for rotation")
        for name in names:
            get_slot(name)

        bundle = self._load_existing(master_password)
        for name in names:
            bundle.regenerate(name, self.generate_secret)
        self.save(bundle, master_password)
        logger.info("Rotated secrets for: %s", ", ".join(names))
        return bundle

    def change_master_password(self, old_password: str, new_password: str) -> SecretBundle:
        """Re-encrypt the bundle under a new master password.

        Raises:
            StoreNotFoundError: If no envelope exists
            AuthenticationError: If old_password is wrong
            WeakMasterPasswordError: If new_password is too short
        """
        check_master_password(new_password)
        bundle = self._load_existing(old_password)
        self.save(bundle, new_password)
        logger.info("Master password changed for %s", self._path)
        return bundle

    def migrate(
        self,
        master_password: str,
        legacy: Mapping[str, str | None],
        *,
        overwrite: bool = False,
    ) -> SecretBundle:
        """Fold legacy plaintext secrets into a new encrypted bundle.

        Args:
            master_password: Master password for the new envelope
            legacy: Plaintext secrets keyed by environment variable name
            overwrite: Replace an existing envelope

        Returns:
            The saved bundle

        Raises:
            StoreExistsError: If an envelope exists and overwrite is False
        """
        check_master_password(master_password)
        if self.exists and not overwrite:
            raise StoreExistsError(self._path)

        bundle, generated = SecretBundle.from_legacy(legacy, self.generate_secret)
        for service in generated:
            logger.info("Generated new %s secret", get_slot(service).label)
        self.save(bundle, master_password)
        return bundle

    # --- Export ---

    @staticmethod
    def export_environment(bundle: SecretBundle) -> Mapping[str, str]:
        """Flatten the bundle into the variables consumed by dependent services.

        Returns:
            Read-only mapping such as {"POSTGRES_PASSWORD": ..., "SESSION_SECRET": ...}
        """
        return MappingProxyType({slot.env_var: value for slot, value in bundle.iter_secrets()})

    @staticmethod
    def generate_secret(length: int) -> str:
        """Generate a URL-safe random secret of exactly ``length`` characters."""
        return crypto.generate_secret(length)

    # --- Async wrappers ---

    async def aload(self, master_password: str) -> SecretBundle | None:
        """Run load() in a worker thread."""
        return await asyncio.to_thread(self.load, master_password)

    async def ainitialize_or_load(self, master_password: str) -> SecretBundle:
        """Run initialize_or_load() in a worker thread."""
        return await asyncio.to_thread(self.initialize_or_load, master_password)

    async def asave(self, bundle: SecretBundle, master_password: str) -> None:
        """Run save() in a worker thread."""
        await asyncio.to_thread(self.save, bundle, master_password)

    def __repr__(self) -> str:
        return f"CredentialStore({str(self._path)!r})"
