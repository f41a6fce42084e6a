"""credvault - master-password protected credential store for server services.

All service secrets (database, cache, mail, webmail, admin panel, session
signing) live in one encrypted file. The operator remembers a single master
password; everything else is generated and decrypted on demand.

- PBKDF2-HMAC-SHA256 key derivation with a fresh salt per write
- AES-256-GCM authenticated encryption with a fresh nonce per write
- Atomic file replacement so readers never see a partial envelope
- Argon2id hashing for user account passwords

Example:
    from credvault import CredentialStore

    store = CredentialStore("/var/server/credentials/credentials.enc")
    bundle = store.initialize_or_load(master_password)
    env = store.export_environment(bundle)
    print(env["POSTGRES_PASSWORD"])
"""

__version__ = "0.1.0"

from .config import StoreSettings
from .exceptions import (
    AuthenticationError,
    CredentialError,
    CredVaultError,
    CryptoError,
    FormatError,
    InvalidBundleError,
    InvalidHashError,
    InvalidParameterError,
    MalformedEnvelopeError,
    StoreError,
    StoreExistsError,
    StoreNotFoundError,
    WeakMasterPasswordError,
)
from .models import SERVICE_SLOTS, PasswordRecord, SecretBundle, ServiceSlot, SessionRecord
from .parsing import Envelope
from .security import PasswordHashConfig, hash_password, verify_password
from .store import CredentialStore

__all__ = [
    # Core classes
    "CredentialStore",
    "Envelope",
    "PasswordHashConfig",
    "PasswordRecord",
    "SecretBundle",
    "ServiceSlot",
    "SessionRecord",
    "StoreSettings",
    "SERVICE_SLOTS",
    # Account passwords
    "hash_password",
    "verify_password",
    # Exceptions
    "CredVaultError",
    "InvalidParameterError",
    "FormatError",
    "MalformedEnvelopeError",
    "InvalidBundleError",
    "CryptoError",
    "AuthenticationError",
    "InvalidHashError",
    "CredentialError",
    "WeakMasterPasswordError",
    "StoreError",
    "StoreNotFoundError",
    "StoreExistsError",
]
