"""Store location and master password configuration.

Settings are read from the process environment:

    CREDENTIALS_DIR   directory holding the envelope (default /var/server/credentials)
    CREDENTIALS_FILE  full envelope path, overrides CREDENTIALS_DIR
    MASTER_PASSWORD   master password used by non-interactive commands

Security Note:
    The master password is returned to the caller and never stored on the
    settings object, so it cannot leak through repr() or logging.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CREDENTIALS_DIR = Path("/var/server/credentials")
CREDENTIALS_FILENAME = "credentials.enc"

CREDENTIALS_DIR_ENV = "CREDENTIALS_DIR"
CREDENTIALS_FILE_ENV = "CREDENTIALS_FILE"
MASTER_PASSWORD_ENV = "MASTER_PASSWORD"

MIN_MASTER_PASSWORD_LENGTH = 12


@dataclass(frozen=True, slots=True)
class StoreSettings:
    """Where the credential envelope lives.

    Attributes:
        credentials_dir: Directory holding the envelope file
        filename: Envelope file name inside credentials_dir
    """

    credentials_dir: Path = DEFAULT_CREDENTIALS_DIR
    filename: str = CREDENTIALS_FILENAME

    @property
    def path(self) -> Path:
        """Full path of the envelope file."""
        return self.credentials_dir / self.filename

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StoreSettings:
        """Create settings from environment variables.

        Args:
            environ: Mapping to read from (os.environ if omitted)
        """
        env = os.environ if environ is None else environ
        explicit_file = env.get(CREDENTIALS_FILE_ENV)
        if explicit_file:
            path = Path(explicit_file).expanduser()
            return cls(credentials_dir=path.parent, filename=path.name)
        directory = env.get(CREDENTIALS_DIR_ENV)
        if directory:
            return cls(credentials_dir=Path(directory).expanduser())
        return cls()


def read_master_password(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the master password from the environment, or None if unset."""
    env = os.environ if environ is None else environ
    return env.get(MASTER_PASSWORD_ENV) or None
