"""
Ephemeral certificate credentials and their on-disk projection

A credential is written to a private temporary directory for the duration of
one ssh invocation, then deleted. The directory is created by
``tempfile.mkdtemp`` (mode 0700) so no two invocations ever share it.
"""
import os
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from ...core.constants import (
    CREDENTIAL_DIR_PREFIX,
    PRIVATE_KEY_FILENAME,
    CERTIFICATE_FILENAME,
    PRIVATE_KEY_MODE,
    CERTIFICATE_MODE,
)
from ...core.exceptions import CredentialError
from ...core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credential:
    """
    Short-lived key/certificate pair issued for one user session.

    Attributes:
        user_name: Login user on the gateway
        private_key: PEM encoded private key
        certificate: Signed OpenSSH certificate for the key
        remote_host: Compute host behind the gateway
        via_gateway: Host ssh connects to (defaults to remote_host)
        issued_at: UTC time the credential was issued
    """
    user_name: str
    private_key: str = field(repr=False)
    certificate: str = field(repr=False)
    remote_host: str
    via_gateway: Optional[str] = None
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.via_gateway is None:
            object.__setattr__(self, "via_gateway", self.remote_host)

    def time_since_issued(self) -> timedelta:
        return datetime.now(timezone.utc) - self.issued_at

    def formatted_time_since_issued(self) -> str:
        """Elapsed time since issue as ``HH:MM:SS``"""
        total = int(self.time_since_issued().total_seconds())
        hours, rest = divmod(max(total, 0), 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class MaterializedCredential:
    """
    Private key and certificate written to a private directory.

    Use as a context manager; the files are deleted when the block exits,
    whatever the outcome of the block.
    """

    def __init__(self, directory: Path, private_key_file: Path, certificate_file: Path):
        self.directory = directory
        self.private_key_file = private_key_file
        self.certificate_file = certificate_file
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Delete both files, then the directory. Safe to call repeatedly."""
        with self._lock:
            if self._released:
                return
            self._released = True

        _remove_tree(self.directory, (self.private_key_file, self.certificate_file))

    def __enter__(self) -> "MaterializedCredential":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"MaterializedCredential({self.directory}, released={self._released})"


class CredentialMaterializer:
    """Writes credentials to disk with owner-only permissions"""

    def __init__(self, temp_dir: Optional[str] = None):
        """
        Initialize materializer.

        Args:
            temp_dir: Parent directory for credential directories
                (default: the system temporary directory)
        """
        self.temp_dir = temp_dir

    def materialize(self, credential: Credential) -> MaterializedCredential:
        """
        Write ``credential`` to a fresh private directory.

        Args:
            credential: Credential to write

        Returns:
            Handle owning the directory and its two files

        Raises:
            CredentialError: If the directory or a file cannot be written.
                Anything created before the failure is removed first.
        """
        directory: Optional[Path] = None
        key_file: Optional[Path] = None
        cert_file: Optional[Path] = None
        try:
            directory = Path(tempfile.mkdtemp(
                prefix=f"{CREDENTIAL_DIR_PREFIX}{credential.user_name}-",
                dir=self.temp_dir,
            ))
            key_file = directory / PRIVATE_KEY_FILENAME
            cert_file = directory / CERTIFICATE_FILENAME

            _write_private(key_file, credential.private_key, 0o600)
            os.chmod(key_file, PRIVATE_KEY_MODE)
            _write_private(cert_file, credential.certificate, CERTIFICATE_MODE)
        except OSError as e:
            if directory is not None:
                _remove_tree(directory, (key_file, cert_file))
            raise CredentialError(
                f"Failed to materialize credential for {credential.user_name}: {e}"
            ) from e

        logger.debug(f"Materialized credential for {credential.user_name} in {directory}")
        return MaterializedCredential(directory, key_file, cert_file)

    def release(self, handle: MaterializedCredential) -> None:
        """Delete a materialized credential"""
        handle.release()


def _write_private(path: Path, content: str, mode: int) -> None:
    fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, mode)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)


def _remove_tree(directory: Path, files) -> None:
    for path in files:
        if path is None:
            continue
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete credential file {path}: {e}")
    try:
        directory.rmdir()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to delete credential directory {directory}: {e}")
