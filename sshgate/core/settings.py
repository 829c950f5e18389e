"""
Runtime settings for forked SSH invocations and tunnels
"""
from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any

from .constants import (
    DEFAULT_SSH_BINARY,
    DEFAULT_HOST_KEY_POLICY,
    HOST_KEY_POLICIES,
    DEFAULT_TUNNEL_BIND_HOST,
    DEFAULT_MAX_TUNNELS,
)
from .exceptions import ConfigError


@dataclass
class SSHSettings:
    """SSH settings"""
    ssh_binary: str = DEFAULT_SSH_BINARY
    strict_host_key_checking: str = DEFAULT_HOST_KEY_POLICY
    known_hosts_file: Optional[str] = None
    temp_dir: Optional[str] = None
    default_timeout: Optional[float] = None
    tunnel_bind_host: str = DEFAULT_TUNNEL_BIND_HOST
    max_tunnels: int = DEFAULT_MAX_TUNNELS
    
    def validate(self) -> None:
        """Validate settings"""
        for name in ("ssh_binary", "strict_host_key_checking", "tunnel_bind_host"):
            _check_type(name, getattr(self, name), (str,))
        for name in ("known_hosts_file", "temp_dir"):
            _check_type(name, getattr(self, name), (str,), optional=True)
        _check_type("default_timeout", self.default_timeout, (int, float), optional=True)
        _check_type("max_tunnels", self.max_tunnels, (int,))
        
        if not self.ssh_binary:
            raise ConfigError("ssh_binary must not be empty")
        if self.strict_host_key_checking not in HOST_KEY_POLICIES:
            raise ConfigError(
                f"Invalid strict_host_key_checking: {self.strict_host_key_checking}, "
                f"must be one of {', '.join(HOST_KEY_POLICIES)}"
            )
        if self.max_tunnels < 0:
            raise ConfigError(f"Invalid max_tunnels: {self.max_tunnels}")
    
    @property
    def host_key_checking_disabled(self) -> bool:
        return self.strict_host_key_checking == "no"
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SSHSettings":
        """Create from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        settings = cls(**{k: v for k, v in data.items() if k in known and v is not None})
        settings.validate()
        return settings


def _check_type(name: str, value: Any, types: tuple, optional: bool = False) -> None:
    if value is None and optional:
        return
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) or not isinstance(value, types):
        expected = " or ".join(t.__name__ for t in types)
        raise ConfigError(
            f"Invalid {name}: {value!r} (expected {expected}, got {type(value).__name__})"
        )
