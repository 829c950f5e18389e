"""
Configuration loader with priority: env > overrides > TOML > defaults
"""
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional

from ...core.constants import ENV_PREFIX
from ...core.exceptions import ConfigError
from ...core.settings import SSHSettings


class ConfigLoader:
    """Configuration loader with priority support"""
    
    def __init__(self, env_prefix: str = ENV_PREFIX):
        self._env_prefix = env_prefix
    
    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load the ``[ssh]`` table of a TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        
        try:
            data = tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration: {e}") from e
        
        return dict(data.get("ssh", {}))
    
    def load_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config = {}
        
        env_mappings = {
            "SSH_BINARY": "ssh_binary",
            "STRICT_HOST_KEY_CHECKING": "strict_host_key_checking",
            "KNOWN_HOSTS_FILE": "known_hosts_file",
            "TEMP_DIR": "temp_dir",
            "DEFAULT_TIMEOUT": "default_timeout",
            "TUNNEL_BIND_HOST": "tunnel_bind_host",
            "MAX_TUNNELS": "max_tunnels",
        }
        
        for suffix, config_key in env_mappings.items():
            value = os.getenv(self._env_prefix + suffix)
            if value:
                config[config_key] = self._convert_value(config_key, value)
        
        return config
    
    def _convert_value(self, key: str, value: str) -> Any:
        """Convert string value to the type the setting expects"""
        try:
            if key == "max_tunnels":
                return int(value)
            if key == "default_timeout":
                return float(value)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {key}: {value!r}") from e
        return value
    
    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones; None values never override.
        """
        result = {}
        
        for config in configs:
            result.update({k: v for k, v in config.items() if v is not None})
        
        return result
    
    def load(
        self,
        toml_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: env > overrides > TOML > defaults
        
        Args:
            toml_path: Path to TOML configuration file
            overrides: Explicit overrides supplied by the embedding application
            use_env: Whether to load from environment variables
        
        Returns:
            Merged configuration dictionary
        """
        configs = []
        
        if toml_path:
            configs.append(self.load_toml(Path(toml_path)))
        
        if overrides:
            configs.append(overrides)
        
        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)
        
        return self.merge_configs(*configs)


def load_settings(
    toml_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    use_env: bool = True,
) -> SSHSettings:
    """Load and validate :class:`SSHSettings`"""
    return SSHSettings.from_dict(ConfigLoader().load(toml_path, overrides, use_env))
