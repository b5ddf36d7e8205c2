"""
Configuration management for flightlog readers.

Handles loading and merging configuration from:
- Default configuration file
- A caller-supplied configuration file
- Explicit overrides passed as a dictionary
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class Config:
    """Configuration manager for flightlog."""
    
    def __init__(
        self,
        config_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize configuration.
        
        Args:
            config_file: Path to configuration file. If None, only defaults apply.
            overrides: Nested dictionary merged last
        """
        self._config: Dict[str, Any] = {}
        self._load_default_config()
        
        if config_file:
            self._load_config_file(config_file)
        
        if overrides:
            self._merge_config(overrides)
    
    def _load_default_config(self) -> None:
        """Load default configuration."""
        default_config_path = Path(__file__).parent.parent.parent / "config" / "default.yaml"
        if default_config_path.exists():
            self._load_config_file(str(default_config_path))
    
    def _load_config_file(self, config_file: str) -> None:
        """
        Load configuration from YAML file.
        
        Args:
            config_file: Path to YAML configuration file
        """
        with open(config_file, "r") as f:
            file_config = yaml.safe_load(f)
        if file_config:
            self._merge_config(file_config)
    
    def _merge_config(self, new_config: Dict[str, Any]) -> None:
        """Deep merge new configuration into existing configuration."""
        self._config = self._deep_merge(self._config, new_config)
    
    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge two dictionaries.
        
        Args:
            base: Base dictionary
            override: Override dictionary
        
        Returns:
            Merged dictionary
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
    
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.
        
        Args:
            key: Configuration key in dot notation (e.g., "reader.strict_version")
            default: Default value if key not found
        
        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
    
    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.
        
        Args:
            key: Configuration key in dot notation
            value: Value to set
        """
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
    
    def to_dict(self) -> Dict[str, Any]:
        """Get entire configuration as dictionary."""
        return self._config.copy()


@dataclass(frozen=True)
class ReaderConfig:
    """
    Options controlling a single log reader.
    
    Attributes:
        strict_version: Reject unsupported header versions instead of warning
        max_type_depth: Maximum nesting depth followed while resolving formats
        accept_omitted_trailing_padding: Accept records missing their final
            top-level padding field
        raise_scoped_errors: Raise scoped errors from iteration instead of
            yielding them as ErrorEvent
    """
    strict_version: bool = True
    max_type_depth: int = 64
    accept_omitted_trailing_padding: bool = False
    raise_scoped_errors: bool = False
    
    def __post_init__(self) -> None:
        """Validate option values."""
        if self.max_type_depth < 1:
            raise ValueError(f"max_type_depth must be positive, got {self.max_type_depth}")
    
    @classmethod
    def from_config(cls, config: Config) -> "ReaderConfig":
        """
        Build reader options from the "reader" section of a Config.
        
        Unknown keys are ignored; missing keys keep their defaults.
        """
        section = config.get("reader", {}) or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in section.items() if k in known})
