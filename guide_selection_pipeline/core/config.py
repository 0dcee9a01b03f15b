#!/usr/bin/env python3

"""
Configuration management for the guide selection pipeline.

Centralized configuration with support for file-based configuration
and environment variable overrides.
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Tuple

import yaml

from .data_structures import SelectionMode
from .exceptions import ConfigurationError


# Score columns written by FlashFry's scoring metrics
KNOWN_SCORE_COLUMNS = (
    'Hsu2013',
    'DoenchCFD_maxOT',
    'DoenchCFD_specificityscore',
    'Doench2014OnTarget',
    'Moreno-Mateos2015OnTarget',
    'otCount',
    'basesDiffToClosestHit',
    'closestHitCount',
)


def _default_modes() -> List[str]:
    return [mode.value for mode in SelectionMode]


def _parse_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


def _parse_modes(value: str) -> List[str]:
    return [part.strip() for part in value.split(',') if part.strip()]


@dataclass
class PipelineConfig:
    """Centralized configuration for the guide selection pipeline."""

    # Scoring
    score_column: str = "Hsu2013"
    min_score: float = 60.0

    # Selection parameters
    modes: List[str] = field(default_factory=_default_modes)
    exclusion_radius: int = 50  # bp
    target_count: int = 3
    interference_window_start: int = -50
    interference_window_end: int = 300
    activation_window_start: int = -400
    # -50 itself belongs to the interference window
    activation_window_end: int = -51

    # Performance settings
    memory_limit_mb: int = 4096
    batch_size: int = 1000
    enable_memory_monitoring: bool = True
    parallel_workers: int = 1

    # Output settings
    generate_reports: bool = True
    debug_mode: bool = False

    @classmethod
    def from_file(cls, config_path: str) -> 'PipelineConfig':
        """Load configuration from file (JSON or YAML)."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    config_data = yaml.safe_load(f)
                else:
                    config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML configuration file format: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'PipelineConfig':
        """Create configuration from dictionary."""
        known_keys = set(cls.__dataclass_fields__.keys())
        unknown_keys = sorted(k for k in config_dict if k not in known_keys)
        if unknown_keys:
            logging.warning(f"Ignoring unknown configuration keys: {', '.join(unknown_keys)}")
        filtered_dict = {k: v for k, v in config_dict.items() if k in known_keys}

        if isinstance(filtered_dict.get('modes'), str):
            filtered_dict['modes'] = _parse_modes(filtered_dict['modes'])

        try:
            return cls(**filtered_dict)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration parameters: {e}")

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        """Load configuration from environment variables."""
        config = cls()

        env_mappings = {
            'GUIDE_SELECT_SCORE_COLUMN': ('score_column', str),
            'GUIDE_SELECT_MIN_SCORE': ('min_score', float),
            'GUIDE_SELECT_MODES': ('modes', _parse_modes),
            'GUIDE_SELECT_EXCLUSION_RADIUS': ('exclusion_radius', int),
            'GUIDE_SELECT_TARGET_COUNT': ('target_count', int),
            'GUIDE_SELECT_MEMORY_LIMIT_MB': ('memory_limit_mb', int),
            'GUIDE_SELECT_PARALLEL_WORKERS': ('parallel_workers', int),
            'GUIDE_SELECT_DEBUG_MODE': ('debug_mode', _parse_bool),
        }

        for env_var, (field_name, converter) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value:
                try:
                    setattr(config, field_name, converter(env_value))
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid environment variable {env_var}: {e}")

        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to file."""
        config_dict = self.to_dict()

        try:
            with open(config_path, 'w') as f:
                if config_path.lower().endswith(('.yaml', '.yml')):
                    yaml.safe_dump(config_dict, f, default_flow_style=False)
                else:
                    json.dump(config_dict, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Error saving configuration: {e}")

    @property
    def selection_modes(self) -> List[SelectionMode]:
        """Enabled modes in canonical order."""
        enabled = {SelectionMode.from_name(name) for name in self.modes}
        return [mode for mode in SelectionMode if mode in enabled]

    def window_for(self, mode: SelectionMode) -> Tuple[int, int]:
        """Inclusive TSS-offset window of a proximal mode."""
        if mode is SelectionMode.INTERFERENCE:
            return self.interference_window_start, self.interference_window_end
        if mode is SelectionMode.ACTIVATION:
            return self.activation_window_start, self.activation_window_end
        raise ConfigurationError(f"Mode {mode.value} has no TSS window")

    def validate(self) -> None:
        """Validate configuration parameters."""
        if not self.score_column:
            raise ConfigurationError("score_column must not be empty")

        if self.score_column not in KNOWN_SCORE_COLUMNS:
            raise ConfigurationError(
                f"Unknown scoring metric '{self.score_column}' "
                f"(expected one of: {', '.join(KNOWN_SCORE_COLUMNS)})"
            )

        if not self.modes:
            raise ConfigurationError("At least one selection mode must be enabled")

        for name in self.modes:
            try:
                SelectionMode.from_name(name)
            except ValueError as e:
                raise ConfigurationError(str(e))

        if len({name.strip().lower() for name in self.modes}) != len(self.modes):
            raise ConfigurationError("Selection modes must not repeat")

        if self.exclusion_radius < 0:
            raise ConfigurationError("exclusion_radius must be >= 0")

        if self.target_count < 1:
            raise ConfigurationError("target_count must be >= 1")

        if self.interference_window_start > self.interference_window_end:
            raise ConfigurationError("interference window start must not exceed its end")

        if self.activation_window_start > self.activation_window_end:
            raise ConfigurationError("activation window start must not exceed its end")

        if self.memory_limit_mb < 100:
            raise ConfigurationError("memory_limit_mb must be >= 100")

        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be >= 1")

        if self.parallel_workers < 1:
            raise ConfigurationError("parallel_workers must be >= 1")

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()


def load_config(config_path: Optional[str] = None,
                use_env: bool = True) -> PipelineConfig:
    """
    Load configuration with priority: file > environment > defaults.

    Args:
        config_path: Path to configuration file (optional)
        use_env: Whether to load environment variables

    Returns:
        PipelineConfig: Loaded configuration
    """
    config = PipelineConfig()

    if use_env:
        env_config = PipelineConfig.from_env()
        # Merge non-default values from environment
        for field_name in PipelineConfig.__dataclass_fields__.keys():
            env_value = getattr(env_config, field_name)
            if env_value != getattr(config, field_name):
                setattr(config, field_name, env_value)

    if config_path:
        file_config = PipelineConfig.from_file(config_path)
        # Merge all values from file
        for field_name in PipelineConfig.__dataclass_fields__.keys():
            setattr(config, field_name, getattr(file_config, field_name))

    config.validate()
    return config
