"""
Configuration management for the KoreKcel grader.

This module provides application settings (worker pool, decoding bounds,
output) and loads the default grading configuration of a batch from a
JSON file.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .exceptions import ConfigurationError


log = logging.getLogger(__name__)


@dataclass
class Settings:
    """
    Application settings and configuration parameters.

    Attributes:
        processing: Worker pool and decoding bounds
        grading: Grading configuration as a plain dictionary
        output: Report location and formats
    """
    processing: Dict[str, Any] = field(default_factory=lambda: {
        "max_workers": 4,
        "decode_timeout_seconds": 30,
        "max_document_bytes": 50 * 1024 * 1024,
    })

    grading: Dict[str, Any] = field(default_factory=lambda: {
        "mode": "tabular",
        "sheets": [],
        "tolerance": {
            "absolute": 0.001,
            "relative": 0.0001,
            "check_formulas": True,
            "ignore_dollar": True,
        },
        "identity": {
            "identity_sheet": None,
            "id_cell": "B1",
            "name_cell": "B2",
            "first_name_cell": "B3",
            "group_cell": "B4",
            "trim_identity": True,
            "extract_id_number": True,
            "extract_group_number": True,
        },
        "text": {
            "check_styles": True,
            "styles": [],
            "derive_styles": [],
            "check_sections": True,
            "sections": [],
        },
        "max_diagnostics": 10,
    })

    output: Dict[str, Any] = field(default_factory=lambda: {
        "default_output_dir": "korekcel_results",
        "save_json": True,
    })


class Config:
    """
    Configuration manager for the grader.

    Provides centralized configuration management with support for:
    - Default settings
    - A JSON configuration file layered over the defaults
    - Building the immutable GradingConfiguration of a batch
    """

    DEFAULT_CONFIG_FILE = "korekcel_config.json"

    def __init__(self, config_file: Optional[Union[str, Path]] = None) -> None:
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to configuration file
        """
        self.settings = Settings()
        self.config_file = Path(config_file) if config_file else None
        if self.config_file is not None:
            self._load_configuration()

    def _load_configuration(self) -> None:
        """Load configuration from file if it exists."""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)

                self._update_settings_from_dict(config_data)
                log.info(f"Configuration loaded from {self.config_file}")
            else:
                log.info("Using default configuration")

        except Exception as e:
            log.warning(f"Failed to load configuration from {self.config_file}: {e}")
            log.info("Using default configuration")

    def _update_settings_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Update settings from dictionary."""
        if "processing" in config_dict:
            self.settings.processing.update(config_dict["processing"])

        if "grading" in config_dict:
            grading = config_dict["grading"]
            for key, value in grading.items():
                current = self.settings.grading.get(key)
                if isinstance(current, dict) and isinstance(value, dict):
                    current.update(value)
                else:
                    self.settings.grading[key] = value

        if "output" in config_dict:
            self.settings.output.update(config_dict["output"])

    def get_processing_config(self) -> Dict[str, Any]:
        """Get processing configuration."""
        return self.settings.processing.copy()

    def get_grading_config(self) -> Dict[str, Any]:
        """Get the grading configuration dictionary."""
        return copy.deepcopy(self.settings.grading)

    def get_output_config(self) -> Dict[str, Any]:
        """Get output configuration."""
        return self.settings.output.copy()

    def set_grading_option(self, key: str, value: Any) -> None:
        """
        Override one top-level grading option (e.g. ``mode``).

        Args:
            key: Grading option name
            value: New value
        """
        if key not in self.settings.grading:
            raise ConfigurationError("Unknown grading option", config_key=key)
        self.settings.grading[key] = value
        log.info(f"Grading option {key} updated")

    def grading_configuration(self):
        """
        Build the immutable grading configuration of a batch.

        Returns:
            GradingConfiguration

        Raises:
            ConfigurationError: If the grading section is invalid
        """
        from ..models.configuration import GradingConfiguration

        try:
            return GradingConfiguration.from_dict(self.get_grading_config())
        except (ValueError, TypeError, KeyError) as e:
            raise ConfigurationError(f"Invalid grading configuration: {e}")

    def reset_to_defaults(self) -> None:
        """Reset all settings to default values."""
        self.settings = Settings()
        log.info("Configuration reset to defaults")

    def validate_configuration(self) -> bool:
        """
        Validate current configuration.

        Returns:
            True if configuration is valid
        """
        processing = self.settings.processing
        if not isinstance(processing.get("max_workers"), int) or processing["max_workers"] < 1:
            return False
        if not isinstance(processing.get("decode_timeout_seconds"), (int, float)):
            return False
        if processing["decode_timeout_seconds"] <= 0:
            return False

        try:
            self.grading_configuration()
        except ConfigurationError:
            return False

        return True

    def get_config_summary(self) -> str:
        """
        Get a summary of current configuration.

        Returns:
            Formatted configuration summary
        """
        summary = []
        summary.append("=== KoreKcel Configuration Summary ===")
        summary.append(f"Config file: {self.config_file or '(defaults)'}")
        summary.append("")

        summary.append("Processing:")
        for key, value in self.settings.processing.items():
            summary.append(f"  {key}: {value}")
        summary.append("")

        summary.append("Grading:")
        grading = self.settings.grading
        summary.append(f"  mode: {grading.get('mode')}")
        summary.append(f"  sheets: {len(grading.get('sheets', []))}")
        for key, value in grading.get("tolerance", {}).items():
            summary.append(f"  {key}: {value}")
        summary.append("")

        summary.append("Output:")
        for key, value in self.settings.output.items():
            summary.append(f"  {key}: {value}")

        return "\n".join(summary)
