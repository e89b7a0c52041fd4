#!/usr/bin/env python3
"""
Base Component Class - Core functionality and configuration management
"""

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

import yaml

from .config_adapter import ChartRequestAdapter
from .constants import (
    CONFIG_KEY_RENDER_DEFAULTS,
    DEFAULT_RENDER_SETTINGS,
    GLOBAL_DEFAULTS_STEM,
)
from .errors import ConfigurationError


@dataclass
class RenderContext:
    """Shared context for renderer components to avoid repeated config loading work."""
    config_file: Optional[Path]
    data_dir: Path
    output_dir: Optional[Path]
    project_name: str
    config: Dict[str, Any]
    global_defaults: Dict[str, Any]
    render_settings: Dict[str, Any]
    logger: logging.Logger


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge override dict into base config (in place) and return base."""
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_config(base[key], value)
        else:
            base[key] = value
    return base


def load_any_config(path: Path) -> Dict[str, Any]:
    """Load a YAML or JSON config file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix in ['.yaml', '.yml']:
            with open(path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        else:
            # Default to JSON
            with open(path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file {path}: {e}")

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping at top level")
    return loaded


class BaseComponent:
    """Base class for renderer components with configuration management."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        output_directory: Optional[str] = None,
        context: Optional[RenderContext] = None,
        config_override: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the component with configuration and directories.

        All arguments are optional: a component built without a config file
        runs on the built-in render defaults and never touches the filesystem.
        """
        # Minimal logger for early setup; replaced once context is ready
        self.logger = logging.getLogger(self.__class__.__name__)

        # Reuse existing context when orchestrating multiple components
        if context:
            self._apply_context(context)
            return

        self.config_file = Path(config_file) if config_file else None

        # Load configuration (supports YAML/JSON) and normalize shorthand chart requests
        self.config = self._load_configuration()
        self.config = ChartRequestAdapter(self.config).to_canonical_config()
        if config_override:
            merge_config(self.config, config_override)

        self.project_name = str(self.config.get('name') or (self.config_file.stem if self.config_file else 'charts'))

        self.data_dir, self.output_dir = self._resolve_directories(output_directory)
        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            # Initialize logging once directories are available
            self.logger = self._setup_logging()

        self.global_defaults = self._load_global_defaults()
        self.render_settings = self._build_render_settings()

        # Persist context for reuse by other components
        self.context = RenderContext(
            config_file=self.config_file,
            data_dir=self.data_dir,
            output_dir=self.output_dir,
            project_name=self.project_name,
            config=self.config,
            global_defaults=self.global_defaults,
            render_settings=self.render_settings,
            logger=self.logger,
        )

        if self.config_file:
            self.logger.info(f"Initialized {self.__class__.__name__} for {self.project_name}")

    def _apply_context(self, context: RenderContext):
        """Attach an existing render context (used by the orchestrator to share state)."""
        self.context = context
        self.config_file = context.config_file
        self.data_dir = context.data_dir
        self.output_dir = context.output_dir
        self.project_name = context.project_name
        self.config = context.config
        self.global_defaults = context.global_defaults
        self.render_settings = context.render_settings
        self.logger = context.logger

    def _setup_logging(self) -> logging.Logger:
        """Setup logging configuration."""
        log_dir = self.output_dir / "logs"
        log_dir.mkdir(exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"render_{timestamp}.log"

        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(log_file),
                logging.StreamHandler()
            ]
        )

        return logging.getLogger(self.__class__.__name__)

    def _load_configuration(self) -> Dict[str, Any]:
        """Load the chart-request configuration from YAML or JSON file."""
        if self.config_file is None:
            return {}
        config = load_any_config(self.config_file)
        self.logger.info(f"Loaded configuration from {self.config_file}")
        return config

    def _resolve_directories(self, output_directory: Optional[str]):
        """Determine data/output directories relative to the config file."""
        base_dir = self.config_file.parent.resolve() if self.config_file else Path.cwd()

        config_data_dir = self.config.get('data_directory') or self.config.get('data_dir')
        if config_data_dir:
            data_dir = Path(config_data_dir).expanduser()
            if not data_dir.is_absolute():
                data_dir = (base_dir / data_dir).resolve()
        else:
            data_dir = base_dir

        output_dir = output_directory or self.config.get('output_directory')
        if output_dir:
            output_dir = Path(output_dir).expanduser()
            if not output_dir.is_absolute() and not output_directory:
                output_dir = base_dir / output_dir
        return data_dir, output_dir

    def _load_global_defaults(self) -> Dict[str, Any]:
        """Load global defaults configuration (supports YAML/JSON) next to the config file."""
        if self.config_file is None:
            return {}
        for ext in ['.yaml', '.yml', '.json']:
            candidate = self.config_file.parent / f"{GLOBAL_DEFAULTS_STEM}{ext}"
            if candidate.exists():
                defaults = load_any_config(candidate)
                return defaults.get(GLOBAL_DEFAULTS_STEM, defaults)
        return {}

    def _build_render_settings(self) -> Dict[str, Any]:
        """Built-in defaults, then global defaults, then the config's own render_defaults."""
        settings = copy.deepcopy(DEFAULT_RENDER_SETTINGS)
        merge_config(settings, copy.deepcopy(self.global_defaults.get(CONFIG_KEY_RENDER_DEFAULTS, {})))
        merge_config(settings, copy.deepcopy(self.config.get(CONFIG_KEY_RENDER_DEFAULTS, {})))
        return settings

    def get_project_name(self) -> str:
        """Get the project name from config or config file name."""
        return self.project_name
