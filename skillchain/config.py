"""
Configuration System

Runtime settings come from, in increasing priority:
1. Default values
2. Configuration file (.claude/chain.yaml)
3. Environment variables
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(".claude") / "chain.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class HookConfig:
    """Pre-tool-use hook configuration"""
    skills_path: str = ".claude/skills.yaml"
    profiles_path: str = ".claude/profiles.yaml"
    state_dir: str = ".claude/chain_state"
    auto_select: bool = True
    cache_ttl_seconds: float = 60.0


@dataclass
class FeedbackConfig:
    """Response compliance configuration"""
    max_retries: int = 3


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "WARNING"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class ChainConfig:
    """Complete skillchain configuration"""
    hook: HookConfig = field(default_factory=HookConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainConfig":
        config = cls()
        try:
            if "hook" in data:
                config.hook = HookConfig(**data["hook"])
            if "feedback" in data:
                config.feedback = FeedbackConfig(**data["feedback"])
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e
        return config


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """
    Configuration manager with file and environment sources

    Relative paths in the config resolve against ``working_dir``. With
    ``strict=False`` an invalid config file or environment override is
    logged and the defaults are used instead of raising.
    """

    def __init__(
        self,
        working_dir: Optional[Path] = None,
        config_file: Optional[Path] = None,
        strict: bool = True,
    ):
        self.working_dir = Path(working_dir or os.getenv("CHAIN_CWD") or Path.cwd())
        self.config_file = config_file or (self.working_dir / DEFAULT_CONFIG_FILE)
        self.strict = strict
        self._config = self._load_config()

    def _load_config(self) -> ChainConfig:
        try:
            return self._apply_env_overrides(self._read_config_file())
        except ConfigurationError as e:
            if self.strict:
                raise
            logger.warning("Ignoring invalid configuration, using defaults: %s", e)
            return ChainConfig()

    def _read_config_file(self) -> ChainConfig:
        config = ChainConfig()

        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    file_data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config file: {e}", path=self.config_file) from e
            if file_data:
                if not isinstance(file_data, dict):
                    raise ConfigurationError("Config file must be a mapping", path=self.config_file)
                config = ChainConfig.from_dict(file_data)
        return config

    def _apply_env_overrides(self, config: ChainConfig) -> ChainConfig:
        if skills_path := os.getenv("CHAIN_SKILLS_PATH"):
            config.hook.skills_path = skills_path
        if profiles_path := os.getenv("CHAIN_PROFILES_PATH"):
            config.hook.profiles_path = profiles_path
        if state_dir := os.getenv("CHAIN_STATE_DIR"):
            config.hook.state_dir = state_dir
        if auto_select := os.getenv("CHAIN_AUTO_SELECT"):
            config.hook.auto_select = _parse_bool(auto_select)
        if max_retries := os.getenv("CHAIN_MAX_RETRIES"):
            try:
                config.feedback.max_retries = int(max_retries)
            except ValueError:
                raise ConfigurationError(f"CHAIN_MAX_RETRIES must be an integer, got {max_retries!r}") from None
        if log_level := os.getenv("CHAIN_LOG_LEVEL"):
            config.logging.level = log_level.upper()
        return config

    @property
    def config(self) -> ChainConfig:
        return self._config

    def resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.working_dir / p

    @property
    def skills_path(self) -> Path:
        return self.resolve(self._config.hook.skills_path)

    @property
    def profiles_path(self) -> Path:
        return self.resolve(self._config.hook.profiles_path)

    @property
    def state_dir(self) -> Path:
        return self.resolve(self._config.hook.state_dir)

    def validate(self) -> tuple[bool, list[str]]:
        errors = []
        if self._config.feedback.max_retries < 1:
            errors.append("feedback.max_retries must be at least 1")
        if self._config.hook.cache_ttl_seconds < 0:
            errors.append("hook.cache_ttl_seconds must not be negative")
        if self._config.logging.level.upper() not in LOG_LEVELS:
            errors.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}")
        return len(errors) == 0, errors

    def reload(self) -> None:
        self._config = self._load_config()


def configure_logging(config: LoggingConfig) -> None:
    level = getattr(logging, config.level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format=config.format)
