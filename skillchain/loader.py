"""
Load and cross-validate skills.yaml and profiles.yaml.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union

import yaml
from pydantic import ValidationError

from .errors import ConfigurationError
from .schema import ProfilesConfig, SkillsConfig


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError("file not found", path=path) from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML: {e}", path=path) from e


def load_skills_config(path: Union[str, Path]) -> SkillsConfig:
    path = Path(path)
    data = _read_yaml(path) or {}
    try:
        return SkillsConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid skills config: {e}", path=path) from e


def load_profiles_config(path: Union[str, Path]) -> ProfilesConfig:
    path = Path(path)
    data = _read_yaml(path) or {}
    try:
        return ProfilesConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid profiles config: {e}", path=path) from e


@dataclass
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_configs(skills: SkillsConfig, profiles: ProfilesConfig) -> ValidationReport:
    """
    Cross-check the two configs.

    Errors: a profile requires a capability no skill provides, a skill
    requires a capability nothing provides, or a deny rule waits on an
    unprovided capability. Warnings: provided capabilities nobody needs.
    """
    report = ValidationReport()
    provided = {cap for skill in skills.skills for cap in skill.provides}
    needed = set()

    for profile in profiles.profiles:
        for cap in profile.capabilities_required:
            needed.add(cap)
            if cap not in provided:
                report.errors.append(
                    f"Profile '{profile.name}' requires capability '{cap}' but no skill provides it"
                )

    for skill in skills.skills:
        for cap in skill.requires:
            needed.add(cap)
            if cap not in provided:
                report.errors.append(
                    f"Skill '{skill.name}' requires capability '{cap}' but no skill provides it"
                )
        for intent, rule in skill.tool_policy.deny_until.items():
            needed.add(rule.until)
            if rule.until not in provided:
                report.errors.append(
                    f"Skill '{skill.name}' blocks '{intent}' until '{rule.until}' but no skill provides it"
                )
        for other in skill.conflicts:
            if skills.get(other) is None:
                report.warnings.append(f"Skill '{skill.name}' conflicts with unknown skill '{other}'")

    for cap in sorted(provided - needed):
        report.warnings.append(f"Capability '{cap}' is provided but never required")

    return report


@dataclass
class ConfigCache:
    """A single cached value with an expiry, owned by whoever creates it."""
    key: Optional[str] = None
    data: Any = None
    expiry: float = 0.0

    def get(self, key: str, now: Optional[float] = None) -> Any:
        now = time.monotonic() if now is None else now
        if self.key == key and now < self.expiry:
            return self.data
        return None

    def put(self, key: str, data: Any, ttl: float, now: Optional[float] = None) -> None:
        now = time.monotonic() if now is None else now
        self.key = key
        self.data = data
        self.expiry = now + ttl

    def clear(self) -> None:
        self.key = None
        self.data = None
        self.expiry = 0.0


class ConfigLoader:
    """Loads both configs, caching each for ``ttl`` seconds."""

    def __init__(
        self,
        skills_path: Union[str, Path],
        profiles_path: Union[str, Path],
        ttl: float = DEFAULT_TTL_SECONDS,
    ):
        self.skills_path = Path(skills_path)
        self.profiles_path = Path(profiles_path)
        self.ttl = ttl
        self._skills_cache = ConfigCache()
        self._profiles_cache = ConfigCache()

    def _cached(self, cache: ConfigCache, path: Path, load: Callable[[Path], Any]) -> Any:
        key = str(path.resolve())
        cached = cache.get(key)
        if cached is not None:
            return cached
        data = load(path)
        cache.put(key, data, self.ttl)
        return data

    def skills(self) -> SkillsConfig:
        return self._cached(self._skills_cache, self.skills_path, load_skills_config)

    def profiles(self) -> ProfilesConfig:
        return self._cached(self._profiles_cache, self.profiles_path, load_profiles_config)

    def try_skills(self) -> Optional[SkillsConfig]:
        """Like skills() but returns None when the file is missing or invalid."""
        if not self.skills_path.exists():
            logger.debug("No skills config at %s", self.skills_path)
            return None
        try:
            return self.skills()
        except ConfigurationError as e:
            logger.warning("Skills config unavailable: %s", e)
            return None

    def try_profiles(self) -> Optional[ProfilesConfig]:
        if not self.profiles_path.exists():
            logger.debug("No profiles config at %s", self.profiles_path)
            return None
        try:
            return self.profiles()
        except ConfigurationError as e:
            logger.warning("Profiles config unavailable: %s", e)
            return None

    def invalidate(self) -> None:
        self._skills_cache.clear()
        self._profiles_cache.clear()
