"""
Load sandbox policies from a skill's SKILL.md frontmatter.

Expected frontmatter shape:

    ---
    name: tdd
    sandbox:
      state: BLOCKED
      profiles:
        BLOCKED:
          name: write-tests-only
          allowCommands: ["npm test"]
          allowWrite: ["**/*.test.ts"]
        RED:
          ...
    ---

Policy list keys may also be written in snake_case (allow_commands).
Everything is validated up front; a malformed section raises
SandboxConfigError rather than producing a partially-usable config.
"""

import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..errors import SandboxConfigError
from .matcher import is_valid_glob_pattern
from .models import SandboxConfig, SandboxPolicy, TDDPhase


SKILL_FILE = "SKILL.md"
SANDBOX_KEY = "sandbox"
FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---\r?\n?(.*)\Z", re.DOTALL)

# field -> accepted frontmatter keys, first present wins
POLICY_LIST_FIELDS = {
    "allow_commands": ("allowCommands", "allow_commands"),
    "deny_commands": ("denyCommands", "deny_commands"),
    "allow_write": ("allowWrite", "allow_write"),
    "deny_write": ("denyWrite", "deny_write"),
}
GLOB_FIELDS = ("allow_write", "deny_write")


def parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a markdown document into (frontmatter mapping, body)."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        raise SandboxConfigError("No YAML frontmatter found")

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise SandboxConfigError(f"Invalid YAML frontmatter: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SandboxConfigError("Frontmatter must be a mapping")
    return data, match.group(2)


def _parse_phase(value: Any, what: str) -> TDDPhase:
    try:
        return TDDPhase(value)
    except ValueError:
        valid = ", ".join(p.value for p in TDDPhase)
        raise SandboxConfigError(f"Invalid {what} '{value}'. Must be one of: {valid}") from None


def parse_policy(phase: TDDPhase, data: Any) -> SandboxPolicy:
    if not isinstance(data, dict):
        raise SandboxConfigError(f"Policy for {phase.value} must be a mapping")

    lists = {}
    for field_name, keys in POLICY_LIST_FIELDS.items():
        key = next((k for k in keys if k in data), keys[0])
        value = data.get(key)
        if value is None:
            value = []
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise SandboxConfigError(f"{phase.value}.{key} must be a list of strings")
        if field_name in GLOB_FIELDS:
            for pattern in value:
                if not is_valid_glob_pattern(pattern):
                    raise SandboxConfigError(f"{phase.value}.{key}: invalid pattern {pattern!r}")
        lists[field_name] = tuple(value)

    name = data.get("name") or phase.value.lower()
    if not isinstance(name, str):
        raise SandboxConfigError(f"{phase.value}.name must be a string")

    return SandboxPolicy(name=name, **lists)


def parse_sandbox_config(sandbox: Any) -> SandboxConfig:
    """Validate a ``sandbox`` section and build the config; raises SandboxConfigError."""
    if not isinstance(sandbox, dict):
        raise SandboxConfigError("Sandbox config must be a mapping")

    state = sandbox.get("state")
    if not isinstance(state, str) or not state:
        raise SandboxConfigError("Sandbox config missing 'state' field")

    profiles = sandbox.get("profiles")
    if not isinstance(profiles, dict):
        raise SandboxConfigError("Sandbox config missing 'profiles' mapping")

    initial = _parse_phase(state, "state")

    policies = {}
    for key, policy_data in profiles.items():
        phase = _parse_phase(key, "profile phase")
        policies[phase] = parse_policy(phase, policy_data)

    if initial not in policies:
        raise SandboxConfigError(f"State '{initial.value}' has no matching profile")

    return SandboxConfig(state=initial, profiles=policies)


def load_sandbox_config(skill_dir: Union[str, Path]) -> Optional[SandboxConfig]:
    """
    Read the ``sandbox`` section of SKILL.md in a skill directory.

    Returns None if the skill has no SKILL.md or its frontmatter has no
    ``sandbox`` key; raises SandboxConfigError if the section is malformed.
    """
    path = Path(skill_dir) / SKILL_FILE
    if not path.exists():
        return None

    try:
        frontmatter, _body = parse_frontmatter(path.read_text(encoding="utf-8"))
    except SandboxConfigError as e:
        raise SandboxConfigError(str(e), path=path) from e

    if frontmatter.get(SANDBOX_KEY) is None:
        return None

    try:
        return parse_sandbox_config(frontmatter[SANDBOX_KEY])
    except SandboxConfigError as e:
        raise SandboxConfigError(str(e), path=path) from e


def get_policy_for_phase(config: SandboxConfig, phase: TDDPhase) -> SandboxPolicy:
    policy = config.policy_for(phase)
    if policy is None:
        raise SandboxConfigError(f"No policy defined for phase {TDDPhase(phase).value}")
    return policy
