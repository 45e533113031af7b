"""Shared fixtures for skillchain tests."""

import pytest
import yaml

from skillchain.schema import ProfileSpec, ProfilesConfig, SkillSpec, SkillsConfig
from skillchain.session import SESSION_ENV_VAR, SessionStore


SKILLS_DATA = {
    "skills": [
        {
            "name": "tdd",
            "provides": ["tests_written"],
            "risk": "low",
            "tier": "hard",
            "tool_policy": {
                "deny_until": {
                    "write_impl": {"until": "tests_written", "reason": "Tests must be written first"},
                    "commit": {"until": "tests_written", "reason": "Tests must pass first"},
                }
            },
        },
        {
            "name": "debugging",
            "provides": ["root_cause_found"],
            "tool_policy": {
                "deny_until": {
                    "write_impl": {"until": "root_cause_found", "reason": "Find the root cause first"},
                }
            },
        },
        {
            "name": "brainstorming",
            "provides": ["design_done"],
            "cost": "low",
        },
    ]
}

PROFILES_DATA = {
    "profiles": [
        {
            "name": "bug-fix",
            "match": ["fix", "bug", "broken", "error"],
            "capabilities_required": ["root_cause_found", "tests_written"],
            "strictness": "strict",
            "priority": 10,
        },
        {
            "name": "new-feature",
            "match": ["add", "implement", "create", "feature"],
            "capabilities_required": ["design_done", "tests_written"],
            "priority": 5,
        },
        {
            "name": "permissive",
            "match": ["explore"],
            "strictness": "permissive",
        },
    ]
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for var in (
        SESSION_ENV_VAR, "CHAIN_CWD", "CHAIN_SKILLS_PATH", "CHAIN_PROFILES_PATH",
        "CHAIN_STATE_DIR", "CHAIN_AUTO_SELECT", "CHAIN_MAX_RETRIES", "CHAIN_LOG_LEVEL",
        "REQUIRED_SKILLS", "SUGGESTED_SKILLS", "MAX_RETRIES", "ATTEMPT_NUMBER",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def skills_config():
    return SkillsConfig.model_validate(SKILLS_DATA)


@pytest.fixture
def profiles_config():
    return ProfilesConfig.model_validate(PROFILES_DATA)


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path)


@pytest.fixture
def project_dir(tmp_path):
    """A working directory with skills.yaml and profiles.yaml under .claude/."""
    claude_dir = tmp_path / ".claude"
    claude_dir.mkdir()
    (claude_dir / "skills.yaml").write_text(yaml.safe_dump(SKILLS_DATA))
    (claude_dir / "profiles.yaml").write_text(yaml.safe_dump(PROFILES_DATA))
    return tmp_path


@pytest.fixture
def make_skill():
    """Factory for a skill that blocks intents until one capability."""
    def _make(name, tier=None, intents=("write_impl",), until="tests_written"):
        return SkillSpec(
            name=name,
            provides=[until],
            tier=tier,
            tool_policy={"deny_until": {i: {"until": until, "reason": f"{name} blocks {i}"} for i in intents}},
        )
    return _make


@pytest.fixture
def make_profile():
    def _make(name, match, priority=0, caps=("tests_written",)):
        return ProfileSpec(name=name, match=list(match), priority=priority, capabilities_required=list(caps))
    return _make
