"""
Tests for loading sandbox policies from SKILL.md frontmatter.
"""

import pytest

from skillchain.errors import ConfigurationError, SandboxConfigError
from skillchain.sandbox import (
    SandboxGuard,
    TDDEvent,
    TDDEventType,
    TDDPhase,
    get_policy_for_phase,
    load_sandbox_config,
    parse_frontmatter,
    parse_sandbox_config,
)


SKILL_MD = """---
name: tdd
sandbox:
  state: BLOCKED
  profiles:
    BLOCKED:
      name: tests-only
      allowCommands: ["npm test"]
      allowWrite: ["**/*.test.ts"]
    RED:
      name: implement
      allowCommands: ["npm test", "npm run lint"]
      denyCommands: ["git commit"]
      allowWrite: ["src/**"]
    GREEN:
      allowCommands: ["*"]
      denyCommands: ["git push"]
      allowWrite: ["**"]
      denyWrite: ["**/*.lock"]
---
# TDD

Write the failing test first.
"""


def minimal(**overrides):
    data = {"state": "BLOCKED", "profiles": {"BLOCKED": {"allow_commands": ["npm test"]}}}
    data.update(overrides)
    return data


class TestParseFrontmatter:
    """Tests for frontmatter splitting"""

    def test_splits_body(self):
        data, body = parse_frontmatter(SKILL_MD)
        assert data["sandbox"]["state"] == "BLOCKED"
        assert body.startswith("# TDD")

    def test_no_frontmatter(self):
        with pytest.raises(SandboxConfigError, match="No YAML frontmatter"):
            parse_frontmatter("# Just markdown\n")

    def test_invalid_yaml(self):
        with pytest.raises(SandboxConfigError, match="Invalid YAML"):
            parse_frontmatter("---\nstate: [unclosed\n---\nbody")

    def test_non_mapping(self):
        with pytest.raises(SandboxConfigError, match="mapping"):
            parse_frontmatter("---\n- a\n- b\n---\n")


class TestParseSandboxConfig:
    """Tests for validate-then-construct parsing"""

    def test_full_config(self):
        config = parse_sandbox_config(parse_frontmatter(SKILL_MD)[0]["sandbox"])

        assert config.state == TDDPhase.BLOCKED
        assert set(config.profiles) == {TDDPhase.BLOCKED, TDDPhase.RED, TDDPhase.GREEN}
        assert config.profiles[TDDPhase.BLOCKED].name == "tests-only"
        assert config.profiles[TDDPhase.RED].deny_commands == ("git commit",)

    def test_policy_defaults(self):
        """Missing lists default to empty; missing name defaults to the phase"""
        policy = parse_sandbox_config(minimal()).profiles[TDDPhase.BLOCKED]
        assert policy.name == "blocked"
        assert policy.deny_commands == ()
        assert policy.allow_write == ()

    def test_missing_state(self):
        data = minimal()
        del data["state"]
        with pytest.raises(SandboxConfigError, match="state"):
            parse_sandbox_config(data)

    def test_non_string_state(self):
        with pytest.raises(SandboxConfigError, match="state"):
            parse_sandbox_config(minimal(state=3))

    def test_missing_profiles(self):
        with pytest.raises(SandboxConfigError, match="profiles"):
            parse_sandbox_config({"state": "BLOCKED"})

    def test_profiles_not_mapping(self):
        with pytest.raises(SandboxConfigError, match="profiles"):
            parse_sandbox_config(minimal(profiles=["BLOCKED"]))

    def test_unknown_state(self):
        with pytest.raises(SandboxConfigError, match="Must be one of"):
            parse_sandbox_config(minimal(state="PURPLE"))

    def test_unknown_profile_phase(self):
        with pytest.raises(SandboxConfigError, match="profile phase"):
            parse_sandbox_config(minimal(profiles={"BLOCKED": {}, "REFACTOR": {}}))

    def test_state_without_profile(self):
        with pytest.raises(SandboxConfigError, match="no matching profile"):
            parse_sandbox_config(minimal(state="GREEN"))

    def test_mistyped_list(self):
        with pytest.raises(SandboxConfigError, match="list of strings"):
            parse_sandbox_config(minimal(profiles={"BLOCKED": {"allow_commands": "npm test"}}))

    def test_invalid_glob(self):
        with pytest.raises(SandboxConfigError, match="invalid pattern"):
            parse_sandbox_config(minimal(profiles={"BLOCKED": {"allow_write": ["  "]}}))

    def test_snake_case_keys_accepted(self):
        config = parse_sandbox_config(minimal(profiles={"BLOCKED": {"allow_write": ["**/*.test.ts"]}}))
        assert config.profiles[TDDPhase.BLOCKED].allow_write == ("**/*.test.ts",)

    def test_camel_case_keys(self):
        config = parse_sandbox_config(
            minimal(profiles={"BLOCKED": {"allowCommands": ["make test"], "denyWrite": ["*.lock"]}})
        )
        policy = config.profiles[TDDPhase.BLOCKED]
        assert policy.allow_commands == ("make test",)
        assert policy.deny_write == ("*.lock",)

    def test_mistyped_camel_case_list_named(self):
        with pytest.raises(SandboxConfigError, match="allowWrite"):
            parse_sandbox_config(minimal(profiles={"BLOCKED": {"allowWrite": "src/**"}}))

    def test_is_configuration_error(self):
        assert issubclass(SandboxConfigError, ConfigurationError)


class TestLoadSandboxConfig:
    """Tests for reading SKILL.md from a skill directory"""

    def test_loads_skill_md(self, tmp_path):
        (tmp_path / "SKILL.md").write_text(SKILL_MD)
        config = load_sandbox_config(tmp_path)
        assert config.state == TDDPhase.BLOCKED

    def test_missing_file(self, tmp_path):
        assert load_sandbox_config(tmp_path) is None

    def test_skill_without_sandbox(self, tmp_path):
        (tmp_path / "SKILL.md").write_text("---\nname: plain\n---\nbody\n")
        assert load_sandbox_config(tmp_path) is None

    def test_top_level_policy_keys_ignored(self, tmp_path):
        """Only the nested sandbox section configures a skill"""
        (tmp_path / "SKILL.md").write_text("---\nstate: BLOCKED\nprofiles:\n  BLOCKED: {}\n---\n")
        assert load_sandbox_config(tmp_path) is None

    def test_sandbox_not_mapping(self, tmp_path):
        (tmp_path / "SKILL.md").write_text("---\nsandbox: strict\n---\n")
        with pytest.raises(SandboxConfigError, match="mapping"):
            load_sandbox_config(tmp_path)

    def test_skill_md_from_plugin(self, tmp_path):
        """A SKILL.md laid out the way published skills ship it"""
        (tmp_path / "SKILL.md").write_text(
            "---\n"
            "name: tdd\n"
            "description: Test-driven development\n"
            "sandbox:\n"
            "  state: BLOCKED\n"
            "  profiles:\n"
            "    BLOCKED:\n"
            "      name: write-tests-only\n"
            "      allowCommands: [\"npm test\", \"pytest\"]\n"
            "      denyCommands: [\"git commit\"]\n"
            "      allowWrite: [\"**/*.test.ts\", \"tests/**\"]\n"
            "      denyWrite: [\"src/**\"]\n"
            "    GREEN:\n"
            "      name: refactor\n"
            "      allowCommands: [\"*\"]\n"
            "      allowWrite: [\"**\"]\n"
            "---\n"
            "# TDD\n"
        )
        guard = SandboxGuard(load_sandbox_config(tmp_path))
        assert guard.policy.name == "write-tests-only"
        assert guard.check_command("pytest -x").allowed
        assert not guard.check_command("git commit -m wip").allowed
        assert guard.check_write("tests/test_a.py").allowed
        assert not guard.check_write("src/a.ts").allowed

    def test_error_names_file(self, tmp_path):
        (tmp_path / "SKILL.md").write_text("---\nsandbox:\n  state: BLOCKED\n---\n")
        with pytest.raises(SandboxConfigError) as exc_info:
            load_sandbox_config(tmp_path)
        assert "SKILL.md" in str(exc_info.value)

    def test_get_policy_for_phase(self, tmp_path):
        (tmp_path / "SKILL.md").write_text(SKILL_MD)
        config = load_sandbox_config(tmp_path)
        assert get_policy_for_phase(config, TDDPhase.RED).name == "implement"
        with pytest.raises(SandboxConfigError, match="COMPLETE"):
            get_policy_for_phase(config, TDDPhase.COMPLETE)


class TestSandboxGuard:
    """Tests for phase-aware policy checks"""

    @pytest.fixture
    def guard(self):
        return SandboxGuard(parse_sandbox_config(parse_frontmatter(SKILL_MD)[0]["sandbox"]))

    def test_starts_in_config_state(self, guard):
        assert guard.phase == TDDPhase.BLOCKED
        assert guard.policy.name == "tests-only"

    def test_blocked_phase_allows_only_tests(self, guard):
        assert guard.check_write("src/a.test.ts").allowed
        decision = guard.check_write("src/a.ts")
        assert not decision.allowed
        assert decision.policy == "tests-only"
        assert "src/a.ts" in decision.reason

    def test_policy_follows_phase(self, guard):
        guard.send(TDDEvent(TDDEventType.TEST_WRITTEN))
        assert guard.phase == TDDPhase.RED
        assert guard.check_write("src/a.ts").allowed
        assert guard.check_command("npm run lint -- --fix").allowed
        assert not guard.check_command("git commit -m wip").allowed

    def test_persisted_phase(self, guard):
        resumed = SandboxGuard(guard.config, phase=TDDPhase.GREEN)
        assert resumed.check_command("git status").allowed
        assert not resumed.check_command("git push").allowed
        assert not resumed.check_write("package-lock.lock").allowed

    def test_phase_without_policy_denies(self, guard):
        guard.send(TDDEvent(TDDEventType.FORCE_PHASE, phase=TDDPhase.COMPLETE))
        decision = guard.check_command("npm test")
        assert not decision.allowed
        assert decision.policy is None
