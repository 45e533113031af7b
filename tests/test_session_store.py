"""
Tests for session persistence and capability recording.
"""

import json

import pytest

from skillchain.schema import EvidenceType, Strictness
from skillchain.errors import SessionError
from skillchain.session import SESSION_ENV_VAR, SessionStore, record_capability


class TestSessionStore:
    """Tests for reading and writing session files"""

    def test_create_and_load(self, store):
        created = store.create("bug-fix", chain=["tdd"], strictness=Strictness.STRICT)

        loaded = store.load_current()
        assert loaded == created
        assert (store.state_dir / f"{created.session_id}.json").exists()
        assert (store.state_dir / "current_session").read_text() == created.session_id

    def test_state_dir_gitignored(self, store):
        store.create("p")
        assert (store.state_dir / ".gitignore").read_text() == "*\n"

    def test_default_location(self, tmp_path):
        assert SessionStore(tmp_path).state_dir == tmp_path / ".claude" / "chain_state"

    def test_relative_state_dir(self, tmp_path):
        assert SessionStore(tmp_path, "state").state_dir == tmp_path / "state"

    def test_no_session(self, store):
        assert store.current_session_id() is None
        assert store.load_current() is None

    def test_env_session_id(self, store, monkeypatch):
        monkeypatch.setenv(SESSION_ENV_VAR, "from-env")
        created = store.create("p")
        assert created.session_id == "from-env"
        assert store.current_session_id() == "from-env"

    def test_env_overrides_pointer(self, store, monkeypatch):
        store.create("p")
        monkeypatch.setenv(SESSION_ENV_VAR, "other")
        assert store.load_current() is None

    def test_corrupt_json_returns_none(self, store):
        state = store.create("p")
        (store.state_dir / f"{state.session_id}.json").write_text("{oops")
        assert store.load_current() is None

    def test_schema_mismatch_returns_none(self, store):
        store.state_dir.mkdir(parents=True)
        (store.state_dir / "x.json").write_text(json.dumps({"profile_id": "p"}))
        assert store.load("x") is None

    def test_save_roundtrip_after_change(self, store):
        state = store.create("p")
        state.blocked_intents["push"] = "Not yet"
        store.save(state)
        assert store.load(state.session_id).blocked_intents == {"push": "Not yet"}

    def test_write_failure_raises_session_error(self, tmp_path):
        """Filesystem errors, directory creation included, surface as SessionError"""
        blocker = tmp_path / "state"
        blocker.write_text("not a directory")
        with pytest.raises(SessionError):
            SessionStore(tmp_path, blocker).create("p")

    def test_clear(self, store):
        state = store.create("p")
        assert store.clear()
        assert store.load(state.session_id) is None
        assert store.current_session_id() is None
        assert not store.clear()


class TestRecordCapability:
    """Tests for lifting blocks as capabilities are satisfied"""

    @pytest.fixture
    def state(self, store):
        return store.create(
            "bug-fix",
            chain=["debugging", "tdd"],
            capabilities_required=["root_cause_found", "tests_written"],
            blocked_intents={"write_impl": "Tests must be written first", "commit": "Tests must pass first"},
        )

    def test_records_evidence(self, state, skills_config):
        record_capability(state, "root_cause_found", "debugging", skills_config.skills,
                          EvidenceType.FILE_EXISTS, "notes/rca.md")
        evidence = state.capabilities_satisfied[0]
        assert evidence.capability == "root_cause_found"
        assert evidence.evidence_type == EvidenceType.FILE_EXISTS
        assert evidence.evidence_path == "notes/rca.md"

    def test_lifts_only_fully_satisfied_blocks(self, state, skills_config):
        """write_impl waits on both skills; commit only on tdd"""
        lifted = record_capability(state, "tests_written", "tdd", skills_config.skills)
        assert lifted == ["commit"]
        assert "write_impl" in state.blocked_intents

        lifted = record_capability(state, "root_cause_found", "debugging", skills_config.skills)
        assert lifted == ["write_impl"]
        assert state.blocked_intents == {}

    def test_advances_skill_index(self, state, skills_config):
        record_capability(state, "root_cause_found", "debugging", skills_config.skills)
        assert state.current_skill_index == 1
        record_capability(state, "tests_written", "tdd", skills_config.skills)
        assert state.current_skill_index == 2

    def test_duplicate_is_noop(self, state, skills_config):
        record_capability(state, "tests_written", "tdd", skills_config.skills)
        assert record_capability(state, "tests_written", "tdd", skills_config.skills) == []
        assert len(state.capabilities_satisfied) == 1
