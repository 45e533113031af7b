"""
Session persistence.

State file:    <cwd>/.claude/chain_state/<session_id>.json
Pointer file:  <cwd>/.claude/chain_state/current_session

CLAUDE_SESSION_ID, when set, names the session directly and the pointer
file is ignored. Reads are forgiving: a missing or corrupt file is
reported as "no session" so the hook fails open.
"""

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from .errors import SessionError
from .schema import CapabilityEvidence, EvidenceType, SessionState, SkillSpec


logger = logging.getLogger(__name__)

SESSION_ENV_VAR = "CLAUDE_SESSION_ID"
CURRENT_POINTER = "current_session"


class SessionStore:
    """Reads and writes SessionState records for one working directory."""

    def __init__(self, working_dir: Union[str, Path], state_dir: Optional[Union[str, Path]] = None):
        self.working_dir = Path(working_dir)
        if state_dir is None:
            self.state_dir = self.working_dir / ".claude" / "chain_state"
        else:
            state_dir = Path(state_dir)
            self.state_dir = state_dir if state_dir.is_absolute() else self.working_dir / state_dir

    def _ensure_dir(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)

        gitignore = self.state_dir / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text("*\n")

    def _state_file(self, session_id: str) -> Path:
        return self.state_dir / f"{session_id}.json"

    def current_session_id(self) -> Optional[str]:
        if env_id := os.getenv(SESSION_ENV_VAR):
            return env_id

        pointer = self.state_dir / CURRENT_POINTER
        try:
            session_id = pointer.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read session pointer %s: %s", pointer, e)
            return None
        return session_id or None

    def create(self, profile_id: str, **fields) -> SessionState:
        """Create, persist and point at a new session."""
        session_id = os.getenv(SESSION_ENV_VAR) or uuid.uuid4().hex[:12]
        state = SessionState(session_id=session_id, profile_id=profile_id, **fields)
        self.save(state)
        self._write_atomic(self.state_dir / CURRENT_POINTER, session_id)
        return state

    def save(self, state: SessionState) -> None:
        self._write_atomic(self._state_file(state.session_id), state.model_dump_json(indent=2))

    def _write_atomic(self, path: Path, content: str) -> None:
        try:
            self._ensure_dir()
            fd, tmp = tempfile.mkstemp(dir=str(self.state_dir), suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, path)
        except OSError as e:
            raise SessionError(f"Failed to write {path}: {e}") from e

    def load(self, session_id: str) -> Optional[SessionState]:
        path = self._state_file(session_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return SessionState.model_validate(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable session state %s: %s", path, e)
            return None

    def load_current(self) -> Optional[SessionState]:
        session_id = self.current_session_id()
        if session_id is None:
            return None
        return self.load(session_id)

    def clear(self, session_id: Optional[str] = None) -> bool:
        """Delete a session (default: the current one). Returns True if anything was removed."""
        session_id = session_id or self.current_session_id()
        if session_id is None:
            return False

        removed = False
        state_file = self._state_file(session_id)
        if state_file.exists():
            state_file.unlink()
            removed = True

        pointer = self.state_dir / CURRENT_POINTER
        if pointer.exists() and pointer.read_text(encoding="utf-8").strip() == session_id:
            pointer.unlink()
            removed = True
        return removed


def record_capability(
    state: SessionState,
    capability: str,
    satisfied_by: str,
    skills: list[SkillSpec],
    evidence_type: EvidenceType = EvidenceType.MANUAL,
    evidence_path: Optional[str] = None,
) -> list[str]:
    """
    Mark a capability satisfied and lift blocks waiting on it.

    Returns the intents that were unblocked. Recording a capability twice
    is a no-op.
    """
    if capability in state.satisfied_capabilities():
        return []

    state.capabilities_satisfied.append(CapabilityEvidence(
        capability=capability,
        satisfied_by=satisfied_by,
        evidence_type=evidence_type,
        evidence_path=evidence_path,
    ))

    satisfied = state.satisfied_capabilities()
    lifted = []
    for intent in list(state.blocked_intents):
        waiting_on = [
            skill.tool_policy.deny_until[intent].until
            for skill in skills
            if skill.name in state.chain and intent in skill.tool_policy.deny_until
        ]
        if waiting_on and all(cap in satisfied for cap in waiting_on):
            del state.blocked_intents[intent]
            lifted.append(intent)

    while (
        state.current_skill_index < len(state.chain)
        and _skill_done(state.chain[state.current_skill_index], skills, satisfied)
    ):
        state.current_skill_index += 1

    return lifted


def _skill_done(name: str, skills: list[SkillSpec], satisfied: set[str]) -> bool:
    for skill in skills:
        if skill.name == name:
            return all(cap in satisfied for cap in skill.provides)
    return True
