"""
Completion evidence checks.

Each CompletionRequirement names one piece of evidence a profile needs
before its workflow may stop:

- file_exists: a glob (relative to the working directory) matches a file
- marker_found: a regex matches somewhere in a file
- command_success: a command exits with the expected code
- manual: never satisfied automatically
"""

import glob
import logging
import re
import shlex
import subprocess
import time
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from .schema import CapabilityEvidence, CompletionRequirement, EvidenceType


logger = logging.getLogger(__name__)


class EvidenceResult(BaseModel):
    """Outcome of checking one requirement."""
    satisfied: bool
    evidence_type: EvidenceType
    evidence_path: Optional[str] = None
    error: Optional[str] = None
    duration_seconds: Optional[float] = None


class EvidenceChecker:
    """Checks completion requirements against a working directory."""

    DEFAULT_TIMEOUT = 300

    def __init__(self, working_dir: Union[str, Path], timeout: Optional[int] = None):
        self.working_dir = Path(working_dir)
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.working_dir / p

    def check_file_exists(self, pattern: str) -> EvidenceResult:
        matches = sorted(
            m for m in glob.glob(pattern, root_dir=str(self.working_dir), recursive=True)
            if self._resolve(m).is_file()
        )
        if matches:
            return EvidenceResult(
                satisfied=True,
                evidence_type=EvidenceType.FILE_EXISTS,
                evidence_path=matches[0],
            )
        return EvidenceResult(
            satisfied=False,
            evidence_type=EvidenceType.FILE_EXISTS,
            error=f"No files match pattern: {pattern}",
        )

    def check_marker_found(self, path: str, pattern: str) -> EvidenceResult:
        target = self._resolve(path)
        if not target.is_file():
            return EvidenceResult(
                satisfied=False,
                evidence_type=EvidenceType.MARKER_FOUND,
                error=f"File not found: {path}",
            )

        try:
            content = target.read_text(encoding="utf-8", errors="replace")
            found = re.search(pattern, content, re.MULTILINE) is not None
        except OSError as e:
            return EvidenceResult(satisfied=False, evidence_type=EvidenceType.MARKER_FOUND, error=str(e))
        except re.error as e:
            return EvidenceResult(
                satisfied=False,
                evidence_type=EvidenceType.MARKER_FOUND,
                error=f"Invalid pattern {pattern!r}: {e}",
            )

        if found:
            return EvidenceResult(satisfied=True, evidence_type=EvidenceType.MARKER_FOUND, evidence_path=path)
        return EvidenceResult(
            satisfied=False,
            evidence_type=EvidenceType.MARKER_FOUND,
            error=f"Pattern \"{pattern}\" not found in {path}",
        )

    def check_command_success(self, command: str, expected_exit_code: int = 0) -> EvidenceResult:
        """
        Run ``command`` in the working directory.

        Commands starting with "bash -c" go through the shell; anything else
        is split with shlex and run directly.
        """
        start_time = time.time()
        if command.startswith("bash -c"):
            args, use_shell = command, True
        else:
            args, use_shell = shlex.split(command), False

        logger.info("Checking completion command: %s", command)
        try:
            result = subprocess.run(
                args,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                shell=use_shell,
            )
        except subprocess.TimeoutExpired:
            logger.error("Completion command timed out after %ss: %s", self.timeout, command)
            return EvidenceResult(
                satisfied=False,
                evidence_type=EvidenceType.COMMAND_SUCCESS,
                error=f"Command timed out after {self.timeout} seconds",
                duration_seconds=time.time() - start_time,
            )
        except OSError as e:
            return EvidenceResult(
                satisfied=False,
                evidence_type=EvidenceType.COMMAND_SUCCESS,
                error=f"Command could not be run: {e}",
                duration_seconds=time.time() - start_time,
            )

        duration = time.time() - start_time
        if result.returncode == expected_exit_code:
            return EvidenceResult(
                satisfied=True,
                evidence_type=EvidenceType.COMMAND_SUCCESS,
                evidence_path=command,
                duration_seconds=duration,
            )
        output = (result.stderr or result.stdout or "").strip()[:500]
        error = f"Command failed with exit code {result.returncode}"
        if output:
            error = f"{error}: {output}"
        return EvidenceResult(
            satisfied=False,
            evidence_type=EvidenceType.COMMAND_SUCCESS,
            error=error,
            duration_seconds=duration,
        )

    def check(self, requirement: CompletionRequirement) -> EvidenceResult:
        if requirement.type == EvidenceType.FILE_EXISTS:
            return self.check_file_exists(requirement.path)
        if requirement.type == EvidenceType.MARKER_FOUND:
            return self.check_marker_found(requirement.path, requirement.pattern)
        if requirement.type == EvidenceType.COMMAND_SUCCESS:
            return self.check_command_success(requirement.command, requirement.expected_exit_code)
        return EvidenceResult(
            satisfied=False,
            evidence_type=EvidenceType.MANUAL,
            error="Manual evidence requires explicit confirmation",
        )

    def check_all(
        self, requirements: Iterable[CompletionRequirement]
    ) -> list[tuple[CompletionRequirement, EvidenceResult]]:
        return [(req, self.check(req)) for req in requirements]


def create_evidence(capability: str, satisfied_by: str, result: EvidenceResult) -> CapabilityEvidence:
    return CapabilityEvidence(
        capability=capability,
        satisfied_by=satisfied_by,
        evidence_type=result.evidence_type,
        evidence_path=result.evidence_path,
    )
