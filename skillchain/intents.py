"""
Intent classification for agent tool calls.

A tool call is reduced to a list of intent tags ("write", "write_impl",
"commit", ...) which the enforcement engine matches against the session's
blocked intents. Classification is heuristic and never raises: anything
it cannot recognise classifies to no intents.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class FileCategory(str, Enum):
    """What kind of file a write touches."""
    TEST = "test"
    CONFIG = "config"
    DOCS = "docs"
    IMPL = "impl"


# Intent tags
WRITE = "write"
WRITE_IMPL = "write_impl"
WRITE_TEST = "write_test"
WRITE_DOCS = "write_docs"
WRITE_CONFIG = "write_config"
EDIT = "edit"
EDIT_TEST = "edit_test"
COMMIT = "commit"
PUSH = "push"
DEPLOY = "deploy"
DELETE = "delete"


def _compile(patterns):
    return [re.compile(p, re.IGNORECASE) for p in patterns]


TEST_PATTERNS = _compile([
    r"\.test\.[^/]+$",
    r"\.spec\.[^/]+$",
    r"_test\.[^/]+$",
    r"\.tests\.[^/]+$",
    r"(?:^|/)tests?/",
    r"__tests__/",
    r"(?:^|/)test_[^/]+$",
    r"_test\.go$",
    r"(?:^|/)tests/[^/]+\.rs$",
])

CONFIG_PATTERNS = _compile([
    r"\.json$",
    r"\.ya?ml$",
    r"\.toml$",
    r"\.ini$",
    r"\.env",
    r"(?:^|/)\.[^/]+rc$",
    r"\.config\.[^/]+$",
    r"(?:^|/)[^/]+-lock\.[^/]+$",
    r"(?:^|/)lock\.[^/]+$",
    r"\.lock$",
    r"(?:^|/)tsconfig",
    r"(?:^|/)package\.json$",
    r"(?:^|/)Cargo\.toml$",
    r"(?:^|/)pyproject\.toml$",
    r"(?:^|/)Makefile$",
    r"(?:^|/)Dockerfile$",
    r"(?:^|/)docker-compose",
])

DOCS_PATTERNS = _compile([
    r"(?:^|/)docs?/",
    r"(?:^|/)documentation/",
    r"\.md$",
    r"\.mdx$",
    r"\.txt$",
    r"\.rst$",
    r"(?:^|/)README",
    r"(?:^|/)CHANGELOG",
    r"(?:^|/)LICENSE",
    r"(?:^|/)CONTRIBUTING",
    r"(?:^|/)AUTHORS",
])

# Checked in order; a command may carry several intents.
BASH_INTENT_PATTERNS = [
    (COMMIT, _compile([r"\bgit\s+commit\b", r"\bgit\s+add\b.*&&.*\bgit\s+commit\b"])),
    (PUSH, _compile([r"\bgit\s+push\b"])),
    (DEPLOY, _compile([r"\b(?:npm|yarn|pnpm)\s+publish\b", r"\bdeploy\b"])),
    (DELETE, _compile([r"\brm\s+-rf?\b", r"\bgit\s+branch\s+-[dD]\b", r"\bgit\s+push\s+.*--delete\b"])),
    (WRITE, _compile([r"\becho\s+.*>\s", r"\bcat\s+.*>\s", r"\btee\s", r"\bmkdir\b", r"\btouch\b"])),
]

# Static intents for tools that carry no path or command semantics.
TOOL_INTENT_MAP: dict[str, list[str]] = {
    "Write": [WRITE],
    "Edit": [WRITE],
    "NotebookEdit": [WRITE],
    "Read": [],
    "Glob": [],
    "Grep": [],
    "WebFetch": [],
    "WebSearch": [],
    "Task": [],
    "TaskCreate": [],
    "TaskUpdate": [],
    "TaskList": [],
    "TaskGet": [],
    "AskUserQuestion": [],
    "EnterPlanMode": [],
    "ExitPlanMode": [],
}

PATH_AWARE_TOOLS = frozenset({"Write", "Edit", "NotebookEdit"})
PATH_FIELDS = ("path", "file_path", "filePath", "file", "filename")


@dataclass
class ToolInvocation:
    """A single tool call as seen by the pre-tool-use hook."""
    tool: str
    input: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolInvocation":
        tool_input = data.get("input")
        return cls(
            tool=str(data.get("tool", "")),
            input=dict(tool_input) if isinstance(tool_input, Mapping) else {},
        )


@dataclass(frozen=True)
class BlockedIntent:
    intent: str
    reason: str


def classify_file_path(path: str) -> FileCategory:
    """Categorise a path. Priority is test > config > docs > impl."""
    normalized = path.replace("\\", "/")
    if any(p.search(normalized) for p in TEST_PATTERNS):
        return FileCategory.TEST
    if any(p.search(normalized) for p in CONFIG_PATTERNS):
        return FileCategory.CONFIG
    if any(p.search(normalized) for p in DOCS_PATTERNS):
        return FileCategory.DOCS
    return FileCategory.IMPL


def path_aware_intent(base: str, category: FileCategory) -> str:
    return f"{base}_{category.value}"


def extract_file_path(tool_input: Mapping[str, Any]) -> Optional[str]:
    """Return the first non-empty string among the known path fields."""
    for key in PATH_FIELDS:
        value = tool_input.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def classify_bash_command(command: str) -> list[str]:
    intents = []
    for intent, patterns in BASH_INTENT_PATTERNS:
        if intent not in intents and any(p.search(command) for p in patterns):
            intents.append(intent)
    return intents


def map_tool_to_intents(invocation: ToolInvocation) -> list[str]:
    """
    Classify a tool call into intent tags.

    Path-aware tools yield the specific intent first and the generic base
    intent second, so rules on either one apply. Without a path only the
    base intent is returned. Unknown tools yield no intents.
    """
    if invocation.tool == "Bash":
        command = invocation.input.get("command")
        if isinstance(command, str):
            return classify_bash_command(command)
        return []

    base_intents = TOOL_INTENT_MAP.get(invocation.tool)
    if base_intents is None:
        return []

    if invocation.tool in PATH_AWARE_TOOLS:
        path = extract_file_path(invocation.input)
        if path is not None:
            base = base_intents[0]
            return [path_aware_intent(base, classify_file_path(path)), base]

    return list(base_intents)


def find_blocked_intents(
    invocation: ToolInvocation,
    blocked: Mapping[str, str],
) -> list[BlockedIntent]:
    """Return every classified intent present in the blocked map, with its reason."""
    return [
        BlockedIntent(intent=intent, reason=blocked[intent])
        for intent in map_tool_to_intents(invocation)
        if intent in blocked
    ]
