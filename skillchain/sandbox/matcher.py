"""
Command and write-path matching against a sandbox policy.

Deny rules always win over allow rules, and an empty allow list denies
everything. Commands additionally match by prefix ("npm test" allows
"npm test -- --watch"); write paths only match exactly or by glob.
"""

import re
from functools import lru_cache
from typing import Iterable

from .models import SandboxPolicy


WILDCARD_ALL = frozenset({"*", "**"})


def expand_braces(pattern: str) -> list[str]:
    """Expand the first {a,b} group recursively: 'src/*.{ts,js}' -> two patterns."""
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    for end in range(start, len(pattern)):
        if pattern[end] == "{":
            depth += 1
        elif pattern[end] == "}":
            depth -= 1
            if depth == 0:
                break
    else:
        return [pattern]

    body = pattern[start + 1:end]
    options, current, depth = [], "", 0
    for ch in body:
        if ch == "," and depth == 0:
            options.append(current)
            current = ""
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current += ch
    options.append(current)

    if len(options) < 2:
        return [pattern]

    prefix, suffix = pattern[:start], pattern[end + 1:]
    expanded = []
    for option in options:
        expanded.extend(expand_braces(prefix + option + suffix))
    return expanded


def _translate(pattern: str) -> str:
    i, n = 0, len(pattern)
    out = []
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            close = pattern.find("]", i + 1)
            if close == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1:close]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = close
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern:
    alternatives = [_translate(p) for p in expand_braces(pattern)]
    return re.compile(r"(?s:" + "|".join(alternatives) + r")\Z")


def glob_match(value: str, pattern: str) -> bool:
    """Shell-style glob match; '**' crosses directories, dotfiles match."""
    try:
        return compile_glob(pattern).match(value) is not None
    except re.error:
        return False


def prefix_match(value: str, pattern: str) -> bool:
    return bool(pattern) and value.startswith(pattern)


def matches_any(value: str, patterns: Iterable[str], allow_prefix: bool = False) -> bool:
    for pattern in patterns:
        if value == pattern or pattern in WILDCARD_ALL:
            return True
        if allow_prefix and prefix_match(value, pattern):
            return True
        if glob_match(value, pattern):
            return True
    return False


def is_command_allowed(command: str, policy: SandboxPolicy) -> bool:
    if not policy.allow_commands:
        return False
    if matches_any(command, policy.deny_commands, allow_prefix=True):
        return False
    return matches_any(command, policy.allow_commands, allow_prefix=True)


def is_write_allowed(path: str, policy: SandboxPolicy) -> bool:
    if not policy.allow_write:
        return False
    if matches_any(path, policy.deny_write):
        return False
    return matches_any(path, policy.allow_write)


def is_valid_glob_pattern(pattern) -> bool:
    if not isinstance(pattern, str) or not pattern.strip():
        return False
    if "\0" in pattern:
        return False
    try:
        compile_glob(pattern)
    except re.error:
        return False
    return True
