"""
Tests for intent classification of tool calls.
"""

import pytest

from skillchain.intents import (
    BlockedIntent,
    FileCategory,
    ToolInvocation,
    classify_bash_command,
    classify_file_path,
    extract_file_path,
    find_blocked_intents,
    map_tool_to_intents,
)


class TestClassifyFilePath:
    """Tests for path category heuristics"""

    @pytest.mark.parametrize("path", [
        "src/index.test.ts",
        "src/app.spec.js",
        "pkg/handler_test.go",
        "tests/helpers.py",
        "test/unit/thing.js",
        "src/__tests__/App.tsx",
        "lib/test_parser.py",
        "crate/tests/integration.rs",
        "Foo.Tests.cs",
    ])
    def test_test_files(self, path):
        """Should classify common test layouts as test"""
        assert classify_file_path(path) == FileCategory.TEST

    @pytest.mark.parametrize("path", [
        "package.json",
        "config/settings.yaml",
        ".github/workflows/ci.yml",
        "pyproject.toml",
        "setup.ini",
        ".env.local",
        ".eslintrc",
        "vite.config.ts",
        "package-lock.json",
        "Cargo.lock",
        "tsconfig.build.json",
        "Makefile",
        "docker/Dockerfile",
        "docker-compose.override.yml",
    ])
    def test_config_files(self, path):
        """Should classify manifests, dotfiles and lock files as config"""
        assert classify_file_path(path) == FileCategory.CONFIG

    @pytest.mark.parametrize("path", [
        "README.md",
        "docs/guide.html",
        "doc/intro.rst",
        "documentation/api.html",
        "notes.txt",
        "CHANGELOG",
        "LICENSE",
    ])
    def test_docs_files(self, path):
        """Should classify documentation as docs"""
        assert classify_file_path(path) == FileCategory.DOCS

    def test_impl_is_default(self):
        """Should fall back to impl"""
        assert classify_file_path("src/index.ts") == FileCategory.IMPL
        assert classify_file_path("app/models/user.py") == FileCategory.IMPL

    def test_test_beats_config(self):
        """Test patterns take priority over config patterns"""
        assert classify_file_path("tests/fixtures/data.json") == FileCategory.TEST

    def test_config_beats_docs(self):
        """Config patterns take priority over docs patterns"""
        assert classify_file_path("docs/mkdocs.yml") == FileCategory.CONFIG

    @pytest.mark.parametrize("path", ["config/app.env.local", "deploy/prod.env", ".env.local"])
    def test_env_files_anywhere(self, path):
        """Env files are config wherever .env appears in the name"""
        assert classify_file_path(path) == FileCategory.CONFIG

    def test_windows_separators(self):
        """Backslashes should be normalised"""
        assert classify_file_path("src\\__tests__\\App.tsx") == FileCategory.TEST

    def test_case_insensitive(self):
        """Patterns should ignore case"""
        assert classify_file_path("src/Index.TEST.ts") == FileCategory.TEST
        assert classify_file_path("Readme.MD") == FileCategory.DOCS


class TestMapToolToIntents:
    """Tests for tool-to-intent mapping"""

    def test_write_with_impl_path(self):
        """Path-aware tools return specific intent first, base second"""
        invocation = ToolInvocation("Write", {"file_path": "src/index.ts"})
        assert map_tool_to_intents(invocation) == ["write_impl", "write"]

    def test_write_with_test_path(self):
        invocation = ToolInvocation("Write", {"file_path": "src/index.test.ts"})
        assert map_tool_to_intents(invocation) == ["write_test", "write"]

    def test_edit_uses_write_base(self):
        """Edit and NotebookEdit are file writes"""
        assert map_tool_to_intents(ToolInvocation("Edit", {"path": "README.md"})) == ["write_docs", "write"]
        assert map_tool_to_intents(ToolInvocation("NotebookEdit", {"filePath": "a.json"})) == ["write_config", "write"]

    def test_write_without_path(self):
        """Without a path only the base intent is returned"""
        assert map_tool_to_intents(ToolInvocation("Write")) == ["write"]
        assert map_tool_to_intents(ToolInvocation("Write", {"file_path": ""})) == ["write"]
        assert map_tool_to_intents(ToolInvocation("Write", {"file_path": 42})) == ["write"]

    def test_path_field_order(self):
        """First non-empty path field wins"""
        tool_input = {"filename": "docs/a.md", "file_path": "src/a.py"}
        assert extract_file_path(tool_input) == "src/a.py"

    def test_read_only_tools(self):
        """Read and search tools carry no intents"""
        for tool in ("Read", "Glob", "Grep", "WebFetch", "Task", "ExitPlanMode"):
            assert map_tool_to_intents(ToolInvocation(tool, {"file_path": "src/a.py"})) == []

    def test_unknown_tool(self):
        """Unknown tools classify to no intents"""
        assert map_tool_to_intents(ToolInvocation("Teleport", {"file_path": "x"})) == []

    def test_bash_without_command(self):
        assert map_tool_to_intents(ToolInvocation("Bash")) == []
        assert map_tool_to_intents(ToolInvocation("Bash", {"command": ["git", "push"]})) == []


class TestClassifyBashCommand:
    """Tests for command-text heuristics"""

    @pytest.mark.parametrize("command,expected", [
        ('git commit -m "msg"', ["commit"]),
        ("git push origin main", ["push"]),
        ("npm publish", ["deploy"]),
        ("./scripts/deploy.sh prod", ["deploy"]),
        ("rm -rf build", ["delete"]),
        ("git branch -D feature", ["delete"]),
        ("echo hi > out.txt", ["write"]),
        ("mkdir -p dist", ["write"]),
        ("ls -la", []),
        ("npm test", []),
    ])
    def test_single_intents(self, command, expected):
        assert classify_bash_command(command) == expected

    def test_multiple_intents(self):
        """Chained commands carry every matching intent"""
        intents = classify_bash_command("git add . && git commit -m x && git push")
        assert set(intents) == {"commit", "push"}

    def test_no_duplicates(self):
        """Remote branch delete matches push and delete once each"""
        intents = classify_bash_command("git push origin --delete old")
        assert sorted(intents) == ["delete", "push"]
        assert len(intents) == len(set(intents))


class TestFindBlockedIntents:
    """Tests for blocked-intent lookup"""

    def test_scenario_generic_write_blocked(self):
        """Write with no path hits a block on the base intent"""
        blocked = find_blocked_intents(
            ToolInvocation("Write"), {"write": "Tests must be written first"}
        )
        assert blocked == [BlockedIntent("write", "Tests must be written first")]

    def test_test_file_passes_impl_block(self):
        """Writing a test file does not hit a write_impl block"""
        invocation = ToolInvocation("Write", {"file_path": "src/index.test.ts"})
        assert find_blocked_intents(invocation, {"write_impl": "no impl yet"}) == []

    def test_commit_blocked(self):
        invocation = ToolInvocation("Bash", {"command": 'git commit -m "msg"'})
        blocked = find_blocked_intents(invocation, {"commit": "Tests must pass first"})
        assert [b.intent for b in blocked] == ["commit"]

    def test_unknown_tool_fails_open(self):
        assert find_blocked_intents(ToolInvocation("Mystery"), {"write": "x"}) == []

    def test_from_dict_tolerates_bad_input(self):
        """Non-mapping input is treated as empty"""
        invocation = ToolInvocation.from_dict({"tool": "Write", "input": "nonsense"})
        assert invocation.input == {}
        assert map_tool_to_intents(invocation) == ["write"]
