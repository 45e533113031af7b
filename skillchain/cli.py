"""
skillchain command line.

Hook commands speak the agent hook protocol: a JSON document on stdin,
exit code 0 to allow and 1 to block, with the message on stdout (allow)
or stderr (block).
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .compliance import FeedbackLoopOptions, format_exhausted, run_feedback_loop
from .config import ConfigManager, configure_logging
from .enforcement import PreToolUseHook, StopHook, activate_profile, format_guidance, format_status_summary
from .enforcement.formatter import find_provider, skill_invocation
from .errors import ConfigurationError, SandboxConfigError, SessionError
from .intents import ToolInvocation
from .loader import ConfigLoader, load_profiles_config, load_skills_config, validate_configs
from .sandbox import SandboxGuard, TDDEvent, TDDEventType, TDDMachine, TDDPhase, load_sandbox_config
from .session import SessionStore


logger = logging.getLogger(__name__)

EXIT_ALLOW = 0
EXIT_BLOCK = 1
EXIT_USAGE = 2


def _config(args) -> ConfigManager:
    return ConfigManager(
        working_dir=Path(args.dir) if args.dir else None,
        strict=not getattr(args, "lenient_config", False),
    )


def _split_list(value):
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def cmd_pre_tool_use(args):
    """Gate one tool call read from stdin."""
    manager = _config(args)
    try:
        payload = json.loads(sys.stdin.read() or "{}")
    except json.JSONDecodeError as e:
        print(f"[chain] invalid hook input: {e}", file=sys.stderr)
        return EXIT_BLOCK
    if not isinstance(payload, dict) or not isinstance(payload.get("tool"), str):
        print("[chain] invalid hook input: missing 'tool'", file=sys.stderr)
        return EXIT_BLOCK

    loader = ConfigLoader(
        Path(args.skills) if args.skills else manager.skills_path,
        Path(args.profiles) if args.profiles else manager.profiles_path,
        ttl=manager.config.hook.cache_ttl_seconds,
    )
    auto_select = manager.config.hook.auto_select and not args.no_auto
    if payload.get("autoSelect") is False:
        auto_select = False

    hook = PreToolUseHook(
        SessionStore(manager.working_dir, manager.state_dir),
        skills=loader.try_skills(),
        profiles=loader.try_profiles(),
        auto_select=auto_select,
    )
    prompt = payload.get("prompt")
    result = hook.check_with_exit_code(
        ToolInvocation.from_dict(payload),
        prompt=prompt if isinstance(prompt, str) else None,
    )
    if result.stdout:
        print(result.stdout)
    if result.stderr:
        print(result.stderr, file=sys.stderr)
    return result.exit_code


def cmd_feedback(args):
    """Check a model response (stdin) for required skill calls."""
    manager = _config(args)
    required = _split_list(args.required or os.getenv("REQUIRED_SKILLS"))
    if not required:
        print("[chain] no required skills given (--required or REQUIRED_SKILLS)", file=sys.stderr)
        return EXIT_USAGE

    try:
        if args.max_retries is not None:
            max_retries = args.max_retries
        else:
            max_retries = int(os.getenv("MAX_RETRIES") or manager.config.feedback.max_retries)
        if args.attempt is not None:
            attempt = args.attempt
        else:
            attempt = int(os.getenv("ATTEMPT_NUMBER") or 1)
    except ValueError as e:
        print(f"[chain] invalid retry settings: {e}", file=sys.stderr)
        return EXIT_USAGE

    options = FeedbackLoopOptions(
        required_skills=required,
        suggested_skills=_split_list(args.suggested or os.getenv("SUGGESTED_SKILLS")),
        max_retries=max_retries,
    )
    result = run_feedback_loop(sys.stdin.read(), options, attempt_number=attempt)
    if result.compliant:
        return EXIT_ALLOW
    if result.retry_prompt:
        print(result.retry_prompt)
    else:
        print(format_exhausted(result, options.max_retries))
    return EXIT_BLOCK


def cmd_stop(args):
    """Allow or block the agent stopping, based on completion requirements."""
    manager = _config(args)
    loader = ConfigLoader(
        manager.skills_path,
        Path(args.profiles) if args.profiles else manager.profiles_path,
    )
    hook = StopHook(SessionStore(manager.working_dir, manager.state_dir), profiles=loader.try_profiles())
    result = hook.check_with_exit_code()
    if result.stdout:
        print(result.stdout)
    if result.stderr:
        print(result.stderr, file=sys.stderr)
    return result.exit_code


def cmd_sandbox_check(args):
    """Check a command or write path against a skill's sandbox policy."""
    try:
        config = load_sandbox_config(args.skill_dir)
    except SandboxConfigError as e:
        print(f"[sandbox] {e}", file=sys.stderr)
        return EXIT_USAGE
    if config is None:
        print(f"[sandbox] no sandbox config in {args.skill_dir}", file=sys.stderr)
        return EXIT_USAGE

    guard = SandboxGuard(config, phase=TDDPhase(args.phase) if args.phase else None)
    if args.command is not None:
        decision = guard.check_command(args.command)
    else:
        decision = guard.check_write(args.write)

    stream = sys.stdout if decision.allowed else sys.stderr
    print(f"[sandbox] {decision.reason}", file=stream)
    return EXIT_ALLOW if decision.allowed else EXIT_BLOCK


def cmd_sandbox_transition(args):
    """Apply a TDD event to a phase and print the result."""
    machine = TDDMachine(initial=TDDPhase(args.phase))
    event_type = TDDEventType(args.event)
    if event_type == TDDEventType.FORCE_PHASE and not args.to:
        print("[sandbox] FORCE_PHASE requires --to", file=sys.stderr)
        return EXIT_USAGE
    machine.send(TDDEvent(event_type, phase=TDDPhase(args.to) if args.to else None))
    print(machine.phase.value)
    return EXIT_ALLOW


def cmd_activate(args):
    """Start a session for a named profile."""
    manager = _config(args)
    try:
        skills = load_skills_config(args.skills or manager.skills_path)
        profiles = load_profiles_config(args.profiles or manager.profiles_path)
    except ConfigurationError as e:
        print(f"[chain] {e}", file=sys.stderr)
        return EXIT_BLOCK

    profile = profiles.get(args.profile)
    if profile is None:
        print(f"Profile \"{args.profile}\" not found", file=sys.stderr)
        print(f"Available profiles: {', '.join(p.name for p in profiles.profiles)}", file=sys.stderr)
        return EXIT_BLOCK

    try:
        state = activate_profile(profile, skills.skills, SessionStore(manager.working_dir, manager.state_dir))
    except SessionError as e:
        print(f"[chain] {e}", file=sys.stderr)
        return EXIT_BLOCK

    print(f"Activated profile: {state.profile_id}")
    print(f"  Session ID: {state.session_id}")
    print(f"  Strictness: {state.strictness.value}")
    if state.chain:
        print()
        print("Chain:")
        for i, name in enumerate(state.chain, 1):
            print(f"  {i}. {name}")
    if state.blocked_intents:
        print()
        print("Blocked intents:")
        for intent, reason in state.blocked_intents.items():
            print(f"  {intent}: {reason}")
    print()
    print(format_guidance(state, skills.skills))
    return EXIT_ALLOW


def cmd_next(args):
    """Print the next skill to invoke for the active session."""
    manager = _config(args)
    state = SessionStore(manager.working_dir, manager.state_dir).load_current()
    if state is None:
        if args.json:
            print(json.dumps({"active": False, "next": None}, indent=2))
        else:
            print("No active chain session.")
            print("Run `skillchain activate <profile>` to start a workflow.")
        return EXIT_ALLOW

    loaded = ConfigLoader(args.skills or manager.skills_path, manager.profiles_path).try_skills()
    skills = loaded.skills if loaded else []
    if not args.json:
        print(format_guidance(state, skills))
        return EXIT_ALLOW

    remaining = state.unsatisfied_capabilities()
    next_capability = remaining[0] if remaining else None
    current_skill = find_provider(next_capability, skills, state.chain) if next_capability else None
    total = len(state.capabilities_required)
    print(json.dumps({
        "active": True,
        "profile_id": state.profile_id,
        "complete": not remaining,
        "current_skill": current_skill,
        "next_capability": next_capability,
        "progress": {"satisfied": total - len(remaining), "total": total},
        "next": skill_invocation(current_skill) if current_skill else None,
    }, indent=2))
    return EXIT_ALLOW


def cmd_session_status(args):
    manager = _config(args)
    state = SessionStore(manager.working_dir, manager.state_dir).load_current()
    if state is None:
        print("No active session")
        return EXIT_ALLOW

    if args.json:
        print(state.model_dump_json(indent=2))
        return EXIT_ALLOW

    skills = ConfigLoader(manager.skills_path, manager.profiles_path).try_skills()
    print(format_status_summary(state, skills.skills if skills else []))
    return EXIT_ALLOW


def cmd_session_clear(args):
    manager = _config(args)
    if SessionStore(manager.working_dir, manager.state_dir).clear():
        print("Session cleared")
    else:
        print("No active session")
    return EXIT_ALLOW


def cmd_validate(args):
    """Validate skills.yaml and profiles.yaml together."""
    manager = _config(args)
    ok, errors = manager.validate()
    for error in errors:
        print(f"ERROR: config: {error}")

    try:
        skills = load_skills_config(args.skills or manager.skills_path)
        profiles = load_profiles_config(args.profiles or manager.profiles_path)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return EXIT_BLOCK

    report = validate_configs(skills, profiles)
    for error in report.errors:
        print(f"ERROR: {error}")
    for warning in report.warnings:
        print(f"WARNING: {warning}")

    if ok and report.valid:
        print(f"OK: {len(skills.skills)} skills, {len(profiles.profiles)} profiles")
        return EXIT_ALLOW
    return EXIT_BLOCK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillchain",
        description="Skill-chain enforcement for coding agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  echo '{"tool": "Write", "input": {"file_path": "src/app.py"}}' | skillchain hook pre-tool-use
  skillchain hook feedback --required tdd < response.txt
  skillchain hook stop
  skillchain activate bug-fix
  skillchain next
  skillchain sandbox check skills/tdd --command "npm test"
  skillchain sandbox transition --phase BLOCKED --event TEST_WRITTEN
  skillchain session status
  skillchain validate
        """
    )
    parser.add_argument('--dir', '-d', help='Working directory (default: CHAIN_CWD or current)')
    parser.add_argument('--version', '-v', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # hook
    hook_parser = subparsers.add_parser('hook', help='Agent hook entry points')
    # hooks fall back to default settings on a broken chain.yaml
    hook_parser.set_defaults(lenient_config=True)
    hook_subparsers = hook_parser.add_subparsers(dest='hook_command')

    pre_parser = hook_subparsers.add_parser('pre-tool-use', help='Gate a tool call (JSON on stdin)')
    pre_parser.add_argument('--skills', help='Skills YAML (default from config)')
    pre_parser.add_argument('--profiles', help='Profiles YAML (default from config)')
    pre_parser.add_argument('--no-auto', action='store_true', help='Disable profile auto-activation')
    pre_parser.set_defaults(func=cmd_pre_tool_use)

    feedback_parser = hook_subparsers.add_parser('feedback', help='Check a response (stdin) for skill calls')
    feedback_parser.add_argument('--required', help='Comma-separated required skills (env REQUIRED_SKILLS)')
    feedback_parser.add_argument('--suggested', help='Comma-separated suggested skills (env SUGGESTED_SKILLS)')
    feedback_parser.add_argument('--max-retries', type=int, help='Maximum attempts (env MAX_RETRIES)')
    feedback_parser.add_argument('--attempt', type=int, help='Current attempt number (env ATTEMPT_NUMBER)')
    feedback_parser.set_defaults(func=cmd_feedback)

    stop_parser = hook_subparsers.add_parser('stop', help='Check completion requirements before stopping')
    stop_parser.add_argument('--profiles', help='Profiles YAML (default from config)')
    stop_parser.set_defaults(func=cmd_stop)

    # activate
    activate_parser = subparsers.add_parser('activate', help='Start a session for a profile')
    activate_parser.add_argument('profile', help='Profile name')
    activate_parser.add_argument('--skills', help='Skills YAML (default from config)')
    activate_parser.add_argument('--profiles', help='Profiles YAML (default from config)')
    activate_parser.set_defaults(func=cmd_activate)

    # next
    next_parser = subparsers.add_parser('next', help='Show the next skill to invoke')
    next_parser.add_argument('--skills', help='Skills YAML (default from config)')
    next_parser.add_argument('--json', action='store_true', help='Output as JSON')
    next_parser.set_defaults(func=cmd_next)

    # sandbox
    sandbox_parser = subparsers.add_parser('sandbox', help='TDD phase sandbox')
    sandbox_subparsers = sandbox_parser.add_subparsers(dest='sandbox_command')

    phases = [p.value for p in TDDPhase]
    check_parser = sandbox_subparsers.add_parser('check', help='Check a command or write path')
    check_parser.add_argument('skill_dir', help='Skill directory containing SKILL.md')
    target = check_parser.add_mutually_exclusive_group(required=True)
    target.add_argument('--command', '-c', help='Shell command to check')
    target.add_argument('--write', '-w', help='File path to check for writing')
    check_parser.add_argument('--phase', choices=phases, help='Current phase (default: config state)')
    check_parser.set_defaults(func=cmd_sandbox_check)

    transition_parser = sandbox_subparsers.add_parser('transition', help='Apply a TDD event')
    transition_parser.add_argument('--phase', required=True, choices=phases, help='Current phase')
    transition_parser.add_argument('--event', required=True, choices=[e.value for e in TDDEventType])
    transition_parser.add_argument('--to', choices=phases, help='Target phase for FORCE_PHASE')
    transition_parser.set_defaults(func=cmd_sandbox_transition)

    # session
    session_parser = subparsers.add_parser('session', help='Inspect the active session')
    session_subparsers = session_parser.add_subparsers(dest='session_command')

    status_parser = session_subparsers.add_parser('status', help='Show session progress')
    status_parser.add_argument('--json', action='store_true', help='Output raw session JSON')
    status_parser.set_defaults(func=cmd_session_status)

    clear_parser = session_subparsers.add_parser('clear', help='Remove the active session')
    clear_parser.set_defaults(func=cmd_session_clear)

    # validate
    validate_parser = subparsers.add_parser('validate', help='Validate skills and profiles')
    validate_parser.add_argument('--skills', help='Skills YAML (default from config)')
    validate_parser.add_argument('--profiles', help='Profiles YAML (default from config)')
    validate_parser.set_defaults(func=cmd_validate)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        return EXIT_USAGE

    try:
        manager = _config(args)
    except ConfigurationError as e:
        print(f"[chain] {e}", file=sys.stderr)
        return EXIT_USAGE
    configure_logging(manager.config.logging)

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
