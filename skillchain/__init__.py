"""
skillchain - workflow-rule enforcement for coding agents.

Classifies agent tool calls into intents, gates them against the active
skill chain, sandboxes TDD phases and checks that responses invoke the
skills they were told to.
"""

__version__ = "0.4.0"
