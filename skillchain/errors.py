"""
Exception hierarchy for skillchain.
"""


class ChainError(Exception):
    """Base exception for skill-chain errors"""
    pass


class ConfigurationError(ChainError):
    """Configuration is invalid or unreadable"""

    def __init__(self, message: str, path=None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class SandboxConfigError(ConfigurationError):
    """Sandbox frontmatter is malformed"""
    pass


class SessionError(ChainError):
    """Session state could not be written"""
    pass
