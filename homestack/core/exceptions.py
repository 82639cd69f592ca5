"""Core exceptions for homestack operations."""


class HomestackError(Exception):
    """Base exception for homestack operations."""


class ConfigurationError(HomestackError):
    """Required configuration is missing or invalid."""


class UnknownCommandError(HomestackError):
    """Command name is neither a global command nor a lifecycle verb."""

    def __init__(self, command: str):
        super().__init__(f"Unknown command: {command}")
        self.command = command


class UsageError(HomestackError):
    """Command was invoked with arguments it does not accept."""


class StackNotFoundError(HomestackError):
    """No stack matches the requested name."""

    def __init__(self, name: str, available: list[str]):
        listing = ", ".join(available) if available else "none"
        super().__init__(f"Stack '{name}' not found (available: {listing})")
        self.name = name
        self.available = available


class ComposeFileError(HomestackError):
    """Compose file could not be read or parsed."""


class ComposeCommandError(HomestackError):
    """External compose runtime could not be run or failed."""
