"""
Exception hierarchy shared by the executor, the sender factory and the CLI.

- ExecutionError subclasses describe how running the command went wrong.
  SpawnError / CaptureError are fatal; CommandFailure is recovered into the
  outcome message and notifications are still sent.
- SenderConstructionError is raised per channel descriptor.
- DeliveryError is raised by a sender and isolated by the dispatcher.
"""


class NotifyMeError(Exception):
    """Base class for every error raised by notifyme."""


class ExecutionError(NotifyMeError):
    pass


class SpawnError(ExecutionError):
    """The command could not be launched (not found, not executable...)."""


class CaptureError(ExecutionError):
    """A pipe expected from the child process is unavailable."""


class CommandFailure(ExecutionError):
    """The command ran but exited with a non-zero status."""

    def __init__(self, returncode: int, stderr: str):
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "<no stderr output>"
        super().__init__(f"exit status {returncode}: {detail}")


class SenderConstructionError(NotifyMeError):
    """A channel descriptor could not be turned into a sender."""

    def __init__(self, message: str, *, kind: str | None = None):
        self.kind = kind
        super().__init__(message)


class UnsupportedChannelError(SenderConstructionError):
    pass


class ChannelNotImplementedError(SenderConstructionError):
    def __init__(self, kind: str):
        super().__init__(f"{kind} notification not implemented yet", kind=kind)


class DeliveryError(NotifyMeError):
    """A notification channel rejected or failed to accept a message."""

    def __init__(self, message: str, *, status: int | None = None):
        self.status = status
        super().__init__(message)


class ConfigError(NotifyMeError):
    pass


class ConfigSetNotFound(ConfigError):
    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        super().__init__(f"config set '{name}' not found at {path}")
