"""Exception types raised across explain. Each carries the failing operation."""


class ExplainError(Exception):
    """Base error, prefixed with the operation that raised it."""

    def __init__(self, message: str, operation: str = ""):
        self.operation = operation
        self.detail = message
        super().__init__(f"{operation}: {message}" if operation else message)


class ConfigNotFoundError(ExplainError):
    """The state file does not exist yet."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"no configuration file at {path}", "load config")


class ConfigCorruptError(ExplainError):
    """The state file exists but cannot be understood."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path} is malformed ({reason})", "load config")


class PersistenceError(ExplainError):
    """Reading or writing the state file failed at the OS level."""


class EmptyPromptError(ExplainError):
    def __init__(self):
        super().__init__("a prompt is required", "append user turn")


class InvalidModelError(ExplainError):
    def __init__(self, identifier: str, valid: tuple[str, ...]):
        self.identifier = identifier
        self.valid = valid
        super().__init__(f"invalid model {identifier!r}", "select model")


class StreamError(ExplainError):
    """The completion stream failed before its natural end."""

    def __init__(self, message: str, operation: str = "stream", forwarded: int = 0):
        self.forwarded = forwarded
        super().__init__(message, operation)
