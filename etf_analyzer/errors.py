"""Exception types raised by the holdings engine and its collaborators."""


class EngineError(Exception):
    """Base class for structurally invalid engine requests."""


class ColumnNotFound(EngineError):
    """Raised when a requested column is absent from a Table."""

    def __init__(self, column: str, available: list[str] | tuple[str, ...] = ()):
        self.column = column
        self.available = tuple(available)
        msg = f"Column '{column}' not found"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class TypeMismatch(EngineError):
    """Raised when a column's declared type does not match the requested one."""


class EmptyInput(EngineError):
    """Raised when an operation that needs at least one input receives none."""


class JoinKeyMismatch(EngineError):
    """Raised when a join key is missing or incompatible on either side."""


class ConfigError(ValueError):
    """Raised when a configuration file or value is invalid."""


class LoaderError(Exception):
    """Raised when holdings data cannot be located or read."""
