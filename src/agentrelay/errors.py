"""Application-level exception types for agentrelay."""

from __future__ import annotations


class AgentRelayError(Exception):
    """Base exception for agentrelay."""


class ConfigurationError(AgentRelayError):
    """Base exception for configuration and construction errors."""


class DuplicateFunctionError(ConfigurationError):
    """Raised when an agent registers two functions with the same name."""


class ToolDispatchError(AgentRelayError):
    """Recoverable tool failure, reported back to the model as tool output."""


class ToolNotFoundError(ToolDispatchError):
    """Raised when the model requests a tool the active agent does not have."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool {name} not found.")
        self.name = name


class ArgumentParseError(ToolDispatchError):
    """Raised when a tool call's argument payload is not a JSON object."""

    def __init__(self, function_name: str, detail: str) -> None:
        super().__init__(f"Invalid arguments for function '{function_name}': {detail}")
        self.function_name = function_name


class ParameterValidationError(ToolDispatchError):
    """Base for argument/schema mismatches.

    ``path`` is the dotted/bracketed location of the offending value
    (``items[2].name``). ``function_name`` is filled in once the failure is
    attributed to a function.
    """

    def __init__(self, path: str, detail: str, *, function_name: str | None = None) -> None:
        self.path = path
        self.detail = detail
        self.function_name = function_name
        super().__init__(self._render())

    def _render(self) -> str:
        if self.function_name:
            return f"Invalid arguments for function '{self.function_name}': {self.detail}"
        return self.detail

    def for_function(self, function_name: str) -> ParameterValidationError:
        """Return a copy of this error attributed to ``function_name``."""
        return type(self)(self.path, self.detail, function_name=function_name)


class MissingRequiredParameterError(ParameterValidationError):
    """A required parameter is absent."""

    @classmethod
    def at(cls, path: str) -> MissingRequiredParameterError:
        return cls(path, f"Missing required parameter: {path}")


class TypeMismatchError(ParameterValidationError):
    """A value does not have the declared type."""

    @classmethod
    def at(cls, path: str, expected: str, actual: str) -> TypeMismatchError:
        return cls(path, f"Invalid type for parameter '{path}': expected '{expected}', got '{actual}'")


class EnumViolationError(ParameterValidationError):
    """A value is outside the declared enum."""

    @classmethod
    def at(cls, path: str, value: object, allowed: tuple[object, ...]) -> EnumViolationError:
        choices = ", ".join(repr(item) for item in allowed)
        return cls(path, f"Invalid value for parameter '{path}': {value!r} is not one of [{choices}]")


class ResultCoercionError(AgentRelayError, TypeError):
    """Raised when a tool returns a value that cannot be rendered as a string.

    This signals a bug in the tool implementation and aborts the run.
    """
