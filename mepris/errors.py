"""Error types and formatting utilities for consistent error messages.

Every failure the tool reports to the user is a ``MeprisError`` subclass. The
class tells the CLI which category the failure belongs to (and so which exit
code to use); the message carries the context needed to act on it.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Field errors use structured format: '<entity> field '<field>' <issue>'
- Use present tense: 'must be', 'is required'
- Include the step id and source file when a step is involved
- Be concise but informative
"""


class MeprisError(Exception):
    """Base class for all errors reported to the user."""


class ConfigError(MeprisError):
    """Raised when a document or alias file cannot be loaded or is invalid."""


class SelectionError(MeprisError):
    """Raised when a step selection (ids, tags, start step) cannot be satisfied."""


class ExpressionError(SelectionError):
    """Raised when a selection expression is malformed.

    Attributes:
        fragment: The part of the input where parsing failed
        position: Offset of the fragment in the input
    """

    def __init__(self, message: str, fragment: str = "", position: int = 0):
        self.fragment = fragment
        self.position = position
        if fragment:
            message = f"{message} at position {position}: '{fragment}'"
        super().__init__(message)


class EnvironmentSetupError(MeprisError):
    """Raised when required environment variables are missing or .env is invalid."""


class ScriptValidationError(MeprisError):
    """Raised when a script fails the syntax check."""


class ExecutionError(MeprisError):
    """Raised when a step cannot be executed.

    Attributes:
        step_id: Id of the failing step, when known
        source_file: Document the step comes from, when known
        tool: Shell or package manager binary involved, when known
    """

    def __init__(
        self,
        message: str,
        step_id: str | None = None,
        source_file: str | None = None,
        tool: str | None = None,
    ):
        self.step_id = step_id
        self.source_file = source_file
        self.tool = tool
        super().__init__(message)


class PackageManagerError(ExecutionError):
    """Raised when no package manager can be used on this host."""


class StateError(MeprisError):
    """Raised when the run state cannot be read or written."""


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Args:
        message: The error message to format

    Returns:
        Formatted error message with 'Error: ' prefix

    Examples:
        >>> format_error("file not found")
        'Error: file not found'

        >>> format_error("Unknown steps: foo")
        'Error: Unknown steps: foo'
    """
    return f"Error: {message}"


def format_field_error(entity: str, field: str, issue: str) -> str:
    """Format a field validation error with structured format.

    Args:
        entity: Name of the entity being validated (e.g., "Step 'git'")
        field: Name of the field that failed validation
        issue: Description of the issue (e.g., "must be a non-empty string")

    Returns:
        Formatted field error message

    Examples:
        >>> format_field_error("Step 'git'", "id", "must be a non-empty string")
        "Step 'git' field 'id' must be a non-empty string"
    """
    return f"{entity} field '{field}' {issue}"


__all__ = [
    "MeprisError",
    "ConfigError",
    "SelectionError",
    "ExpressionError",
    "EnvironmentSetupError",
    "ScriptValidationError",
    "ExecutionError",
    "PackageManagerError",
    "StateError",
    "format_error",
    "format_field_error",
]
