"""Custom exceptions for lixqa-client.

This module defines the hierarchy of exceptions raised while generating a
client module. Errors raised by the generated client at request time live in
:mod:`lixqa_client.runtime.errors` instead.
"""


class LixqaError(Exception):
    """Base exception for all generation errors.

    Example:
        try:
            codegen.generate()
        except LixqaError as e:
            print(f"lixqa error: {e}")
    """

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class SchemaError(LixqaError):
    """Base exception for route schema errors."""

    pass


class SchemaLoadError(SchemaError):
    """Failed to load the route schema from a source.

    Raised when the ``__client__`` endpoint cannot be reached, answers with a
    non-2xx status, or a local schema file cannot be read or parsed.

    Attributes:
        source: The base URL or file path that failed to load.
        cause: The underlying exception that caused the failure.
    """

    def __init__(self, source: str, cause: Exception | None = None):
        self.source = source
        self.cause = cause
        message = f"Failed to load schema from '{source}'"
        if cause:
            message += f': {cause}'
        super().__init__(message)


class RouteDefinitionError(SchemaError):
    """A route object in the schema payload is malformed.

    A route without a ``path`` means the server broke the schema contract,
    so generation is aborted instead of skipping the route.

    Attributes:
        index: Position of the offending route in the payload.
        reason: Explanation of what is wrong with the route.
    """

    def __init__(self, index: int, reason: str | None = None):
        self.index = index
        self.reason = reason
        message = f'Invalid route definition at index {index}'
        if reason:
            message += f': {reason}'
        super().__init__(message)


class CodeGenerationError(LixqaError):
    """Error during code generation.

    Attributes:
        context: Additional context about what was being generated.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self, message: str, context: str | None = None, cause: Exception | None = None
    ):
        self.context = context
        self.cause = cause
        full_message = message
        if context:
            full_message = f'{message} (while generating {context})'
        if cause:
            full_message += f': {cause}'
        super().__init__(full_message)


class ConfigurationError(LixqaError):
    """Invalid generator configuration.

    Attributes:
        config_path: Path to the configuration file, if applicable.
        field: The specific configuration field that is invalid.
    """

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        field: str | None = None,
    ):
        self.config_path = config_path
        self.field = field
        full_message = message
        if config_path:
            full_message = f"{message} in '{config_path}'"
        if field:
            full_message += f' (field: {field})'
        super().__init__(full_message)


class OutputError(LixqaError):
    """Failed to write the generated module.

    Attributes:
        output_path: The path that could not be written.
        cause: The underlying exception that caused the failure.
    """

    def __init__(self, output_path: str, cause: Exception | None = None):
        self.output_path = output_path
        self.cause = cause
        message = f"Failed to write output to '{output_path}'"
        if cause:
            message += f': {cause}'
        super().__init__(message)
