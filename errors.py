"""
Error taxonomy shared by the query engine and every transport.

Each transport maps the ToolError subclasses onto its own wire vocabulary.
"""


class OriginUnavailable(Exception):
    """The origin feed could not be fetched or parsed. Never reaches a client."""


class ToolError(Exception):
    """Base class for failures reported back to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownTool(ToolError):
    """The requested operation is not part of the served tool set."""


class InvalidArgument(ToolError):
    """Arguments are missing or have the wrong shape."""


class NotFound(ToolError):
    """No article matched the given selector."""


class ToolExecutionError(ToolError):
    """Unclassified failure while running a tool."""
