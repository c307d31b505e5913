"""
Application errors.

Every error raised by the agent core propagates to the caller of ask/stream_ask;
the CLI and HTTP layers decide how to show it.
"""


class DungeonForgeError(Exception):
    """Base class for errors raised by the agent core."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ServiceUnavailableError(DungeonForgeError):
    """Raised when a required service (e.g. vector store, embeddings API, LLM) is unavailable or misconfigured."""


class ToolExecutionError(DungeonForgeError):
    """A registered capability failed while running (network, bad response)."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(f"{tool}: {message}")


class EmptyQueryError(ToolExecutionError):
    """A capability that needs a query was called without one."""

    def __init__(self, tool: str) -> None:
        super().__init__(tool, "query is required")


class UnknownToolError(DungeonForgeError):
    """The model asked for a tool that is not in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name!r}")


class MissingToolResultError(DungeonForgeError):
    """GRADE or GENERATE ran without a tool result earlier in the conversation."""


class MalformedVerdictError(DungeonForgeError):
    """The grader's forced output was not exactly 'yes' or 'no'."""
