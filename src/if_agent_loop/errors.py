from __future__ import annotations

from if_agent_loop.usage import ModelUsage


class AgentLoopError(Exception):
    """Base class for errors raised by if_agent_loop."""


class ConfigurationError(AgentLoopError):
    """Raised when config.json or the environment cannot produce a runnable setup."""


class GenerationError(AgentLoopError):
    """Raised when a model response does not validate against the requested schema.

    ``usage`` holds the tokens the backend billed for the rejected response.
    """

    def __init__(self, message: str, usage: ModelUsage | None = None):
        super().__init__(message)
        self.usage = usage or ModelUsage()


class RateLimitError(AgentLoopError):
    """Raised by providers when the backend asks the caller to slow down.

    ``retry_after`` is the delay in seconds suggested by the backend, if any.
    """

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after
