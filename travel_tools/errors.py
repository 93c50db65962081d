from typing import Any, Iterable, Optional


class ToolError(Exception):
    """Base class for failures raised while resolving or running a tool."""


class NoSuchToolError(ToolError):
    def __init__(self, tool_name: str, available: Iterable[str] = ()) -> None:
        self.tool_name = tool_name
        self.available = list(available)
        super().__init__(
            f"Model tried to call unavailable tool '{tool_name}'. "
            f"Available tools: {', '.join(self.available) or 'none'}."
        )


class InvalidToolArgumentsError(ToolError):
    def __init__(self, tool_name: str, args: Any, message: str) -> None:
        self.tool_name = tool_name
        self.args_value = args
        self.message = message
        super().__init__(f"Invalid arguments for tool '{tool_name}': {message}")


class ProviderError(ToolError):
    """An upstream provider could not produce a usable response."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None) -> None:
        self.provider = provider
        self.status_code = status_code
        self.message = message
        detail = f"{provider} error"
        if status_code is not None:
            detail += f": {status_code}"
        super().__init__(f"{detail} ({message})")
