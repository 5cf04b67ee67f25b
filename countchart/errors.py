from __future__ import annotations


class ChartError(Exception):
    """Base class for every error raised by countchart."""


class InvalidInput(ChartError, ValueError):
    """Malformed request fields, bad counts, absent arguments or out-of-range dimensions."""


class RenderFailure(ChartError, RuntimeError):
    """Image buffer creation or PNG encoding failed."""


def require(value: object, name: str) -> None:
    if value is None:
        raise InvalidInput(f"{name} is required")
