"""Inline calculator of the launcher (``=2+2`` copies ``4``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .process import run

if TYPE_CHECKING:
    import logging

__all__ = ["PREFIX", "calc_eval", "clean_expression", "format_result"]

PREFIX = "="

_ALLOWED = frozenset("0123456789+-*/.^() ")


def clean_expression(expr: str) -> str | None:
    """Return the expression to hand to ``bc``, None if it is not arithmetic."""
    expr = expr.strip().strip(PREFIX).lower()
    if not expr or not set(expr) <= _ALLOWED:
        return None
    return expr


def format_result(output: str) -> str:
    """Trim the trailing zeros ``bc`` prints with ``scale=4``."""
    result = output.strip()
    if "." not in result:
        return result
    result = result.rstrip("0").rstrip(".")
    if result in ("", "-"):
        return "0"
    return result


async def calc_eval(expr: str, log: logging.Logger) -> str | None:
    """Evaluate `expr` with ``bc -l``.

    Returns:
        The formatted result, or None when the expression is rejected or
        ``bc`` fails
    """
    cleaned = clean_expression(expr)
    if cleaned is None:
        return None
    output = await run(["bc", "-l"], log, stdin=f"scale=4; {cleaned}\n".encode(), env={"BC_LINE_LENGTH": "0"})
    if output is None:
        return None
    result = format_result(output.decode(errors="replace"))
    return result or None
