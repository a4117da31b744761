from __future__ import annotations

from .tool_defs import ToolSpec


def split_params(raw_params: str) -> list[str]:
    """Comma-split ``raw_params`` and trim each field. Blank input has no fields."""
    if not raw_params or not raw_params.strip():
        return []
    return [p.strip() for p in raw_params.split(",")]


def check_params(spec: ToolSpec, params: list[str]) -> str | None:
    """Return a usage error for ``spec`` if ``params`` does not fit its contract.

    Tools without parameters accept whatever they are given; models often
    write ``PARAMS: none`` for them.
    """
    if spec.arity == 0:
        return None
    if len(params) == spec.arity and all(params):
        return None

    fields = ",".join(spec.parameters)
    plural = "parameter" if spec.arity == 1 else "parameters"
    return (
        f"Error: {spec.name.value} requires {spec.arity} {plural}: {fields}\n"
        f"Example:\nTOOL_CALL: {spec.name.value}\n{spec.usage}"
    )
