"""
Output Normalizer - turns free-form model text into one of three shapes.

    StructuredOutput  the response parsed as a JSON object or array
    CodeBlockOutput   a fenced ```python block was found in the text
    RawOutput         anything else, passed through untouched

``normalize`` is pure and never raises. Callers match on the returned
variant; ``to_payload()`` gives the dict form that flows downstream and
into the trace.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

# Fenced block tagged as executable Python source
CODE_FENCE_PATTERN = re.compile(r"```(?:python|py)[ \t]*\r?\n(.*?)```", re.DOTALL | re.IGNORECASE)

# Keys that carry executable code inside a structured payload
CODE_KEYS = ("pythonCode", "code")


@dataclass(frozen=True)
class StructuredOutput:
    payload: dict | list

    def to_payload(self) -> Any:
        return self.payload


@dataclass(frozen=True)
class CodeBlockOutput:
    code: str
    raw_output: str

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "rawOutput": self.raw_output}


@dataclass(frozen=True)
class RawOutput:
    raw_output: str

    def to_payload(self) -> dict[str, Any]:
        return {"rawOutput": self.raw_output}


NormalizedOutput = StructuredOutput | CodeBlockOutput | RawOutput


def _parse_structured(text: str) -> dict | list | None:
    try:
        value = json.loads(text)
    except (ValueError, TypeError, RecursionError):
        return None
    # Bare scalars ("42", "null") are text, not payloads
    if isinstance(value, dict | list):
        return value
    return None


def normalize(raw: Any) -> NormalizedOutput:
    """
    Interpret a raw model response.

    Args:
        raw: Response text. Non-string input is coerced with ``str()``.

    Returns:
        StructuredOutput, CodeBlockOutput or RawOutput.
    """
    if raw is None:
        text = ""
    elif isinstance(raw, str):
        text = raw
    else:
        text = str(raw)

    payload = _parse_structured(text.strip())
    if payload is not None:
        return StructuredOutput(payload)

    match = CODE_FENCE_PATTERN.search(text)
    if match:
        return CodeBlockOutput(code=match.group(1).strip("\n"), raw_output=text)

    return RawOutput(text)


def executable_code(output: NormalizedOutput) -> str | None:
    """Return code the sandbox should run, or None when the output carries none."""
    if isinstance(output, CodeBlockOutput):
        return output.code or None
    if isinstance(output, StructuredOutput) and isinstance(output.payload, dict):
        for key in CODE_KEYS:
            value = output.payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return None
