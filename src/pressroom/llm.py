"""Shared LLM calling utilities.

Every AI text call in the pipeline (moderation, rewriting, image
pre-analysis, classification, creative writing, sentiment) goes through
``call_llm``.  Two backends:

1. Anthropic API (preferred, uses ANTHROPIC_API_KEY)
2. Subprocess ``claude -p`` (fallback when no key is configured)
"""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
import threading
from typing import Any

import anthropic

logger = logging.getLogger(__name__)

# Process-wide ceiling on in-flight model calls.  Item batches and the
# per-language batches nested inside them share it.
AI_CONCURRENCY = 3
_ai_slots = threading.BoundedSemaphore(AI_CONCURRENCY)


class LLMError(Exception):
    """Base error for LLM calls."""


# ---------------------------------------------------------------------------
# Model name mapping
# ---------------------------------------------------------------------------

_MODEL_MAP: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "haiku": "claude-haiku-4-5-20251001",
    "opus": "claude-opus-4-6",
}

_DEFAULT_MODEL = "claude-sonnet-4-6"


def _resolve_model(model: str | None) -> str:
    """Resolve a short model name to an API model ID."""
    if model is None:
        return os.environ.get("PRESSROOM_MODEL", "").strip() or _DEFAULT_MODEL
    return _MODEL_MAP.get(model, model)


# ---------------------------------------------------------------------------
# Internal: Anthropic API
# ---------------------------------------------------------------------------


def _call_anthropic_api(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str | None,
    temperature: float | None,
    max_tokens: int,
    timeout: int,
    label: str,
) -> str:
    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
    if not api_key:
        raise LLMError("ANTHROPIC_API_KEY not set")

    client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
    resolved_model = _resolve_model(model)

    logger.debug("Calling Anthropic API model=%s (%s)", resolved_model, label)

    kwargs: dict[str, object] = {
        "model": resolved_model,
        "max_tokens": max_tokens,
        "messages": [{"role": "user", "content": user_prompt}],
    }
    if system_prompt.strip():
        kwargs["system"] = system_prompt
    if temperature is not None:
        kwargs["temperature"] = temperature

    response = client.messages.create(**kwargs)  # type: ignore[arg-type]

    text_parts: list[str] = []
    for block in response.content:
        if block.type == "text":
            text_parts.append(block.text)

    result = "".join(text_parts).strip()
    if not result:
        raise LLMError(f"Anthropic API returned empty response (label={label})")
    return result


# ---------------------------------------------------------------------------
# Internal: subprocess fallback
# ---------------------------------------------------------------------------


def _call_subprocess(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str | None,
    timeout: int,
    label: str,
) -> str:
    """Call Claude via subprocess (``claude -p``) fallback."""
    cmd = ["claude", "-p"]
    if model:
        cmd.extend(["--model", model])

    full_prompt = f"{system_prompt}\n\n{user_prompt}" if system_prompt else user_prompt

    logger.debug("Calling Claude CLI subprocess (%s)", label)

    try:
        result = subprocess.run(
            cmd,
            input=full_prompt,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise LLMError(f"Claude CLI not found on PATH (label={label})") from exc
    except subprocess.TimeoutExpired as exc:
        raise LLMError(f"Claude CLI timed out after {timeout}s (label={label})") from exc

    if result.returncode != 0:
        raise LLMError(
            f"Claude CLI failed (exit {result.returncode}, label={label}): {result.stderr[:500]}"
        )

    output = result.stdout.strip()
    if not output:
        raise LLMError(f"Claude CLI returned empty output (label={label})")
    return output


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def call_llm(
    system_prompt: str,
    user_prompt: str,
    *,
    temperature: float | None = None,
    max_tokens: int = 4096,
    model: str | None = None,
    timeout: int = 120,
    label: str = "pipeline",
) -> str:
    """Call the chat model and return the response text.

    Uses the Anthropic API when ANTHROPIC_API_KEY is set and
    PRESSROOM_USE_CLI is not ``1``; otherwise shells out to ``claude -p``.

    Args:
        system_prompt: System prompt for the model.
        user_prompt: User/content prompt.
        temperature: Sampling temperature (API backend only).
        max_tokens: Response token ceiling (API backend only).
        model: Optional model override (e.g. "sonnet", "haiku").
        timeout: Timeout in seconds.
        label: Label for logging.

    Returns:
        The response text (stripped).

    Raises:
        LLMError: On any failure.
    """
    use_cli = os.environ.get("PRESSROOM_USE_CLI", "").strip() == "1"
    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()

    with _ai_slots:
        if api_key and not use_cli:
            try:
                return _call_anthropic_api(
                    system_prompt,
                    user_prompt,
                    model=model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=timeout,
                    label=label,
                )
            except LLMError:
                raise
            except Exception as exc:
                raise LLMError(f"Anthropic API failed (label={label}): {exc}") from exc

        return _call_subprocess(
            system_prompt,
            user_prompt,
            model=model,
            timeout=timeout,
            label=label,
        )


# ---------------------------------------------------------------------------
# JSON output helpers
# ---------------------------------------------------------------------------

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences from LLM JSON output.

    Falls back to slicing out the first ``{...}`` or ``[...]`` block when
    the model adds preamble text.
    """
    text = text.strip()
    match = _JSON_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()

    brace_start = text.find("{")
    bracket_start = text.find("[")

    candidates: list[tuple[int, str, str]] = []
    if brace_start != -1:
        candidates.append((brace_start, "{", "}"))
    if bracket_start != -1:
        candidates.append((bracket_start, "[", "]"))
    candidates.sort()

    for start, _start_char, end_char in candidates:
        end = text.rfind(end_char)
        if end > start:
            return text[start : end + 1]

    return text


def parse_json_response(text: str, *, label: str = "pipeline") -> Any:
    """Parse a JSON value out of an LLM response.

    Raises:
        LLMError: If no valid JSON can be extracted.
    """
    cleaned = strip_json_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise LLMError(f"Malformed JSON in response (label={label}): {exc}") from exc


def call_llm_json(
    system_prompt: str,
    user_prompt: str,
    *,
    temperature: float | None = None,
    max_tokens: int = 4096,
    model: str | None = None,
    timeout: int = 120,
    label: str = "pipeline",
) -> dict[str, Any]:
    """Call the chat model and parse the response as a JSON object.

    Raises:
        LLMError: On call failure, malformed JSON, or a non-object payload.
    """
    text = call_llm(
        system_prompt,
        user_prompt,
        temperature=temperature,
        max_tokens=max_tokens,
        model=model,
        timeout=timeout,
        label=label,
    )
    data = parse_json_response(text, label=label)
    if not isinstance(data, dict):
        raise LLMError(f"Expected a JSON object (label={label}), got {type(data).__name__}")
    return data
