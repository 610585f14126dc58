"""Turn the inference API's completion text into a verdict.

Two outcomes are possible, and callers can tell them apart by type:

* ``ParsedVerdict``: the completion was a JSON object; its fields are used after
  normalization (confidence clamped to [0, 1], unknown labels become "Normal").
* ``HeuristicVerdict``: the completion was not usable JSON; the label comes from a
  keyword scan, confidence is fixed and the raw text becomes the explanation.

The heuristic path is a degraded mode, so untidy model output never fails a request.
"""
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

NORMAL = "Normal"
CONCERNING = "Concerning"
VERDICT_LABELS = (NORMAL, CONCERNING)
HEURISTIC_CONFIDENCE = 0.95

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class Verdict:
    result: str
    confidence: float
    explanation: Optional[str]


@dataclass(frozen=True)
class ParsedVerdict(Verdict):
    pass


@dataclass(frozen=True)
class HeuristicVerdict(Verdict):
    pass


def clamp_confidence(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return min(1.0, max(0.0, number))


def normalize_label(value: Any) -> str:
    return value if value in VERDICT_LABELS else NORMAL


def _strip_code_fence(text: str) -> str:
    match = _CODE_FENCE.match(text.strip())
    return match.group(1) if match else text


def heuristic_verdict(text: str) -> HeuristicVerdict:
    return HeuristicVerdict(
        result=CONCERNING if CONCERNING in text else NORMAL,
        confidence=HEURISTIC_CONFIDENCE,
        explanation=text,
    )


def parse_verdict(text: str) -> Verdict:
    try:
        payload = json.loads(_strip_code_fence(text))
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Failed to parse API response, using keyword heuristic: {e}")
        return heuristic_verdict(text)

    if not isinstance(payload, dict):
        logger.warning("API response is JSON but not an object, using keyword heuristic")
        return heuristic_verdict(text)

    confidence = clamp_confidence(payload.get("confidence"))
    if confidence is None:
        confidence = HEURISTIC_CONFIDENCE

    explanation = payload.get("explanation")
    if explanation is not None and not isinstance(explanation, str):
        explanation = json.dumps(explanation)

    return ParsedVerdict(
        result=normalize_label(payload.get("result")),
        confidence=confidence,
        explanation=explanation,
    )
