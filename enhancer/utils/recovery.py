"""
Normalization of the model's final answer into a JSON string.
"""
import json
from typing import Any, Dict, Optional

from enhancer.utils.scraping.logger import get_logger
from enhancer.utils.scraping.utils import parse_json

logger = get_logger(__name__)

PARSE_ERROR_MESSAGE = "Failed to parse the model response as JSON, it may have been truncated"
PARSE_ERROR_SUGGESTION = "Try simplifying the input or increasing the max_tokens setting"
EMPTY_RESPONSE = "empty response"
ORIGINAL_RESPONSE_PREVIEW = 500


def build_error_payload(message: str, original: Optional[str] = None, suggestion: str = PARSE_ERROR_SUGGESTION) -> str:
    """Serialize the error object returned to callers instead of raising."""
    payload: Dict[str, Any] = {
        "error": message,
        "original_response": original[:ORIGINAL_RESPONSE_PREVIEW] + "..." if original else EMPTY_RESPONSE,
        "suggestion": suggestion,
    }
    return json.dumps(payload, ensure_ascii=False)


def recover_result(raw: Optional[str]) -> str:
    """
    Turn the model's final answer into a normalized JSON string.

    Parses the answer as is; failing that, retries on the prefix ending at the
    last closing brace (drops text after a complete object); failing that,
    returns the error payload. Never raises.
    """
    if not raw or not raw.strip():
        logger.error("Empty response from the model")
        return build_error_payload(PARSE_ERROR_MESSAGE)

    outcome = parse_json(raw)
    if outcome.ok:
        return json.dumps(outcome.value, ensure_ascii=False)
    logger.error(f"JSON parsing failed: {outcome.error}")

    last_brace = raw.rfind('}')
    if last_brace > 0:
        recovered = parse_json(raw[:last_brace + 1])
        if recovered.ok:
            logger.info("Recovered truncated JSON response")
            return json.dumps(recovered.value, ensure_ascii=False)
        logger.error(f"JSON recovery failed: {recovered.error}")

    return build_error_payload(PARSE_ERROR_MESSAGE, raw)
