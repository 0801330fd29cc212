from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from dotenv import load_dotenv
from openai import APIError, APITimeoutError, OpenAI

from enhancer.utils.prompts import (
    FINAL_JSON_INSTRUCTION,
    INPUT_TEMPLATE,
    SYSTEM_PROMPT,
    URL_INSTRUCTION_TEMPLATE,
)
from enhancer.utils.recovery import build_error_payload, recover_result
from enhancer.utils.scraping.logger import enable_console_logging, get_logger
from enhancer.utils.scraping.utils import extract_urls
from enhancer.utils.tools import TOOLS, ToolDispatcher

logger = get_logger(__name__)

# Load environment variables
load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={os.getenv(name)!r}")
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={os.getenv(name)!r}")
        return default


# Configuration
CONFIG: Dict[str, Any] = {
    "model_name": os.getenv("LLM_MODEL", "moonshot-v1-128k"),
    "endpoint": os.getenv("LLM_ENDPOINT", "https://api.moonshot.cn/v1"),
    "api_key": os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
    "temperature": _env_float("LLM_TEMPERATURE", 0.3),
    "max_tokens": _env_int("LLM_MAX_TOKENS", 8000),
    "max_iterations": _env_int("AGENT_MAX_ITERATIONS", 10),
    "request_timeout": _env_float("LLM_REQUEST_TIMEOUT", 120.0),
    "max_retries": _env_int("LLM_MAX_RETRIES", 3),
}

MODEL_ERROR_SUGGESTION = "Check the model endpoint and API key, then try again"


class EnhancerError(Exception):
    """Base error for the enhancement pipeline."""


class ModelServiceError(EnhancerError):
    """The language model could not be reached or rejected the request."""


# Type definitions
class ToolCallFunction(TypedDict):
    name: str
    arguments: str


class ToolCall(TypedDict):
    id: str
    type: str
    function: ToolCallFunction


class ChatMessage(TypedDict, total=False):
    role: str
    content: str
    tool_call_id: str
    name: str
    tool_calls: List[ToolCall]


class AgentPhase(str, Enum):
    DISPATCHING = "dispatching"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass
class AgentRunState:
    """Per-request state; the conversation only ever grows."""
    messages: List[ChatMessage] = field(default_factory=list)
    iteration: int = 0
    model_calls: int = 0
    final_result: str = ""
    phase: AgentPhase = AgentPhase.DISPATCHING

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)


@dataclass
class EnhanceRequest:
    input: str
    system_prompt: Optional[str] = None
    urls: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'EnhanceRequest':
        """Build a request from a JSON body; raises ValueError on invalid input."""
        text = payload.get("input")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Invalid input provided")
        system_prompt = payload.get("systemPrompt") or payload.get("system_prompt")
        urls = payload.get("urls") or []
        if not isinstance(urls, list):
            urls = [urls]
        return cls(
            input=text,
            system_prompt=system_prompt if isinstance(system_prompt, str) else None,
            urls=[u for u in urls if isinstance(u, str)],
        )


def create_client(config: Optional[Dict[str, Any]] = None) -> OpenAI:
    """Build the chat client; the caller owns it and passes it to ProfileEnhancer."""
    config = config or CONFIG
    return OpenAI(
        base_url=config["endpoint"],
        api_key=config["api_key"],
        timeout=config["request_timeout"],
    )


def _assistant_message(message: Any) -> ChatMessage:
    """Copy an assistant tool-call message into the conversation format."""
    entry: ChatMessage = {"role": "assistant", "content": message.content or ""}
    tool_calls = [
        {
            "id": call.id,
            "type": "function",
            "function": {"name": call.function.name, "arguments": call.function.arguments},
        }
        for call in (message.tool_calls or [])
    ]
    if tool_calls:
        entry["tool_calls"] = tool_calls
    return entry


class ProfileEnhancer:
    """
    Drives the tool-calling conversation that turns a profile into JSON.

    Each run keeps its own AgentRunState. Model calls and tool calls happen
    one at a time in order; tool calls requested together are executed
    sequentially and answered with one tool message each.
    """

    def __init__(
        self,
        client: OpenAI,
        dispatcher: Optional[ToolDispatcher] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.client = client
        self.dispatcher = dispatcher or ToolDispatcher()
        self.config = {**CONFIG, **(config or {})}

    def start(self, user_input: str, system_prompt: Optional[str] = None,
              urls: Optional[List[str]] = None) -> AgentRunState:
        """Create the run state with its opening messages."""
        state = AgentRunState()
        state.append({"role": "system", "content": system_prompt or SYSTEM_PROMPT})
        state.append({"role": "user", "content": INPUT_TEMPLATE.format(input=user_input)})
        if urls:
            state.append({
                "role": "user",
                "content": URL_INSTRUCTION_TEMPLATE.format(urls=", ".join(urls)),
            })
        return state

    def _complete(self, state: AgentRunState, **kwargs: Any) -> Any:
        """Send the conversation to the model, retrying timeouts."""
        max_retries = max(1, self.config["max_retries"])
        for attempt in range(max_retries):
            try:
                state.model_calls += 1
                return self.client.chat.completions.create(
                    model=self.config["model_name"],
                    messages=list(state.messages),
                    temperature=self.config["temperature"],
                    max_tokens=self.config["max_tokens"],
                    **kwargs,
                )
            except APITimeoutError:
                if attempt == max_retries - 1:
                    logger.error("Model request timed out after retries")
                    raise ModelServiceError("The language model timed out")
                logger.warning(f"Model timeout, retrying... (attempt {attempt + 1}/{max_retries})")
            except APIError as e:
                logger.error(f"Model API error: {e}")
                raise ModelServiceError(f"Error communicating with the language model: {e}") from e
        raise ModelServiceError("The language model could not be reached")

    @staticmethod
    def _first_choice(response: Any) -> Any:
        """The first choice of a completion; a response without a message is a service error."""
        choices = getattr(response, "choices", None) or []
        if not choices or getattr(choices[0], "message", None) is None:
            logger.error(f"Model returned no usable choice: {response!r}")
            raise ModelServiceError("Empty response from the language model")
        return choices[0]

    def _execute_tool_calls(self, state: AgentRunState, message: Any) -> None:
        state.phase = AgentPhase.EXECUTING_TOOLS
        state.append(_assistant_message(message))
        for call in message.tool_calls or []:
            name = call.function.name
            state.append({
                "role": "tool",
                "tool_call_id": call.id,
                "name": name,
                "content": self.dispatcher.execute(name, call.function.arguments),
            })

    def _run_loop(self, state: AgentRunState) -> None:
        max_iterations = self.config["max_iterations"]

        while state.iteration < max_iterations:
            logger.info(f"=== Model call {state.iteration + 1} ===")
            state.phase = AgentPhase.AWAITING_MODEL
            response = self._complete(state, tools=TOOLS, tool_choice="auto")
            choice = self._first_choice(response)
            logger.info(f"Finish reason: {choice.finish_reason}")

            if choice.finish_reason == "tool_calls":
                self._execute_tool_calls(state, choice.message)
                state.iteration += 1
                continue

            state.phase = AgentPhase.FINALIZING
            state.append({"role": "user", "content": FINAL_JSON_INSTRUCTION})
            final = self._complete(state, response_format={"type": "json_object"})
            state.final_result = self._first_choice(final).message.content or ""
            state.phase = AgentPhase.DONE
            return

        logger.info(f"Reached {max_iterations} iterations, forcing a final answer")
        state.phase = AgentPhase.FINALIZING
        final = self._complete(
            state,
            tools=TOOLS,
            tool_choice="none",
            response_format={"type": "json_object"},
        )
        state.final_result = self._first_choice(final).message.content or ""
        state.phase = AgentPhase.DONE

    def run(self, user_input: str, system_prompt: Optional[str] = None,
            urls: Optional[List[str]] = None) -> str:
        """
        Enhance a profile.

        Args:
            user_input: Free-text self-introduction, possibly containing URLs
            system_prompt: Optional override of the default system prompt
            urls: Extra URLs the model is told to fetch

        Returns:
            A JSON string: the model's result, or an error object
        """
        state = self.start(user_input, system_prompt, urls)
        try:
            self._run_loop(state)
        except ModelServiceError as e:
            return build_error_payload(str(e), state.final_result, MODEL_ERROR_SUGGESTION)

        logger.info(f"Final result after {state.model_calls} model calls: {state.final_result[:200]}")
        return recover_result(state.final_result)


def handle_enhance_request(payload: Dict[str, Any], enhancer: ProfileEnhancer) -> Tuple[int, Dict[str, Any]]:
    """
    Validate a request body and run the enhancement.

    Returns:
        (HTTP status, response body)
    """
    try:
        request = EnhanceRequest.from_payload(payload if isinstance(payload, dict) else {})
    except ValueError as e:
        return 400, {"error": str(e)}

    urls = []
    for url in extract_urls(request.input) + request.urls:
        if url not in urls:
            urls.append(url)

    try:
        analysis = enhancer.run(request.input, request.system_prompt, urls)
    except Exception as e:
        logger.error(f"Unexpected error while enhancing profile: {e}", exc_info=True)
        return 500, {"error": "Internal server error"}

    return 200, {"success": True, "analysis": analysis}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Turn a professional's self-introduction into marketing JSON")
    parser.add_argument("input", type=str, help="Self-introduction text (may contain URLs).")
    parser.add_argument("--system-prompt", type=str, default=None, help="Override the default system prompt.")
    parser.add_argument("--url", action="append", default=[], help="Extra URL to fetch (repeatable).")
    parser.add_argument("-i", "--iterations", type=int, default=CONFIG["max_iterations"],
                        help="Maximum number of tool-calling rounds.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Also log to the console.")
    args = parser.parse_args(argv)

    if args.verbose:
        enable_console_logging()

    try:
        client = create_client()
    except Exception as e:
        logger.critical(f"Failed to create the model client: {e}")
        print(f"[!] Could not create the model client: {e}", file=sys.stderr)
        return 1

    enhancer = ProfileEnhancer(client, config={"max_iterations": args.iterations})
    status, body = handle_enhance_request(
        {"input": args.input, "systemPrompt": args.system_prompt, "urls": args.url},
        enhancer,
    )
    if status != 200:
        print(f"[!] Error: {body.get('error')}", file=sys.stderr)
        return 1

    print(json.dumps(json.loads(body["analysis"]), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
