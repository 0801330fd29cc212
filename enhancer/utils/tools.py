"""
Tools the model may call during an enhancement run.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from enhancer.utils.scraping.fetcher import PageFetcher
from enhancer.utils.scraping.logger import get_logger
from enhancer.utils.scraping.models import SearchResult, utc_timestamp
from enhancer.utils.scraping.search import search_web
from enhancer.utils.scraping.utils import is_valid_url, json_serialize, parse_json

logger = get_logger(__name__)


class ToolName(str, Enum):
    WEB_SEARCH = "web_search"
    FETCH_URL_CONTENT = "fetch_url_content"


# OpenAI function-calling schemas
TOOLS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": ToolName.WEB_SEARCH.value,
            "description": "Search the web, or fetch a page directly when given a URL. "
                           "Returns page text and structured information, or a list of search results.",
            "parameters": {
                "type": "object",
                "required": ["query"],
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "A URL or search keywords",
                    }
                },
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": ToolName.FETCH_URL_CONTENT.value,
            "description": "Fetch the content of the given web address",
            "parameters": {
                "type": "object",
                "required": ["url"],
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "The full URL to fetch",
                    }
                },
            },
        },
    },
]

TOOL_NOT_FOUND = {"error": "Tool not found"}


class ToolDispatcher:
    """
    Executes tool calls by name.

    `dispatch` never raises: unknown tools, bad arguments and failures inside
    a tool all come back as payloads with an "error" key so the model can
    react to them on its next turn.
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        searcher: Callable[[str, int], List[SearchResult]] = search_web,
        max_search_results: int = 5,
    ):
        self.fetcher = fetcher or PageFetcher()
        self.searcher = searcher
        self.max_search_results = max_search_results
        # Required string argument and handler for every tool name
        self.handlers: Dict[ToolName, Tuple[str, Callable[[str], Dict[str, Any]]]] = {
            ToolName.WEB_SEARCH: ("query", self.web_search),
            ToolName.FETCH_URL_CONTENT: ("url", self.fetch_url_content),
        }

    def fetch_url_content(self, url: str) -> Dict[str, Any]:
        return self.fetcher.fetch(url).to_dict()

    def web_search(self, query: str) -> Dict[str, Any]:
        """Fetch the query directly when it is a URL, otherwise search for it."""
        query = query.strip()
        if is_valid_url(query):
            return self.fetch_url_content(query)

        try:
            results = self.searcher(query, self.max_search_results)
        except Exception as e:
            logger.error(f"Web search failed for '{query}': {e}")
            return {"query": query, "error": str(e), "timestamp": utc_timestamp()}

        return {
            "query": query,
            "results": [vars(result) for result in results],
            "suggestion": "Call fetch_url_content with a full URL to read a page",
            "timestamp": utc_timestamp(),
        }

    def dispatch(self, name: str, arguments: str) -> Dict[str, Any]:
        """
        Run one tool call.

        Args:
            name: Tool name requested by the model
            arguments: JSON-encoded arguments object

        Returns:
            The tool's result payload, or an error payload
        """
        try:
            tool = ToolName(name)
        except ValueError:
            logger.warning(f"Model requested unknown tool: {name}")
            return dict(TOOL_NOT_FOUND)

        parsed = parse_json(arguments or "{}")
        if not parsed.ok or not isinstance(parsed.value, dict):
            logger.warning(f"Invalid arguments for {name}: {arguments!r}")
            return {"error": f"Invalid tool arguments: {parsed.error or 'expected a JSON object'}"}
        args = parsed.value

        argument, handler = self.handlers[tool]
        if not isinstance(args.get(argument), str):
            return {"error": f"Missing required argument: {argument}"}

        try:
            return handler(args[argument])
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            return {"error": f"Tool {name} failed: {e}"}

    def execute(self, name: str, arguments: str) -> str:
        """Dispatch a call and serialize its result for a tool message."""
        logger.info(f"Calling tool {name} with {arguments}")
        result = self.dispatch(name, arguments)
        content = json_serialize(result)
        logger.info(f"Tool result summary: {content[:200]}...")
        return content
