# Docs MCP Server - JSON-RPC 2.0 implementation of the Model Context Protocol
# Serves search, page and section tools over a prebuilt documentation snapshot

import sys, json, asyncio, logging, argparse, threading
from pathlib import Path
from typing import Dict, Any, List, Optional

from pydantic import ValidationError

from config.settings import ServerConfig
from indexer.errors import SnapshotLoadError
from indexer.providers import SearchProvider, resolve_search_provider
from observability.logging import setup_logging
from observability.metrics import record_tool_call, set_documents_loaded
from .errors import InvalidArgumentError, InvalidQueryError, ServerConfigError
from .query_service import QueryService
from .tools import (
    TOOL_ALIASES,
    TOOL_DEFINITIONS,
    DocsFetchArgs,
    DocsGetSectionArgs,
    DocsSearchArgs,
    format_page_content,
    format_search_results,
    format_section_content,
)

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class JSONRPCError(Exception):
    """Error reported to the client as a JSON-RPC error object."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _text_result(text: str, is_error: bool = False) -> Dict[str, Any]:
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        parts.append(f"{location}: {item.get('msg')}")
    return "Invalid arguments: " + "; ".join(parts)


class DocsMCPServer:
    def __init__(self, config: ServerConfig):
        self.config = config
        self.capabilities = {
            "tools": {
                "listChanged": False
            }
        }
        self.server_info = {
            "name": config.name,
            "version": config.version
        }
        self.provider: Optional[SearchProvider] = None
        self.query_service: Optional[QueryService] = None
        self.session_initialized = False
        self._initialized = False
        self._init_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Load the snapshot once; later calls return immediately.

        Raises:
            ServerConfigError: If the config names neither files nor data
            SnapshotLoadError: If the snapshot cannot be loaded
        """
        if self._initialized:
            return

        with self._init_lock:
            if self._initialized:
                return

            init_data = self.config.init_data
            if not init_data.has_data and not init_data.has_paths:
                raise ServerConfigError(
                    "Invalid server config: must provide either file paths or pre-loaded data"
                )

            provider = resolve_search_provider(self.config.search)
            try:
                provider.initialize(self.config.provider_context, init_data)
            except SnapshotLoadError:
                logger.error(f"Failed to load documentation snapshot for {self.config.name}")
                raise

            self.provider = provider
            self.query_service = QueryService(provider, self.config.base_url)
            self._initialized = True
            set_documents_loaded(provider.document_count)
            logger.info(f"Loaded {provider.document_count} documents with "
                        f"'{provider.name}' search provider")

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.config.name,
            "version": self.config.version,
            "initialized": self._initialized,
            "docCount": self.provider.document_count if self.provider else 0,
            "baseUrl": self.config.base_url or None,
            "searchProvider": self.provider.name if self.provider else None,
        }

    async def handle_initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Handle MCP initialize request"""
        client_info = params.get("clientInfo")
        if not isinstance(client_info, dict):
            client_info = {}
        logger.info(f"Initializing MCP session with client: {client_info.get('name', 'unknown')}")

        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": self.capabilities,
            "serverInfo": self.server_info
        }

    async def handle_initialized(self, params: Dict[str, Any]) -> None:
        """Handle MCP initialized notification"""
        self.session_initialized = True
        logger.info("MCP session initialized successfully")

    async def handle_tools_list(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """List available MCP tools"""
        return {"tools": TOOL_DEFINITIONS}

    async def handle_tools_call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Execute MCP tool calls"""
        name = params.get("name")
        if not isinstance(name, str):
            raise JSONRPCError(INVALID_PARAMS, "Tool name must be a string")
        arguments = params.get("arguments") or {}
        tool = TOOL_ALIASES.get(name, name)

        handlers = {
            "docs_search": self._tool_docs_search,
            "docs_fetch": self._tool_docs_fetch,
            "docs_get_section": self._tool_docs_get_section,
        }
        handler = handlers.get(tool)
        if handler is None:
            raise JSONRPCError(INVALID_PARAMS, f"Unknown tool: {name}")
        if not isinstance(arguments, dict):
            raise JSONRPCError(INVALID_PARAMS, "Tool arguments must be an object")

        self.initialize()

        try:
            result = handler(arguments)
        except ValidationError as e:
            record_tool_call(tool, "invalid")
            return _text_result(_validation_message(e), is_error=True)
        except (InvalidQueryError, InvalidArgumentError) as e:
            record_tool_call(tool, "invalid")
            return _text_result(f"Error: {e}", is_error=True)
        except Exception as e:
            logger.exception(f"Tool {tool} failed")
            record_tool_call(tool, "error")
            return _text_result(f"Error running {tool}: {e}", is_error=True)

        record_tool_call(tool, "ok")
        return result

    def _tool_docs_search(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = DocsSearchArgs.model_validate(arguments)
        results = self.query_service.search(args.query, args.limit)
        return _text_result(format_search_results(results, self.config.base_url))

    def _tool_docs_fetch(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = DocsFetchArgs.model_validate(arguments)
        doc = self.query_service.get_document(args.target)
        return _text_result(format_page_content(doc, self.config.base_url))

    def _tool_docs_get_section(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = DocsGetSectionArgs.model_validate(arguments)
        result = self.query_service.get_section(args.route, args.heading_id)
        return _text_result(
            format_section_content(result, args.heading_id.strip(), self.config.base_url)
        )

    async def handle_request(self, request_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Main request handler following JSON-RPC 2.0 spec"""
        request_id = request_data.get("id") if isinstance(request_data, dict) else None
        is_notification = isinstance(request_data, dict) and "id" not in request_data

        try:
            if not isinstance(request_data, dict) or request_data.get("jsonrpc") != "2.0":
                raise JSONRPCError(INVALID_REQUEST, "Invalid JSON-RPC version")

            method = request_data.get("method")
            params = request_data.get("params")
            if params is None:
                params = {}

            if not method or not isinstance(method, str):
                raise JSONRPCError(INVALID_REQUEST, "Missing method")
            if not isinstance(params, dict):
                raise JSONRPCError(INVALID_PARAMS, "params must be an object")

            if method == "initialize":
                result = await self.handle_initialize(params)
            elif method in ("initialized", "notifications/initialized"):
                await self.handle_initialized(params)
                return None
            elif method.startswith("notifications/"):
                return None
            elif method == "ping":
                result = {}
            elif method == "tools/list":
                result = await self.handle_tools_list(params)
            elif method == "tools/call":
                result = await self.handle_tools_call(params)
            else:
                raise JSONRPCError(METHOD_NOT_FOUND, f"Unknown method: {method}")

            if is_notification:
                return None
            return {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": result
            }

        except JSONRPCError as e:
            logger.warning(f"Rejected request: {e.message}")
            return {
                "jsonrpc": "2.0",
                "id": request_id,
                "error": {"code": e.code, "message": e.message}
            }
        except Exception as e:
            logger.error(f"Error handling request: {e}")
            return {
                "jsonrpc": "2.0",
                "id": request_id,
                "error": {
                    "code": INTERNAL_ERROR,
                    "message": str(e)
                }
            }


async def serve_stdio(server: DocsMCPServer, stdin=None, stdout=None) -> None:
    """Serve newline-delimited JSON-RPC messages until stdin closes."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    logger.info("Starting MCP server in stdio mode")

    while True:
        line = await asyncio.to_thread(stdin.readline)
        if not line:
            break
        if not line.strip():
            continue

        try:
            request_data = json.loads(line)
        except json.JSONDecodeError as e:
            response = {
                "jsonrpc": "2.0",
                "id": None,
                "error": {
                    "code": PARSE_ERROR,
                    "message": f"Parse error: {e}"
                }
            }
        else:
            response = await server.handle_request(request_data)

        if response is not None:
            stdout.write(json.dumps(response) + "\n")
            stdout.flush()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve a documentation snapshot over MCP")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--stdio", action="store_true", help="JSON-RPC over stdin/stdout (default)")
    mode.add_argument("--http", action="store_true", help="Serve the HTTP API with uvicorn")
    parser.add_argument("--mcp-dir", default="build/mcp",
                        help="Directory holding docs.json, search-index.json and manifest.json")
    parser.add_argument("--base-url", default=None, help="Override the site base URL")
    parser.add_argument("--name", default=None, help="Override the server name")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for MCP server"""
    args = build_arg_parser().parse_args(argv)

    setup_logging(level=args.log_level, use_json=args.json_logs, stream=sys.stderr)

    overrides = {}
    if args.base_url is not None:
        overrides["base_url"] = args.base_url
    if args.name:
        overrides["name"] = args.name
    server = DocsMCPServer(ServerConfig.from_output_dir(Path(args.mcp_dir), **overrides))

    try:
        server.initialize()
    except (ServerConfigError, SnapshotLoadError) as e:
        logger.error(f"Cannot start server: {e}")
        return 1

    if args.http:
        import uvicorn
        from .http_api import create_app

        uvicorn.run(create_app(server), host=args.host, port=args.port,
                    log_level=args.log_level.lower())
    else:
        asyncio.run(serve_stdio(server))
    return 0


if __name__ == "__main__":
    sys.exit(main())
