import logging

import httpx

logger = logging.getLogger(__name__)

MAX_RESEARCH_CHARS = 2000


class McpResearchClient:
    """Minimal MCP (JSON-RPC over HTTP) client used to pull market context
    for the analysis prompt."""

    def __init__(self, server_url: str, tool: str = "search", timeout: float = 30.0):
        self.server_url = server_url.rstrip("/")
        self.tool = tool
        self.timeout = timeout
        self._session_id: str | None = None

    async def _mcp_request(self, method: str, params: dict | None = None) -> dict:
        headers = {"Content-Type": "application/json"}
        if self._session_id:
            headers["mcp-session-id"] = self._session_id

        payload = {"jsonrpc": "2.0", "id": 1, "method": method}
        if params:
            payload["params"] = params

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.server_url}/mcp", json=payload, headers=headers)
            resp.raise_for_status()

            if "mcp-session-id" in resp.headers:
                self._session_id = resp.headers["mcp-session-id"]

            return resp.json()

    async def initialize(self) -> dict:
        self._session_id = None
        return await self._mcp_request("initialize", {
            "protocolVersion": "2025-03-26",
            "capabilities": {},
            "clientInfo": {"name": "sitesmith", "version": "0.1.0"},
        })

    async def call_tool(self, name: str, arguments: dict) -> str:
        result = await self._mcp_request("tools/call", {"name": name, "arguments": arguments})
        if not isinstance(result, dict):
            raise ValueError(f"Unexpected MCP reply: {type(result).__name__}")
        if result.get("error"):
            error = result["error"]
            raise RuntimeError(error.get("message", "MCP tool error") if isinstance(error, dict) else str(error))
        content = (result.get("result") or {}).get("content") or []
        return "\n".join(c.get("text", "") for c in content if isinstance(c, dict) and c.get("type") == "text")

    async def research(self, query: str) -> str:
        """Search results for ``query``; empty string if the server is unreachable or misbehaves."""
        try:
            if self._session_id is None:
                await self.initialize()
            text = await self.call_tool(self.tool, {"query": query})
        except Exception as e:
            logger.warning(f"[research] MCP search failed: {e}")
            return ""

        logger.info(f"[research] {len(text)} chars of context for '{query[:60]}'")
        return text[:MAX_RESEARCH_CHARS]
