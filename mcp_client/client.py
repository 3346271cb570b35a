# mcp_client/client.py
# MCP chat client: launches a server over stdio, hands its tools to Claude and
# relays tool calls between the two.
#
# Usage:
#   export ANTHROPIC_API_KEY=...
#   mcp-chat ../weather/weather.py      # or: python -m mcp_client ../weather/weather.py
# Then ask things like:
#   Are there any weather alerts in CA?

import asyncio
import json
import logging
import os
import signal
import sys
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from anthropic import AsyncAnthropic
from dotenv import load_dotenv
from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client

from mcp_client.chat import chat_loop

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
MAX_TOKENS = 1000

# extension -> platform -> executable; "*" matches any platform
SERVER_COMMANDS: Dict[str, Dict[str, str]] = {
    ".py": {"win32": "python", "*": "python3"},
    ".js": {"*": "node"},
}


class InvalidServerScriptError(ValueError):
    """Raised when a server script has no known interpreter."""

    def __init__(self, script_path: str):
        super().__init__(f"Invalid server script: {script_path}. Must be a .js or .py file.")
        self.script_path = script_path


def validate_server_script(script_path: str) -> str:
    """Return the script's extension, or raise InvalidServerScriptError."""
    for ext in SERVER_COMMANDS:
        if script_path.endswith(ext):
            return ext
    raise InvalidServerScriptError(script_path)


def get_command(script_path: str, platform: Optional[str] = None) -> str:
    """Pick the executable that should run ``script_path`` on ``platform``."""
    ext = validate_server_script(script_path)
    commands = SERVER_COMMANDS[ext]
    platform = sys.platform if platform is None else platform
    return commands.get(platform, commands["*"])


@dataclass
class QueryOutput:
    """Text and raw tool results collected while answering one query."""
    final_text: List[str] = field(default_factory=list)
    tool_results: List[Any] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.final_text)


def _tool_result_text(result: Any) -> str:
    return "\n".join(
        block.text for block in result.content if getattr(block, "type", None) == "text"
    )


class MCPClient:
    """Connects Claude to the tools of one MCP server.

    Example::

        client = MCPClient(model, AsyncAnthropic(api_key=key))
        await client.connect_to_server("weather/weather.py")
        print(await client.process_query("Any alerts in NY?"))
        await client.cleanup()

    Queries must be processed one at a time.
    """

    def __init__(self, model: str, anthropic: AsyncAnthropic, max_tokens: int = MAX_TOKENS):
        self.model = model
        self.anthropic = anthropic
        self.max_tokens = max_tokens
        self.session: Optional[ClientSession] = None
        self.exit_stack = AsyncExitStack()
        self._tools: List[Dict[str, Any]] = []

    @property
    def tools(self) -> List[Dict[str, Any]]:
        return list(self._tools)

    async def connect_to_server(self, server_script_path: str) -> None:
        """Spawn the server script, open a session and cache its tool list."""
        try:
            self._tools = []
            command = get_command(server_script_path)

            params = StdioServerParameters(command=command, args=[server_script_path], env=None)
            reader, writer = await self.exit_stack.enter_async_context(stdio_client(params))
            self.session = await self.exit_stack.enter_async_context(ClientSession(reader, writer))
            await self.session.initialize()

            tools = (await self.session.list_tools()).tools
            self._tools = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.inputSchema,
                }
                for tool in tools
            ]
            logger.info("Connected to server with tools: %s", [t["name"] for t in self._tools])
        except Exception as e:
            logger.error("Failed to connect to MCP server: %s", e)
            raise

    async def create_model_message(self, messages: List[Dict[str, Any]]) -> List[Any]:
        response = await self.anthropic.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=messages,
            tools=self._tools,
        )
        return response.content

    async def process_query(self, query: str) -> str:
        """Answer ``query``, expanding at most one level of tool calls."""
        output = QueryOutput()
        messages: List[Dict[str, Any]] = [{"role": "user", "content": query}]

        contents = await self.create_model_message(messages) or []
        for content in contents:
            await self.process_response(content, messages, output)

        logger.debug("Query produced %d tool result(s)", len(output.tool_results))
        return output.text

    async def process_response(
        self, content: Any, messages: List[Dict[str, Any]], output: QueryOutput
    ) -> None:
        if content.type == "text":
            output.final_text.append(content.text)
        elif content.type == "tool_use":
            tool_name = content.name
            tool_args = content.input

            try:
                result = await self.session.call_tool(tool_name, tool_args)
            except Exception as e:
                logger.error("Tool %s failed: %s", tool_name, e)
                output.final_text.append(f"[Tool {tool_name} failed: {e}]")
                return

            if getattr(result, "isError", False):
                logger.warning("Tool %s reported an error", tool_name)
            output.tool_results.append(result)
            output.final_text.append(
                f"[Calling tool {tool_name} with arguments {json.dumps(tool_args)}]"
            )

            messages.append({"role": "user", "content": _tool_result_text(result)})

            # Only the follow-up's first block is used; tool calls in it are not expanded.
            new_content = await self.create_model_message(messages)
            if new_content and new_content[0].type == "text":
                output.final_text.append(new_content[0].text)

    async def cleanup(self) -> None:
        try:
            await self.exit_stack.aclose()
        except Exception as e:
            logger.error("Error during cleanup: %s", e)
        finally:
            self.session = None


async def main(argv: Optional[List[str]] = None) -> None:
    argv = sys.argv if argv is None else argv
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING"),
        stream=sys.stderr,
        format="%(levelname)s: %(message)s",
    )

    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        print("Please set the ANTHROPIC_API_KEY environment variable.", file=sys.stderr)
        sys.exit(1)

    if len(argv) < 2:
        print("Usage: mcp-chat <path_to_server_script>", file=sys.stderr)
        sys.exit(1)

    model = os.getenv("MODEL_TYPE", DEFAULT_MODEL)
    client = MCPClient(model, AsyncAnthropic(api_key=api_key))
    # asyncio.run turns Ctrl-C into task cancellation, which a blocking input() never sees.
    signal.signal(signal.SIGINT, signal.default_int_handler)
    failed = False
    try:
        await client.connect_to_server(argv[1])
        await chat_loop(client)
    except Exception as e:
        logger.error("Error in main function: %s", e)
        failed = True
    finally:
        await client.cleanup()

    if failed:
        sys.exit(1)


def run() -> None:
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    run()
