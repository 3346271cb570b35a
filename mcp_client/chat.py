# mcp_client/chat.py
# Interactive read-eval loop on top of MCPClient.

import logging
from typing import Callable

logger = logging.getLogger(__name__)


async def chat_loop(client, read_line: Callable[[str], str] = input) -> None:
    """Forward each console line to ``client.process_query`` until ``quit``."""
    print("\nMCP Client Started!")
    print("Type your queries or 'quit' to exit.")

    while True:
        try:
            query = read_line("\nQuery: ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not query:
            continue
        if query.lower() == "quit":
            break

        try:
            response = await client.process_query(query)
            print("\n" + response)
        except Exception as e:
            logger.error("Error processing query %r: %s", query, e)
            print(f"Error: {e}")
