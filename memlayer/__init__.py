"""
memlayer - Contextual relevance and tagging for stored knowledge.

Watches what you are working on and surfaces the memories that fit.
"""

__version__ = "0.1.0"


def serve() -> None:
    """Run the memlayer MCP server.

    This is called when you run: python -m memlayer.server
    Or when an MCP client starts memlayer as a server.
    """
    from memlayer.server import serve as _serve
    _serve()


__all__ = ["serve", "__version__"]
