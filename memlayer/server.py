"""
MCP Server - How an assistant talks to the relevance engine.

The server exposes the engine as tools over stdio:

1. memlayer_analyze - "What is this code about?"
2. memlayer_generate_tags - "How would you tag this?"
3. memlayer_suggest - "What do I already know that fits here?"
4. memlayer_graph - "How do my memories hang together?"
5. memlayer_stats - "How many memories, under which tags?"
6. memlayer_capture - "Remember this selection"
7. memlayer_clear_cache - "Forget what you fetched"

Results that came from a local fallback because the store was down are
labelled as such; they are still useful, just less precise.
"""

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from memlayer.analyzer import analyze, extract_context
from memlayer.config import load_settings
from memlayer.ingest import draft_from_selection
from memlayer.layout import GraphLayout
from memlayer.log import get_logger, set_level
from memlayer.models import ContextWindow, EngineResult
from memlayer.orchestrator import SuggestionOrchestrator, format_suggestion, suggestion_detail
from memlayer.store_client import MemoryStoreClient

logger = get_logger("server")

# Create the MCP server
server = Server("memlayer")

# Created on first use
_orchestrator: SuggestionOrchestrator | None = None


def get_orchestrator() -> SuggestionOrchestrator:
    """Get the orchestrator, creating it (and its store client) if needed."""
    global _orchestrator
    if _orchestrator is None:
        settings = load_settings()
        set_level(settings.log_level)
        _orchestrator = SuggestionOrchestrator(MemoryStoreClient.from_settings(settings), settings)
    return _orchestrator


def _degraded_note(result: EngineResult) -> list[str]:
    if result.degraded:
        return ["", f"_Store unavailable, showing local results ({result.error})_"]
    return []


def _text(lines: list[str]) -> list[TextContent]:
    return [TextContent(type="text", text="\n".join(lines))]


def _context_from(arguments: dict, radius: int) -> ContextWindow:
    content = arguments["content"]
    cursor_line = arguments.get("line")
    if cursor_line is None:
        return ContextWindow(
            content=content,
            full_context=content,
            file_path=arguments.get("file_path"),
            language=arguments.get("language"),
        )
    return extract_context(
        content.split("\n"),
        int(cursor_line),
        selection=arguments.get("selection", ""),
        file_path=arguments.get("file_path"),
        language=arguments.get("language"),
        radius=radius,
    )


@server.list_tools()
async def list_tools() -> list[Tool]:
    """Tell the client what tools are available."""
    return [
        Tool(
            name="memlayer_analyze",
            description="""Extract relevance signals from a piece of code or text.

Returns keywords, identifiers, detected patterns (function definitions,
error handling, API calls, data queries, ...), a complexity estimate and
the developer intents inferred from them. Purely local, never touches the store.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Code or text to analyze"},
                    "language": {"type": "string", "description": "Language id, e.g. 'javascript'"},
                    "focus_line": {"type": "string", "description": "Text of the line under the cursor"},
                },
                "required": ["content"]
            }
        ),
        Tool(
            name="memlayer_generate_tags",
            description="""Suggest up to 8 tags for a file's content.

Uses the store's tag service when reachable, otherwise the local
extension/content/framework heuristics.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Content to tag"},
                    "file_path": {"type": "string", "description": "File path, used for the extension tag"},
                },
                "required": ["content"]
            }
        ),
        Tool(
            name="memlayer_suggest",
            description="""Rank stored memories by relevance to the current code.

Pass the whole document plus `line` to score the window around the cursor,
or just the snippet to score it directly.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Document text or snippet"},
                    "language": {"type": "string"},
                    "file_path": {"type": "string"},
                    "line": {"type": "integer", "minimum": 0, "description": "Zero-based cursor line"},
                    "selection": {"type": "string", "description": "Selected text, if any"},
                },
                "required": ["content"]
            }
        ),
        Tool(
            name="memlayer_graph",
            description="""Lay out the memory set as a force-directed graph.

Connected memories are pulled together, unrelated ones pushed apart.
Returns node positions and the drawn edges.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "cluster_strength": {
                        "type": "number",
                        "minimum": 0,
                        "default": 1.0,
                        "description": "How strongly connected memories cluster"
                    },
                    "width": {"type": "number", "default": 800},
                    "height": {"type": "number", "default": 600},
                    "seed": {"type": "integer", "description": "Fix the random start positions"},
                },
            }
        ),
        Tool(
            name="memlayer_stats",
            description="Memory counts, total and per tag.",
            inputSchema={"type": "object", "properties": {}}
        ),
        Tool(
            name="memlayer_capture",
            description="""Store a code selection as a new memory.

Tags are generated automatically and merged with any given tags.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Short title for the memory"},
                    "content": {"type": "string", "description": "The selected code or text"},
                    "description": {"type": "string"},
                    "file_path": {"type": "string"},
                    "language": {"type": "string"},
                    "line": {"type": "integer", "minimum": 0, "description": "Zero-based line of the selection"},
                    "project": {"type": "string"},
                },
                "required": ["title", "content"]
            }
        ),
        Tool(
            name="memlayer_clear_cache",
            description="Drop the cached memory set so the next request refetches it.",
            inputSchema={"type": "object", "properties": {}}
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls from the client."""

    orchestrator = get_orchestrator()
    arguments = arguments or {}

    if name == "memlayer_analyze":
        signals = analyze(
            arguments["content"],
            language=arguments.get("language"),
            focus_line=arguments.get("focus_line"),
        )
        active = [flag for flag, on in signals.patterns.to_dict().items() if on]
        lines = ["## Analysis\n"]
        lines.append(f"**Complexity:** {signals.complexity.value}")
        lines.append(f"**Intents:** {', '.join(signals.intents) or 'none'}")
        lines.append(f"**Patterns:** {', '.join(active) or 'none'}")
        lines.append(f"**Keywords:** {', '.join(signals.keywords) or 'none'}")
        lines.append(f"**Identifiers:** {', '.join(signals.identifiers) or 'none'}")
        return _text(lines)

    elif name == "memlayer_generate_tags":
        result = await orchestrator.generate_tags(arguments.get("file_path"), arguments["content"])
        lines = [f"**Tags:** {', '.join(result.value) or 'none'}"]
        lines.extend(_degraded_note(result))
        return _text(lines)

    elif name == "memlayer_suggest":
        context = _context_from(arguments, orchestrator.settings.context_radius)
        result = await orchestrator.suggest_now(context)

        if result.value is None or (not result.value and result.error):
            return _text([f"No suggestions: {result.error or 'store unavailable'}"])
        if not result.value:
            return _text(["No relevant memories found for this context."])

        lines = [f"## Related memories ({len(result.value)})\n"]
        for i, suggestion in enumerate(result.value, 1):
            lines.append(f"{i}. **{format_suggestion(suggestion)}** `{suggestion.memory.id}`")
            lines.append(f"   {suggestion_detail(suggestion)}")
            if suggestion.memory.tags:
                lines.append(f"   Tags: {', '.join(suggestion.memory.tags)}")
        lines.extend(_degraded_note(result))
        return _text(lines)

    elif name == "memlayer_graph":
        loaded = await orchestrator.load_memories()
        if not loaded.ok:
            return _text([f"Could not load memories: {loaded.error}"])
        if not loaded.value:
            return _text(["No memories to lay out."])

        graph = GraphLayout(
            width=arguments.get("width", 800),
            height=arguments.get("height", 600),
            seed=arguments.get("seed"),
        )
        nodes = graph.layout(loaded.value, float(arguments.get("cluster_strength", 1.0)))

        lines = [f"## Memory graph ({len(nodes)} nodes, {len(graph.edges())} edges)\n"]
        lines.append("### Nodes")
        for node in nodes:
            lines.append(f"- `{node.id}` {node.memory.title} at ({node.x:.0f}, {node.y:.0f}) r={node.radius:.0f}")
        if graph.edges():
            lines.append("\n### Edges")
            for source, target in graph.edges():
                lines.append(f"- `{source}` -> `{target}`")
        return _text(lines)

    elif name == "memlayer_stats":
        result = await orchestrator.get_stats()
        stats = result.value or {}
        if not result.ok and not result.degraded:
            return _text([f"Stats unavailable: {result.error}"])

        lines = ["## Memory stats\n", f"**Total:** {stats.get('total', 0)}"]
        by_tag = stats.get("by_tag") or stats.get("byTag") or {}
        if by_tag:
            lines.append("\n### By tag")
            for tag, count in sorted(by_tag.items(), key=lambda kv: (-kv[1], kv[0])):
                lines.append(f"- {tag}: {count}")
        lines.extend(_degraded_note(result))
        return _text(lines)

    elif name == "memlayer_capture":
        draft = draft_from_selection(
            title=arguments["title"],
            content=arguments["content"],
            file_path=arguments.get("file_path"),
            line=arguments.get("line"),
            language=arguments.get("language"),
            description=arguments.get("description", ""),
            project=arguments.get("project", ""),
        )
        result = await orchestrator.capture(draft)
        if not result.ok:
            return _text([f"Could not store memory '{draft.title}': {result.error}"])
        stored_id = getattr(result.value, "id", None)
        lines = [f"Stored memory '{draft.title}'" + (f" as `{stored_id}`" if stored_id else "")]
        lines.append(f"Tags: {', '.join(draft.tags)}")
        return _text(lines)

    elif name == "memlayer_clear_cache":
        orchestrator.clear_cache()
        return _text(["Memory cache cleared."])

    else:
        return _text([f"Unknown tool: {name}"])


# =============================================================================
# SERVER STARTUP
# =============================================================================

def serve():
    """Start the MCP server over stdio."""
    import asyncio

    async def main():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    asyncio.run(main())


if __name__ == "__main__":
    serve()
