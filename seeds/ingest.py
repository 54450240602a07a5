#!/usr/bin/env python3
"""
Seed Memory Ingestion Script

Pushes memories from JSON seed files into the memory store, tagging each
one on the way in.

Usage:
    python seeds/ingest.py seeds/sample_memories.json
    python seeds/ingest.py seeds/*.json --dry-run
"""

import asyncio
import json

from memlayer.config import load_settings
from memlayer.ingest import MemoryDraft, remap_connections
from memlayer.models import DEFAULT_STRENGTH, MemorySource
from memlayer.orchestrator import SuggestionOrchestrator
from memlayer.store_client import MemoryStoreClient
from memlayer.tagging import generate_tags


def load_seed_file(filepath: str) -> dict:
    """Load a seed JSON file."""
    with open(filepath) as f:
        return json.load(f)


def draft_from_seed(entry: dict, default_project: str) -> MemoryDraft:
    tags = list(entry.get("tags") or [])
    tags += [t for t in generate_tags(entry.get("file"), entry["content"]) if t not in tags]
    strength = entry.get("strength")
    draft = MemoryDraft(
        title=entry.get("title") or entry["content"][:60],
        content=entry["content"],
        description=entry.get("description", ""),
        tags=tags,
        source=MemorySource.from_value(entry.get("source")),
        project=entry.get("project") or default_project,
        connections=list(entry.get("connections") or []),
        strength=DEFAULT_STRENGTH if strength is None else strength,
    )
    if entry.get("date"):
        draft.created_at = entry["date"]
    return draft


async def ingest_seed(orchestrator: SuggestionOrchestrator, seed: dict, dry_run: bool = False) -> dict:
    """
    Ingest one seed file.

    Connections in a seed refer to the seed's own ids. Memories are created
    without them first, then linked once every seed id has a store id.

    Returns statistics about what was ingested.
    """
    stats = {"memories_created": 0, "memories_failed": 0, "links_written": 0, "errors": []}

    metadata = seed.get("metadata", {})
    project = metadata.get("project", "seed")

    print(f"\n{'='*60}")
    print(f"Ingesting: {metadata.get('name', 'Unknown')}")
    print(f"Version: {metadata.get('version', '?')}")
    print(f"{'='*60}\n")

    id_map = {}
    pending_links = []

    for i, entry in enumerate(seed.get("memories", [])):
        if not entry.get("content"):
            stats["errors"].append(f"Memory {i} has no content")
            continue

        draft = draft_from_seed(entry, project)

        if dry_run:
            links = f" -> {', '.join(draft.connections)}" if draft.connections else ""
            print(f"  [DRY RUN] Would create: {draft.title} [{', '.join(draft.tags)}]{links}")
            stats["memories_created"] += 1
            continue

        connections, draft.connections = draft.connections, []
        result = await orchestrator.capture(draft, remote_tags=False)
        if not result.ok:
            stats["memories_failed"] += 1
            stats["errors"].append(f"{draft.title}: {result.error}")
            print(f"  ! Error: {draft.title} - {result.error}")
            continue

        stored_id = getattr(result.value, "id", None)
        stats["memories_created"] += 1
        print(f"  + {stored_id or '?'}: {draft.title}")
        if stored_id and entry.get("id") is not None:
            id_map[str(entry["id"])] = str(stored_id)
        if stored_id and connections:
            pending_links.append((str(stored_id), connections))

    for stored_id, connections in pending_links:
        targets = remap_connections(connections, id_map)
        if not targets:
            continue
        result = await orchestrator.persist_connections(stored_id, targets)
        if result.ok:
            stats["links_written"] += len(targets)
        else:
            stats["errors"].append(f"Links for {stored_id}: {result.error}")

    return stats


def print_summary(all_stats: list[dict]):
    """Print summary of all ingestions."""
    print(f"\n{'='*60}")
    print("INGESTION SUMMARY")
    print(f"{'='*60}")

    created = sum(s.get("memories_created", 0) for s in all_stats)
    failed = sum(s.get("memories_failed", 0) for s in all_stats)
    links = sum(s.get("links_written", 0) for s in all_stats)
    errors = [e for s in all_stats for e in s.get("errors", [])]

    print(f"\nMemories: {created} created, {failed} failed")
    print(f"Links: {links}")

    if errors:
        print(f"\nErrors ({len(errors)}):")
        for err in errors[:10]:
            print(f"  - {err}")
        if len(errors) > 10:
            print(f"  ... and {len(errors) - 10} more")

    print(f"\n{'='*60}")


async def run(files: list[str], dry_run: bool, api_url: str | None) -> None:
    settings = load_settings({"api_url": api_url} if api_url else None)
    print(f"Memory store: {settings.api_url}")
    if dry_run:
        print("*** DRY RUN MODE - No changes will be made ***")

    async with MemoryStoreClient.from_settings(settings) as store:
        if not dry_run and not await store.health():
            print(f"Memory store at {settings.api_url} is not reachable")
            return

        orchestrator = SuggestionOrchestrator(store, settings)
        all_stats = []

        for filepath in files:
            try:
                seed = load_seed_file(filepath)
            except (OSError, ValueError) as e:
                print(f"Error loading {filepath}: {e}")
                all_stats.append({"errors": [str(e)]})
                continue
            all_stats.append(await ingest_seed(orchestrator, seed, dry_run=dry_run))

        print_summary(all_stats)

        if not dry_run:
            result = await orchestrator.get_stats()
            print("\nFinal store stats:")
            print(f"  Total memories: {result.value.get('total', 0)}")


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Ingest seed memories into the memory store")
    parser.add_argument("files", nargs="+", help="JSON seed files to ingest")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without making changes")
    parser.add_argument("--api-url", help="Memory store URL (default: from settings)")

    args = parser.parse_args()
    asyncio.run(run(args.files, args.dry_run, args.api_url))


if __name__ == "__main__":
    main()
