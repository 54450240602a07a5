"""
Suggestion Orchestrator - The interactive side of the engine.

The analyzer, tagger and scorer are pure and fast. Everything that waits
lives here:

1. Debounce: only the last context change inside the delay window is scored
2. Rate limit: presentations are at least `min interval` apart
3. Cache: the full memory set is fetched at most once per TTL
4. Fallbacks: when the store is down, tags/stats/suggestions come from
   local heuristics and the result is marked degraded

This is the only layer that catches store failures. Callers get an
EngineResult and decide for themselves what a degraded result means.
"""

import asyncio
import time
from typing import Callable, List, Optional

from memlayer.analyzer import analyze_context
from memlayer.cache import ALL_MEMORIES_KEY, ResultCache
from memlayer.config import Settings
from memlayer.ingest import MemoryDraft, auto_capture_draft
from memlayer.log import get_logger
from memlayer.models import (
    ContextWindow,
    EngineResult,
    MalformedMemoryError,
    Memory,
    StoreUnavailableError,
    UNTAGGED,
    Suggestion,
)
from memlayer.scoring import rank, score
from memlayer.tagging import MAX_TAGS, generate_tags as local_tags
from memlayer.trigger import SuggestionTrigger

logger = get_logger("orchestrator")

ALL_MEMORIES_LIMIT = 50


def format_suggestion(suggestion: Suggestion) -> str:
    """One-line label, e.g. `Auth0 Integration Epic (85% match)`."""
    return f"{suggestion.title} ({round(suggestion.relevance * 100)}% match)"


def suggestion_detail(suggestion: Suggestion) -> str:
    return suggestion.reason or suggestion.memory.description


class SuggestionOrchestrator:
    """Debounces context changes, ranks candidates and caches the memory set.

    Usage:
        orchestrator = SuggestionOrchestrator(store, settings, presenter=show)
        orchestrator.on_context_changed(context)      # from editor events
        result = await orchestrator.fetch_suggestions(context)  # on demand
    """

    def __init__(
        self,
        store,
        settings: Optional[Settings] = None,
        presenter: Optional[Callable[[List[Suggestion]], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            store: A MemoryStoreClient (or anything with the same async methods)
            settings: Tunables; defaults if omitted
            presenter: Called with the ranked list whenever a debounced pass
                produces something worth showing
            clock: Seconds, monotonic. Injected for tests.
        """
        self.store = store
        self.settings = settings or Settings()
        self.presenter = presenter
        self._clock = clock
        self.cache = ResultCache(ttl_seconds=self.settings.cache_ttl_seconds, clock=clock)
        self.trigger = SuggestionTrigger(
            delay_seconds=self.settings.suggestion_delay_ms / 1000.0,
            min_interval_seconds=self.settings.min_presentation_interval_ms / 1000.0,
        )
        self.current_suggestions: List[Suggestion] = []
        self.last_result: Optional[EngineResult] = None
        self._tasks: set = set()

    # =========================================================================
    # INTERACTIVE PIPELINE
    # =========================================================================

    def on_context_changed(self, context: ContextWindow) -> None:
        """Fire-and-forget. Restarts the debounce timer.

        Must be called from inside a running event loop.
        """
        loop = asyncio.get_running_loop()
        generation = self.trigger.context_changed(context)
        timer = loop.call_later(self.trigger.delay_seconds, self._timer_fired, generation)
        self.trigger.attach_timer(generation, timer)
        logger.debug(f"Context changed, scoring scheduled (generation {generation})")

    def _timer_fired(self, generation: int) -> None:
        context = self.trigger.timer_fired(generation, self._clock())
        if context is None:
            return
        task = asyncio.ensure_future(self._run_pass(generation, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_pass(self, generation: int, context: ContextWindow) -> None:
        result = await self.fetch_suggestions(context)
        suggestions = result.value or []
        if not suggestions:
            return
        if not self.trigger.may_present(generation, self._clock()):
            logger.debug(f"Dropping result of generation {generation}: stale or rate limited")
            return

        self.trigger.presented(generation, self._clock())
        self.current_suggestions = suggestions
        self.last_result = result
        if self.presenter is not None:
            self.presenter(suggestions)

    async def wait_idle(self) -> None:
        """Wait for scoring passes that have already started."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def clear_suggestions(self) -> None:
        self.current_suggestions = []
        self.trigger.cancel()

    # =========================================================================
    # SUGGESTIONS
    # =========================================================================

    async def fetch_suggestions(self, context: ContextWindow) -> EngineResult:
        """Ranked suggestions for a context window.

        Returns:
            success  - store candidates, re-scored locally
            degraded - store unreachable; cached/known memories scored locally
            failed   - nothing to score at all
        """
        if context is None:
            raise TypeError("fetch_suggestions() requires a context window")
        if not context.content.strip():
            return EngineResult.success([])

        signals = analyze_context(context)
        limit = self.settings.suggestion_limit

        try:
            records = await self.store.contextual_candidates(
                context.content, context.language, context.file_path, limit
            )
        except StoreUnavailableError as e:
            logger.warning(f"Contextual lookup failed, scoring cached memories instead: {e}")
            return await self._local_suggestions(context, signals, str(e))

        candidates = []
        for record in records:
            try:
                memory = Memory.from_dict(record)
            except MalformedMemoryError as e:
                logger.warning(f"Skipping malformed candidate: {e}")
                continue
            base = _number(record.get("relevance"))
            candidates.append(score(signals, memory, base, language=context.language,
                                    reason=record.get("reason")))

        return EngineResult.success(self._select(candidates, limit))

    async def get_suggestions(self, context: ContextWindow) -> List[Suggestion]:
        """Plain list form of fetch_suggestions(); empty when nothing qualifies."""
        result = await self.fetch_suggestions(context)
        return result.value or []

    async def suggest_now(self, context: ContextWindow) -> EngineResult:
        """Manual request: no debounce, no rate limit."""
        result = await self.fetch_suggestions(context)
        if result.value:
            self.current_suggestions = result.value
            self.last_result = result
        return result

    async def _local_suggestions(self, context, signals, error: str) -> EngineResult:
        memories = self.cache.get(ALL_MEMORIES_KEY)
        if memories is None:
            return EngineResult.failure([], error)
        candidates = [
            score(signals, memory, 0.0, language=context.language)
            for memory in memories
        ]
        return EngineResult.fallback(self._select(candidates, self.settings.suggestion_limit), error)

    def _select(self, candidates: List[Suggestion], limit: int) -> List[Suggestion]:
        floor = self.settings.min_relevance
        kept = [s for s in candidates if s.relevance > 0 and s.relevance >= floor]
        return rank(kept)[:limit]

    # =========================================================================
    # MEMORY SET (CACHED)
    # =========================================================================

    async def get_cached_memories(self) -> List[Memory]:
        """All memories, served from cache while the entry is fresh.

        Raises:
            StoreUnavailableError: on a cache miss when the store is down
        """
        cached = self.cache.get(ALL_MEMORIES_KEY)
        if cached is not None:
            logger.debug("Serving memory set from cache")
            return cached

        records = await self.store.list_memories(limit=ALL_MEMORIES_LIMIT)
        memories = []
        for record in records:
            try:
                memories.append(Memory.from_dict(record))
            except MalformedMemoryError as e:
                logger.warning(f"Skipping malformed memory: {e}")
        self.cache.set(ALL_MEMORIES_KEY, memories)
        return memories

    async def load_memories(self) -> EngineResult:
        try:
            return EngineResult.success(await self.get_cached_memories())
        except StoreUnavailableError as e:
            logger.warning(f"Could not load memories: {e}")
            return EngineResult.failure([], str(e))

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Memory cache cleared")

    # =========================================================================
    # TAGS, STATS, CAPTURE
    # =========================================================================

    async def generate_tags(self, file_path: Optional[str], content: str) -> EngineResult:
        """Store-side tagging, falling back to the local tag generator."""
        try:
            tags = await self.store.generate_tags(file_path, content)
        except StoreUnavailableError as e:
            logger.warning(f"Tag service unavailable, tagging locally: {e}")
            return EngineResult.fallback(local_tags(file_path, content), str(e))
        if not tags:
            return EngineResult.fallback(local_tags(file_path, content), "Tag service returned no tags")
        return EngineResult.success(tags)

    async def get_stats(self) -> EngineResult:
        """{total, by_tag}, from the store or computed from the memory set."""
        try:
            return EngineResult.success(await self.store.get_stats())
        except StoreUnavailableError as e:
            logger.warning(f"Stats endpoint unavailable, counting locally: {e}")
            error = str(e)

        try:
            memories = await self.get_cached_memories()
        except StoreUnavailableError as e:
            return EngineResult.failure({"total": 0, "by_tag": {}}, f"{error}; {e}")

        by_tag = {}
        for memory in memories:
            for tag in memory.tags:
                by_tag[tag] = by_tag.get(tag, 0) + 1
        return EngineResult.fallback({"total": len(memories), "by_tag": by_tag}, error)

    async def capture(self, draft: MemoryDraft, remote_tags: bool = True) -> EngineResult:
        """Tag and store a new memory.

        On store failure the result is `failed` and carries the draft, so
        the caller can retry; nothing is partially written.
        """
        if remote_tags:
            tag_result = await self.generate_tags(draft.source.file, draft.content)
            given = [t for t in draft.tags if t != UNTAGGED]
            merged = list(dict.fromkeys(list(tag_result.value) + given))[:MAX_TAGS]
            if merged:
                draft.tags = merged

        try:
            record = await self.store.create_memory(draft.to_payload())
        except StoreUnavailableError as e:
            logger.warning(f"Capture of '{draft.title}' failed: {e}")
            return EngineResult.failure(draft, str(e))

        self.cache.clear()
        try:
            return EngineResult.success(Memory.from_dict(record))
        except MalformedMemoryError:
            return EngineResult.success(draft)

    async def on_document_saved(self, file_path: str, content: str,
                                language: Optional[str]) -> Optional[EngineResult]:
        """Auto-capture hook. Does nothing unless `auto_capture` is enabled
        and the file is code."""
        if not self.settings.auto_capture:
            return None
        draft = auto_capture_draft(file_path, content, language)
        if draft is None:
            return None
        logger.info(f"Auto-capturing {file_path}")
        return await self.capture(draft, remote_tags=False)

    async def persist_tags(self, memory_id: str, tags: List[str]) -> EngineResult:
        """Best-effort tag write. Safe to retry."""
        try:
            await self.store.update_tags(memory_id, tags)
        except StoreUnavailableError as e:
            logger.warning(f"Could not persist tags for {memory_id}: {e}")
            return EngineResult.failure(tags, str(e))
        return EngineResult.success(tags)

    async def persist_connections(self, memory_id: str, connections: List[str]) -> EngineResult:
        """Best-effort connection write. Safe to retry."""
        try:
            await self.store.update_memory(memory_id, {"connections": list(connections)})
        except StoreUnavailableError as e:
            logger.warning(f"Could not persist connections for {memory_id}: {e}")
            return EngineResult.failure(connections, str(e))
        self.cache.clear()
        return EngineResult.success(connections)


def _number(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
