"""
Relevance Scorer - How relevant is a memory to what I'm looking at?

The store hands us candidates with a coarse base relevance. We adjust it
with additive, explainable boosts:

    relevance = base
              + 0.10  if any context intent appears in the memory's tags
              + 0.05  if the memory is in the same language as the context
              + 0.02  per context keyword found in the memory content/tags
              + 0.03  per context identifier found verbatim in the content

then clamp to 1.0. Boosts only ever add, so a score never drops below its
base.

The reason string follows a fixed rule: an intent match REPLACES the
store's reason, keyword and identifier matches APPEND to it.
"""

import re
from typing import Iterable, Optional

from memlayer.models import Memory, SignalSet, Suggestion

INTENT_BOOST = 0.10
LANGUAGE_BOOST = 0.05
KEYWORD_BOOST = 0.02
IDENTIFIER_BOOST = 0.03
MAX_RELEVANCE = 1.0

KEYWORDS_IN_REASON = 3
IDENTIFIERS_IN_REASON = 2

DEFAULT_REASON = "Similar content found"

_SEPARATORS = re.compile(r"[-_\s]")


def matching_intents(intents: Iterable[str], tags: Iterable[str]) -> list:
    """Intents that (separators stripped) occur inside any tag."""
    lowered_tags = [t.lower() for t in tags]
    matches = []
    for intent in intents:
        needle = _SEPARATORS.sub("", intent.lower())
        if any(needle in tag for tag in lowered_tags):
            matches.append(intent)
    return matches


def score(
    signals: SignalSet,
    candidate: Memory,
    base_relevance: float,
    language: Optional[str] = None,
    reason: Optional[str] = None,
) -> Suggestion:
    """Score one candidate memory against the context's signals.

    Args:
        signals: Analyzer output for the context window
        candidate: Memory snapshot from the store
        base_relevance: Coarse relevance from the store's own retrieval
        language: Language of the context window
        reason: The store's explanation for the candidate, if any

    Returns:
        Suggestion with relevance in [0, 1]
    """
    if signals is None or candidate is None:
        raise TypeError("score() requires signals and a candidate")

    relevance = max(0.0, float(base_relevance))
    justification = reason or DEFAULT_REASON

    tags = [tag.lower() for tag in candidate.tags]

    # Intent match overwrites the reason
    intents = matching_intents(signals.intents, tags)
    if intents:
        relevance += INTENT_BOOST
        justification = f"Intent match: {', '.join(intents)}"

    if language and candidate.source.language == language:
        relevance += LANGUAGE_BOOST

    content_lower = candidate.content.lower()
    keywords = [
        keyword for keyword in signals.keywords
        if keyword in content_lower or any(keyword in tag for tag in tags)
    ]
    if keywords:
        relevance += len(keywords) * KEYWORD_BOOST
        justification += f" (Keywords: {', '.join(keywords[:KEYWORDS_IN_REASON])})"

    identifiers = [i for i in signals.identifiers if i in candidate.content]
    if identifiers:
        relevance += len(identifiers) * IDENTIFIER_BOOST
        justification += f" (Identifiers: {', '.join(identifiers[:IDENTIFIERS_IN_REASON])})"

    return Suggestion(
        memory=candidate,
        relevance=min(MAX_RELEVANCE, relevance),
        reason=justification,
    )


def rank(suggestions: Iterable[Suggestion]) -> list:
    """Highest relevance first. Ties keep their input order."""
    return sorted(suggestions, key=lambda s: -s.relevance)


def score_all(
    signals: SignalSet,
    candidates: Iterable[tuple],
    language: Optional[str] = None,
) -> list:
    """Score (memory, base_relevance, reason) triples and rank them."""
    return rank(
        score(signals, memory, base, language=language, reason=reason)
        for memory, base, reason in candidates
    )
