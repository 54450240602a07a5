"""
Data model for the relevance engine.

Memory records belong to the external store; the engine only ever holds
snapshots of them. Everything else here (signals, suggestions, graph nodes,
results) is rebuilt on every call and never persisted.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Optional


# Tag given to a memory that would otherwise have none
UNTAGGED = "untagged"

DEFAULT_STRENGTH = 0.5


class MalformedMemoryError(ValueError):
    """A store record is missing fields the engine cannot work without."""


class StoreUnavailableError(RuntimeError):
    """The storage collaborator could not be reached or rejected the request."""


# =============================================================================
# MEMORIES
# =============================================================================

def _optional_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _strength(value: Any) -> float:
    """Store strength, or the default when it is missing or not a number."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return DEFAULT_STRENGTH


@dataclass
class MemorySource:
    """Where a memory came from."""
    kind: str = "unknown"           # vscode, outlook, sharepoint, jira, ...
    file: Optional[str] = None
    line: Optional[int] = None
    language: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_value(cls, value: Any) -> "MemorySource":
        """Accept either a plain source name or a {type, file, line, language} dict."""
        if value is None:
            return cls()
        if isinstance(value, str):
            return cls(kind=value)
        if isinstance(value, dict):
            return cls(
                kind=str(value.get("type") or value.get("kind") or "unknown"),
                file=value.get("file"),
                line=_optional_int(value.get("line")),
                language=value.get("language"),
            )
        raise MalformedMemoryError(f"Unsupported source value: {value!r}")


@dataclass
class Memory:
    """A stored knowledge snippet with provenance, tags and an importance weight.

    Tags are never empty: a memory created without any gets the
    `untagged` sentinel. Strength is clamped into [0, 1].
    """
    id: str
    title: str
    content: str
    description: str = ""
    tags: list = field(default_factory=list)
    source: MemorySource = field(default_factory=MemorySource)
    project: str = ""
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    connections: list = field(default_factory=list)
    strength: float = DEFAULT_STRENGTH
    extras: dict = field(default_factory=dict)  # fields the engine does not know about

    def __post_init__(self):
        if not self.tags:
            self.tags = [UNTAGGED]
        self.strength = min(1.0, max(0.0, float(self.strength)))
        self.connections = [str(c) for c in self.connections]

    def to_dict(self) -> dict:
        return asdict(self)

    # Known store field -> our attribute. Everything else goes to `extras`.
    FIELD_MAP = {
        "id": "id",
        "title": "title",
        "content": "content",
        "description": "description",
        "tags": "tags",
        "source": "source",
        "project": "project",
        "createdAt": "created_at",
        "created_at": "created_at",
        "date": "created_at",
        "connections": "connections",
        "strength": "strength",
    }

    @classmethod
    def from_dict(cls, record: dict) -> "Memory":
        """Build a Memory from a store record.

        Raises:
            MalformedMemoryError: if the record has no content or no tags list
        """
        if not isinstance(record, dict):
            raise MalformedMemoryError(f"Expected a mapping, got {type(record).__name__}")

        content = record.get("content")
        if not isinstance(content, str) or not content.strip():
            raise MalformedMemoryError(f"Memory {record.get('id')!r} has no content")

        tags = record.get("tags")
        if not isinstance(tags, list):
            raise MalformedMemoryError(f"Memory {record.get('id')!r} has no tags")

        known = {}
        extras = {}
        for key, value in record.items():
            attr = cls.FIELD_MAP.get(key)
            if attr is None:
                extras[key] = value
            elif attr not in known:
                known[attr] = value

        try:
            return cls(
                id=str(known.get("id", "")),
                title=str(known.get("title") or ""),
                content=content,
                description=str(known.get("description") or ""),
                tags=[str(t) for t in tags],
                source=MemorySource.from_value(known.get("source")),
                project=str(known.get("project") or ""),
                created_at=str(known.get("created_at") or datetime.now().isoformat()),
                connections=list(known.get("connections") or []),
                strength=_strength(known.get("strength")),
                extras=extras,
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, MalformedMemoryError):
                raise
            raise MalformedMemoryError(f"Memory {record.get('id')!r}: {e}") from e


# =============================================================================
# CONTEXT AND SIGNALS
# =============================================================================

@dataclass(frozen=True)
class ContextWindow:
    """The text around the user's cursor or selection. Derived, never stored."""
    content: str
    selection: str = ""
    full_context: str = ""
    file_path: Optional[str] = None
    language: Optional[str] = None
    line: int = 0
    focus_line: Optional[str] = None  # text of the cursor line


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class PatternFlags:
    """Independent "does this text look like X" tests."""
    function_definition: bool = False
    method_call: bool = False
    error_handling: bool = False
    api_call: bool = False
    data_query: bool = False
    testing: bool = False
    auth: bool = False
    performance: bool = False
    ui: bool = False
    config: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SignalSet:
    """Everything the analyzer extracts from one piece of text."""
    keywords: tuple = ()
    identifiers: tuple = ()
    patterns: PatternFlags = field(default_factory=PatternFlags)
    complexity: Complexity = Complexity.LOW
    intents: tuple = ()

    def to_dict(self) -> dict:
        return {
            "keywords": list(self.keywords),
            "identifiers": list(self.identifiers),
            "patterns": self.patterns.to_dict(),
            "complexity": self.complexity.value,
            "intents": list(self.intents),
        }


@dataclass(frozen=True)
class Suggestion:
    """A memory annotated with a relevance score and why it scored that way."""
    memory: Memory
    relevance: float
    reason: str

    @property
    def title(self) -> str:
        return self.memory.title

    def to_dict(self) -> dict:
        data = self.memory.to_dict()
        data["relevance"] = round(self.relevance, 3)
        data["reason"] = self.reason
        return data


# =============================================================================
# GRAPH
# =============================================================================

@dataclass
class GraphNode:
    """A memory placed in 2-D layout space. Lives for one layout pass."""
    memory: Memory
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    radius: float = 12.0

    @property
    def id(self) -> str:
        return self.memory.id

    @property
    def connections(self) -> list:
        return self.memory.connections

    def contains(self, x: float, y: float) -> bool:
        dx = x - self.x
        dy = y - self.y
        return (dx * dx + dy * dy) ** 0.5 <= self.radius


# =============================================================================
# RESULTS
# =============================================================================

class ResultStatus(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"  # value came from a local fallback
    FAILED = "failed"      # value is empty, see error


@dataclass
class EngineResult:
    """Outcome of an operation that may have touched the network."""
    status: ResultStatus
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @property
    def degraded(self) -> bool:
        return self.status == ResultStatus.DEGRADED

    @classmethod
    def success(cls, value: Any) -> "EngineResult":
        return cls(ResultStatus.SUCCESS, value)

    @classmethod
    def fallback(cls, value: Any, error: str) -> "EngineResult":
        return cls(ResultStatus.DEGRADED, value, error)

    @classmethod
    def failure(cls, value: Any, error: str) -> "EngineResult":
        return cls(ResultStatus.FAILED, value, error)
