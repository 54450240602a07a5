"""
Capture-side normalisation.

Source connectors (mail, document libraries, structured lists, the editor)
fetch raw content elsewhere. This module turns what they already fetched
into memory drafts: cleaned content, a title, tags, a source descriptor.

Nothing here does I/O.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from memlayer.models import DEFAULT_STRENGTH, UNTAGGED, MemorySource
from memlayer.tagging import generate_tags

MIN_CONTENT_LENGTH = 50
EMAIL_MAX_CHARS = 1000
DOCUMENT_MAX_CHARS = 2000
TITLE_MAX_CHARS = 100
AUTO_CAPTURED_TAG = "auto-captured"

CODE_LANGUAGES = frozenset({
    "javascript", "typescript", "python", "java", "csharp",
    "cpp", "go", "rust", "php", "ruby",
})


@dataclass
class MemoryDraft:
    """A memory that has not been stored yet."""
    title: str
    content: str
    description: str = ""
    tags: list = field(default_factory=list)
    source: MemorySource = field(default_factory=MemorySource)
    project: str = ""
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    connections: list = field(default_factory=list)
    strength: float = DEFAULT_STRENGTH
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.tags:
            self.tags = [UNTAGGED]
        self.strength = min(1.0, max(0.0, float(self.strength)))
        self.connections = [str(c) for c in self.connections]

    def to_payload(self) -> dict:
        """Body for the store's create endpoint."""
        source = {"type": self.source.kind}
        if self.source.file:
            source["file"] = self.source.file
        if self.source.line is not None:
            source["line"] = self.source.line
        if self.source.language:
            source["language"] = self.source.language
        return {
            "title": self.title,
            "content": self.content,
            "description": self.description,
            "tags": list(self.tags),
            "source": source,
            "project": self.project,
            "createdAt": self.created_at,
            "connections": list(self.connections),
            "strength": self.strength,
            "metadata": dict(self.metadata),
        }


def remap_connections(connections: List[Any], id_map: Dict[str, str]) -> List[str]:
    """Translate connection ids from a source system into store ids.

    Connections to ids that were never stored are dropped.
    """
    return [id_map[str(c)] for c in connections if str(c) in id_map]


# =============================================================================
# EDITOR
# =============================================================================

def draft_from_selection(
    title: str,
    content: str,
    file_path: Optional[str] = None,
    line: Optional[int] = None,
    language: Optional[str] = None,
    description: str = "",
    project: str = "",
) -> MemoryDraft:
    """Manual capture of a selection (or the whole document) from the editor.

    `line` is the zero-based cursor line; the stored line is one-based.
    """
    return MemoryDraft(
        title=title,
        content=content,
        description=description,
        tags=generate_tags(file_path, content),
        source=MemorySource(
            kind="vscode",
            file=file_path,
            line=line + 1 if line is not None else None,
            language=language,
        ),
        project=project,
    )


def auto_capture_draft(
    file_path: str,
    content: str,
    language: Optional[str],
    project: str = "",
) -> Optional[MemoryDraft]:
    """Draft for a file that was just saved. Only code files qualify."""
    if (language or "").lower() not in CODE_LANGUAGES:
        return None
    name = _basename(file_path)
    return MemoryDraft(
        title=f"Auto-captured: {name}",
        content=content,
        description=f"Automatically captured on save from {name}",
        tags=generate_tags(file_path, content) + [AUTO_CAPTURED_TAG],
        source=MemorySource(kind="vscode", file=file_path, line=1, language=language),
        project=project,
    )


# =============================================================================
# MAIL
# =============================================================================

EMAIL_TECHNICAL_TERMS = (
    "api", "database", "frontend", "backend", "deployment", "architecture",
    "react", "node", "python", "javascript", "typescript", "kubernetes",
    "docker", "aws", "azure", "github", "jira", "performance", "security",
)
EMAIL_RELEVANCE_TERMS = ("bug", "fix", "deploy", "api", "database", "architecture", "decision")

DECISION_LANGUAGE = re.compile(r"decided|decision|agreed|approved|rejected", re.IGNORECASE)
DECISION_SCORING_LANGUAGE = re.compile(r"decided|decision|agreed|approved", re.IGNORECASE)
PROJECT_LANGUAGE = re.compile(r"project|sprint|release|milestone", re.IGNORECASE)
SOLUTION_LANGUAGE = re.compile(r"solution|fix|resolve|implement", re.IGNORECASE)


@dataclass(frozen=True)
class EmailAnalysis:
    is_relevant: bool
    kind: str            # "decision" or "technical"
    keywords: tuple
    confidence: float


def email_keywords(text: str) -> tuple:
    lowered = text.lower()
    return tuple(term for term in EMAIL_TECHNICAL_TERMS if term in lowered)


def email_confidence(text: str) -> float:
    score = 0.0
    if DECISION_SCORING_LANGUAGE.search(text):
        score += 0.4
    score += min(len(email_keywords(text)) * 0.1, 0.3)
    if PROJECT_LANGUAGE.search(text):
        score += 0.2
    if SOLUTION_LANGUAGE.search(text):
        score += 0.3
    return min(score, 1.0)


def analyze_email(subject: str, preview: str) -> EmailAnalysis:
    """Is this message worth remembering, and as what?"""
    text = f"{subject} {preview}"
    lowered = text.lower()
    has_decision = bool(DECISION_LANGUAGE.search(text))
    has_technical = any(term in lowered for term in EMAIL_RELEVANCE_TERMS)
    return EmailAnalysis(
        is_relevant=has_decision or has_technical,
        kind="decision" if has_decision else "technical",
        keywords=email_keywords(text),
        confidence=email_confidence(text),
    )


def clean_email_content(html: str) -> str:
    """Strip markup, quoted/forwarded blocks and header blocks; cap the length."""
    text = re.sub(r"<[^>]*>", " ", html)
    text = re.sub(r"-----Original Message-----[\s\S]*$", "", text)
    text = re.sub(r"From:.*?Subject:.*?\n", "", text, flags=re.DOTALL)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return _truncate(text, EMAIL_MAX_CHARS)


def draft_from_email(
    message_id: str,
    subject: str,
    body: str,
    preview: str = "",
    received_at: Optional[str] = None,
    sender: Optional[str] = None,
) -> Optional[MemoryDraft]:
    analysis = analyze_email(subject, preview or body)
    if not analysis.is_relevant:
        return None
    content = clean_email_content(body or preview)
    if len(content) < MIN_CONTENT_LENGTH:
        return None
    return MemoryDraft(
        title=f"Email: {subject}",
        content=content,
        tags=list(analysis.keywords),
        source=MemorySource(kind="outlook"),
        created_at=received_at or datetime.now().isoformat(),
        metadata={
            "external_id": message_id,
            "kind": analysis.kind,
            "confidence": analysis.confidence,
            "from": sender,
        },
    )


# =============================================================================
# DOCUMENTS
# =============================================================================

DOCUMENT_NAME_KEYWORDS = (
    "architecture", "design", "specification", "requirements", "api",
    "database", "deployment", "runbook", "documentation", "decision",
    "adr", "rfc", "technical", "system", "infrastructure",
)
DOCUMENT_EXTENSIONS = (".docx", ".pdf", ".md", ".txt", ".xlsx")
DOCUMENT_TECHNICAL_TERMS = (
    "api", "database", "frontend", "backend", "deployment", "architecture",
    "microservices", "kubernetes", "docker", "aws", "azure", "security",
    "performance", "scalability", "monitoring", "logging", "testing",
)


def is_technical_document(name: str) -> bool:
    lowered = name.lower()
    return (
        any(keyword in lowered for keyword in DOCUMENT_NAME_KEYWORDS)
        and lowered.endswith(DOCUMENT_EXTENSIONS)
    )


def clean_document_content(content: str) -> str:
    return _truncate(re.sub(r"\s+", " ", content).strip(), DOCUMENT_MAX_CHARS)


def title_from_content(content: str) -> str:
    return _truncate(content.split("\n")[0], TITLE_MAX_CHARS)


def extract_technical_tags(content: str) -> list:
    lowered = content.lower()
    return [term for term in DOCUMENT_TECHNICAL_TERMS if term in lowered]


def draft_from_document(
    document_id: str,
    content: str,
    name: Optional[str] = None,
    url: Optional[str] = None,
    modified_at: Optional[str] = None,
) -> Optional[MemoryDraft]:
    if not content or len(content) < MIN_CONTENT_LENGTH:
        return None
    return MemoryDraft(
        title=name or title_from_content(content),
        content=clean_document_content(content),
        tags=extract_technical_tags(content),
        source=MemorySource(kind="sharepoint", file=name),
        created_at=modified_at or datetime.now().isoformat(),
        metadata={"external_id": document_id, "external_url": url or f"#sharepoint-{document_id}"},
    )


# =============================================================================
# STRUCTURED LISTS
# =============================================================================

DECISION_KEYWORDS = ("decision", "approved", "rejected", "status", "outcome", "action")


@dataclass
class ListRecord:
    """One row of a structured list (decision log, project tracker).

    Known columns get typed slots; anything else is kept in `extras` so it
    is not lost, but only the decision-keyword test ever looks at it.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    comments: Optional[str] = None
    decision: Optional[str] = None
    status: Optional[str] = None
    outcome: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    # column name -> slot, in display order
    KNOWN_FIELDS = {
        "Title": "title",
        "Description": "description",
        "Comments": "comments",
        "Decision": "decision",
        "Status": "status",
        "Outcome": "outcome",
    }

    @classmethod
    def from_fields(cls, fields: Dict[str, Any]) -> "ListRecord":
        known = {}
        extras = {}
        for name, value in fields.items():
            slot = cls.KNOWN_FIELDS.get(name)
            if slot is None:
                extras[name] = value
            else:
                known[slot] = None if value is None else str(value)
        return cls(extras=extras, **known)

    def is_decision_record(self) -> bool:
        values = [getattr(self, slot) for slot in self.KNOWN_FIELDS.values()]
        values.extend(self.extras.values())
        text = " ".join(str(v) for v in values if v is not None).lower()
        return any(keyword in text for keyword in DECISION_KEYWORDS)

    def format_content(self) -> str:
        lines: List[str] = []
        for name, slot in self.KNOWN_FIELDS.items():
            value = getattr(self, slot)
            if value and value.strip():
                lines.append(f"{name}: {value}")
        return "\n".join(lines)


def draft_from_list_record(item_id: str, fields: Dict[str, Any],
                           created_at: Optional[str] = None) -> Optional[MemoryDraft]:
    record = ListRecord.from_fields(fields)
    if not record.is_decision_record():
        return None
    content = record.format_content()
    if len(content) < MIN_CONTENT_LENGTH:
        return None
    return MemoryDraft(
        title=record.title or title_from_content(content),
        content=clean_document_content(content),
        tags=extract_technical_tags(content),
        source=MemorySource(kind="sharepoint"),
        created_at=created_at or datetime.now().isoformat(),
        metadata={"external_id": item_id, "document_type": "list-item"},
    )


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _basename(path: str) -> str:
    return re.split(r"[/\\]", path)[-1]
