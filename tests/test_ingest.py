"""
Capture-side normalisation tests.

Mail, documents, list rows and editor selections all end up as
MemoryDrafts; none of this touches the network.
"""

import pytest

from memlayer.ingest import (
    AUTO_CAPTURED_TAG,
    ListRecord,
    MemoryDraft,
    analyze_email,
    auto_capture_draft,
    clean_document_content,
    clean_email_content,
    draft_from_document,
    draft_from_email,
    draft_from_list_record,
    draft_from_selection,
    extract_technical_tags,
    is_technical_document,
    remap_connections,
    title_from_content,
)
from memlayer.models import UNTAGGED

LONG_BODY = (
    "<p>Team, we agreed to fix the database migration before the release. "
    "Rollback plan is attached.</p>"
)


class TestDrafts:

    def test_untagged_sentinel(self):
        assert MemoryDraft(title="t", content="c").tags == [UNTAGGED]

    def test_payload_omits_empty_source_fields(self):
        payload = MemoryDraft(title="t", content="c", tags=["a"]).to_payload()
        assert payload["source"] == {"type": "unknown"}
        assert payload["tags"] == ["a"]
        assert "createdAt" in payload

    def test_payload_carries_connections_and_strength(self):
        draft = MemoryDraft(title="t", content="c", connections=[1, 5], strength=1.4)
        payload = draft.to_payload()
        assert payload["connections"] == ["1", "5"]
        assert payload["strength"] == 1.0
        assert MemoryDraft(title="t", content="c").to_payload()["strength"] == 0.5

    def test_remap_connections_to_store_ids(self):
        id_map = {"1": "mem_a", "2": "mem_b"}
        assert remap_connections([2, 1, 9], id_map) == ["mem_b", "mem_a"]
        assert remap_connections([], id_map) == []


class TestEditorCapture:

    def test_selection_line_is_one_based(self):
        draft = draft_from_selection("Adder", "def add(a, b):\n    return a + b", "src/util.py", 0, "python")
        assert draft.source.line == 1
        assert draft.source.kind == "vscode"
        assert draft.tags == ["python", "backend"]

    def test_auto_capture_code_files_only(self):
        assert auto_capture_draft("notes.md", "# Notes", "markdown") is None
        assert auto_capture_draft("notes.txt", "words", None) is None

    def test_auto_capture_draft(self):
        draft = auto_capture_draft("src/util.py", "def add(a, b):\n    return a + b", "python")
        assert draft.title == "Auto-captured: util.py"
        assert draft.tags == ["python", "backend", AUTO_CAPTURED_TAG]
        assert draft.source.line == 1


class TestEmail:

    def test_decision_email(self):
        analysis = analyze_email("Deploy decision", "We agreed to fix the database migration before release.")
        assert analysis.is_relevant
        assert analysis.kind == "decision"
        assert analysis.keywords == ("database",)
        assert analysis.confidence == pytest.approx(1.0)

    def test_technical_email(self):
        analysis = analyze_email("Bug in login", "There is a bug on the settings page")
        assert analysis.is_relevant
        assert analysis.kind == "technical"

    def test_irrelevant_email(self):
        assert not analyze_email("Lunch on Friday", "Pizza in the kitchen").is_relevant
        assert draft_from_email("m1", "Lunch on Friday", "Pizza in the kitchen") is None

    def test_clean_strips_markup_and_quotes(self):
        html = "<p>Hello</p>\n-----Original Message-----\nFrom: someone\nold thread"
        assert clean_email_content(html) == "Hello"

    def test_clean_truncates(self):
        cleaned = clean_email_content("x" * 1500)
        assert len(cleaned) == 1003
        assert cleaned.endswith("...")

    def test_short_body_skipped(self):
        assert draft_from_email("m1", "Decision", "ok, approved") is None

    def test_draft_from_email(self):
        draft = draft_from_email("m1", "Migration decision", LONG_BODY, sender="lead@example.com")
        assert draft.title == "Email: Migration decision"
        assert draft.source.kind == "outlook"
        assert "database" in draft.tags
        assert draft.metadata["external_id"] == "m1"
        assert draft.metadata["kind"] == "decision"
        assert "<p>" not in draft.content


class TestDocuments:

    @pytest.mark.parametrize("name,expected", [
        ("API Design.docx", True),
        ("runbook.md", True),
        ("Holiday photos.docx", False),
        ("api notes.exe", False),
    ])
    def test_is_technical_document(self, name, expected):
        assert is_technical_document(name) is expected

    def test_clean_and_title(self):
        assert clean_document_content("a\n\n  b\tc") == "a b c"
        assert title_from_content("First line\nsecond") == "First line"
        assert title_from_content("y" * 150) == "y" * 100 + "..."

    def test_technical_tags_in_vocabulary_order(self):
        assert extract_technical_tags("Security review of the API and its database") == ["api", "database", "security"]

    def test_draft_from_document(self):
        content = "Deployment architecture for the api gateway, running on kubernetes with monitoring."
        draft = draft_from_document("d1", content, name="Gateway ADR.md")
        assert draft.title == "Gateway ADR.md"
        assert draft.source.kind == "sharepoint"
        assert draft.metadata["external_url"] == "#sharepoint-d1"
        assert draft.tags[:2] == ["api", "deployment"]

    def test_short_document_skipped(self):
        assert draft_from_document("d1", "too short") is None


class TestListRecords:

    FIELDS = {
        "Title": "Choose primary database",
        "Description": "Evaluate PostgreSQL against MongoDB for the api layer",
        "Decision": "PostgreSQL approved",
        "Status": "Closed",
        "Owner": "platform team",
    }

    def test_unknown_fields_kept_aside(self):
        record = ListRecord.from_fields(self.FIELDS)
        assert record.title == "Choose primary database"
        assert record.extras == {"Owner": "platform team"}

    def test_format_content_known_fields_only(self):
        content = ListRecord.from_fields(self.FIELDS).format_content()
        assert content.split("\n") == [
            "Title: Choose primary database",
            "Description: Evaluate PostgreSQL against MongoDB for the api layer",
            "Decision: PostgreSQL approved",
            "Status: Closed",
        ]

    def test_decision_keyword_in_extras_counts(self):
        record = ListRecord.from_fields({"Title": "Pick a queue", "Notes": "approved by cto"})
        assert record.is_decision_record()

    def test_non_decision_row_skipped(self):
        assert draft_from_list_record("i1", {"Title": "Team lunch", "Description": "Friday"}) is None

    def test_draft_from_list_record(self):
        draft = draft_from_list_record("i1", self.FIELDS)
        assert draft.title == "Choose primary database"
        assert draft.tags == ["api", "database"]
        assert draft.metadata == {"external_id": "i1", "document_type": "list-item"}
