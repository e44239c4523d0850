"""Unit tests for reorganizers and organize plan handling."""

import json
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from zap.config import OrganizerConfig
from zap.notes.errors import OrganizeResultError, OrganizeTransportError
from zap.notes.models import AudioContent, NoteItem, NoteKind, PhotoContent, TextContent
from zap.organizer import MockReorganizer, create_reorganizer, merge_plan
from zap.organizer.claude import ClaudeReorganizer, ClaudeReorganizerConfig, parse_plan
from zap.organizer.mock import group_by_kind

API_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


@pytest.fixture
def originals() -> list[NoteItem]:
    return [
        NoteItem(id="t1", content=TextContent("buy milk")),
        NoteItem(id="a1", content=AudioContent("standup.m4a", 60.0)),
        NoteItem(id="p1", content=PhotoContent("whiteboard.jpg")),
    ]


class TestMergePlan:
    """Tests for merge_plan."""

    def test_reorders_and_labels(self, originals: list[NoteItem]) -> None:
        """Test known ids keep content and take new labels in plan order."""
        plan = [
            {"id": "p1", "category": "work", "tags": ["meeting"]},
            {"id": "t1", "category": "errands", "tags": []},
        ]
        result = merge_plan(plan, originals)

        assert [n.id for n in result] == ["p1", "t1"]
        assert result[0].content == PhotoContent("whiteboard.jpg")
        assert result[0].category == "work"
        assert result[0].tags == ("meeting",)
        assert result[0].created_at == originals[2].created_at

    def test_text_may_be_rewritten(self, originals: list[NoteItem]) -> None:
        """Test a text note accepts rewritten text."""
        result = merge_plan([{"id": "t1", "text": "Buy milk (2L)"}], originals)
        assert result[0].content == TextContent("Buy milk (2L)")

    def test_media_content_never_rewritten(self, originals: list[NoteItem]) -> None:
        """Test text in an entry for a media note is ignored."""
        result = merge_plan([{"id": "a1", "text": "transcript"}], originals)
        assert result[0].content == AudioContent("standup.m4a", 60.0)

    def test_missing_labels_keep_existing(self) -> None:
        """Test entries without labels keep the note's labels."""
        note = NoteItem(id="x", content=TextContent("x"), category="old", tags=("t",))
        result = merge_plan([{"id": "x"}], [note])
        assert result[0].category == "old"
        assert result[0].tags == ("t",)

    def test_synthesized_note(self, originals: list[NoteItem]) -> None:
        """Test entries without a known id create new text notes."""
        plan = [{"kind": "text", "text": "Plan: shop, then standup", "category": "plan"}]
        result = merge_plan(plan, originals)

        assert len(result) == 1
        assert result[0].kind is NoteKind.TEXT
        assert result[0].id not in {n.id for n in originals}
        assert result[0].category == "plan"

    def test_synthesized_note_keeps_given_id(self, originals: list[NoteItem]) -> None:
        """Test an unknown id is used for the synthesized note."""
        result = merge_plan([{"id": "summary-1", "text": "summary"}], originals)
        assert result[0].id == "summary-1"

    @pytest.mark.parametrize(
        "plan",
        [
            {"id": "t1"},
            ["t1"],
            [{"kind": "photo", "image_ref": "new.jpg"}],
            [{"text": ""}],
            [{"id": "t1", "tags": "not-a-list"}],
            [{"id": "t1", "category": 7}],
        ],
    )
    def test_malformed_plans(self, originals: list[NoteItem], plan: object) -> None:
        """Test malformed plans raise OrganizeResultError."""
        with pytest.raises(OrganizeResultError):
            merge_plan(plan, originals)


class TestParsePlan:
    """Tests for extracting the plan from model output."""

    def test_plain_array(self) -> None:
        assert parse_plan('[{"id": "a"}]') == [{"id": "a"}]

    def test_array_in_prose(self) -> None:
        text = 'Here you go:\n```json\n[{"id": "a"}, {"id": "b"}]\n```\nDone.'
        assert parse_plan(text) == [{"id": "a"}, {"id": "b"}]

    @pytest.mark.parametrize("text", ["no json here", "[not, json]", "] backwards ["])
    def test_unparseable(self, text: str) -> None:
        with pytest.raises(OrganizeResultError):
            parse_plan(text)


def _response(text: str) -> MagicMock:
    block = MagicMock()
    block.type = "text"
    block.text = text
    response = MagicMock()
    response.content = [block]
    response.usage.input_tokens = 100
    response.usage.output_tokens = 50
    return response


class TestClaudeReorganizer:
    """Tests for the Claude reorganizer with a mocked SDK client."""

    @pytest.fixture
    def client(self):
        with patch("zap.organizer.claude.anthropic.Anthropic") as anthropic_cls:
            client = MagicMock()
            anthropic_cls.return_value = client
            yield client

    @pytest.fixture
    def reorganizer(self, client: MagicMock) -> ClaudeReorganizer:
        return ClaudeReorganizer(ClaudeReorganizerConfig(api_key="test-key", model="test-model"))

    def test_successful_organize(
        self, reorganizer: ClaudeReorganizer, client: MagicMock, originals: list[NoteItem]
    ) -> None:
        """Test a valid plan comes back as organized notes."""
        plan = [{"id": "a1", "category": "work"}, {"id": "t1", "category": "errands"}]
        client.messages.create.return_value = _response(json.dumps(plan))

        result = reorganizer.reorganize(originals)

        assert [n.id for n in result] == ["a1", "t1"]
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        sent = kwargs["messages"][0]["content"]
        assert '"id": "t1"' in sent
        assert "standup.m4a" not in sent

    def test_empty_response(
        self, reorganizer: ClaudeReorganizer, client: MagicMock, originals: list[NoteItem]
    ) -> None:
        client.messages.create.return_value = _response("   ")
        with pytest.raises(OrganizeResultError):
            reorganizer.reorganize(originals)

    def test_timeout(
        self, reorganizer: ClaudeReorganizer, client: MagicMock, originals: list[NoteItem]
    ) -> None:
        client.messages.create.side_effect = anthropic.APITimeoutError(request=API_REQUEST)
        with pytest.raises(OrganizeTransportError, match="timed out"):
            reorganizer.reorganize(originals)

    def test_connection_error(
        self, reorganizer: ClaudeReorganizer, client: MagicMock, originals: list[NoteItem]
    ) -> None:
        client.messages.create.side_effect = anthropic.APIConnectionError(request=API_REQUEST)
        with pytest.raises(OrganizeTransportError):
            reorganizer.reorganize(originals)

    def test_status_error(
        self, reorganizer: ClaudeReorganizer, client: MagicMock, originals: list[NoteItem]
    ) -> None:
        response = httpx.Response(529, request=API_REQUEST)
        client.messages.create.side_effect = anthropic.APIStatusError(
            "overloaded", response=response, body=None
        )
        with pytest.raises(OrganizeTransportError) as exc_info:
            reorganizer.reorganize(originals)
        assert exc_info.value.status_code == 529

    def test_auth_error(
        self, reorganizer: ClaudeReorganizer, client: MagicMock, originals: list[NoteItem]
    ) -> None:
        response = httpx.Response(401, request=API_REQUEST)
        client.messages.create.side_effect = anthropic.AuthenticationError(
            "bad key", response=response, body=None
        )
        with pytest.raises(OrganizeTransportError, match="API key"):
            reorganizer.reorganize(originals)


class TestClaudeConfig:
    """Tests for ClaudeReorganizerConfig."""

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", " sk-test ")
        config = ClaudeReorganizerConfig.from_env(model="m")
        assert config.api_key == "sk-test"
        assert config.model == "m"

    def test_from_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError):
            ClaudeReorganizerConfig.from_env()


class TestCreateReorganizer:
    """Tests for the reorganizer factory."""

    def test_use_mock(self) -> None:
        assert isinstance(create_reorganizer(use_mock=True), MockReorganizer)

    def test_mock_provider(self) -> None:
        config = OrganizerConfig(provider="mock")
        assert isinstance(create_reorganizer(config), MockReorganizer)

    def test_missing_key_falls_back_to_mock(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert isinstance(create_reorganizer(OrganizerConfig()), MockReorganizer)

    def test_claude_with_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        with patch("zap.organizer.claude.anthropic.Anthropic"):
            reorganizer = create_reorganizer(OrganizerConfig(model="claude-x"))
        assert isinstance(reorganizer, ClaudeReorganizer)
        assert reorganizer.model_name == "claude-x"


class TestMockReorganizer:
    """Tests for the mock reorganizer."""

    def test_default_groups_by_kind(self, originals: list[NoteItem]) -> None:
        shuffled = [originals[2], originals[1], originals[0]]
        result = MockReorganizer().reorganize(shuffled)

        assert [n.kind for n in result] == [NoteKind.TEXT, NoteKind.AUDIO, NoteKind.PHOTO]
        assert [n.category for n in result] == ["Text", "Audio", "Photo"]

    def test_group_keeps_existing_category(self) -> None:
        note = NoteItem(content=TextContent("x"), category="mine")
        assert group_by_kind([note])[0].category == "mine"

    def test_preset_result_and_calls(self, originals: list[NoteItem]) -> None:
        mock = MockReorganizer()
        mock.set_result(originals[:1])

        assert mock.reorganize(originals) == originals[:1]
        assert mock.call_count == 1
        assert mock.calls[0] == tuple(originals)

    def test_preset_error(self, originals: list[NoteItem]) -> None:
        mock = MockReorganizer()
        mock.set_error(OrganizeTransportError("offline"))
        with pytest.raises(OrganizeTransportError):
            mock.reorganize(originals)
