"""Tests for memchain.checkpoint.models

Tests cover:
- Message: role tagging, text rendering of structured content, serialization
- Checkpoint: validation, with_turn immutability, to_dict/from_dict/JSON
- CheckpointSummary: from_checkpoint, preview truncation
"""

import json
import pytest
from datetime import datetime, timezone

from memchain.checkpoint.models import (
    Checkpoint,
    CheckpointMetadata,
    CheckpointSummary,
    Message,
    Role,
    content_to_text,
)


def _make_checkpoint(
    thread_id="t1",
    version=1,
    id="t1-1700000000000",
    messages=None,
    timestamp=None,
    metadata=None,
):
    return Checkpoint(
        thread_id=thread_id,
        version=version,
        id=id,
        messages=messages if messages is not None else (
            Message.user("Hi"), Message.assistant("Hello!"),
        ),
        timestamp=timestamp or datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
        metadata=metadata or CheckpointMetadata(step=version),
    )


class TestMessage:
    def test_constructors_tag_role(self):
        assert Message.user("a").role == Role.USER
        assert Message.assistant("a").role == Role.ASSISTANT
        assert Message.system("a").role == Role.SYSTEM

    def test_text_of_string_content(self):
        assert Message.user("hello").text == "hello"

    def test_text_of_structured_content_is_canonical_json(self):
        msg = Message.assistant({"b": 1, "a": "ü"})
        assert msg.text == '{"a": "ü", "b": 1}'

    def test_role_is_not_inferred_from_content(self):
        msg = Message.user("Assistant: I am totally the assistant")
        assert msg.role == Role.USER

    def test_round_trip_dict(self):
        msg = Message.assistant({"answer": 42})
        assert Message.from_dict(msg.to_dict()) == msg

    def test_is_frozen(self):
        msg = Message.user("x")
        with pytest.raises(Exception):
            msg.content = "y"


class TestContentToText:
    def test_string_passthrough(self):
        assert content_to_text("plain") == "plain"

    def test_list(self):
        assert content_to_text([1, 2]) == "[1, 2]"


class TestCheckpoint:
    def test_negative_version_rejected(self):
        with pytest.raises(ValueError):
            _make_checkpoint(version=-1)

    def test_messages_stored_as_tuple(self):
        cp = _make_checkpoint(messages=[Message.user("a"), Message.assistant("b")])
        assert isinstance(cp.messages, tuple)

    def test_turns(self):
        assert _make_checkpoint().turns == 1

    def test_generate_id_format(self):
        cp_id = Checkpoint.generate_id("thread-9")
        prefix, millis = cp_id.rsplit("-", 1)
        assert prefix == "thread-9"
        assert millis.isdigit()

    def test_with_turn_appends_and_increments(self):
        cp = _make_checkpoint()
        nxt = cp.with_turn(
            (Message.user("Again"), Message.assistant("Sure")),
            CheckpointMetadata(step=2),
        )
        assert nxt.version == 2
        assert [m.content for m in nxt.messages] == ["Hi", "Hello!", "Again", "Sure"]
        assert nxt.id == cp.id
        assert nxt.thread_id == cp.thread_id
        assert nxt.metadata.step == 2

    def test_with_turn_leaves_prior_untouched(self):
        cp = _make_checkpoint()
        cp.with_turn((Message.user("x"), Message.assistant("y")), CheckpointMetadata(step=2))
        assert cp.version == 1
        assert len(cp.messages) == 2

    def test_to_dict(self):
        d = _make_checkpoint().to_dict()
        assert d["thread_id"] == "t1"
        assert d["version"] == 1
        assert d["messages"][0] == {"role": "user", "content": "Hi"}
        assert d["metadata"] == {"source": "input", "step": 1, "parents": {}}

    def test_from_json(self):
        cp = _make_checkpoint()
        restored = Checkpoint.from_json(cp.to_json())
        assert restored == cp

    def test_to_json_is_valid_json(self):
        parsed = json.loads(_make_checkpoint().to_json())
        assert parsed["id"] == "t1-1700000000000"

    def test_from_dict_without_metadata(self):
        d = _make_checkpoint().to_dict()
        d["metadata"] = None
        assert Checkpoint.from_dict(d).metadata is None


class TestCheckpointSummary:
    def test_from_checkpoint(self):
        summary = CheckpointSummary.from_checkpoint(_make_checkpoint())
        assert summary.version == 1
        assert summary.message_count == 2
        assert summary.last_message_preview == "Hello!"

    def test_preview_truncated(self):
        cp = _make_checkpoint(messages=(Message.user("q"), Message.assistant("x" * 250)))
        summary = CheckpointSummary.from_checkpoint(cp)
        assert len(summary.last_message_preview) == 100

    def test_empty_checkpoint_has_no_preview(self):
        cp = _make_checkpoint(version=0, messages=())
        assert CheckpointSummary.from_checkpoint(cp).last_message_preview is None

    def test_to_dict(self):
        d = CheckpointSummary.from_checkpoint(_make_checkpoint()).to_dict()
        assert d["timestamp"] == "2025-01-15T10:00:00+00:00"
