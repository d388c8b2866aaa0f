"""Unit tests for knowledge-base loading and hash sync."""

from datetime import datetime, timezone
from pathlib import Path

from triage.kb import load_knowledge_sources, sync_sources
from triage.models import KnowledgeSource, content_hash

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def test_load_bundled_kb():
    sources = load_knowledge_sources(DATA_DIR / "kb")
    ids = [s.id for s in sources]
    assert ids == sorted(ids)
    assert "oversized_garbage" in ids
    events = next(s for s in sources if s.id == "citizen_events")
    assert events.type == "url"
    assert events.uri == "https://www.city.example.jp/events"
    assert not events.content.startswith("uri:")
    for s in sources:
        assert s.content
        assert s.content_hash == content_hash(s.content)


def test_load_without_heading_uses_file_stem(tmp_path: Path):
    (tmp_path / "notes.md").write_text("本文のみ", encoding="utf-8")
    (tmp_path / "ignored.txt").write_text("無視", encoding="utf-8")
    sources = load_knowledge_sources(tmp_path)
    assert len(sources) == 1
    assert sources[0].name == "notes"
    assert sources[0].type == "text"
    assert sources[0].content == "本文のみ"


def test_load_missing_dir(tmp_path: Path):
    assert load_knowledge_sources(tmp_path / "nope") == []


def test_content_hash_follows_edits():
    source = KnowledgeSource(id="k1", type="text", name="案内", uri="", content="旧")
    edited = source.with_content("新")
    assert edited.content_hash == content_hash("新")
    assert source.content_hash == content_hash("旧")


def test_sync_updates_only_drifted_sources():
    fresh = KnowledgeSource(id="fresh", type="text", name="A", uri="", content="同じ")
    stale = KnowledgeSource(
        id="stale", type="text", name="B", uri="", content="新しい本文", content_hash="outdated"
    )
    now = datetime(2025, 2, 1, tzinfo=timezone.utc)
    synced, report = sync_sources([fresh, stale], now=now)
    assert report.updated == ["stale"]
    assert report.unchanged == ["fresh"]
    assert report.total == 2
    assert synced[0] is fresh
    assert synced[1].content_hash == content_hash("新しい本文")
    assert synced[1].last_synced_at == now
