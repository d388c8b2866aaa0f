"""Knowledge base: load kb/*.md into KnowledgeSource records, hash and sync them."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from triage.models import KnowledgeSource, content_hash, utcnow

logger = logging.getLogger(__name__)


def _parse_markdown(stem: str, text: str) -> tuple[str, str, str]:
    """
    Split a kb markdown file into (name, uri, content).
    First '# ' heading is the name (default: file stem); an optional 'uri: ...' line follows it.
    """
    lines = text.strip().splitlines()
    name = stem
    uri = ""
    if lines and lines[0].startswith("# "):
        name = lines[0][2:].strip()
        lines = lines[1:]
    if lines and lines[0].lower().startswith("uri:"):
        uri = lines[0][4:].strip()
        lines = lines[1:]
    return name, uri, "\n".join(lines).strip()


def load_knowledge_sources(kb_dir: Path) -> list[KnowledgeSource]:
    """Load all .md files in kb_dir, ordered by file name: stem becomes the source id."""
    if not kb_dir.exists() or not kb_dir.is_dir():
        return []
    out: list[KnowledgeSource] = []
    for f in sorted(kb_dir.iterdir()):
        if f.suffix.lower() != ".md":
            continue
        name, uri, content = _parse_markdown(f.stem, f.read_text(encoding="utf-8"))
        out.append(
            KnowledgeSource(
                id=f.stem,
                type="url" if uri else "text",
                name=name,
                uri=uri,
                content=content,
            )
        )
    return out


@dataclass
class SyncReport:
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.updated) + len(self.unchanged)


def sync_sources(
    sources: list[KnowledgeSource], now: Optional[datetime] = None
) -> tuple[list[KnowledgeSource], SyncReport]:
    """
    Recompute each content hash; sources whose stored hash drifted get the new hash
    and a last_synced_at stamp. Returns (sources, report); unchanged sources are returned as-is.
    """
    now = now or utcnow()
    report = SyncReport()
    out = []
    for source in sources:
        current = content_hash(source.content)
        if current != source.content_hash:
            out.append(replace(source, content_hash=current, last_synced_at=now))
            report.updated.append(source.id)
        else:
            out.append(source)
            report.unchanged.append(source.id)
    logger.info(
        "Knowledge sync: %d updated, %d unchanged", len(report.updated), len(report.unchanged)
    )
    return out, report
