"""Archive domain entities for storing issued rate sheets."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from tariff_engine.domain.models import RateSheetDocument


@dataclass(frozen=True)
class RenderedArtifact:
    filename: str
    media_type: str
    content: bytes


@dataclass(frozen=True)
class ArchiveRateSheetRequest:
    document: RateSheetDocument
    artifacts: Sequence[RenderedArtifact]


@dataclass(frozen=True)
class ArchiveReceipt:
    reference: str
    location: Path
    files: tuple[str, ...] = field(default_factory=tuple)


def iter_artifacts(request: ArchiveRateSheetRequest) -> Iterable[RenderedArtifact]:
    seen: set[str] = set()
    for artifact in request.artifacts:
        if artifact.filename in seen:
            continue
        seen.add(artifact.filename)
        yield artifact
