"""Filesystem repository for archiving issued rate sheets."""
from __future__ import annotations

import json
import re
from pathlib import Path

from tariff_engine.domain.archive.entities import (
    ArchiveRateSheetRequest,
    ArchiveReceipt,
    RenderedArtifact,
    iter_artifacts,
)
from tariff_engine.infrastructure.parsing.utils import compute_file_hash


def _normalize_reference(reference: str) -> str:
    if not reference:
        return "rate-sheet"
    sanitized = re.sub(r"[^0-9A-Za-z_-]+", "", reference.strip().upper())
    return sanitized or "rate-sheet"


class FileSystemRateSheetArchive:
    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def save(self, request: ArchiveRateSheetRequest) -> ArchiveReceipt:
        document = request.document
        reference = _normalize_reference(document.reference)
        sheet_dir = self._root / reference
        sheet_dir.mkdir(parents=True, exist_ok=True)

        artifacts = list(iter_artifacts(request))
        for artifact in artifacts:
            self._write_file(sheet_dir, artifact)

        manifest = {
            "reference": reference,
            "client_code": document.client.client_code,
            "client_name": document.client.company_name,
            "profile": document.profile.id,
            "currency": document.currency.value,
            "vat_inclusive": document.vat_inclusive,
            "effective_date": document.effective_date.isoformat(),
            "valid_until": document.valid_until.isoformat(),
            "line_items": len(document.line_items),
            "files": [self._manifest_entry(artifact) for artifact in artifacts],
        }
        (sheet_dir / "manifest.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")

        return ArchiveReceipt(
            reference=reference,
            location=sheet_dir,
            files=tuple(artifact.filename for artifact in artifacts),
        )

    @staticmethod
    def _write_file(sheet_dir: Path, artifact: RenderedArtifact) -> None:
        target = sheet_dir / Path(artifact.filename).name
        target.write_bytes(artifact.content)

    @staticmethod
    def _manifest_entry(artifact: RenderedArtifact) -> dict[str, object]:
        return {
            "name": Path(artifact.filename).name,
            "media_type": artifact.media_type,
            "bytes": len(artifact.content),
            "sha256": compute_file_hash(artifact.content),
        }
