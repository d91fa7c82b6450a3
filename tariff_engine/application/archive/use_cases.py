"""Archive application use cases."""
from __future__ import annotations

from dataclasses import dataclass

from tariff_engine.domain.archive.entities import ArchiveRateSheetRequest, ArchiveReceipt
from tariff_engine.infrastructure.archive.file_repository import FileSystemRateSheetArchive


@dataclass(slots=True)
class ArchiveRateSheetUseCase:
    repository: FileSystemRateSheetArchive

    def execute(self, request: ArchiveRateSheetRequest) -> ArchiveReceipt:
        return self.repository.save(request)
