"""Diesel-linked tariff adjustment and rate sheet toolkit."""
from tariff_engine.application.use_cases import (
    CompileRateSheetUseCase,
    ImportRoutesUseCase,
    RecalculateTariffsUseCase,
)
from tariff_engine.domain.calculator import RateAdjustmentCalculator, compute
from tariff_engine.domain.history import TariffHistoryRecorder
from tariff_engine.domain.importer import BulkRouteImporter
from tariff_engine.domain.policy import validate_policy
from tariff_engine.domain.rate_sheet import RateSheetCompiler

__all__ = [
    "RecalculateTariffsUseCase",
    "ImportRoutesUseCase",
    "CompileRateSheetUseCase",
    "RateAdjustmentCalculator",
    "compute",
    "TariffHistoryRecorder",
    "BulkRouteImporter",
    "validate_policy",
    "RateSheetCompiler",
]
