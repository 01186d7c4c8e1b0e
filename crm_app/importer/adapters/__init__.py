"""Importer adapters that turn uploaded files into import rows."""

from __future__ import annotations

from .csv_clients import (
    ClientCSVAdapter,
    ClientCSVRow,
    ClientCSVStatistics,
    CSVAdapterError,
    CSVHeaderError,
    CSVRowError,
)

__all__ = [
    "CSVAdapterError",
    "CSVHeaderError",
    "CSVRowError",
    "ClientCSVAdapter",
    "ClientCSVRow",
    "ClientCSVStatistics",
]
