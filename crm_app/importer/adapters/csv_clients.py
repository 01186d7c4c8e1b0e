"""CSV adapter for spreadsheet client uploads.

Matches spreadsheet headers against the client column mapping, streams rows,
and produces request rows with the same shape the JSON import endpoint
accepts, numbered by their physical line in the file.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import IO, Any, Iterator, Sequence

from crm_app.importer.mapping import MappingField, MappingSpec, apply_transform, normalize_header


class CSVAdapterError(Exception):
    """Base exception for CSV adapter failures."""


class CSVHeaderError(CSVAdapterError):
    """Raised when the CSV header row does not meet mapping requirements."""

    def __init__(
        self,
        *,
        missing: Sequence[str] | None = None,
        duplicates: Sequence[str] | None = None,
    ) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(sorted(missing))}.")
        if duplicates:
            details.append(
                "Duplicate columns detected: "
                + ", ".join(sorted(duplicates))
                + ". Ensure each client field appears only once."
            )

        message = "CSV header validation failed. " + " ".join(details) if details else "CSV header validation failed."
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())


class CSVRowError(CSVAdapterError):
    """Raised when an individual row cannot be parsed."""

    def __init__(self, row_number: int, message: str) -> None:
        super().__init__(f"Row {row_number}: {message}")
        self.row_number = row_number


@dataclass(frozen=True)
class HeaderValidationResult:
    raw_headers: tuple[str, ...]
    # Mapping target per column; ``None`` for columns carried through as extras
    targets: tuple[str | None, ...]


@dataclass(frozen=True)
class ClientCSVRow:
    """A parsed CSV row: the cells as read plus the request-shaped row."""

    sequence_number: int
    source_line: int
    raw: dict[str, str | None]
    row: dict[str, Any]


@dataclass
class ClientCSVStatistics:
    rows_processed: int = 0
    rows_skipped_blank: int = 0


def _sanitize_header(header: str | None) -> str:
    token = (header or "").strip()
    return token.lstrip("\ufeff")


def _validate_headers(raw_headers: Sequence[str], mapping: MappingSpec) -> HeaderValidationResult:
    sanitized_headers = tuple(_sanitize_header(header) for header in raw_headers)
    lookup = mapping.header_lookup()
    duplicates: list[str] = []
    seen: set[str] = set()
    targets: list[str | None] = []

    for header in sanitized_headers:
        field = lookup.get(normalize_header(header))
        if field is None:
            targets.append(None)
            continue
        if field.target in seen:
            duplicates.append(field.target)
        seen.add(field.target)
        targets.append(field.target)

    missing = sorted(set(mapping.required_targets()) - seen)
    if missing or duplicates:
        raise CSVHeaderError(missing=missing, duplicates=duplicates)
    return HeaderValidationResult(raw_headers=sanitized_headers, targets=tuple(targets))


def _row_is_blank(row: dict[str, str | None]) -> bool:
    return all((value is None or (isinstance(value, str) and value.strip() == "")) for value in row.values())


def _clean_cell(value: str | None) -> str | None:
    if value is None:
        return None
    token = value.strip()
    return token or None


class ClientCSVAdapter:
    """CSV reader that maps spreadsheet columns onto client import rows."""

    def __init__(self, file_obj: IO[str], mapping: MappingSpec, *, skip_blank_rows: bool = True) -> None:
        self._file_obj = file_obj
        self.mapping = mapping
        self.skip_blank_rows = skip_blank_rows
        self._header_result: HeaderValidationResult | None = None
        self._fields: dict[str, MappingField] = {field.target: field for field in mapping.fields}
        self.statistics = ClientCSVStatistics()

    @property
    def header(self) -> HeaderValidationResult | None:
        return self._header_result

    def _prepare_reader(self) -> Iterator[list[str]]:
        self._file_obj.seek(0)
        reader = csv.reader(self._file_obj)
        try:
            raw_headers = next(reader)
        except StopIteration:
            raise CSVHeaderError(missing=self.mapping.required_targets()) from None
        self._header_result = _validate_headers(raw_headers, self.mapping)
        return reader

    def iter_rows(self) -> Iterator[ClientCSVRow]:
        reader = self._prepare_reader()
        header = self._header_result
        for sequence_number, cells in enumerate(reader, start=1):
            if len(cells) > len(header.raw_headers):
                raise CSVRowError(reader.line_num, "More cells than header columns.")
            padded = list(cells) + [None] * (len(header.raw_headers) - len(cells))
            raw = dict(zip(header.raw_headers, padded))

            if self.skip_blank_rows and _row_is_blank(raw):
                self.statistics.rows_skipped_blank += 1
                continue

            self.statistics.rows_processed += 1
            yield ClientCSVRow(
                sequence_number=sequence_number,
                source_line=reader.line_num,
                raw=raw,
                row=self._build_row(header, padded, reader.line_num),
            )

    def _build_row(self, header: HeaderValidationResult, cells: list[str | None], line: int) -> dict[str, Any]:
        row: dict[str, Any] = {"sourceRowNumber": line}
        for raw_header, target, cell in zip(header.raw_headers, header.targets, cells):
            value = _clean_cell(cell)
            if target is None:
                if raw_header and value is not None:
                    row[raw_header] = value
                continue
            field = self._fields[target]
            if value is None and field.default is not None:
                value = field.default
            if value is not None:
                row[target] = apply_transform(field.transform, value)
        return row

    def read_rows(self, *, default_action: str | None = None) -> list[dict[str, Any]]:
        """Return every non-blank row, optionally filling in a missing action."""

        rows: list[dict[str, Any]] = []
        for parsed in self.iter_rows():
            row = parsed.row
            if default_action and not row.get("action"):
                row["action"] = default_action
            rows.append(row)
        return rows
