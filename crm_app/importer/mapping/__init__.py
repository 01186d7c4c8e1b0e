"""Load the spreadsheet column mapping used by the client CSV adapter."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Sequence

import yaml

from flask import current_app


class MappingLoadError(RuntimeError):
    """Raised when a mapping specification cannot be loaded or validated."""


@dataclass(frozen=True)
class MappingField:
    target: str
    aliases: tuple[str, ...] = ()
    required: bool = False
    default: Any | None = None
    transform: str | None = None

    def header_keys(self) -> tuple[str, ...]:
        return tuple(normalize_header(key) for key in (self.target, *self.aliases))


@dataclass(frozen=True)
class MappingTransform:
    name: str
    description: str | None = None


@dataclass(frozen=True)
class MappingSpec:
    version: int
    adapter: str
    object_name: str
    fields: Sequence[MappingField]
    transforms: Mapping[str, MappingTransform]
    path: Path

    def header_lookup(self) -> dict[str, MappingField]:
        """Map every normalized header (target or alias) to its field."""

        lookup: dict[str, MappingField] = {}
        for field in self.fields:
            for key in field.header_keys():
                lookup.setdefault(key, field)
        return lookup

    def required_targets(self) -> tuple[str, ...]:
        return tuple(field.target for field in self.fields if field.required)


def normalize_header(header: str) -> str:
    """Normalize a column header for comparison (case/accent/separator agnostic)."""

    token = unicodedata.normalize("NFKD", header.strip().lstrip("\ufeff"))
    token = "".join(char for char in token if not unicodedata.combining(char)).lower()
    for char in (" ", "-", "."):
        token = token.replace(char, "_")
    return token


def load_mapping(path: str | Path) -> MappingSpec:
    """
    Load and validate a YAML mapping specification.
    """

    path = Path(path)
    if not path.exists():
        raise MappingLoadError(f"Mapping file not found at {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - YAML parser errors
        raise MappingLoadError(f"Failed to parse mapping YAML at {path}: {exc}") from exc

    try:
        version = int(raw["version"])
        adapter = str(raw["adapter"]).strip()
        object_name = str(raw.get("object", "")).strip() or "Client"
        fields_payload = raw["fields"]
    except KeyError as exc:
        raise MappingLoadError(f"Missing required mapping attribute: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise MappingLoadError(f"Invalid mapping attribute: {exc}") from exc

    if not adapter:
        raise MappingLoadError("Mapping adapter value cannot be empty.")

    transforms_payload = raw.get("transforms") or {}
    transforms: dict[str, MappingTransform] = {}
    for name, details in transforms_payload.items():
        if not name:
            raise MappingLoadError("Transform definition missing name.")
        description = None
        if isinstance(details, Mapping):
            description = details.get("description")
        transforms[str(name)] = MappingTransform(name=str(name), description=description)

    fields: list[MappingField] = []
    seen_targets: set[str] = set()
    seen_headers: dict[str, str] = {}
    for entry in fields_payload:
        if not isinstance(entry, Mapping):
            raise MappingLoadError(f"Field definition must be a mapping, got {entry!r}")
        target = entry.get("target")
        if not target:
            raise MappingLoadError(f"Field entry missing 'target': {entry!r}")
        target = str(target).strip()
        if target in seen_targets:
            raise MappingLoadError(f"Duplicate target '{target}' in mapping.")
        seen_targets.add(target)

        aliases_payload = entry.get("aliases") or ()
        if isinstance(aliases_payload, str):
            aliases_payload = (aliases_payload,)
        transform = entry.get("transform")
        field = MappingField(
            target=target,
            aliases=tuple(str(alias).strip() for alias in aliases_payload if str(alias).strip()),
            required=bool(entry.get("required", False)),
            default=entry.get("default"),
            transform=str(transform).strip() if transform else None,
        )
        if field.transform and field.transform not in transforms:
            raise MappingLoadError(f"Field '{target}' references undefined transform '{field.transform}'.")
        for key in field.header_keys():
            owner = seen_headers.setdefault(key, target)
            if owner != target:
                raise MappingLoadError(f"Header '{key}' is mapped to both '{owner}' and '{target}'.")
        fields.append(field)

    return MappingSpec(
        version=version,
        adapter=adapter,
        object_name=object_name,
        fields=tuple(fields),
        transforms=transforms,
        path=path,
    )


def _resolve_mapping_path() -> Path:
    config_path = current_app.config.get("CLIENT_IMPORT_CSV_MAPPING_PATH")
    if not config_path:
        raise MappingLoadError("CLIENT_IMPORT_CSV_MAPPING_PATH is not configured.")
    config_path = Path(config_path)
    if not config_path.is_absolute():
        # instance_path is <project_root>/instance
        config_path = (Path(current_app.instance_path).parent / config_path).resolve()
    return config_path


def get_active_client_mapping() -> MappingSpec:
    """
    Load the configured client CSV mapping spec (cached per app).
    Cache is invalidated when the file modification time changes.
    """

    config_path = _resolve_mapping_path()
    if not config_path.exists():
        raise MappingLoadError(f"Client CSV mapping file not found at {config_path}")

    cache: dict[str, tuple[MappingSpec, float]] = current_app.extensions.setdefault("_client_csv_mapping_cache", {})
    cache_key = str(config_path)
    current_mtime = config_path.stat().st_mtime

    cached_entry = cache.get(cache_key)
    if cached_entry:
        cached_spec, cached_mtime = cached_entry
        if current_mtime == cached_mtime:
            return cached_spec
        current_app.logger.debug(f"Mapping file changed, reloading: {config_path}")

    spec = load_mapping(config_path)
    cache[cache_key] = (spec, current_mtime)
    return spec


# Transforms ------------------------------------------------------------------


def parse_decimal(value: Any) -> Any:
    """
    Parse spreadsheet decimals such as ``1.234,5`` or ``12,5``.

    Unparseable text is returned unchanged so row validation can report it.
    """
    if value is None:
        return None
    text = str(value).strip().replace(" ", "")
    if not text:
        return None
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return value


def parse_integer(value: Any) -> Any:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return value


def _build_transform_registry() -> Dict[str, Callable[[Any], Any]]:
    return {
        "number": parse_decimal,
        "integer": parse_integer,
    }


TRANSFORMS = _build_transform_registry()


def apply_transform(name: str | None, value: Any) -> Any:
    if not name:
        return value
    transform = TRANSFORMS.get(name)
    if transform is None:
        raise MappingLoadError(f"Unknown transform '{name}'.")
    return transform(value)


__all__ = [
    "MappingField",
    "MappingLoadError",
    "MappingSpec",
    "MappingTransform",
    "apply_transform",
    "get_active_client_mapping",
    "load_mapping",
    "normalize_header",
    "parse_decimal",
    "parse_integer",
]
