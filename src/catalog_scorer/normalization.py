from __future__ import annotations

import math
import re
from dataclasses import fields, replace

import astropy.units as u

from catalog_scorer.errors import RowMalformed
from catalog_scorer.models import AstronomicalObject, SignificanceSignals
from catalog_scorer.schema import CONSTELLATION_NAMES, SIGNAL_COLUMNS, CatalogSchema

LY_PER_PC = (1 * u.pc).to_value(u.lyr)
SOLAR_ABSOLUTE_MAGNITUDE = 4.83

_SPACE_RE = re.compile(r"\s+")
_SPECTRAL_RE = re.compile(r"^([OBAFGKMLTYWCS])(\d(?:\.\d+)?)\s*(Iab|Ia0?|Ib|III|II|IV|VII|VI|V|I|0)?")
_GLIESE_RE = re.compile(r"^(?:Gl|GJ|Gliese)\s*", re.IGNORECASE)

_TRUE_VALUES = {"1", "true", "t", "yes", "y"}
_FALSE_VALUES = {"0", "false", "f", "no", "n"}

# Spectral class -> (coolest, hottest) effective temperature in kelvin.
SPECTRAL_TEMPERATURES = {
    "O": (30_000.0, 50_000.0),
    "B": (10_000.0, 30_000.0),
    "A": (7_500.0, 10_000.0),
    "F": (6_000.0, 7_500.0),
    "G": (5_200.0, 6_000.0),
    "K": (3_700.0, 5_200.0),
    "M": (2_400.0, 3_700.0),
    "L": (1_300.0, 2_400.0),
    "T": (550.0, 1_300.0),
    "Y": (300.0, 550.0),
}

ESTIMABLE_FIELDS = ("distance_ly", "luminosity_solar", "temperature_k")


def _compact_spaces(value: str) -> str:
    return _SPACE_RE.sub(" ", value.strip())


def _cell(row: dict[str, str], column: str | None) -> str:
    if not column:
        return ""
    value = row.get(column)
    if value is None:
        return ""
    return _compact_spaces(value)


def parse_optional_float(value: str | None, column: str) -> float | None:
    """Parse a numeric cell; empty and non-finite values mean "absent"."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        parsed = float(text)
    except ValueError as exc:
        raise RowMalformed(f"Column {column} is not numeric: {text!r}", column=column) from exc
    if not math.isfinite(parsed):
        return None
    return parsed


def _positive(value: float | None) -> float | None:
    if value is None or value <= 0:
        return None
    return value


def _parse_bool(value: str, column: str) -> bool:
    text = value.strip().lower()
    if not text or text in _FALSE_VALUES:
        return False
    if text in _TRUE_VALUES:
        return True
    raise RowMalformed(f"Column {column} is not a boolean: {value!r}", column=column)


def _parse_count(value: str, column: str) -> int | None:
    parsed = parse_optional_float(value, column)
    if parsed is None:
        return None
    if parsed < 0 or not parsed.is_integer():
        raise RowMalformed(f"Column {column} is not a non-negative integer: {value!r}", column=column)
    return int(parsed)


def normalize_spectral_type(value: str | None) -> str | None:
    """Canonical ``<class><subtype><luminosity class>`` form, e.g. ``A1V``."""
    if not value:
        return None
    match = _SPECTRAL_RE.match(value.strip())
    if not match:
        return None
    spectral_class, subtype, luminosity_class = match.groups()
    return f"{spectral_class}{subtype}{luminosity_class or ''}"


def _format_designation(column: str, value: str, prefix: str) -> str:
    if not value:
        return ""
    if column == "gl":
        value = _GLIESE_RE.sub("", value)
    if prefix and value.upper().startswith(prefix.upper()):
        return value
    return f"{prefix}{value}"


def resolve_display_name(row: dict[str, str], schema: CatalogSchema) -> tuple[str, str | None, str | None, str | None]:
    """Return ``(name, proper_name, designation, secondary_designation)``.

    ``name`` is empty when the row carries neither a proper name nor any
    designation.
    """
    proper_name = _cell(row, schema.proper_name) or None
    designations = []
    for column, prefix in schema.designations:
        formatted = _format_designation(column, _cell(row, column), prefix)
        if formatted and formatted not in designations:
            designations.append(formatted)
    designation = designations[0] if designations else None
    secondary = designations[1] if len(designations) > 1 else None

    name = _cell(row, schema.display_name) or proper_name or designation or ""
    return name, proper_name, designation, secondary


def resolve_distance_ly(
    row: dict[str, str],
    schema: CatalogSchema,
    apparent_magnitude: float | None,
    absolute_magnitude: float | None,
) -> tuple[float | None, bool]:
    """Return ``(distance_ly, estimated)`` from the best available evidence."""
    direct = _positive(parse_optional_float(_cell(row, schema.distance), schema.distance or "distance"))
    sentinel = direct is not None and schema.distance_sentinel is not None and direct >= schema.distance_sentinel
    if direct is not None and not sentinel:
        if schema.distance_unit == "pc":
            return direct * LY_PER_PC, False
        return direct, False

    parallax = _positive(parse_optional_float(_cell(row, schema.parallax), schema.parallax or "parallax"))
    if parallax is not None:
        arcsec = parallax / 1000.0 if schema.parallax_unit == "mas" else parallax
        return LY_PER_PC / arcsec, False

    # Absolute magnitudes next to a sentinel distance were derived from it.
    if not sentinel and apparent_magnitude is not None and absolute_magnitude is not None:
        parsecs = 10 ** ((apparent_magnitude - absolute_magnitude + 5) / 5)
        if math.isfinite(parsecs):
            return parsecs * LY_PER_PC, True

    return None, False


def luminosity_from_absolute_magnitude(absolute_magnitude: float) -> float | None:
    value = 10 ** ((SOLAR_ABSOLUTE_MAGNITUDE - absolute_magnitude) / 2.5)
    return value if math.isfinite(value) and value > 0 else None


def temperature_from_spectral_type(spectral_type: str | None) -> float | None:
    if not spectral_type:
        return None
    bounds = SPECTRAL_TEMPERATURES.get(spectral_type[0])
    if bounds is None:
        return None
    match = _SPECTRAL_RE.match(spectral_type)
    subtype = float(match.group(2)) if match else 5.0
    low, high = bounds
    return high - (high - low) * min(subtype, 10.0) / 10.0


def _constellation(value: str) -> str | None:
    if not value:
        return None
    return CONSTELLATION_NAMES.get(value, value)


def _estimated_from_column(row: dict[str, str], schema: CatalogSchema) -> set[str]:
    text = _cell(row, schema.estimated_fields)
    if not text:
        return set()
    names = {part.strip() for part in text.split(";") if part.strip()}
    unknown = sorted(names - set(ESTIMABLE_FIELDS))
    if unknown:
        raise RowMalformed(f"Unknown estimated fields: {', '.join(unknown)}", column=schema.estimated_fields)
    return names


def _signals_from_row(row: dict[str, str], schema: CatalogSchema) -> SignificanceSignals | None:
    if not schema.signal_columns:
        return None
    values: dict[str, object] = {}
    for column in schema.signal_columns:
        raw = row.get(column) or ""
        if SIGNAL_COLUMNS[column] == "bool":
            values[column] = _parse_bool(raw, column)
        else:
            values[column] = _parse_count(raw, column)
    signals = SignificanceSignals(**values)
    return None if signals.is_empty() else signals


def normalize_row(
    row: dict[str, str],
    schema: CatalogSchema,
    *,
    estimate_missing: bool = False,
) -> AstronomicalObject | None:
    """Turn one parsed row into an object, or ``None`` if it has no usable name.

    Raises :class:`RowMalformed` for non-numeric text in a numeric column.
    """
    name, proper_name, designation, secondary = resolve_display_name(row, schema)
    if not name:
        return None

    estimated = _estimated_from_column(row, schema)
    apparent = parse_optional_float(_cell(row, schema.apparent_magnitude), schema.apparent_magnitude or "mag")
    absolute = parse_optional_float(_cell(row, schema.absolute_magnitude), schema.absolute_magnitude or "absmag")
    distance, distance_estimated = resolve_distance_ly(row, schema, apparent, absolute)
    if distance_estimated:
        estimated.add("distance_ly")

    spectral_type = normalize_spectral_type(_cell(row, schema.spectral_type))
    luminosity = _positive(parse_optional_float(_cell(row, schema.luminosity), schema.luminosity or "luminosity"))
    temperature = _positive(parse_optional_float(_cell(row, schema.temperature), schema.temperature or "temperature"))
    mass = _positive(parse_optional_float(_cell(row, schema.mass), schema.mass or "mass"))

    if estimate_missing:
        if luminosity is None and absolute is not None:
            luminosity = luminosity_from_absolute_magnitude(absolute)
            if luminosity is not None:
                estimated.add("luminosity_solar")
        if temperature is None:
            temperature = temperature_from_spectral_type(spectral_type)
            if temperature is not None:
                estimated.add("temperature_k")

    catalog = _cell(row, schema.catalog_column) or schema.catalog_label
    return AstronomicalObject(
        name=name,
        catalog=catalog,
        source_id=_cell(row, schema.source_id) or None,
        proper_name=proper_name,
        designation=designation,
        secondary_designation=secondary,
        distance_ly=distance,
        apparent_magnitude=apparent,
        absolute_magnitude=absolute,
        temperature_k=temperature,
        luminosity_solar=luminosity,
        mass_solar=mass,
        spectral_type=spectral_type,
        constellation=_constellation(_cell(row, schema.constellation)),
        estimated_fields=tuple(sorted(estimated)),
        signals=_signals_from_row(row, schema),
    )


def _float_cell(value: float | None) -> str:
    return "" if value is None else repr(value)


def object_to_raw_row(obj: AstronomicalObject) -> dict[str, str]:
    """Serialize an object as a generic-schema row that normalizes back to it."""
    row = {
        "display_name": obj.name,
        "name": obj.proper_name or "",
        "designation": obj.designation or "",
        "alt_designation": obj.secondary_designation or "",
        "distance_ly": _float_cell(obj.distance_ly),
        "parallax": "",
        "apparent_magnitude": _float_cell(obj.apparent_magnitude),
        "absolute_magnitude": _float_cell(obj.absolute_magnitude),
        "spectral_type": obj.spectral_type or "",
        "luminosity": _float_cell(obj.luminosity_solar),
        "mass": _float_cell(obj.mass_solar),
        "temperature": _float_cell(obj.temperature_k),
        "source_id": obj.source_id or "",
        "catalog": obj.catalog,
        "constellation": obj.constellation or "",
        "estimated_fields": ";".join(obj.estimated_fields),
    }
    signals = obj.signals or SignificanceSignals()
    for item in fields(signals):
        value = getattr(signals, item.name)
        if isinstance(value, bool):
            row[item.name] = "true" if value else ""
        else:
            row[item.name] = "" if value is None else str(value)
    return row


class NameRegistry:
    """Hands out unique display names, case-insensitively."""

    def __init__(self) -> None:
        self._taken: set[str] = set()
        self.renamed = 0

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._taken

    def _take(self, name: str) -> str:
        self._taken.add(name.casefold())
        return name

    def claim(self, obj: AstronomicalObject) -> AstronomicalObject:
        if obj.name not in self:
            self._take(obj.name)
            return obj

        self.renamed += 1
        label = f"{obj.catalog} {obj.source_id}" if obj.source_id else obj.catalog
        candidate = f"{obj.name} ({label})"
        suffix = 2
        while candidate in self:
            candidate = f"{obj.name} ({label}) #{suffix}"
            suffix += 1
        return replace(obj, name=self._take(candidate))
