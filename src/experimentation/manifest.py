"""Experiment manifest normalization.

A manifest is a spreadsheet exported as JSON with two tables:

    settings:    rows of {"Name": ..., "Value": ...}
    experiences: rows of {"Name": ..., "Control": ..., "Challenger 1": ..., ...}

Each experiences row sets one attribute (label, split, pages, blocks) for
every variant column at once. Rows with an empty Name continue the previous
attribute, which is how multi-page variants are written.

Parsing happens in two explicit phases: the variant columns are read first,
then every row is mapped onto that fixed set of columns. Any malformed input
yields None so that a broken manifest never breaks the page.
"""

import logging
import re

import requests

from src.experimentation.config import DEFAULT_OPTIONS, ExperimentOptions
from src.experimentation.experiment import (
    CONTROL,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    ExperimentConfig,
    Variant,
    to_class_name,
)
from src.experimentation.urls import path_of

logger = logging.getLogger(__name__)

NAME_COLUMN = "Name"
REQUIRED_SETTINGS = ("Audience", "Status")

# Row name (as class name) -> attribute
ATTRIBUTES = {
    "label": "label",
    "percentage-split": "percentage_split",
    "pages": "pages",
    "page": "pages",
    "blocks": "blocks",
    "block": "blocks",
}


class MalformedManifest(ValueError):
    """Raised internally when a manifest cannot be mapped onto a config."""


def _rows(raw: dict, table: str) -> list[dict]:
    section = raw.get(table)
    if section is None:
        raise MalformedManifest(f"Missing table: {table}")
    if not isinstance(section, dict) or not isinstance(section.get("data"), list):
        raise MalformedManifest(f"Table {table} has no data rows")
    rows = section["data"]
    for row in rows:
        if not isinstance(row, dict):
            raise MalformedManifest(f"Table {table} has a non-object row: {row!r}")
    return rows


def _parse_settings(rows: list[dict]) -> dict[str, str]:
    settings = {}
    for row in rows:
        name = str(row.get(NAME_COLUMN) or "").strip()
        if name:
            value = row.get("Value")
            settings[name] = "" if value is None else str(value).strip()
    missing = [key for key in REQUIRED_SETTINGS if key not in settings]
    if missing:
        raise MalformedManifest(f"Settings missing required rows: {missing}")
    return settings


def _normalize_status(value: str) -> str:
    status = value.strip().lower()
    if status == STATUS_ACTIVE.lower():
        return STATUS_ACTIVE
    if status == STATUS_INACTIVE.lower():
        return STATUS_INACTIVE
    raise MalformedManifest(f"Unknown status: {value!r}")


def _variant_columns(rows: list[dict]) -> dict[str, str]:
    """Phase one: map each variant column header to its variant id, in order."""
    columns: dict[str, str] = {}
    for row in rows:
        for header in row:
            if header == NAME_COLUMN or header in columns:
                continue
            variant_id = to_class_name(header)
            if not variant_id:
                raise MalformedManifest(f"Unusable variant column: {header!r}")
            columns[header] = variant_id
    ids = list(columns.values())
    if not ids or ids[0] != CONTROL:
        raise MalformedManifest(f"First variant column must be control, got {ids}")
    if len(ids) != len(set(ids)):
        raise MalformedManifest(f"Duplicate variant columns: {ids}")
    return columns


def _split_list(cell: str, separators: str = r"[,\n]") -> list[str]:
    return [token.strip() for token in re.split(separators, cell) if token.strip()]


def _parse_experiences(rows: list[dict]) -> tuple[list[str], dict[str, Variant]]:
    columns = _variant_columns(rows)
    attrs: dict[str, dict] = {
        variant_id: {"label": "", "percentage_split": "", "pages": [], "blocks": []}
        for variant_id in columns.values()
    }

    # Phase two: map every row onto the fixed columns
    attribute = None
    for row in rows:
        name = str(row.get(NAME_COLUMN) or "").strip()
        if name:
            attribute = ATTRIBUTES.get(to_class_name(name))
            if attribute is None:
                logger.debug(f"Ignoring manifest row: {name}")
        if attribute is None:
            continue

        for header, variant_id in columns.items():
            cell = row.get(header)
            if cell is None:
                continue
            if not isinstance(cell, (str, int, float)):
                raise MalformedManifest(f"Cell {name or attribute}/{header} is not a scalar")
            cell = str(cell).strip()
            if attribute == "pages":
                # Pages are newline-separated; a URL may contain commas
                attrs[variant_id]["pages"].extend(path_of(page) for page in _split_list(cell, r"\n"))
            elif attribute == "blocks":
                attrs[variant_id]["blocks"].extend(_split_list(cell))
            else:
                attrs[variant_id][attribute] = cell

    variant_names = list(columns.values())
    variants = {}
    for index, variant_id in enumerate(variant_names):
        values = attrs[variant_id]
        if variant_id == CONTROL:
            values["percentage_split"] = ""
            default_label = "Control"
        else:
            default_label = f"Challenger {index}"
        variants[variant_id] = Variant(
            label=values["label"] or default_label,
            percentage_split=values["percentage_split"],
            pages=values["pages"],
            blocks=values["blocks"],
        )

    usable = [name for name in variant_names[1:] if variants[name].pages or variants[name].blocks]
    if not usable:
        raise MalformedManifest("No challenger variant overrides any page or block")
    return variant_names, variants


def normalize(
    raw: dict,
    experiment_id: str,
    options: ExperimentOptions = DEFAULT_OPTIONS,
) -> ExperimentConfig | None:
    """Normalize a parsed manifest into an ExperimentConfig.

    Returns None when the manifest lacks required settings or does not
    declare at least one challenger with a page or block override.
    """
    try:
        if not isinstance(raw, dict):
            raise MalformedManifest(f"Manifest must be an object, got {type(raw).__name__}")
        settings = _parse_settings(_rows(raw, "settings"))
        variant_names, variants = _parse_experiences(_rows(raw, "experiences"))
        base_path = f"{options.base_path.rstrip('/')}/{experiment_id}"
        experiment_name = settings.get("Experiment Name")
        return ExperimentConfig(
            id=experiment_id,
            label=experiment_name or experiment_id,
            experiment_name=experiment_name,
            audience=settings["Audience"],
            status=_normalize_status(settings["Status"]),
            base_path=base_path,
            manifest=f"{base_path}/{options.config_file}",
            variant_names=variant_names,
            variants=variants,
        )
    except ValueError as e:
        logger.warning(f"Invalid manifest for experiment {experiment_id}: {e}")
        return None


def manifest_url(experiment_id: str, options: ExperimentOptions = DEFAULT_OPTIONS, origin: str = "") -> str:
    return f"{origin.rstrip('/')}{options.base_path.rstrip('/')}/{experiment_id}/{options.config_file}"


def fetch_experiment_config(
    experiment_id: str,
    options: ExperimentOptions = DEFAULT_OPTIONS,
    origin: str = "",
    session: requests.Session | None = None,
) -> ExperimentConfig | None:
    """Fetch and normalize the manifest of an experiment.

    Network errors, non-OK responses and non-JSON bodies all resolve to None.
    """
    url = manifest_url(experiment_id, options, origin)
    http = session or requests
    try:
        resp = http.get(url, timeout=options.request_timeout)
    except requests.RequestException as e:
        logger.warning(f"Failed to fetch experiment manifest {url}: {e}")
        return None

    if not resp.ok:
        logger.warning(f"Experiment manifest {url} returned HTTP {resp.status_code}")
        return None

    try:
        raw = resp.json()
    except ValueError as e:
        logger.warning(f"Experiment manifest {url} is not valid JSON: {e}")
        return None

    return normalize(raw, experiment_id, options)
