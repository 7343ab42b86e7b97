"""Load classification requests from JSON/YAML documents and CSV layer tables."""

import json
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import (
    ClassificationRequest,
    LayerChemistry,
    LayerTexture,
    SourceType,
)

logger = get_logger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}

TEXTURE_COLUMNS = tuple(LayerTexture.model_fields)
CHEMISTRY_COLUMNS = tuple(LayerChemistry.model_fields)


def load_document(path: str | Path) -> Any:
    """Parse a JSON or YAML file (chosen by suffix)."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid document in {path}: {e}") from e


def load_request(path: str | Path) -> dict[str, Any]:
    """Load one request document as a mapping.

    The mapping is handed to the engine as is, so malformed domain values
    are reported by validation instead of failing here.
    """
    data = load_document(path)
    if not isinstance(data, dict):
        raise ValueError(f"Request document {path} must be an object")
    return data


def _none_if_missing(value: Any) -> Any:
    return None if pd.isna(value) else value


def _layer_from_row(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "top_cm": _none_if_missing(row.get("top_cm")),
        "bottom_cm": _none_if_missing(row.get("bottom_cm")),
        "texture": {
            name: _none_if_missing(row[name]) for name in TEXTURE_COLUMNS if name in row
        },
        "chem": {
            name: _none_if_missing(row[name]) for name in CHEMISTRY_COLUMNS if name in row
        },
    }


def load_layer_table(
    csv_path: str | Path, field_path: str | Path | None = None
) -> dict[str, ClassificationRequest]:
    """Build one request per profile from a CSV with one row per layer.

    The CSV needs a ``profile_id`` column plus ``top_cm``/``bottom_cm`` and
    any of the texture and chemistry columns. The optional side file maps
    each ``profile_id`` to ``{"field": {...}, "meta": {...}}``; profiles
    without an entry get all-unknown field observations.

    Args:
        csv_path: Path to the layer table
        field_path: Optional JSON/YAML file with per-profile field data

    Returns:
        Requests keyed by profile id, in order of first appearance
    """
    csv_path = Path(csv_path)
    try:
        df = pd.read_csv(csv_path, dtype={"profile_id": str})
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ValueError(f"Invalid CSV in {csv_path}: {e}") from e

    if "profile_id" not in df.columns:
        raise ValueError(f"{csv_path} has no profile_id column")

    extras: dict[str, Any] = {}
    if field_path is not None:
        extras = load_document(field_path) or {}
        if not isinstance(extras, dict):
            raise ValueError(f"Field file {field_path} must map profile_id to objects")

    requests: dict[str, ClassificationRequest] = {}
    for profile_id, group in df.groupby("profile_id", sort=False):
        profile_id = str(profile_id)
        layers = [_layer_from_row(row) for row in group.to_dict(orient="records")]
        extra = extras.get(profile_id) or {}
        meta = {"source": SourceType.CSV.value, **(extra.get("meta") or {})}
        requests[profile_id] = ClassificationRequest.model_validate(
            {"meta": meta, "lab_layers": layers, "field": extra.get("field") or {}}
        )

    logger.info(f"Loaded {len(requests)} profiles ({len(df)} layers) from {csv_path}")
    return requests
