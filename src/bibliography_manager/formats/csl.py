"""Helpers shared by the CSL-JSON based formatters."""
import re
from typing import Any, Dict, List, Optional

from ..name_utils import format_name


def get_year(entry: Dict[str, Any]) -> Optional[int]:
    """First date part of ``issued`` (falls back to ``published`` and ``year``)."""
    for key in ("issued", "published"):
        date = entry.get(key)
        if isinstance(date, dict):
            parts = date.get("date-parts") or []
            if parts and parts[0]:
                try:
                    return int(parts[0][0])
                except (TypeError, ValueError):
                    continue
            if date.get("raw"):
                match = re.search(r"\d{4}", str(date["raw"]))
                if match:
                    return int(match.group(0))
    year = entry.get("year")
    if year:
        match = re.search(r"\d{4}", str(year))
        if match:
            return int(match.group(0))
    return None


def get_date_parts(entry: Dict[str, Any]) -> List[int]:
    date = entry.get("issued")
    if isinstance(date, dict):
        parts = date.get("date-parts") or []
        if parts and parts[0]:
            try:
                return [int(p) for p in parts[0]]
            except (TypeError, ValueError):
                pass
    year = get_year(entry)
    return [year] if year else []


def format_names(names: Any) -> List[str]:
    if not names:
        return []
    if isinstance(names, (str, dict)):
        names = [names]
    return [format_name(n) for n in names]


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(as_text(v) for v in value if v is not None)
    return str(value).strip()
