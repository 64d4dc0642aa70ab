"""
Hayagriva output.

Hayagriva is the YAML bibliography format read by Typst: a mapping from
citation key to entry, where container publications (journals, proceedings,
edited books) are nested under ``parent``.
"""
import logging
from typing import Any, Dict, List

import yaml

from .base import BibliographyFormatter
from .csl import as_text, format_names, get_date_parts

logger = logging.getLogger(__name__)

# CSL type -> (hayagriva type, hayagriva parent type or None)
HAYAGRIVA_TYPES = {
    "article-journal": ("article", "periodical"),
    "article-magazine": ("article", "periodical"),
    "article-newspaper": ("article", "newspaper"),
    "article": ("article", "periodical"),
    "paper-conference": ("article", "proceedings"),
    "inproceedings": ("article", "proceedings"),
    "chapter": ("chapter", "book"),
    "book": ("book", None),
    "thesis": ("thesis", None),
    "report": ("report", None),
    "webpage": ("web", None),
    "website": ("web", None),
    "post-weblog": ("web", None),
    "manuscript": ("manuscript", None),
}


def _format_date(parts: List[int]) -> str:
    if not parts:
        return ""
    date = f"{parts[0]:04d}"
    for part in parts[1:3]:
        date += f"-{part:02d}"
    return date


def csl_to_hayagriva_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a CSL-JSON record into a Hayagriva entry."""
    csl_type = str(entry.get("type") or "").lower()
    entry_type, parent_type = HAYAGRIVA_TYPES.get(csl_type, ("misc", None))

    result: Dict[str, Any] = {"type": entry_type}
    title = as_text(entry.get("title"))
    if title:
        result["title"] = title

    authors = format_names(entry.get("author"))
    if authors:
        result["author"] = authors
    editors = format_names(entry.get("editor"))

    date = _format_date(get_date_parts(entry))
    if date:
        result["date"] = date

    container = as_text(entry.get("container-title"))
    parent: Dict[str, Any] = {}
    if parent_type and container:
        parent = {"type": parent_type, "title": container}
        if editors:
            parent["editor"] = editors
    elif container:
        result["parent"] = {"type": "misc", "title": container}
    if editors and not parent:
        result["editor"] = editors

    publisher = as_text(entry.get("publisher"))
    place = as_text(entry.get("publisher-place"))
    target = parent if parent else result
    if publisher:
        target["publisher"] = publisher
    if place:
        target["location"] = place

    for csl_key, key in (("volume", "volume"), ("issue", "issue"), ("edition", "edition")):
        value = as_text(entry.get(csl_key))
        if value:
            target[key] = int(value) if value.isdigit() else value

    page = as_text(entry.get("page"))
    if page:
        result["page-range"] = page.replace("--", "-")

    url = as_text(entry.get("URL"))
    if url:
        result["url"] = url

    serial = {}
    for csl_key, key in (("DOI", "doi"), ("ISBN", "isbn"), ("ISSN", "issn")):
        value = as_text(entry.get(csl_key))
        if value:
            serial[key] = value
    if serial:
        result["serial-number"] = serial

    for csl_key, key in (("language", "language"), ("note", "note"), ("abstract", "abstract")):
        value = as_text(entry.get(csl_key))
        if value:
            result[key] = value

    if parent:
        result["parent"] = parent
    return result


class HayagrivaFormatter(BibliographyFormatter):
    format_name = "hayagriva"
    extension = ".yaml"

    def format(self, entries: List[Dict[str, Any]]) -> str:
        bibliography: Dict[str, Dict[str, Any]] = {}
        for entry in entries:
            key = as_text(entry.get("id") or entry.get("citation-key"))
            if not key:
                logger.warning(f"Skipping entry without id: {entry.get('title', '')}")
                continue
            item = csl_to_hayagriva_entry(entry)
            item.setdefault("type", "misc")
            bibliography[key] = item
        if not bibliography:
            return ""
        return yaml.safe_dump(bibliography, sort_keys=False, allow_unicode=True, width=1000)
