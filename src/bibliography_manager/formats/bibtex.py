"""BibTeX reading and writing."""
import logging
import re
from typing import Any, Dict, List

import bibtexparser
from bibtexparser.bibdatabase import BibDatabase
from bibtexparser.bparser import BibTexParser
from bibtexparser.bwriter import BibTexWriter
from bibtexparser.customization import convert_to_unicode

from ..errors import BibliographyFormatError
from ..name_utils import split_name
from .base import BibliographyFormatter
from .csl import as_text, get_date_parts

logger = logging.getLogger(__name__)

# BibTeX entry type -> CSL type
BIBTEX_TO_CSL_TYPES: Dict[str, str] = {
    "article": "article-journal",
    "book": "book",
    "booklet": "book",
    "inbook": "chapter",
    "incollection": "chapter",
    "inproceedings": "paper-conference",
    "conference": "paper-conference",
    "proceedings": "book",
    "phdthesis": "thesis",
    "mastersthesis": "thesis",
    "thesis": "thesis",
    "techreport": "report",
    "report": "report",
    "manual": "report",
    "online": "webpage",
    "electronic": "webpage",
    "www": "webpage",
    "unpublished": "manuscript",
    "misc": "document",
}

# CSL type (and the plain types used in notes) -> BibTeX entry type
CSL_TO_BIBTEX_TYPES: Dict[str, str] = {
    "article": "article",
    "article-journal": "article",
    "article-magazine": "article",
    "article-newspaper": "article",
    "review": "article",
    "book": "book",
    "chapter": "incollection",
    "entry-encyclopedia": "incollection",
    "paper-conference": "inproceedings",
    "inproceedings": "inproceedings",
    "thesis": "phdthesis",
    "report": "techreport",
    "manuscript": "unpublished",
}

BIBTEX_FIELD_ORDER = [
    "author", "editor", "title", "journal", "booktitle", "school", "institution",
    "publisher", "address", "year", "month", "volume", "number", "pages",
    "edition", "series", "doi", "isbn", "issn", "url", "howpublished",
    "language", "keywords", "abstract", "note",
]

MONTHS = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]

# Fields written verbatim; everything else gets LaTeX special characters escaped
_VERBATIM_FIELDS = {"doi", "url", "isbn", "issn"}
_SPECIAL_CHARS_RE = re.compile(r"(?<!\\)([&%#])")
_AUTHOR_SPLIT_RE = re.compile(r"\s+and\s+", re.IGNORECASE)


def _strip_braces(value: str) -> str:
    return re.sub(r"\s+", " ", value.replace("{", "").replace("}", "")).strip()


def _split_bibtex_names(value: str) -> List[Dict[str, str]]:
    names = []
    for raw in _AUTHOR_SPLIT_RE.split(value.strip()):
        raw = raw.strip()
        if not raw:
            continue
        if raw.startswith("{") and raw.endswith("}") and raw.count("{") == 1:
            names.append({"literal": raw[1:-1].strip()})
        else:
            names.append(split_name(_strip_braces(raw)))
    return names


def bibtex_entry_to_csl(entry: Dict[str, str]) -> Dict[str, Any]:
    """Convert one parsed BibTeX entry into a CSL-JSON record."""
    entry_type = entry.get("ENTRYTYPE", "misc").lower()
    fields = {k.lower(): v for k, v in entry.items() if k not in ("ENTRYTYPE", "ID")}
    csl_type = BIBTEX_TO_CSL_TYPES.get(entry_type, "document")

    csl: Dict[str, Any] = {
        "id": entry.get("ID", ""),
        "citation-key": entry.get("ID", ""),
        "type": csl_type,
    }

    for key in ("author", "editor", "translator"):
        if fields.get(key):
            csl[key] = _split_bibtex_names(fields[key])

    text = {k: _strip_braces(v) for k, v in fields.items() if isinstance(v, str)}

    if text.get("title"):
        csl["title"] = text["title"]
    container = text.get("journal") or text.get("journaltitle") or text.get("booktitle")
    if container:
        csl["container-title"] = container

    date = text.get("date") or text.get("year")
    if date:
        match = re.match(r"^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?", date)
        if match:
            csl["issued"] = {"date-parts": [[int(p) for p in match.groups() if p]]}
        else:
            csl["issued"] = {"raw": date}

    publisher = text.get("publisher") or text.get("school") or text.get("institution") \
        or text.get("organization")
    if publisher:
        csl["publisher"] = publisher
    if csl_type == "thesis" and entry_type == "mastersthesis":
        csl["genre"] = "Master's thesis"

    simple = {
        "address": "publisher-place",
        "location": "publisher-place",
        "volume": "volume",
        "number": "issue",
        "issue": "issue",
        "edition": "edition",
        "series": "collection-title",
        "doi": "DOI",
        "isbn": "ISBN",
        "issn": "ISSN",
        "url": "URL",
        "abstract": "abstract",
        "note": "note",
        "language": "language",
        "keywords": "keyword",
    }
    for bib_key, csl_key in simple.items():
        if text.get(bib_key) and csl_key not in csl:
            csl[csl_key] = text[bib_key]

    if text.get("pages"):
        csl["page"] = re.sub(r"\s*-+\s*", "-", text["pages"])
    return csl


def parse_bibtex(content: str) -> List[Dict[str, Any]]:
    """
    Parse BibTeX text into CSL-JSON records.

    Raises:
        BibliographyFormatError: If no entry could be parsed
    """
    if not content or not content.strip():
        raise BibliographyFormatError("Invalid BibTeX format: input is empty")

    parser = BibTexParser(common_strings=True, ignore_nonstandard_types=False)
    parser.customization = convert_to_unicode
    try:
        database = bibtexparser.loads(content, parser=parser)
    except Exception as e:  # the 1.x parser surfaces pyparsing errors directly
        raise BibliographyFormatError(f"Invalid BibTeX format: {e}") from e

    if not database.entries:
        raise BibliographyFormatError("Invalid BibTeX format")
    return [bibtex_entry_to_csl(entry) for entry in database.entries]


def _escape(key: str, value: str) -> str:
    if key in _VERBATIM_FIELDS:
        return value
    return _SPECIAL_CHARS_RE.sub(r"\\\1", value)


def _bibtex_names(names: Any) -> str:
    rendered = []
    for name in names if isinstance(names, list) else [names]:
        if isinstance(name, dict):
            if name.get("literal"):
                rendered.append("{" + name["literal"] + "}")
            elif name.get("family") and name.get("given"):
                rendered.append(f"{name['family']}, {name['given']}")
            else:
                rendered.append(name.get("family") or name.get("given") or "")
        elif name:
            rendered.append(str(name))
    return " and ".join(n for n in rendered if n)


def csl_to_bibtex_entry(entry: Dict[str, Any]) -> Dict[str, str]:
    """Convert a CSL-JSON record into a bibtexparser entry dict."""
    csl_type = str(entry.get("type") or "").lower()
    bib_type = CSL_TO_BIBTEX_TYPES.get(csl_type, "misc")
    genre = as_text(entry.get("genre")).lower()
    if bib_type == "phdthesis" and "master" in genre:
        bib_type = "mastersthesis"

    fields: Dict[str, str] = {}
    for key in ("author", "editor"):
        if entry.get(key):
            fields[key] = _bibtex_names(entry[key])

    if entry.get("title"):
        fields["title"] = as_text(entry["title"])

    container = as_text(entry.get("container-title"))
    if container:
        if bib_type == "article":
            fields["journal"] = container
        elif bib_type in ("incollection", "inproceedings"):
            fields["booktitle"] = container
        else:
            fields["howpublished"] = container

    parts = get_date_parts(entry)
    if parts:
        fields["year"] = str(parts[0])
        if len(parts) > 1 and 1 <= parts[1] <= 12:
            fields["month"] = MONTHS[parts[1] - 1]

    publisher = as_text(entry.get("publisher"))
    if publisher:
        if bib_type in ("phdthesis", "mastersthesis"):
            fields["school"] = publisher
        elif bib_type == "techreport":
            fields["institution"] = publisher
        else:
            fields["publisher"] = publisher

    simple = {
        "publisher-place": "address",
        "volume": "volume",
        "issue": "number",
        "edition": "edition",
        "collection-title": "series",
        "DOI": "doi",
        "ISBN": "isbn",
        "ISSN": "issn",
        "URL": "url",
        "language": "language",
        "keyword": "keywords",
        "abstract": "abstract",
        "note": "note",
    }
    for csl_key, bib_key in simple.items():
        value = as_text(entry.get(csl_key))
        if value:
            fields[bib_key] = value

    page = as_text(entry.get("page"))
    if page:
        fields["pages"] = re.sub(r"\s*[-–]+\s*", "--", page)

    result = {key: _escape(key, value) for key, value in fields.items()}
    result["ENTRYTYPE"] = bib_type
    result["ID"] = as_text(entry.get("id") or entry.get("citation-key"))
    return result


class BibTeXFormatter(BibliographyFormatter):
    """Writes entries as BibTeX, using each entry's id as the citation label."""

    format_name = "bibtex"
    extension = ".bib"

    def format(self, entries: List[Dict[str, Any]]) -> str:
        database = BibDatabase()
        database.entries = [csl_to_bibtex_entry(entry) for entry in entries]

        writer = BibTexWriter()
        writer.indent = "\t"
        writer.order_entries_by = None
        writer.display_order = BIBTEX_FIELD_ORDER
        return bibtexparser.dumps(database, writer)
