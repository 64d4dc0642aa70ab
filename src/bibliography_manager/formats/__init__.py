"""Bibliography file formats."""
from typing import Dict, Type

from ..errors import UnsupportedFormatError
from ..models import BIBLIOGRAPHY_FORMATS
from .base import BibliographyFormatter
from .bibtex import BibTeXFormatter, parse_bibtex
from .csl_json import CSLJSONFormatter
from .hayagriva import HayagrivaFormatter

FORMATTERS: Dict[str, Type[BibliographyFormatter]] = {
    "bibtex": BibTeXFormatter,
    "csl-json": CSLJSONFormatter,
    "hayagriva": HayagrivaFormatter,
}


def get_formatter(bib_format: str) -> BibliographyFormatter:
    """
    Get the formatter for a bibliography format.

    Raises:
        UnsupportedFormatError: If the format is unknown
    """
    formatter_class = FORMATTERS.get((bib_format or "").lower())
    if formatter_class is None:
        raise UnsupportedFormatError(
            f"Unsupported format: {bib_format}. Supported formats: {', '.join(BIBLIOGRAPHY_FORMATS)}",
            bib_format,
        )
    return formatter_class()


__all__ = [
    "BibliographyFormatter",
    "BibTeXFormatter",
    "CSLJSONFormatter",
    "HayagrivaFormatter",
    "get_formatter",
    "parse_bibtex",
]
