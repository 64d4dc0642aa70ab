"""CSL-JSON output."""
import json
from typing import Any, Dict, List

from .base import BibliographyFormatter


class CSLJSONFormatter(BibliographyFormatter):
    format_name = "csl-json"
    extension = ".json"

    def format(self, entries: List[Dict[str, Any]]) -> str:
        return json.dumps(entries, indent=2, ensure_ascii=False)
