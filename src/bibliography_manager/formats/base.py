"""Base class for bibliography formatters."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List


class BibliographyFormatter(ABC):
    """Abstract base class for rendering CSL-JSON entries into a bibliography file."""

    format_name: str = ""
    extension: str = ""

    @abstractmethod
    def format(self, entries: List[Dict[str, Any]]) -> str:
        """Render CSL-JSON entries as file content."""
        pass
