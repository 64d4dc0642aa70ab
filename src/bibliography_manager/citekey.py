"""Citekey and filename generation for bibliographic sources."""
import re
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_HTML_ENTITY_RE = re.compile(r"&[^;]+;")
_LATEX_COMMAND_RE = re.compile(r"\\[a-zA-Z]+\{([^}]+)\}")
_LATEX_SYMBOL_RE = re.compile(r"[{}$]")
_PUNCTUATION_RE = re.compile(r"[,:;]")
_DASH_RE = re.compile(r"[\u2014\u2013]")
_INVALID_FILENAME_RE = re.compile(r'[<>:"/\\|?*]')
_EDGE_HYPHENS_RE = re.compile(r"^-+|-+$")


def _clean_text(text: str) -> str:
    """Strip markup and characters that are not allowed in filenames."""
    text = _HTML_TAG_RE.sub("", text)
    text = _HTML_ENTITY_RE.sub("", text)
    text = _LATEX_COMMAND_RE.sub(r"\1", text)
    text = _LATEX_SYMBOL_RE.sub("", text)
    text = _PUNCTUATION_RE.sub(" ", text)
    text = _DASH_RE.sub("-", text)
    return _INVALID_FILENAME_RE.sub("", text)


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:].lower()


class CitekeyGenerator:
    """Builds short citekeys from author surnames and the publication year."""

    @staticmethod
    def generate_citekey(authors: List[str], year: Union[int, str],
                         title: Optional[str] = None) -> str:
        """
        Generate a citekey.

        - one author: first 3 letters of the surname + 2 digit year (Smi23)
        - several authors: first 2 letters of the first two surnames (SmDo23)
        - no author: first 5 letters of the title (Trans23), or Unknown23
        """
        year_suffix = str(year)[-2:]

        if not authors:
            if title and title.strip():
                title_base = _clean_text(title).strip()[:5].lower()
                return title_base[:1].upper() + title_base[1:] + year_suffix
            return "Unknown" + year_suffix

        if len(authors) == 1:
            last_name = CitekeyGenerator.extract_last_name(authors[0])
            return _capitalize(last_name[:3]) + year_suffix

        first_author = CitekeyGenerator.extract_last_name(authors[0])
        second_author = CitekeyGenerator.extract_last_name(authors[1])
        return _capitalize(first_author[:2]) + _capitalize(second_author[:2]) + year_suffix

    @staticmethod
    def extract_last_name(author_name: str) -> str:
        # "Smith, John" -> "Smith", "John Smith" / "J. Smith" -> "Smith"
        parts = [p.strip() for p in author_name.split(",")]
        if len(parts) == 2:
            return parts[0]
        words = parts[0].split(" ")
        return words[-1]

    @staticmethod
    def generate_from_title_and_authors(title: str, authors: List[str],
                                        year: Union[int, str]) -> str:
        return CitekeyGenerator.generate_citekey(authors, year, title)

    @staticmethod
    def sanitize_filename(title: str) -> str:
        """Create a clean filename (without extension) from a title."""
        text = _clean_text(title or "")
        text = _EDGE_HYPHENS_RE.sub("", text)
        return text.strip()

    @staticmethod
    def extract_authors_from_citation_data(citation_data: Dict[str, Any]) -> List[str]:
        """Turn CSL-JSON name objects into ``"Family, Given"`` strings."""
        authors = citation_data.get("author") or []
        names = []
        for author in authors:
            if not isinstance(author, dict):
                names.append(str(author))
            elif author.get("literal"):
                names.append(author["literal"])
            elif author.get("family") and author.get("given"):
                names.append(f"{author['family']}, {author['given']}")
            elif author.get("family"):
                names.append(author["family"])
            else:
                names.append("Unknown Author")
        return names

    @staticmethod
    def extract_title_from_url(url: str) -> str:
        """Fallback title for website sources."""
        try:
            parsed = urlparse(url)
        except ValueError:
            return "Website Source"
        if not parsed.scheme or not parsed.netloc:
            return "Website Source"

        path_parts = [part for part in parsed.path.split("/") if part]
        if path_parts:
            last_part = re.sub(r"[-_]", " ", path_parts[-1])
            return re.sub(r"\b\w", lambda m: m.group(0).upper(), last_part)
        return parsed.hostname or "Website Source"


generate_citekey = CitekeyGenerator.generate_citekey
sanitize_filename = CitekeyGenerator.sanitize_filename
