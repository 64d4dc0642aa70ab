"""Input validation utilities."""
import re
from typing import List, Optional

from .error_handling import user_input_handler


class InputValidator:
    """Input validation and user interaction."""

    @staticmethod
    @user_input_handler
    def get_title(prompt: str = "Title: ") -> Optional[str]:
        """Get and validate a source title."""
        title = input(prompt).strip()
        if not title:
            print("Title must not be empty")
            return None
        return title

    @staticmethod
    @user_input_handler
    def get_author_list(prompt: str = "Authors (separate with ';'): ") -> List[str]:
        """Get a semicolon separated author list."""
        raw = input(prompt)
        return parse_author_list(raw)

    @staticmethod
    @user_input_handler
    def get_year(prompt: str = "Year: ") -> Optional[int]:
        """Get and validate a four digit year."""
        value = input(prompt).strip()
        if re.fullmatch(r"\d{4}", value):
            return int(value)
        print("Year must be a four digit number")
        return None

    @staticmethod
    @user_input_handler
    def get_optional(prompt: str) -> str:
        """Get a free text value that may be left empty."""
        return input(prompt).strip()


def parse_author_list(raw: Optional[str]) -> List[str]:
    """Split ``"John Smith; Jane Doe"`` into a list of names."""
    if not raw:
        return []
    return [name.strip() for name in raw.split(";") if name.strip()]
