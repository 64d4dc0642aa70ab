"""Exceptions raised by the bibliography manager."""


class BibliographyError(Exception):
    """Base class for all bibliography manager errors."""


class SettingsError(BibliographyError):
    """Raised when settings are invalid or cannot be persisted."""


class SourceImportError(BibliographyError):
    """Raised when a source cannot be imported."""


class BibliographyFormatError(BibliographyError):
    """Raised when bibliography data cannot be parsed or formatted."""


class UnsupportedFormatError(BibliographyFormatError):
    """Raised for an unknown bibliography format or file extension."""

    def __init__(self, message: str, value: str = ""):
        self.value = value
        super().__init__(message)


class BibliographyExportError(BibliographyError):
    """Raised when a bibliography cannot be generated or written."""


class DuplicateSourceError(SourceImportError):
    """Raised when a source note already exists at the target path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File already exists: {path}")


class VaultPathError(BibliographyError, ValueError):
    """Raised for a path that points outside the vault."""
