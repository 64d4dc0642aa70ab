"""Command line entry point for the bibliography manager."""
import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .api import warn_missing_email
from .commands import (
    DUPLICATE_SOURCE_MESSAGE,
    BibliographyContext,
    ExportNoteBibliographyCommand,
    GenerateBibliographyFileCommand,
    GenerateCitekeyCommand,
    ImportSourceCommand,
    InitSourcesFolderCommand,
    SetConfigCommand,
    ShowConfigCommand,
    ShowSourcesCommand,
)
from .config import load_settings, resolve_vault_root
from .errors import BibliographyError, DuplicateSourceError
from .export_api import BibliographyAPI
from .models import BIBLIOGRAPHY_FORMATS
from .utils.input_validation import InputValidator, parse_author_list
from .utils.logging_setup import setup_logging
from .vault import Vault


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bibliography-manager",
        description="Manage bibliography source notes in a markdown vault",
    )
    parser.add_argument("--vault", help="Vault directory (default: $BIBLIOGRAPHY_VAULT or cwd)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", metavar="DIR", help="Also write a log file into DIR")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the sources folder")

    import_parser = sub.add_parser("import", help="Import a source into a new note")
    import_sub = import_parser.add_subparsers(dest="method", required=True)
    import_sub.add_parser("doi", help="Import by DOI").add_argument("value")
    import_sub.add_parser("isbn", help="Import by ISBN").add_argument("value")
    import_sub.add_parser("url", help="Import a web page").add_argument("value")
    bibtex_parser = import_sub.add_parser("bibtex", help="Import a BibTeX entry")
    bibtex_parser.add_argument("value", nargs="?", help="BibTeX text (default: read --file or stdin)")
    bibtex_parser.add_argument("--file", help="Read the BibTeX entry from a file")
    manual_parser = import_sub.add_parser("manual", help="Enter a source by hand")
    manual_parser.add_argument("--title")
    manual_parser.add_argument("--authors", help="Authors separated with ';'")
    manual_parser.add_argument("--year", type=int)
    manual_parser.add_argument("--journal")

    export_parser = sub.add_parser("export", help="Export the bibliography of the sources folder")
    export_parser.add_argument("--folder", help="Sources folder (default: settings)")
    export_parser.add_argument("--output", help="Output filename; the format follows its extension")
    export_parser.add_argument("--format", choices=BIBLIOGRAPHY_FORMATS)
    export_parser.add_argument("--stdout", action="store_true", help="Print instead of writing a file")

    note_parser = sub.add_parser("export-note", help="Export the bibliography of a document")
    note_parser.add_argument("note", help="Vault path of the document")
    note_parser.add_argument("--output-dir", help="Vault folder for the file (default: the note's folder)")

    citekey_parser = sub.add_parser("citekey", help="Generate a citekey for a note")
    citekey_parser.add_argument("note", help="Vault path of the note")

    sub.add_parser("sources", help="List all sources")

    config_parser = sub.add_parser("config", help="Show or change settings")
    config_sub = config_parser.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show", help="Print the settings")
    set_parser = config_sub.add_parser("set", help="Change a setting")
    set_parser.add_argument("key")
    set_parser.add_argument("value")

    return parser


def _read_bibtex(args: argparse.Namespace) -> str:
    if args.value:
        return args.value
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


def _manual_fields(args: argparse.Namespace) -> dict:
    validator = InputValidator()
    title = args.title or validator.get_title()
    authors = parse_author_list(args.authors) if args.authors else validator.get_author_list()
    year = args.year or validator.get_year()
    journal = args.journal if args.journal is not None else validator.get_optional("Journal (optional): ")
    return {"title": title or "", "authors": authors or [], "year": year, "journal": journal or None}


def run(args: argparse.Namespace, context: BibliographyContext) -> int:
    if args.command == "init":
        if InitSourcesFolderCommand(context).execute():
            print(f"Sources folder ready: {context.settings.sources_folder}")
            return 0
        return 1

    if args.command == "import":
        if args.method == "manual":
            command = ImportSourceCommand(context, "manual", manual_fields=_manual_fields(args))
        elif args.method == "bibtex":
            command = ImportSourceCommand(context, "bibtex", _read_bibtex(args))
        else:
            command = ImportSourceCommand(context, args.method, args.value)
        path = command.execute()
        print(f"Source imported: {path}")
        return 0

    if args.command == "export":
        if args.stdout:
            api = BibliographyAPI(context.vault, context.settings)
            print(api.export_bibliography(args.folder, args.output, args.format))
            return 0
        if args.folder or args.output or args.format:
            api = BibliographyAPI(context.vault, context.settings)
            path = api.export_bibliography_to_path(args.folder, args.output, args.format)
        else:
            path = GenerateBibliographyFileCommand(context).execute()
        print(f"Bibliography exported to {path}")
        return 0

    if args.command == "export-note":
        path = ExportNoteBibliographyCommand(context, args.note, args.output_dir).execute()
        print(f"Bibliography exported to {path}")
        return 0

    if args.command == "citekey":
        citekey = GenerateCitekeyCommand(context, args.note).execute()
        print(f"Generated citekey: {citekey}")
        return 0

    if args.command == "sources":
        sources = ShowSourcesCommand(context).execute()
        for citekey, path in sources:
            print(f"{citekey}\t{path}")
        print(f"{len(sources)} sources in {context.settings.sources_folder}")
        return 0

    if args.command == "config":
        if args.action == "show":
            print(json.dumps(ShowConfigCommand(context).execute(), indent=2, ensure_ascii=False))
        else:
            SetConfigCommand(context, args.key, args.value).execute()
            print(f"{args.key} updated")
        return 0

    return 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else os.getenv("LOG_LEVEL", "INFO")
    setup_logging(level, args.log_file)

    try:
        vault_root = resolve_vault_root(args.vault)
        settings = load_settings(vault_root)
        context = BibliographyContext(Vault(vault_root), settings)
        if args.command != "config":
            InitSourcesFolderCommand(context).execute()
        if args.command == "import":
            warn_missing_email(settings.crossref_email)
        return run(args, context)
    except DuplicateSourceError as e:
        logging.error(str(e))
        print(DUPLICATE_SOURCE_MESSAGE, file=sys.stderr)
        return 1
    except BibliographyError as e:
        logging.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logging.error(f"File error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
