"""
Statement Import CLI

    statement-import detect statement.txt
    statement-import parse export.csv
    statement-import parse statement.pdf --provider bpi --ledger ledger.json
    statement-import parse statements.zip --provider credit_agricole
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .category_lookup import CategoryLookup
from .config import ImportSettings
from .exceptions import StatementImportError
from .importer import StatementImporter
from .ledger import InMemoryLedger
from .parsers.base import BankProvider

logger = logging.getLogger(__name__)


def _read_text(path: Path) -> str:
    return path.read_bytes().decode("utf-8-sig", errors="replace")


def _detect(args: argparse.Namespace, settings: ImportSettings) -> int:
    importer = StatementImporter(InMemoryLedger(), settings=settings)
    path = Path(args.file)
    if path.suffix.lower() in (".pdf", ".zip"):
        print("PDF statements cannot be auto-detected; pass --provider to parse", file=sys.stderr)
        return 1

    provider = importer.registry.detect(_read_text(path))
    if provider is None:
        print("unknown")
        return 1
    print(f"{provider.value} ({provider.display_name})")
    return 0


def _parse(args: argparse.Namespace, settings: ImportSettings) -> int:
    if args.exclude_credits:
        settings.exclude_credits = True

    ledger = InMemoryLedger.from_json(args.ledger) if args.ledger else InMemoryLedger()
    mapper = CategoryLookup(settings.config_dir) if args.categorize else None
    importer = StatementImporter(ledger, settings=settings, category_mapper=mapper)

    path = Path(args.file)
    suffix = path.suffix.lower()
    provider = BankProvider(args.provider) if args.provider else None

    if suffix in (".pdf", ".zip") and provider is None:
        print("--provider is required for PDF statements", file=sys.stderr)
        return 2

    if suffix == ".zip":
        bundle = importer.import_pdf_archive(path, provider)
        output = bundle.to_dict()
        ok = bundle.succeeded > 0
    elif suffix == ".pdf":
        result = importer.import_pdf(path.read_bytes(), provider, source=path.name)
        output = result.to_dict()
        ok = result.success
    else:
        result = importer.import_content(_read_text(path), provider, source=path.name)
        output = result.to_dict()
        ok = result.success

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2, ensure_ascii=False)
        logger.info(f"Wrote {args.output}")
    else:
        print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Parse bank statements into canonical transactions")
    parser.add_argument("--config", help="Settings YAML file")
    parser.add_argument("--log-level", help="Logging level (overrides settings)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect_parser = subparsers.add_parser("detect", help="Detect the provider of a text or CSV statement")
    detect_parser.add_argument("file", help="Statement file")

    parse_parser = subparsers.add_parser("parse", help="Parse a statement and deduplicate it")
    parse_parser.add_argument("file", help="Text, CSV, PDF or zip of PDFs")
    parse_parser.add_argument(
        "--provider",
        choices=[provider.value for provider in BankProvider],
        help="Provider (required for PDF)",
    )
    parse_parser.add_argument("--ledger", help="Existing ledger JSON to deduplicate against")
    parse_parser.add_argument("--exclude-credits", action="store_true", help="Import debits only")
    parse_parser.add_argument("--categorize", action="store_true", help="Apply category mappings")
    parse_parser.add_argument("--output", "-o", help="Write JSON here instead of stdout")

    args = parser.parse_args(argv)

    try:
        settings = ImportSettings.load(args.config)
    except StatementImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "detect":
        return _detect(args, settings)
    return _parse(args, settings)


if __name__ == "__main__":
    sys.exit(main())
