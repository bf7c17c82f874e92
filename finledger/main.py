"""Command line entry point for finledger."""

import argparse
import sys
from pathlib import Path

from finledger.config import configure_logging, settings
from finledger.db.sqlite import Database
from finledger.errors import FinledgerError
from finledger.models import FolderIngestionReport
from finledger.services.aggregator import regenerate_monthly_summaries
from finledger.services.categorizer import Categorizer, categorize, recategorize_transactions, seed_default_rules
from finledger.services.ingestion import hard_refresh, ingest_folder
from finledger.services.migration import CategoryMigration
from finledger.services.rule_backup import export_rules, import_rules
from finledger.taxonomy import group_by_parent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finledger", description="Statement ingestion and monthly summaries")
    parser.add_argument("--db", type=Path, help="SQLite database path (default: from settings)")
    parser.add_argument("--log-level", help="Logging level (default: from settings)")
    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="Ingest new statements from the uploads folder")
    ingest.add_argument("folder", nargs="?", type=Path, help="Uploads folder (default: from settings)")
    ingest.add_argument("--force", action="store_true", help="Re-ingest files already processed")

    refresh = commands.add_parser("hard-refresh", help="Clear the ledger and re-ingest everything")
    refresh.add_argument("folder", nargs="?", type=Path, help="Uploads folder (default: from settings)")

    summaries = commands.add_parser("summaries", help="Regenerate and print monthly summaries")
    summaries.add_argument("--by-division", action="store_true", help="Roll categories up to COICOP divisions")

    cat = commands.add_parser("categorize", help="Categorize a description, or re-run categorization")
    cat.add_argument("description", nargs="?", help="Description to categorize")
    cat.add_argument("--all", action="store_true", help="Recategorize every stored transaction")

    migrate = commands.add_parser("migrate", help="Migrate stored categories to the COICOP taxonomy")
    migrate.add_argument("--dry-run", action="store_true", help="Only analyze; change nothing")
    migrate.add_argument("--backup-dir", type=Path, help="Backup directory (default: from settings)")

    rules = commands.add_parser("rules", help="Export or import category rules")
    rules_commands = rules.add_subparsers(dest="rules_command", required=True)
    export = rules_commands.add_parser("export", help="Write rules and overrides to a JSON file")
    export.add_argument("path", type=Path)
    imp = rules_commands.add_parser("import", help="Read rules and overrides from a JSON file")
    imp.add_argument("path", type=Path)
    imp.add_argument("--replace", action="store_true", help="Update rules whose pattern already exists")
    imp.add_argument("--validate-only", action="store_true", help="Check the file without importing")

    commands.add_parser("seed-rules", help="Add the starter rules to an empty rule store")

    return parser


def print_ingestion_report(report: FolderIngestionReport) -> None:
    print("=" * 60)
    print(report.message)
    print(f"Transactions added: {report.transactions_added} ({report.transactions_skipped} duplicates skipped)")
    print(f"Income records added: {report.income_added}")
    for error in report.errors:
        print(f"  {error.folder}/{error.file_name}: {error.error_kind.value}: {error.message}")
    print("=" * 60)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    settings.log_config()
    settings.ensure_directories()

    db = Database(args.db)

    try:
        if args.command == "ingest":
            print_ingestion_report(ingest_folder(db, args.folder, force_refresh=args.force))

        elif args.command == "hard-refresh":
            print_ingestion_report(hard_refresh(db, args.folder))

        elif args.command == "summaries":
            for summary in regenerate_monthly_summaries(db):
                print(
                    f"{summary.month}: income ${summary.total_income}, expenses ${summary.total_expenses}, "
                    f"savings ${summary.net_savings} ({summary.savings_rate}%), "
                    f"{summary.transaction_count} transactions"
                )
                breakdown = (
                    group_by_parent(summary.category_breakdown) if args.by_division else summary.category_breakdown
                )
                for code, amount in breakdown.items():
                    print(f"    {code:<28} ${amount}")

        elif args.command == "categorize":
            rule_set = Categorizer(db).reload()
            if args.all:
                print(f"Recategorized {recategorize_transactions(db, rule_set)} transactions")
            elif args.description:
                print(categorize(args.description, rule_set))
            else:
                print("Give a description or --all", file=sys.stderr)
                return 2

        elif args.command == "migrate":
            migration = CategoryMigration(db, args.backup_dir)
            if args.dry_run:
                print(migration.analyze().model_dump_json(indent=2))
            else:
                outcome = migration.run()
                print(outcome.report.model_dump_json(indent=2))

        elif args.command == "rules":
            if args.rules_command == "export":
                backup = export_rules(db, args.path)
                print(f"Exported {backup.metadata.total_rules} rules, {backup.metadata.total_overrides} overrides")
            else:
                stats = import_rules(db, args.path, replace_existing=args.replace, validate_only=args.validate_only)
                print(stats.model_dump_json(indent=2))

        elif args.command == "seed-rules":
            print(f"Added {seed_default_rules(db)} rules")

    except FinledgerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
