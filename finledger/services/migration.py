"""One-time migration of stored category codes to the COICOP-aligned taxonomy."""

import json
import logging
from collections import Counter, defaultdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from finledger.config import settings
from finledger.db.sqlite import Database
from finledger.errors import MigrationError
from finledger.models import CategoryOverride, CategoryRule, MonthlySummary, Transaction

logger = logging.getLogger(__name__)

# Legacy codes with a single COICOP counterpart
LEGACY_CATEGORY_MAP: dict[str, str] = {
    "GROCERIES": "FOOD_GROCERIES",
    "TRANSPORT_PUBLIC": "TRANSPORT_PUBLIC",
    "TRANSPORT_FUEL": "TRANSPORT_FUEL",
    "TRANSPORT_RIDESHARE": "TRANSPORT_RIDESHARE",
    "TRANSPORT_PARKING": "TRANSPORT_PARKING",
    "TRANSPORT_OTHER": "TRANSPORT_REGISTRATION",
    "SHOPPING_ELECTRONICS": "HOUSEHOLD_APPLIANCES",
    "SHOPPING_ONLINE": "SHOPPING_ONLINE",
    "UTILITIES_WATER": "UTILITIES_WATER",
    "UTILITIES_COUNCIL": "GOVERNMENT",
    "HEALTH_MEDICAL": "HEALTH_MEDICAL",
    "HEALTH_PHARMACY": "HEALTH_PHARMACY",
    "HEALTH_FITNESS": "RECREATION_SPORTS",
    "BANKING_FEES": "FINANCIAL_SERVICES",
    "INSURANCE": "INSURANCE_GENERAL",
    "INVESTMENTS": "INVESTMENTS",
    "HOUSING_RENT": "HOUSING_RENT",
    "HOUSING_MORTGAGE": "HOUSING_MORTGAGE",
    "HOUSING_MAINTENANCE": "HOUSING_MAINTENANCE",
    "GOVERNMENT": "GOVERNMENT",
    "PROFESSIONAL_SERVICES": "PROFESSIONAL_SERVICES",
    "EDUCATION": "EDUCATION_TUITION",
    "PERSONAL_CARE": "PERSONAL_CARE",
    "CHILDCARE": "CHILDCARE",
    "PETS": "PETS",
    "TRANSFERS": "TRANSFERS",
    "CASH_WITHDRAWAL": "CASH_WITHDRAWAL",
    "ENTERTAINMENT_STREAMING": "RECREATION_STREAMING",
    "ENTERTAINMENT_ACTIVITIES": "RECREATION_ENTERTAINMENT",
    "ENTERTAINMENT_GAMING": "RECREATION_GAMING",
    "ENTERTAINMENT_TRAVEL": "RECREATION_TRAVEL",
}

# Legacy codes that split by description keyword: (fallback, [(target, keywords), ...])
KEYWORD_SPLITS: dict[str, tuple[str, list[tuple[str, list[str]]]]] = {
    "DINING_OUT": (
        "DINING_RESTAURANTS",
        [
            (
                "DINING_TAKEAWAY",
                ["MCDONALD", "KFC", "SUBWAY", "HUNGRY", "DOMINO", "PIZZA", "BURGER", "TAKEAWAY", "FAST FOOD"],
            ),
            ("DINING_CAFES", ["CAFE", "COFFEE", "STARBUCKS", "GLORIA JEAN"]),
            ("DINING_PUBS", ["PUB", "BAR", "GRILL", "BBQ", "ROAST", "TAVERN"]),
            (
                "DINING_ETHNIC",
                ["SUSHI", "THAI", "CHINESE", "INDIAN", "JAPANESE", "VIETNAMESE", "MEXICAN", "ITALIAN"],
            ),
        ],
    ),
    "SHOPPING_CLOTHING": (
        "CLOTHING_APPAREL",
        [("CLOTHING_FOOTWEAR", ["SHOES", "BOOTS", "SANDALS", "SNEAKERS", "FOOTWEAR", "ATHLETE FOOT"])],
    ),
    "SHOPPING_HOME": (
        "HOUSEHOLD_SUPPLIES",
        [("HOUSEHOLD_FURNITURE", ["IKEA", "FANTASTIC", "FURNITURE", "SOFA", "BED", "TABLE", "CHAIR"])],
    ),
    "UTILITIES_TELECOM": (
        "COMMUNICATION_INTERNET",
        [
            ("COMMUNICATION_MOBILE", ["MOBILE", "PHONE BILL", "PREPAID", "TELSTRA", "OPTUS", "VODAFONE"]),
            ("COMMUNICATION_POSTAL", ["AUSTRALIA POST", "POSTAL", "POSTAGE", "COURIER", "DELIVERY"]),
        ],
    ),
    "UTILITIES_ENERGY": (
        "UTILITIES_ELECTRICITY",
        [("UTILITIES_GAS", ["GAS", "NATURAL GAS", "LPG"])],
    ),
}


def map_category(code: str, description: str = "") -> str:
    """
    Map a legacy code to its COICOP-aligned code.

    Split codes pick a target by keyword in the description. Codes that are
    not legacy (including already migrated ones) are returned unchanged.
    """
    if code in KEYWORD_SPLITS:
        fallback, targets = KEYWORD_SPLITS[code]
        upper_desc = (description or "").upper()
        for target, keywords in targets:
            if any(keyword in upper_desc for keyword in keywords):
                return target
        return fallback
    return LEGACY_CATEGORY_MAP.get(code, code)


class MigrationState(str, Enum):
    IDLE = "idle"
    BACKING_UP = "backing_up"
    ANALYZING = "analyzing"
    MIGRATING_TRANSACTIONS = "migrating_transactions"
    MIGRATING_RULES = "migrating_rules"
    MIGRATING_OVERRIDES = "migrating_overrides"
    CLEARING_DERIVED_CACHES = "clearing_derived_caches"
    REPORTING = "reporting"
    DONE = "done"
    ROLLING_BACK = "rolling_back"
    FAILED = "failed"


class MigrationLogEntry(BaseModel):
    timestamp: datetime
    type: str
    data: Any = None


class MigrationAnalysis(BaseModel):
    """Read-only preview of what a migration would do."""

    transactions: int = 0
    category_rules: int = 0
    user_overrides: int = 0
    categories_in_use: list[str] = Field(default_factory=list)
    migration_mapping: dict[str, str] = Field(default_factory=dict)
    # Legacy split code -> {target code: number of transactions}
    split_breakdown: dict[str, dict[str, int]] = Field(default_factory=dict)


class MigrationReport(BaseModel):
    timestamp: datetime
    transactions_migrated: int = 0
    rules_migrated: int = 0
    overrides_migrated: int = 0
    categories_migrated: int = 0
    # Legacy code -> {new code: count}
    category_mappings: dict[str, dict[str, int]] = Field(default_factory=dict)
    report_path: Path | None = None


class MigrationOutcome(BaseModel):
    report: MigrationReport
    migration_log: list[MigrationLogEntry]


class CategoryMigration:
    """
    Rewrites persisted category codes from the legacy scheme.

    Runs as an exclusive operator job:

        idle -> backing_up -> analyzing -> migrating_transactions -> migrating_rules
             -> migrating_overrides -> clearing_derived_caches -> reporting -> done

    A failure after the backup rolls every table back from the backup files
    and ends in `failed`. A failed backup stops before anything is changed.
    """

    def __init__(self, db: Database, backup_dir: Path | None = None):
        self.db = db
        self.backup_dir = backup_dir or settings.backup_dir
        self.state = MigrationState.IDLE
        self.migration_log: list[MigrationLogEntry] = []

    def run(self) -> MigrationOutcome:
        if self.state not in (MigrationState.IDLE, MigrationState.DONE, MigrationState.FAILED):
            raise MigrationError(f"Migration already in progress ({self.state.value})")

        self.migration_log = []
        logger.info("Starting category migration to COICOP")

        self._enter(MigrationState.BACKING_UP)
        try:
            self.create_backup()
        except Exception as e:
            self._enter(MigrationState.FAILED)
            logger.error(f"Backup failed: {e}")
            self._log("ERROR", f"Backup failed: {e}")
            raise MigrationError(f"Backup failed, nothing was changed: {e}") from e

        try:
            self._enter(MigrationState.ANALYZING)
            self._log("ANALYSIS", self.analyze().model_dump(mode="json"))

            self._enter(MigrationState.MIGRATING_TRANSACTIONS)
            self._migrate_transactions()

            self._enter(MigrationState.MIGRATING_RULES)
            self._migrate_rules()

            self._enter(MigrationState.MIGRATING_OVERRIDES)
            self._migrate_overrides()

            self._enter(MigrationState.CLEARING_DERIVED_CACHES)
            cleared = self.db.delete_monthly_summaries()
            self._log("CACHE_CLEAR", f"Deleted {cleared} monthly summaries")

            self._enter(MigrationState.REPORTING)
            report = self._generate_report()
        except Exception as e:
            logger.error(f"Migration failed in {self.state.value}: {e}")
            self._log("ERROR", f"Migration failed in {self.state.value}: {e}")
            self._enter(MigrationState.ROLLING_BACK)
            self.rollback()
            self._enter(MigrationState.FAILED)
            raise MigrationError(f"Migration failed and was rolled back: {e}") from e

        self._enter(MigrationState.DONE)
        logger.info(
            f"Migration complete: {report.transactions_migrated} transactions, "
            f"{report.rules_migrated} rules, {report.overrides_migrated} overrides"
        )
        return MigrationOutcome(report=report, migration_log=list(self.migration_log))

    def analyze(self) -> MigrationAnalysis:
        """Describe the current data and the prospective mapping without changing anything."""
        transactions = self.db.get_all_transactions()
        rules = self.db.get_rules()
        overrides = self.db.get_overrides()

        in_use = {txn.category for txn in transactions} | {rule.category for rule in rules}
        in_use.discard("")

        split_breakdown: dict[str, Counter] = defaultdict(Counter)
        for txn in transactions:
            if txn.category in KEYWORD_SPLITS:
                split_breakdown[txn.category][map_category(txn.category, txn.description)] += 1

        mapping = {}
        for code in sorted(in_use):
            if code in KEYWORD_SPLITS:
                fallback, targets = KEYWORD_SPLITS[code]
                mapping[code] = " | ".join([fallback] + [target for target, _ in targets])
            else:
                mapping[code] = map_category(code)

        analysis = MigrationAnalysis(
            transactions=len(transactions),
            category_rules=len(rules),
            user_overrides=len(overrides),
            categories_in_use=sorted(in_use),
            migration_mapping=mapping,
            split_breakdown={code: dict(sorted(counts.items())) for code, counts in sorted(split_breakdown.items())},
        )
        logger.info(
            f"Found {analysis.transactions} transactions, {analysis.category_rules} rules, "
            f"{len(analysis.categories_in_use)} categories in use"
        )
        return analysis

    def create_backup(self) -> dict[str, Path]:
        """Write one timestamped JSON snapshot per table. Returns kind -> path."""
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%dT%H%M%S%f")

        snapshots = {
            "transactions": [t.model_dump(mode="json") for t in self.db.get_all_transactions()],
            "category_rules": [r.model_dump(mode="json") for r in self.db.get_rules()],
            "category_overrides": [o.model_dump(mode="json") for o in self.db.get_overrides()],
            "monthly_data": [s.model_dump(mode="json") for s in self.db.get_monthly_summaries()],
        }

        paths = {}
        for kind, rows in snapshots.items():
            path = self.backup_dir / f"{kind}_{timestamp}.json"
            path.write_text(json.dumps(rows, indent=2))
            paths[kind] = path

        self._log("BACKUP", f"Database tables backed up to {self.backup_dir}")
        logger.info(f"Backup created in {self.backup_dir}")
        return paths

    def rollback(self) -> bool:
        """
        Restore every table from its newest backup file.

        Never raises; problems are logged and reported through the return value.
        """
        logger.warning("Rolling back migration")
        restorers = {
            "transactions": (Transaction, self.db.restore_transactions),
            "category_rules": (CategoryRule, self.db.restore_rules),
            "category_overrides": (CategoryOverride, self.db.restore_overrides),
            "monthly_data": (MonthlySummary, self.db.replace_monthly_summaries),
        }

        ok = True
        for kind, (model, restore) in restorers.items():
            path = self._latest_backup(kind)
            if path is None:
                logger.error(f"Rollback: no {kind} backup found in {self.backup_dir}")
                self._log("ERROR", f"No {kind} backup found")
                ok = False
                continue
            try:
                rows = [model.model_validate(item) for item in json.loads(path.read_text())]
                restore(rows)
                logger.info(f"Rollback: restored {len(rows)} {kind} rows from {path.name}")
            except Exception as e:
                logger.error(f"Rollback: failed to restore {kind}: {e}")
                self._log("ERROR", f"Rollback failed for {kind}: {e}")
                ok = False

        self._log("ROLLBACK", "Migration rolled back" if ok else "Migration rolled back with errors")
        return ok

    def _latest_backup(self, kind: str) -> Path | None:
        if not self.backup_dir.is_dir():
            return None
        candidates = sorted(p for p in self.backup_dir.iterdir() if p.name.startswith(f"{kind}_"))
        return candidates[-1] if candidates else None

    def _migrate_transactions(self) -> None:
        updates = []
        for txn in self.db.get_all_transactions():
            new_category = map_category(txn.category, txn.description)
            if new_category != txn.category:
                updates.append((txn.id, new_category))
                self._log(
                    "TRANSACTION_MIGRATION",
                    {"id": txn.id, "old_category": txn.category, "new_category": new_category},
                )

        with self.db.transaction():
            self.db.update_transaction_categories(updates)
        logger.info(f"Migrated {len(updates)} transactions")

    def _migrate_rules(self) -> None:
        count = 0
        with self.db.transaction():
            for rule in self.db.get_rules():
                # The rule's own pattern stands in for a description
                new_category = map_category(rule.category, rule.pattern)
                if new_category != rule.category:
                    self.db.update_rule_category(rule.id, new_category)
                    self._log(
                        "RULE_MIGRATION",
                        {"id": rule.id, "old_category": rule.category, "new_category": new_category},
                    )
                    count += 1
        logger.info(f"Migrated {count} category rules")

    def _migrate_overrides(self) -> None:
        descriptions = {txn.content_hash: txn.description for txn in self.db.get_all_transactions()}
        count = 0
        with self.db.transaction():
            for override in self.db.get_overrides():
                description = descriptions.get(override.content_hash, "")
                new_original = map_category(override.original_category, description)
                new_override = map_category(override.override_category, description)
                if (new_original, new_override) != (override.original_category, override.override_category):
                    self.db.update_override_categories(override.content_hash, new_original, new_override)
                    self._log(
                        "OVERRIDE_MIGRATION",
                        {
                            "content_hash": override.content_hash,
                            "old_category": override.override_category,
                            "new_category": new_override,
                        },
                    )
                    count += 1
        logger.info(f"Migrated {count} category overrides")

    def _generate_report(self) -> MigrationReport:
        report = MigrationReport(timestamp=datetime.now())
        mappings: dict[str, Counter] = defaultdict(Counter)

        for entry in self.migration_log:
            if entry.type == "TRANSACTION_MIGRATION":
                report.transactions_migrated += 1
                mappings[entry.data["old_category"]][entry.data["new_category"]] += 1
            elif entry.type == "RULE_MIGRATION":
                report.rules_migrated += 1
            elif entry.type == "OVERRIDE_MIGRATION":
                report.overrides_migrated += 1

        report.category_mappings = {old: dict(sorted(new.items())) for old, new in sorted(mappings.items())}
        report.categories_migrated = len(report.category_mappings)

        report_path = self.backup_dir / f"migration_report_{report.timestamp.strftime('%Y%m%dT%H%M%S%f')}.json"
        report.report_path = report_path
        self._log("REPORT", f"Migration report saved to {report_path}")
        report_path.write_text(
            json.dumps(
                {
                    "report": report.model_dump(mode="json"),
                    "migration_log": [entry.model_dump(mode="json") for entry in self.migration_log],
                },
                indent=2,
            )
        )
        return report

    def _enter(self, state: MigrationState) -> None:
        logger.debug(f"Migration state: {self.state.value} -> {state.value}")
        self.state = state

    def _log(self, entry_type: str, data: Any) -> None:
        self.migration_log.append(MigrationLogEntry(timestamp=datetime.now(), type=entry_type, data=data))
