"""Export and import of category rules and overrides."""

import json
import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from finledger.db.sqlite import Database
from finledger.errors import RuleBackupError
from finledger.models import CategoryOverride, CategoryRule

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = "1.1.0"


class BackupMetadata(BaseModel):
    exported_at: datetime
    version: str = BACKUP_FORMAT_VERSION
    total_rules: int = 0
    total_overrides: int = 0


class RuleBackup(BaseModel):
    """On-disk layout of a rule backup file."""

    metadata: BackupMetadata
    category_rules: list[CategoryRule] = Field(default_factory=list)
    category_overrides: list[CategoryOverride] = Field(default_factory=list)

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.category_rules and not self.category_overrides:
            raise ValueError("no category rules or overrides found")
        return self


class ImportStats(BaseModel):
    valid: bool = True
    rules_imported: int = 0
    rules_updated: int = 0
    rules_skipped: int = 0
    overrides_imported: int = 0
    overrides_skipped: int = 0


def export_rules(db: Database, path: Path) -> RuleBackup:
    """Write every rule and override to a JSON file."""
    rules = db.get_rules()
    overrides = db.get_overrides()
    if not rules and not overrides:
        raise RuleBackupError("Nothing to export: no category rules or overrides")

    backup = RuleBackup(
        metadata=BackupMetadata(
            exported_at=datetime.now(),
            total_rules=len(rules),
            total_overrides=len(overrides),
        ),
        category_rules=rules,
        category_overrides=overrides,
    )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(backup.model_dump_json(indent=2))
    except OSError as e:
        raise RuleBackupError(f"Export failed: {e}") from e

    logger.info(f"Exported {len(rules)} rules and {len(overrides)} overrides to {path}")
    return backup


def load_backup(path: Path) -> RuleBackup:
    """Read and validate a backup file."""
    if not path.exists():
        raise RuleBackupError(f"Backup file not found: {path}")
    try:
        return RuleBackup.model_validate(json.loads(path.read_text()))
    except json.JSONDecodeError as e:
        raise RuleBackupError(f"Invalid backup file: not valid JSON ({e})") from e
    except ValidationError as e:
        raise RuleBackupError(f"Invalid backup file: {e}") from e


def import_rules(
    db: Database,
    path: Path,
    replace_existing: bool = False,
    validate_only: bool = False,
) -> ImportStats:
    """
    Import rules and overrides from a backup file.

    Rules are matched to existing ones by pattern (case-insensitive). An
    existing rule is skipped unless `replace_existing` is set, in which case
    it is updated in place. Overrides follow the same policy keyed by hash,
    and an imported override is applied to the ledger row it points at.
    """
    backup = load_backup(path)
    stats = ImportStats()
    if validate_only:
        return stats

    with db.transaction():
        existing_rules = {rule.pattern.strip().upper(): rule for rule in db.get_rules()}
        for rule in backup.category_rules:
            existing = existing_rules.get(rule.pattern.strip().upper())
            if existing and not replace_existing:
                stats.rules_skipped += 1
                continue
            if existing:
                db.update_rule(existing.id, rule.category, rule.priority, rule.enabled)
                stats.rules_updated += 1
            else:
                existing_rules[rule.pattern.strip().upper()] = db.add_rule(
                    rule.pattern, rule.category, rule.priority, rule.enabled
                )
                stats.rules_imported += 1

        existing_hashes = {o.content_hash for o in db.get_overrides()}
        for override in backup.category_overrides:
            if override.content_hash in existing_hashes and not replace_existing:
                stats.overrides_skipped += 1
                continue
            db.set_override(override)
            db.update_category_by_hash(override.content_hash, override.override_category)
            existing_hashes.add(override.content_hash)
            stats.overrides_imported += 1

    logger.info(
        f"Rules imported: {stats.rules_imported}, updated: {stats.rules_updated}, skipped: {stats.rules_skipped}; "
        f"overrides imported: {stats.overrides_imported}, skipped: {stats.overrides_skipped}"
    )
    return stats
