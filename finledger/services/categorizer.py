"""Rule-based transaction categorization service."""

import logging
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finledger.db.sqlite import Database
from finledger.errors import CategorizationFault
from finledger.models import CategoryOverride, CategoryRule, Transaction
from finledger.taxonomy import DEFAULT_RULES, KEYWORD_SCAN_ORDER, OTHER

logger = logging.getLogger(__name__)


class RuleSet(BaseModel):
    """
    Immutable snapshot of everything categorization depends on.

    Rules are kept in evaluation order (priority desc, id asc) and only
    enabled rules are retained. Overrides map a content hash to a category.
    """

    model_config = ConfigDict(frozen=True)

    rules: tuple[CategoryRule, ...] = ()
    overrides: Mapping[str, str] = Field(default_factory=lambda: MappingProxyType({}))
    keywords: tuple[tuple[str, tuple[str, ...]], ...] = KEYWORD_SCAN_ORDER

    @field_validator("rules", mode="after")
    @classmethod
    def _order_rules(cls, value):
        return tuple(sorted((rule for rule in value if rule.enabled), key=lambda rule: rule.sort_key))

    @field_validator("overrides", mode="after")
    @classmethod
    def _freeze_overrides(cls, value):
        return MappingProxyType(dict(value))

    @classmethod
    def build(
        cls,
        rules: list[CategoryRule] | None = None,
        overrides: list[CategoryOverride] | None = None,
    ) -> "RuleSet":
        """Create a snapshot from repository records."""
        return cls(
            rules=rules or [],
            overrides={o.content_hash: o.override_category for o in overrides or []},
        )


def categorize(description: str, rule_set: RuleSet, content_hash: str | None = None) -> str:
    """
    Resolve a description to a category code. First match wins:

    1. Override for the content hash, returned verbatim
    2. Enabled user rules, priority desc then id asc (case-insensitive substring)
    3. Built-in keyword sets in taxonomy order
    4. OTHER

    Never raises: a fault while evaluating falls back to OTHER and is logged.
    """
    try:
        return _resolve(description, rule_set, content_hash)
    except CategorizationFault as e:
        logger.warning(f"{e}; using {OTHER}")
        return OTHER


def _resolve(description: str, rule_set: RuleSet, content_hash: str | None) -> str:
    if content_hash and content_hash in rule_set.overrides:
        return rule_set.overrides[content_hash]

    try:
        upper_desc = description.upper()

        for rule in rule_set.rules:
            pattern = rule.pattern.strip().upper()
            if pattern and pattern in upper_desc:
                return rule.category

        for code, keywords in rule_set.keywords:
            if any(keyword in upper_desc for keyword in keywords):
                return code
    except (AttributeError, TypeError) as e:
        raise CategorizationFault(f"Could not categorize {description!r}: {e}") from e

    return OTHER


class Categorizer:
    """Loads rule snapshots from the repository."""

    def __init__(self, db: Database):
        self.db = db

    def reload(self) -> RuleSet:
        """Read rules and overrides and return a fresh snapshot."""
        rule_set = RuleSet.build(rules=self.db.get_rules(enabled_only=True), overrides=self.db.get_overrides())
        logger.debug(f"Loaded rule set: {len(rule_set.rules)} rules, {len(rule_set.overrides)} overrides")
        return rule_set

    refresh = reload


def apply_override(db: Database, transaction_id: int, category: str) -> Transaction:
    """
    Manually recategorize a transaction.

    The override is keyed by content hash so it survives re-ingestion of the
    same line item under a new row id.
    """
    txn = db.get_transaction_by_id(transaction_id)
    if txn is None:
        raise ValueError(f"Transaction {transaction_id} not found")

    with db.transaction():
        db.set_override(
            CategoryOverride(
                content_hash=txn.content_hash,
                original_category=txn.category,
                override_category=category,
            )
        )
        db.update_transaction_category(transaction_id, category)

    logger.info(f"Override: transaction {transaction_id} {txn.category} -> {category}")
    return txn.model_copy(update={"category": category})


def recategorize_transactions(db: Database, rule_set: RuleSet) -> int:
    """
    Re-run categorization over the whole ledger with one snapshot.

    Rows with an override only ever move to the override value.
    Returns the number of rows whose category changed.
    """
    updates: list[tuple[int, str]] = []
    for txn in db.get_all_transactions():
        new_category = categorize(txn.description, rule_set, txn.content_hash)
        if new_category != txn.category:
            updates.append((txn.id, new_category))

    if updates:
        with db.transaction():
            db.update_transaction_categories(updates)

    logger.info(f"Recategorized {len(updates)} transactions")
    return len(updates)


def seed_default_rules(db: Database) -> int:
    """Populate an empty rule store with the starter rules. Returns the number added."""
    if db.get_rules():
        logger.info("Rule store is not empty, skipping default rules")
        return 0

    with db.transaction():
        for pattern, category, priority in DEFAULT_RULES:
            db.add_rule(pattern, category, priority)
    logger.info(f"Seeded {len(DEFAULT_RULES)} default rules")
    return len(DEFAULT_RULES)
