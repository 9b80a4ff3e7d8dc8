# fleetdesk/core/summary.py

from typing import Union

from fleetdesk.models import (
    ImportRowError,
    ImportSummary,
    ImportType,
    ImportWarning,
    RowOutcome,
)

RowResult = Union[RowOutcome, ImportRowError]


class ImportSummaryAggregator:
    """Running totals for one import run."""

    def __init__(self, import_type: ImportType):
        self.import_type = import_type
        self.total = 0
        self.success = 0
        self.failed = 0
        self.inserted = 0
        self.updated = 0
        self.errors: list[ImportRowError] = []
        self.warnings: list[ImportWarning] = []
        self.outcomes: list[RowOutcome] = []
        self.match_strategies: dict[str, int] = {}

    def add(self, result: RowResult) -> None:
        """Fold one row's result into the totals. Each row is added exactly once."""
        self.total += 1

        if isinstance(result, ImportRowError):
            self.failed += 1
            self.errors.append(result)
            return

        self.success += 1
        if result.action == "inserted":
            self.inserted += 1
        else:
            self.updated += 1
        self.outcomes.append(result)
        if result.match_strategy is not None:
            self.match_strategies[result.match_strategy] = self.match_strategies.get(result.match_strategy, 0) + 1

    def warn(self, warning: ImportWarning) -> None:
        self.warnings.append(warning)

    def build(self, notified_owners: int = 0) -> ImportSummary:
        return ImportSummary(
            import_type=self.import_type,
            total=self.total,
            success=self.success,
            failed=self.failed,
            inserted=self.inserted,
            updated=self.updated,
            errors=list(self.errors),
            warnings=list(self.warnings),
            outcomes=list(self.outcomes),
            match_strategies=dict(self.match_strategies),
            notified_owners=notified_owners,
        )


def cap_errors(errors: list[ImportRowError], limit: int) -> list[dict]:
    """First `limit` errors as plain dicts, for bounded storage."""
    return [error.model_dump() for error in errors[: max(limit, 0)]]
