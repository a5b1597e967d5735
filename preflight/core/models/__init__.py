"""
Domain models — Pydantic types for ledger entries and reports.

All models are re-exported here for convenient access:

    from preflight.core.models import PackageEntry, OperationReport, CheckReport
"""

from preflight.core.models.ledger import (
    ConfigBackupEntry,
    DockerTestEntry,
    GroupMembershipEntry,
    KeyringEntry,
    LedgerEntry,
    PackageEntry,
    RepositoryEntry,
    UnknownEntry,
    parse_entry,
)
from preflight.core.models.report import (
    CheckReport,
    CheckResult,
    OperationReport,
    ReportMessage,
)

__all__ = [
    # report.py
    "CheckReport",
    "CheckResult",
    # ledger.py
    "ConfigBackupEntry",
    "DockerTestEntry",
    "GroupMembershipEntry",
    "KeyringEntry",
    "LedgerEntry",
    "OperationReport",
    "PackageEntry",
    "RepositoryEntry",
    "ReportMessage",
    "UnknownEntry",
    "parse_entry",
]
