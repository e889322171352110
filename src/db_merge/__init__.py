"""
Database merge engine

Aligns the schema of a target database with a source database and merges
the source's rows into the target under a conflict policy, leaving a
backup manifest and a merge report behind.

Components:
- connections: Pooled, validated database handles
- schema: Catalog inspection, schema diffing and additive reconciliation
- merge: Row merging and conflict resolution
- backup: Pre-merge backup manifest
- report: Merge report generation and formatting
- orchestrator: Top-level merge run

Usage:
    from src.db_merge.orchestrator import MergeOrchestrator
    from src.db_merge.models import ConflictPolicy, MergeOptions
"""

__version__ = "1.0.0"
__all__ = ["backup", "connections", "merge", "orchestrator", "report", "schema"]
