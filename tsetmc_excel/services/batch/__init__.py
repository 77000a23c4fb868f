"""
Batch module.

Runs one polling tick and decides whether its batch is committed.
"""

from tsetmc_excel.services.batch.orchestrator import BatchOrchestrator

__all__ = ["BatchOrchestrator"]
