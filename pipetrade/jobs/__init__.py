"""
Background Jobs Module

Handles scheduled tasks for:
- Quotation expiry
"""

from pipetrade.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from pipetrade.jobs.quotation_jobs import expire_quotations

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "expire_quotations",
]
