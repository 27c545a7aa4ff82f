"""
Background tasks.

Dramatiq task definitions. Configure the broker before importing.
"""

from jobs.tasks.commission_tasks import (
    distribute_sale_commissions,
    release_sale_commissions,
)

__all__ = [
    "distribute_sale_commissions",
    "release_sale_commissions",
]
