"""API routes."""

from ecoledger_core.api.routes import (
    ledger,
    notifications,
    reports,
    rewards,
    stats,
    tasks,
    users,
)

__all__ = ["ledger", "notifications", "reports", "rewards", "stats", "tasks", "users"]
