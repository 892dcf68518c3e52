"""Domain service layer package."""

from __future__ import annotations

from .tasks import TaskService

__all__ = ["TaskService"]
