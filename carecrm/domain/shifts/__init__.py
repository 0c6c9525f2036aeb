"""Shifts domain - scheduling, conflict detection, lifecycle and cost of shifts"""

from .router import router

__all__ = ["router"]
