"""Shift cost calculation"""

from datetime import datetime

SECONDS_PER_HOUR = 3600.0


def shift_hours(start_time: datetime, end_time: datetime) -> float:
    """Scheduled duration in hours"""
    return (end_time - start_time).total_seconds() / SECONDS_PER_HOUR


def calculate_total_cost(start_time: datetime, end_time: datetime, hourly_rate: float) -> float:
    """
    Total cost of a shift: duration in hours times the hourly rate.

    Not rounded here; responses round to cents when rendering.
    """
    return shift_hours(start_time, end_time) * float(hourly_rate)


def round_currency(amount: float) -> float:
    return round(amount, 2)
