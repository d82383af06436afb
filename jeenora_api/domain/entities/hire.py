"""Lightweight views of Hire portal records used to build notifications."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class JobSummary:
    """Job posting attributes referenced by candidate notifications."""

    id: str
    title: str
    location: str
    category: str
    company: str | None = None


@dataclass
class PlanSummary:
    """Subscription plan attributes referenced by payment notifications."""

    name: str
    price: float | None = None


__all__ = ["JobSummary", "PlanSummary"]
