"""Core types and DTOs for the skills admission queue."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DeliveryStatus(str, Enum):
    """Terminal outcome reported back to the originating request."""

    SUCCESS = "success"
    FAILURE = "failure"


class JobState(str, Enum):
    """Lifecycle of a job inside the scheduler."""

    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    DELIVERED = "delivered"


# ---------------------------------------------------------------------------
# Delivery: what the responder receives
# ---------------------------------------------------------------------------


@dataclass
class SkillDelivery:
    """Terminal outcome of a job. Always carries a usable skill list."""

    skills: list[str]
    status: DeliveryStatus = DeliveryStatus.SUCCESS
    error: str = ""  # Empty on success
    retry_count: int = 0
    job_id: str = ""

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


# ---------------------------------------------------------------------------
# Job: one unit of work submitted by one inbound request
# ---------------------------------------------------------------------------


@dataclass
class SkillJob:
    """A job title waiting for (or undergoing) a completion attempt.

    The responder is a one-shot future owned by the job until it is
    delivered; it travels with the job across re-queues.
    """

    title: str
    responder: asyncio.Future
    retry_count: int = 0
    state: JobState = JobState.QUEUED
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def deliver(self, delivery: SkillDelivery) -> bool:
        """Resolve the responder. Returns False if it was already resolved."""
        if self.responder.done():
            return False
        delivery.job_id = self.job_id
        delivery.retry_count = self.retry_count
        self.responder.set_result(delivery)
        self.state = JobState.DELIVERED
        return True


# ---------------------------------------------------------------------------
# Scheduler config
# ---------------------------------------------------------------------------


@dataclass
class SchedulerConfig:
    """Spacing and retry parameters for the admission queue."""

    min_interval: float = 1.0  # Minimum seconds between attempt starts
    max_retries: int = 3  # Rate-limit retries before giving up
    base_retry_delay: float = 1.0  # Base delay for exponential backoff (seconds)
