"""Admission Queue & Retry Scheduler.

Serializes every call into the completion client:
  1. Accepts jobs from request handlers (``submit`` never blocks)
  2. Keeps them in a FIFO queue drained by a single worker task
  3. Spaces attempt starts at least ``min_interval`` apart
  4. On a rate-limit error, waits ``base_retry_delay * 2**retry_count`` and
     appends the job to the tail of the queue with ``retry_count + 1``
  5. Delivers fallback skills as a failure once retries are exhausted or on
     any other upstream error

Every submitted job is delivered exactly once. Because retried jobs go to
the tail, a job submitted later can be delivered before a job that is
still retrying.

Usage:
    scheduler = SkillScheduler(MistralCompletionClient.from_settings())

    delivery = await scheduler.suggest("Registered Nurse")
    if delivery.ok:
        ...

    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable

from app.core.config import settings
from app.core.metrics import COMPLETION_ATTEMPTS, JOB_DELIVERIES, JOB_RETRIES, QUEUE_DEPTH
from app.data.skills import fallback_skills
from app.gateway.completion_client import (
    BaseCompletionClient,
    CompletionError,
    MistralCompletionClient,
    RateLimitedError,
)
from app.gateway.rate_limiter import IntervalLimiter
from app.gateway.types import (
    DeliveryStatus,
    JobState,
    SchedulerConfig,
    SkillDelivery,
    SkillJob,
)

logger = logging.getLogger(__name__)


def retry_delay(retry_count: int, base_delay: float = 1.0) -> float:
    """Backoff before re-queueing a job that has been retried ``retry_count`` times."""
    return base_delay * (2**retry_count)


class SkillScheduler:
    """Single-worker admission queue in front of a rate-limited completion API.

    One instance per process; tests construct their own. The worker task is
    the only consumer of the queue, so at most one completion call is ever
    in flight.
    """

    def __init__(
        self,
        client: BaseCompletionClient,
        config: SchedulerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            client: Completion client performing one remote call per attempt
            config: Spacing and retry parameters
            clock: Monotonic clock used for spacing
            sleep: Coroutine used for the spacing and backoff waits
        """
        self.client = client
        self.config = config or SchedulerConfig()
        self.limiter = IntervalLimiter(self.config.min_interval, clock=clock)
        self._sleep = sleep

        self._queue: asyncio.Queue[SkillJob] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._in_flight: SkillJob | None = None
        self._closed = False

        self._attempts = 0
        self._retries = 0
        self._delivered = {status.value: 0 for status in DeliveryStatus}

    # -- Lifecycle ---------------------------------------------------------

    @property
    def processing(self) -> bool:
        """True while a job is in flight."""
        return self._in_flight is not None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the drain worker if it is not already running."""
        if self._closed:
            raise RuntimeError("Scheduler is stopped")
        if not self.running:
            self._worker = asyncio.get_running_loop().create_task(self._run(), name="skill-scheduler")
            logger.info(
                "Skill scheduler started (min_interval=%.2fs, max_retries=%d, base_delay=%.2fs)",
                self.config.min_interval,
                self.config.max_retries,
                self.config.base_retry_delay,
            )

    async def stop(self) -> None:
        """Stop the worker and deliver fallback skills to every pending job."""
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

        pending = 0
        while not self._queue.empty():
            job = self._queue.get_nowait()
            if self._deliver_failure(job, "Scheduler stopped"):
                pending += 1
        QUEUE_DEPTH.set(0)

        if pending:
            logger.warning("Skill scheduler stopped with %d pending jobs", pending)
        else:
            logger.info("Skill scheduler stopped")

    # -- Submission --------------------------------------------------------

    def submit(self, title: str) -> asyncio.Future:
        """Queue a job title and return the future its delivery resolves.

        Returns immediately; the caller awaits the future.
        """
        if self._closed:
            raise RuntimeError("Scheduler is stopped")

        job = SkillJob(title=title, responder=asyncio.get_running_loop().create_future())
        self._enqueue(job)
        logger.debug("Submitted job %s for %r", job.job_id, title, extra={"job_id": job.job_id})
        self.start()
        return job.responder

    async def suggest(self, title: str) -> SkillDelivery:
        """Submit a job title and wait for its delivery."""
        # Shielded so a dropped client connection does not cancel the responder
        return await asyncio.shield(self.submit(title))

    def _enqueue(self, job: SkillJob) -> None:
        job.state = JobState.QUEUED
        self._queue.put_nowait(job)
        QUEUE_DEPTH.set(self._queue.qsize())

    # -- Drain -------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            QUEUE_DEPTH.set(self._queue.qsize())
            self._in_flight = job
            try:
                await self._process(job)
            except asyncio.CancelledError:
                self._deliver_failure(job, "Scheduler stopped")
                raise
            except Exception as e:
                # The worker must outlive any single job
                logger.exception("Scheduler error on job %s (%r)", job.job_id, job.title, extra={"job_id": job.job_id})
                self._deliver_failure(job, f"{type(e).__name__}: {e}")
            finally:
                self._in_flight = None
                self._queue.task_done()

    async def _process(self, job: SkillJob) -> None:
        job.state = JobState.IN_FLIGHT
        log_ctx = {"job_id": job.job_id}

        wait = self.limiter.wait_time()
        if wait > 0:
            logger.debug("Spacing wait %.3fs before job %s", wait, job.job_id, extra=log_ctx)
            await self._sleep(wait)

        self.limiter.record_attempt()
        self._attempts += 1

        try:
            skills = await self.client.complete(job.title)
        except RateLimitedError as e:
            COMPLETION_ATTEMPTS.labels(outcome="rate_limited").inc()
            if job.retry_count < self.config.max_retries:
                await self._retry(job)
                return
            logger.warning(
                "Job %s for %r exhausted %d retries: %s",
                job.job_id,
                job.title,
                self.config.max_retries,
                e,
                extra=log_ctx,
            )
            self._deliver_failure(job, f"Retries exhausted: {e}")
            return
        except CompletionError as e:
            COMPLETION_ATTEMPTS.labels(outcome="upstream_error").inc()
            logger.error("Upstream error for job %s (%r): %s", job.job_id, job.title, e, extra=log_ctx)
            self._deliver_failure(job, str(e))
            return
        except Exception as e:
            COMPLETION_ATTEMPTS.labels(outcome="upstream_error").inc()
            logger.exception("Unexpected error for job %s (%r)", job.job_id, job.title, extra=log_ctx)
            self._deliver_failure(job, f"{type(e).__name__}: {e}")
            return

        COMPLETION_ATTEMPTS.labels(outcome="success").inc()
        self._deliver(job, SkillDelivery(skills=skills))

    async def _retry(self, job: SkillJob) -> None:
        """Back off, then append the job to the tail with its retry count bumped."""
        delay = retry_delay(job.retry_count, self.config.base_retry_delay)
        job.state = JobState.RETRYING
        logger.info(
            "Rate limit hit for job %s, retrying in %.1fs (attempt %d/%d)",
            job.job_id,
            delay,
            job.retry_count + 1,
            self.config.max_retries,
            extra={"job_id": job.job_id},
        )
        await self._sleep(delay)

        job.retry_count += 1
        self._retries += 1
        JOB_RETRIES.inc()
        self._enqueue(job)

    # -- Delivery ----------------------------------------------------------

    def _deliver(self, job: SkillJob, delivery: SkillDelivery) -> bool:
        if not job.deliver(delivery):
            return False
        self._delivered[delivery.status.value] += 1
        JOB_DELIVERIES.labels(status=delivery.status.value).inc()
        logger.info(
            "Delivered job %s (%s, %d skills, %d retries)",
            job.job_id,
            delivery.status.value,
            len(delivery.skills),
            job.retry_count,
            extra={"job_id": job.job_id},
        )
        return True

    def _deliver_failure(self, job: SkillJob, error: str) -> bool:
        return self._deliver(
            job,
            SkillDelivery(
                skills=fallback_skills(job.title),
                status=DeliveryStatus.FAILURE,
                error=error,
            ),
        )

    # -- Monitoring --------------------------------------------------------

    def _in_flight_status(self) -> dict | None:
        job = self._in_flight
        if job is None:
            return None
        return {
            "job_id": job.job_id,
            "state": job.state.value,
            "retry_count": job.retry_count,
        }

    def get_status(self) -> dict:
        """Queue and delivery counters for the health endpoint."""
        return {
            "running": self.running,
            "queued": self._queue.qsize(),
            "processing": self.processing,
            "in_flight": self._in_flight_status(),
            "attempts": self._attempts,
            "retries": self._retries,
            "delivered": dict(self._delivered),
            **self.limiter.get_stats(),
        }


def build_scheduler() -> SkillScheduler:
    """Construct the process-wide scheduler from settings."""
    config = SchedulerConfig(
        min_interval=settings.min_request_interval,
        max_retries=settings.max_retries,
        base_retry_delay=settings.base_retry_delay,
    )
    return SkillScheduler(MistralCompletionClient.from_settings(), config)
