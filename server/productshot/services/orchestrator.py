# Generation orchestrator: credential pre-check → tasks one at a time → results.
# One failed task never aborts the rest of the batch; no retries here.


import asyncio
import time

import httpx
import structlog
from opentelemetry import trace

from productshot.config import Settings
from productshot.pipeline.tasks import (
    FailureCode,
    GenerationResult,
    GenerationTask,
    TaskStatus,
)
from productshot.providers.protocol import ImageGenerator, MalformedResponseError
from productshot.services.metrics import StudioMetrics

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class GenerationOrchestrator:
    """Runs GenerationTasks against one ImageGenerator, sequentially."""

    def __init__(
        self,
        generator: ImageGenerator,
        settings: Settings,
        metrics: StudioMetrics | None = None,
    ) -> None:
        self._generator = generator
        self._settings = settings
        self._metrics = metrics

    async def run(
        self, tasks: list[GenerationTask], credential: str | None
    ) -> list[GenerationResult]:
        """Execute tasks in order and return one result per task, same order.

        Raises MissingCredentialError / InvalidCredentialError before any
        upstream call when the credential is absent or malformed.
        """
        key = self._generator.validate_credential(credential)

        with tracer.start_as_current_span("generation_batch") as span:
            span.set_attribute("tasks", len(tasks))
            span.set_attribute("provider", self._generator.name)
            if self._metrics:
                self._metrics.record_batch()

            results = []
            for index, task in enumerate(tasks):
                result = await self._run_task(task, key, index)
                results.append(result)

            failed = sum(1 for r in results if not r.ok)
            span.set_attribute("failed", failed)
            logger.info(
                "generation_batch_complete",
                tasks=len(tasks),
                succeeded=len(tasks) - failed,
                failed=failed,
            )
            return results

    async def run_one(self, task: GenerationTask, credential: str | None) -> GenerationResult:
        """Single-image actions: the one-task case of run()."""
        (result,) = await self.run([task], credential)
        return result

    async def _run_task(self, task: GenerationTask, key: str, index: int) -> GenerationResult:
        timeout_s = self._settings.upstream_timeout_seconds
        start = time.perf_counter()

        with tracer.start_as_current_span("generation_task") as span:
            span.set_attribute("label", task.label)
            span.set_attribute("index", index)

            try:
                result = await asyncio.wait_for(self._generator.generate(task, key), timeout_s)
            except (TimeoutError, httpx.TimeoutException):
                result = GenerationResult.failure(
                    task.label,
                    FailureCode.timeout,
                    f"Upstream did not answer within {timeout_s:g}s",
                )
            except httpx.HTTPError as e:
                result = GenerationResult.failure(
                    task.label,
                    FailureCode.transport,
                    f"Could not reach the image service: {e}",
                )
            except MalformedResponseError as e:
                result = GenerationResult.failure(task.label, FailureCode.malformed, str(e))
            except Exception as e:
                logger.exception("generation_task_unexpected_error", label=task.label, index=index)
                result = GenerationResult.failure(
                    task.label,
                    FailureCode.malformed,
                    f"Unexpected response from the image service: {type(e).__name__}",
                )

            result.elapsed_ms = int((time.perf_counter() - start) * 1000)
            task.status = result.status
            span.set_attribute("status", str(result.status))

        if result.status is TaskStatus.failed:
            logger.warning(
                "generation_task_failed",
                label=task.label,
                index=index,
                code=result.error_code,
                error=result.message,
                time_ms=result.elapsed_ms,
            )
        else:
            logger.info(
                "generation_task_succeeded",
                label=task.label,
                index=index,
                time_ms=result.elapsed_ms,
            )
        if self._metrics:
            self._metrics.record_task(result.elapsed_ms, result.error_code)
        return result
