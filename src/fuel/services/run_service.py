"""Append-only execution history for tasks."""

from datetime import datetime

from pydantic import ValidationError

from fuel.domain.models import Run, utcnow
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.exceptions import FieldValidationError
from fuel.infrastructure.id_generator import IdGenerator
from fuel.infrastructure.logger import get_logger
from fuel.services.identifier_resolver import IdentifierResolver

logger = get_logger(__name__)

DEFAULT_OUTPUT_MAX_BYTES = 10240
TRUNCATION_MARKER = "... [truncated] ..."


def truncate_head(text: str | None, max_bytes: int) -> str | None:
    """Keep the first ``max_bytes`` bytes of UTF-8 encoded text."""
    if text is None:
        return None
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def truncate_tail(text: str | None, max_bytes: int) -> str | None:
    """Keep the last ``max_bytes`` bytes, prefixed with a truncation marker."""
    if text is None:
        return None
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return TRUNCATION_MARKER + encoded[-max_bytes:].decode("utf-8", errors="ignore")


class RunService:
    """Record and read execution attempts against tasks.

    Runs can only be appended. They are keyed by the task's full ID and are
    kept when the task is deleted.
    """

    def __init__(
        self,
        store: TaskStore,
        id_generator: IdGenerator | None = None,
        resolver: IdentifierResolver | None = None,
        output_max_bytes: int = DEFAULT_OUTPUT_MAX_BYTES,
    ):
        self.store = store
        self.id_generator = id_generator or IdGenerator()
        self.resolver = resolver or IdentifierResolver(store)
        self.output_max_bytes = output_max_bytes

    async def log_run(
        self,
        task: str,
        agent: str | None = None,
        model: str | None = None,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
        exit_code: int | None = None,
        output: str | None = None,
        cost_usd: float | None = None,
        session_id: str | None = None,
    ) -> Run:
        """Append a run to a task's history.

        Args:
            task: Full or partial task ID
            output: Agent output, truncated to ``output_max_bytes``

        Returns:
            The stored run

        Raises:
            NotFoundError: Task does not resolve
            FieldValidationError: Negative cost or other malformed value
        """
        resolved = await self.resolver.resolve_task(task)
        run_id = self.id_generator.for_run(set(await self.store.list_run_ids()))

        try:
            run = Run(
                run_id=run_id,
                task_id=resolved.id,
                agent=agent,
                model=model,
                started_at=started_at or utcnow(),
                ended_at=ended_at,
                exit_code=exit_code,
                output=truncate_head(output, self.output_max_bytes),
                cost_usd=cost_usd,
                session_id=session_id,
            )
        except ValidationError as e:
            raise FieldValidationError(f"Invalid run for task {resolved.id}: {e}") from e

        await self.store.append_run(run)
        logger.info("run_logged", run_id=run.run_id, task_id=resolved.id, exit_code=exit_code)
        return run

    async def list_runs(self, task: str) -> list[Run]:
        """List a task's runs, oldest first."""
        resolved = await self.resolver.resolve_task(task)
        return await self.store.list_runs(resolved.id)

    async def latest_run(self, task: str) -> Run | None:
        runs = await self.list_runs(task)
        return runs[-1] if runs else None
