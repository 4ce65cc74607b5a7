"""
Domain service: all-or-nothing batch import of survey locations.

A batch moves through IDLE -> VALIDATING -> (COMMITTING | REJECTED) -> IDLE.
The first invalid record rejects the whole batch; a valid batch is handed to
the store as a single bulk write. Nothing is retried and the pending batch is
always discarded once submitted, whatever the outcome.
"""
from typing import Any, Iterable, List, Optional, Protocol
import logging
import math

from app.domain.exceptions import (
    ImportFailed,
    ImportInProgress,
    InvalidProjectCode,
    MissingOrMalformedField,
)
from app.domain.models import (
    ImportCandidate,
    ImportResult,
    ImportState,
    LocationWrite,
    ProjectContext,
)
from app.infrastructure.location_store_client import LocationStoreError

logger = logging.getLogger(__name__)


class LocationWriter(Protocol):
    """Write side of the location store."""

    async def insert_locations_many(self, values: List[LocationWrite]) -> List[int]:
        ...


def _coerce_coordinate(value: Any, field: str, row: int) -> float:
    if value is None or isinstance(value, bool):
        raise MissingOrMalformedField(
            f"Row {row}: '{field}' is required",
            details={"row": row, "field": field},
        )
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise MissingOrMalformedField(
                f"Row {row}: '{field}' is required",
                details={"row": row, "field": field},
            )
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MissingOrMalformedField(
            f"Row {row}: '{field}' must be numeric, got {value!r}",
            details={"row": row, "field": field},
        )
    if not math.isfinite(number):
        raise MissingOrMalformedField(
            f"Row {row}: '{field}' must be a finite number, got {value!r}",
            details={"row": row, "field": field},
        )
    return number


def validate_candidate(
    candidate: ImportCandidate,
    context: ProjectContext,
    row: int,
) -> LocationWrite:
    """
    Validate one candidate and stamp it with the active project's id.

    Checks run in order: project code, location name, x and y, then remarks.

    Args:
        candidate: Untrusted input record
        context: Active project
        row: 1-based position of the record in the batch, for messages

    Returns:
        LocationWrite ready for the bulk insert

    Raises:
        InvalidProjectCode: If the record belongs to another project
        MissingOrMalformedField: If the name is blank, x/y are not numeric
            or remarks are not text
    """
    if candidate.project_code != context.project_code:
        raise InvalidProjectCode(
            "File contains invalid project code!",
            details={
                "row": row,
                "project_code": candidate.project_code,
                "expected": context.project_code,
            },
        )

    name = candidate.location_name
    if name is not None and not isinstance(name, str):
        raise MissingOrMalformedField(
            f"Row {row}: 'location_name' must be text, got {name!r}",
            details={"row": row, "field": "location_name"},
        )
    name = (name or "").strip()
    if not name:
        raise MissingOrMalformedField(
            f"Row {row}: 'location_name' is required",
            details={"row": row, "field": "location_name"},
        )
    x = _coerce_coordinate(candidate.x, "x", row)
    y = _coerce_coordinate(candidate.y, "y", row)
    if candidate.remarks is not None and not isinstance(candidate.remarks, str):
        raise MissingOrMalformedField(
            f"Row {row}: 'remarks' must be text, got {candidate.remarks!r}",
            details={"row": row, "field": "remarks"},
        )

    return LocationWrite(
        location_name=name,
        x=x,
        y=y,
        remarks=candidate.remarks,
        project_id=context.id,
    )


class BatchImportPipeline:
    """
    Validates and commits one batch of import candidates at a time.

    The ``processing`` flag is the only concurrency guard: a new batch is
    refused while one is validating or committing.
    """

    def __init__(self, store: LocationWriter):
        """
        Initialize the pipeline.

        Args:
            store: Write boundary receiving the bulk insert
        """
        self.store = store
        self.state = ImportState.IDLE
        self._pending: List[ImportCandidate] = []

    @property
    def processing(self) -> bool:
        return self.state in (ImportState.VALIDATING, ImportState.COMMITTING)

    @property
    def pending(self) -> List[ImportCandidate]:
        return list(self._pending)

    def _transition(self, state: ImportState) -> None:
        logger.debug(f"Import pipeline: {self.state.value} -> {state.value}")
        self.state = state

    def _ensure_idle(self) -> None:
        if self.processing:
            raise ImportInProgress(
                "An import is already being processed for this project",
                details={"state": self.state.value},
            )

    def load(self, candidates: Iterable[ImportCandidate]) -> None:
        """Replace the pending batch with new candidates."""
        self._ensure_idle()
        self._pending = list(candidates)
        logger.info(f"Loaded {len(self._pending)} import candidates")

    def clear(self) -> None:
        """Discard the pending batch."""
        self._ensure_idle()
        self._pending = []

    async def submit(self, context: ProjectContext) -> ImportResult:
        """
        Validate the pending batch and commit it as one bulk write.

        Args:
            context: Active project; its id is stamped on every record

        Returns:
            ImportResult describing the inserted records

        Raises:
            ImportInProgress: If a batch is already processing
            InvalidProjectCode: If any record belongs to another project
            MissingOrMalformedField: If any record lacks a name or numeric x/y,
                or the batch is empty
            ImportFailed: If the store rejects the write
        """
        self._ensure_idle()
        self._transition(ImportState.VALIDATING)
        try:
            values = self._validate(context)

            self._transition(ImportState.COMMITTING)
            try:
                location_ids = await self.store.insert_locations_many(values)
            except LocationStoreError as e:
                logger.error(f"Bulk insert of {len(values)} locations for project "
                             f"{context.id} failed: {e}")
                raise ImportFailed(
                    "Unable to add datasets",
                    details={"project_id": context.id, "reason": e.message},
                ) from e

            logger.info(f"Inserted {len(values)} locations for project {context.id}")
            return ImportResult(
                project_id=context.id,
                inserted_count=len(values),
                location_ids=location_ids,
            )
        finally:
            self._pending = []
            self._transition(ImportState.IDLE)

    def _validate(self, context: ProjectContext) -> List[LocationWrite]:
        try:
            if not self._pending:
                raise MissingOrMalformedField("Import batch contains no records")
            return [
                validate_candidate(candidate, context, row)
                for row, candidate in enumerate(self._pending, start=1)
            ]
        except (InvalidProjectCode, MissingOrMalformedField) as e:
            self._transition(ImportState.REJECTED)
            logger.warning(f"Rejected import batch of {len(self._pending)} records "
                           f"for project {context.id}: {e.message}")
            raise

    async def run(
        self,
        candidates: Iterable[ImportCandidate],
        context: ProjectContext,
    ) -> ImportResult:
        """Load a batch and submit it immediately."""
        self.load(candidates)
        return await self.submit(context)


class ImportPipelineRegistry:
    """
    Keeps one import pipeline per project while a batch is in flight.

    A pipeline is bound to its store when created. Idle pipelines are released
    after each batch so the registry only holds projects that are importing.
    """

    def __init__(self):
        self._pipelines: dict[int, BatchImportPipeline] = {}

    def __len__(self) -> int:
        return len(self._pipelines)

    def get(self, project_id: int, store: LocationWriter) -> BatchImportPipeline:
        pipeline: Optional[BatchImportPipeline] = self._pipelines.get(project_id)
        if pipeline is None:
            pipeline = BatchImportPipeline(store)
            self._pipelines[project_id] = pipeline
        return pipeline

    def is_processing(self, project_id: int) -> bool:
        pipeline = self._pipelines.get(project_id)
        return pipeline is not None and pipeline.processing

    def release(self, project_id: int) -> None:
        """Forget the project's pipeline unless it is busy or holds a batch."""
        pipeline = self._pipelines.get(project_id)
        if pipeline is not None and not pipeline.processing and not pipeline.pending:
            del self._pipelines[project_id]
