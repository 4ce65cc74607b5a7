"""
Unit tests for the batch import pipeline.

Tests cover:
- Whole-batch rejection on project code mismatch
- Whole-batch rejection on blank names and malformed coordinates
- Single bulk write stamped with the active project id
- Store failures and state reset
- Busy flag handling
"""
import asyncio
import logging

import pytest
from unittest.mock import AsyncMock

from app.domain.exceptions import (
    ImportFailed,
    ImportInProgress,
    InvalidProjectCode,
    MissingOrMalformedField,
)
from app.domain.models import ImportCandidate, ImportState, LocationWrite
from app.infrastructure.location_store_client import LocationStoreError
from app.services.domain.location_import import (
    BatchImportPipeline,
    ImportPipelineRegistry,
    validate_candidate,
)


@pytest.fixture
def store():
    mock_store = AsyncMock()
    mock_store.insert_locations_many.return_value = [101, 102, 103]
    return mock_store


@pytest.fixture
def pipeline(store) -> BatchImportPipeline:
    return BatchImportPipeline(store)


# ============================================================
# Candidate Validation Tests
# ============================================================

class TestValidateCandidate:
    """Tests for single record validation."""

    def test_trims_name_and_stamps_project_id(self, project_context):
        candidate = ImportCandidate(project_code="P-001", location_name="  BH-1  ",
                                    x="500000.5", y=2000000, remarks="r")

        write = validate_candidate(candidate, project_context, 1)

        assert write == LocationWrite(location_name="BH-1", x=500000.5, y=2000000.0,
                                      remarks="r", project_id=7)

    def test_project_code_checked_before_fields(self, project_context):
        candidate = ImportCandidate(project_code="P-999", location_name="   ")

        with pytest.raises(InvalidProjectCode):
            validate_candidate(candidate, project_context, 1)

    def test_project_code_is_exact_match(self, project_context):
        candidate = ImportCandidate(project_code="p-001", location_name="A", x=1, y=2)

        with pytest.raises(InvalidProjectCode):
            validate_candidate(candidate, project_context, 1)

    @pytest.mark.parametrize("field,value", [("location_name", 42), ("remarks", 7)])
    def test_non_text_field(self, project_context, field, value):
        fields = {"project_code": "P-001", "location_name": "A", "x": 1, "y": 2, field: value}

        with pytest.raises(MissingOrMalformedField, match=field):
            validate_candidate(ImportCandidate(**fields), project_context, 1)

    def test_numeric_project_code(self, project_context):
        candidate = ImportCandidate(project_code=1, location_name="A", x=1, y=2)

        with pytest.raises(InvalidProjectCode):
            validate_candidate(candidate, project_context, 1)

    @pytest.mark.parametrize("name", [None, "", "   ", "\t\n"])
    def test_blank_name(self, project_context, name):
        candidate = ImportCandidate(project_code="P-001", location_name=name, x=1, y=2)

        with pytest.raises(MissingOrMalformedField, match="location_name"):
            validate_candidate(candidate, project_context, 3)

    @pytest.mark.parametrize("x", [None, "", "  ", "abc", "nan", "inf", True, [1]])
    def test_malformed_x(self, project_context, x):
        candidate = ImportCandidate(project_code="P-001", location_name="A", x=x, y=2)

        with pytest.raises(MissingOrMalformedField, match="'x'"):
            validate_candidate(candidate, project_context, 1)

    def test_missing_y(self, project_context):
        candidate = ImportCandidate(project_code="P-001", location_name="A", x=1)

        with pytest.raises(MissingOrMalformedField, match="'y'"):
            validate_candidate(candidate, project_context, 1)

    def test_error_reports_row(self, project_context):
        candidate = ImportCandidate(project_code="P-001", location_name="A", x=1, y="north")

        with pytest.raises(MissingOrMalformedField) as exc_info:
            validate_candidate(candidate, project_context, 4)

        assert exc_info.value.details["row"] == 4
        assert "Row 4" in exc_info.value.message


# ============================================================
# Batch Rejection Tests
# ============================================================

class TestBatchRejection:
    """The first invalid record rejects the whole batch with zero writes."""

    @pytest.mark.asyncio
    async def test_mixed_project_codes(self, pipeline, store, project_context):
        candidates = [
            ImportCandidate(project_code="P-001", location_name="A", x=1, y=2),
            ImportCandidate(project_code="P-002", location_name="B", x=3, y=4),
        ]

        with pytest.raises(InvalidProjectCode):
            await pipeline.run(candidates, project_context)

        store.insert_locations_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_whitespace_name_rejects_well_formed_rows(
        self, pipeline, store, project_context, sample_candidates
    ):
        candidates = sample_candidates + [
            ImportCandidate(project_code="P-001", location_name="  ", x=1, y=2),
        ]

        with pytest.raises(MissingOrMalformedField):
            await pipeline.run(candidates, project_context)

        store.insert_locations_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_coordinate(self, pipeline, store, project_context, sample_candidates):
        sample_candidates[1] = ImportCandidate(project_code="P-001", location_name="X",
                                               x="12,5", y=1)

        with pytest.raises(MissingOrMalformedField):
            await pipeline.run(sample_candidates, project_context)

        store.insert_locations_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_batch(self, pipeline, store, project_context):
        with pytest.raises(MissingOrMalformedField, match="no records"):
            await pipeline.run([], project_context)

        store.insert_locations_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejection_clears_pending_and_resets_state(self, pipeline, project_context):
        pipeline.load([ImportCandidate(project_code="OTHER", location_name="A", x=1, y=2)])

        with pytest.raises(InvalidProjectCode):
            await pipeline.submit(project_context)

        assert pipeline.pending == []
        assert pipeline.state is ImportState.IDLE
        assert not pipeline.processing

    @pytest.mark.asyncio
    async def test_rejection_passes_through_rejected_state(self, pipeline, project_context, caplog):
        caplog.set_level(logging.DEBUG, logger="app.services.domain.location_import")

        with pytest.raises(InvalidProjectCode):
            await pipeline.run(
                [ImportCandidate(project_code="OTHER", location_name="A", x=1, y=2)],
                project_context,
            )

        transitions = [r.getMessage() for r in caplog.records if "->" in r.getMessage()]
        assert transitions == [
            "Import pipeline: idle -> validating",
            "Import pipeline: validating -> rejected",
            "Import pipeline: rejected -> idle",
        ]


# ============================================================
# Commit Tests
# ============================================================

class TestCommit:
    """Tests for the bulk write."""

    @pytest.mark.asyncio
    async def test_single_write_with_all_records(
        self, pipeline, store, project_context, sample_candidates
    ):
        result = await pipeline.run(sample_candidates, project_context)

        store.insert_locations_many.assert_awaited_once()
        values = store.insert_locations_many.await_args.args[0]
        assert len(values) == 3
        assert all(v.project_id == project_context.id for v in values)
        assert [v.location_name for v in values] == ["BH-10", "BH-11", "BH-12"]
        assert values[0].x == 500010.5
        assert values[0].y == 2000020.25
        assert result.project_id == 7
        assert result.inserted_count == 3
        assert result.location_ids == [101, 102, 103]

    @pytest.mark.asyncio
    async def test_payload_has_no_project_code(
        self, pipeline, store, project_context, sample_candidates
    ):
        await pipeline.run(sample_candidates, project_context)

        values = store.insert_locations_many.await_args.args[0]
        assert set(values[0].model_dump()) == {"location_name", "x", "y", "remarks", "project_id"}

    @pytest.mark.asyncio
    async def test_store_failure_becomes_import_failed(
        self, pipeline, store, project_context, sample_candidates
    ):
        store.insert_locations_many.side_effect = LocationStoreError("constraint violation")

        with pytest.raises(ImportFailed):
            await pipeline.run(sample_candidates, project_context)

        store.insert_locations_many.assert_awaited_once()
        assert pipeline.pending == []
        assert pipeline.state is ImportState.IDLE

    @pytest.mark.asyncio
    async def test_success_clears_pending(self, pipeline, project_context, sample_candidates):
        pipeline.load(sample_candidates)

        await pipeline.submit(project_context)

        assert pipeline.pending == []
        assert pipeline.state is ImportState.IDLE

    @pytest.mark.asyncio
    async def test_resubmission_duplicates(self, pipeline, store, project_context, sample_candidates):
        """No deduplication: the same batch twice means two writes."""
        await pipeline.run(sample_candidates, project_context)
        await pipeline.run(sample_candidates, project_context)

        assert store.insert_locations_many.await_count == 2


# ============================================================
# Busy Flag Tests
# ============================================================

class TestBusyFlag:
    """Only one batch may be processing at a time."""

    @pytest.mark.asyncio
    async def test_processing_during_commit(self, store, project_context, sample_candidates):
        release = asyncio.Event()
        states = []

        async def slow_insert(values):
            states.append(pipeline.state)
            await release.wait()
            return [1, 2, 3]

        store.insert_locations_many.side_effect = slow_insert
        pipeline = BatchImportPipeline(store)

        task = asyncio.create_task(pipeline.run(sample_candidates, project_context))
        await asyncio.sleep(0)

        assert pipeline.processing
        with pytest.raises(ImportInProgress):
            pipeline.load(sample_candidates)
        with pytest.raises(ImportInProgress):
            await pipeline.submit(project_context)

        release.set()
        await task

        assert states == [ImportState.COMMITTING]
        assert not pipeline.processing

    def test_idle_by_default(self, pipeline):
        assert pipeline.state is ImportState.IDLE
        assert not pipeline.processing

    def test_load_replaces_pending(self, pipeline, sample_candidates):
        pipeline.load(sample_candidates)
        pipeline.load(sample_candidates[:1])

        assert len(pipeline.pending) == 1

    def test_clear(self, pipeline, sample_candidates):
        pipeline.load(sample_candidates)
        pipeline.clear()

        assert pipeline.pending == []


# ============================================================
# Registry Tests
# ============================================================

class TestImportPipelineRegistry:
    """Tests for per-project pipelines."""

    def test_same_project_same_pipeline(self, store):
        registry = ImportPipelineRegistry()

        assert registry.get(1, store) is registry.get(1, store)

    def test_projects_are_independent(self, store):
        registry = ImportPipelineRegistry()

        assert registry.get(1, store) is not registry.get(2, store)

    def test_store_bound_at_creation(self, store):
        registry = ImportPipelineRegistry()
        pipeline = registry.get(1, store)

        assert registry.get(1, AsyncMock()).store is store
        assert pipeline.store is store

    def test_release_drops_idle_pipeline(self, store):
        registry = ImportPipelineRegistry()
        first = registry.get(1, store)

        registry.release(1)

        assert len(registry) == 0
        assert registry.get(1, store) is not first

    def test_release_keeps_busy_pipeline(self, store):
        registry = ImportPipelineRegistry()
        pipeline = registry.get(1, store)
        pipeline.state = ImportState.COMMITTING

        registry.release(1)

        assert registry.get(1, store) is pipeline
        assert registry.is_processing(1)

    def test_is_processing_does_not_create(self, store):
        registry = ImportPipelineRegistry()

        assert not registry.is_processing(5)
        assert len(registry) == 0
