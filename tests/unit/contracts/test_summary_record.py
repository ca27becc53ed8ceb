# tests/unit/contracts/test_summary_record.py
"""Tests for SummaryRecord document mapping and the error taxonomy."""

from datetime import UTC, datetime

from logship.contracts import (
    LogShipError,
    ObjectNotFound,
    ObjectTooLarge,
    StoreConfigurationError,
    SummaryRecord,
    TransientNetworkFailure,
)


class TestSummaryRecord:
    def test_document_field_names(self) -> None:
        record = SummaryRecord(
            actor_id="u1",
            total_entries=7,
            last_updated=datetime(2026, 1, 30, 12, 0, tzinfo=UTC),
            latest_batch_size=3,
        )
        assert record.to_document() == {
            "user_id": "u1",
            "total_entries": 7,
            "last_updated": "2026-01-30T12:00:00+00:00",
            "latest_entries_count": 3,
        }

    def test_from_document_restores_record(self) -> None:
        record = SummaryRecord("u1", 7, datetime(2026, 1, 30, 12, 0, tzinfo=UTC), 3)
        assert SummaryRecord.from_document("u1", record.to_document()) == record

    def test_from_partial_document(self) -> None:
        record = SummaryRecord.from_document("u2", {})
        assert record.actor_id == "u2"
        assert record.total_entries == 0
        assert record.latest_batch_size == 0
        assert record.last_updated == datetime.fromtimestamp(0, tz=UTC)

    def test_from_document_with_datetime_value(self) -> None:
        ts = datetime(2026, 2, 1, tzinfo=UTC)
        assert SummaryRecord.from_document("u", {"last_updated": ts}).last_updated == ts


class TestErrors:
    def test_all_errors_share_base(self) -> None:
        for error in (
            ObjectNotFound("k"),
            ObjectTooLarge("k", 11, 10),
            TransientNetworkFailure("read", "k", "boom"),
            StoreConfigurationError("memory", "bad"),
        ):
            assert isinstance(error, LogShipError)

    def test_messages_carry_context(self) -> None:
        assert "read failed for 'k': boom" in str(TransientNetworkFailure("read", "k", "boom"))
        too_large = ObjectTooLarge("k", 11, 10)
        assert (too_large.size, too_large.max_bytes) == (11, 10)
        assert StoreConfigurationError("sql", "no url").store_name == "sql"
