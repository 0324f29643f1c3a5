"""Tests for error types and codes."""

import pytest

from testtree.core.errors import (
    ConfigError,
    ErrorCode,
    IngestError,
    InternalError,
    InvariantViolation,
    ParseError,
    StaleEventRace,
    TestTreeError,
    TransportError,
    UnmatchedRuntimeTask,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.PARSE_SYNTAX_ERROR, 3000),
            (ErrorCode.TREE_INVALID_BLOCK, 4000),
            (ErrorCode.RUNTIME_TASK_UNMATCHED, 5000),
            (ErrorCode.RUNTIME_STALE_EVENT, 5000),
            (ErrorCode.TRANSPORT_MALFORMED_MESSAGE, 6000),
            (ErrorCode.INTERNAL_ERROR, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        assert expected_range <= code.value < expected_range + 1000


class TestTestTreeError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = TestTreeError(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message="Test message",
            retryable=True,
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 2001,
            "error": "CONFIG_PARSE_ERROR",
            "message": "Test message",
            "retryable": True,
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_includes_code_and_name(self) -> None:
        """String form is '[code] NAME: message'."""
        error = InternalError.unexpected("boom", where="sync")

        assert str(error) == "[9001] INTERNAL_ERROR: Internal error: boom"
        assert error.details == {"where": "sync"}

    def test_given_error_when_raised_then_catchable_as_base(self) -> None:
        """Subclasses are caught by the base class."""
        with pytest.raises(TestTreeError):
            raise ConfigError.file_not_found("/nope.yaml")


class TestFactories:
    """Factory classmethods populate codes and details."""

    def test_parse_syntax_is_retryable(self) -> None:
        error = ParseError.syntax("a.test.ts", 2)

        assert error.code is ErrorCode.PARSE_SYNTAX_ERROR
        assert error.retryable is True
        assert error.details == {"path": "a.test.ts", "error_count": 2}

    def test_parse_no_grammar(self) -> None:
        error = ParseError.no_grammar("a.test.ts", "typescript")

        assert error.code is ErrorCode.PARSE_NO_GRAMMAR
        assert "typescript" in error.message

    def test_invariant_violation_records_kind(self) -> None:
        error = InvariantViolation.invalid_block("a.test.ts", "hook", "beforeEach")

        assert error.code is ErrorCode.TREE_INVALID_BLOCK
        assert error.details["kind"] == "hook"

    def test_runtime_errors_carry_task_id(self) -> None:
        unmatched = UnmatchedRuntimeTask.for_task("t1", "adds", "case")
        stale = StaleEventRace.for_task("t2")

        assert unmatched.details["task_id"] == "t1"
        assert stale.details["task_id"] == "t2"

    def test_transport_malformed_truncates_raw(self) -> None:
        error = TransportError.malformed("invalid JSON", raw="x" * 500)

        assert len(error.details["raw"]) == 200

    def test_ingest_invalid_payload_names_event(self) -> None:
        error = IngestError.invalid_payload("taskUpdate", "packs: bad")

        assert error.details["event"] == "taskUpdate"
        assert error.code is ErrorCode.RUNTIME_INGEST_FAILED
