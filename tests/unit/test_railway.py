"""
Tests for the railway package — Result, FailureDescription, ResultFailures,
execution contexts and ResultAssertions.

Covers only the operators the submission pipeline relies on.
"""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from railway import (
    ErrorCode,
    Failure,
    FailureDescription,
    LoggingExecutionContext,
    Result,
    ResultAssertions,
    ResultFailures,
    Success,
)


# ═══════════════════════════════════════════════════════════════
# 1. Creation & Introspection
# ═══════════════════════════════════════════════════════════════


class TestCreation:
    def test_success_wraps_value(self):
        result = Result.success(42)
        assert result.is_success()
        assert not result.is_failure()
        assert result.value() == 42

    def test_success_rejects_none(self):
        with pytest.raises(TypeError, match="must not be None"):
            Success(None)

    def test_failure_with_exception(self):
        exc = ValueError("bad")
        result = Result.failure(ErrorCode.EXTRACTION_ERROR, "broken plist", exc)
        assert result.error().exception is exc

    def test_value_on_failure_raises(self):
        with pytest.raises(ValueError):
            Result.failure(ErrorCode.UPLOAD_ERROR, "nope").value()

    def test_error_on_success_raises(self):
        with pytest.raises(ValueError):
            Result.success(1).error()


# ═══════════════════════════════════════════════════════════════
# 2. Transformations
# ═══════════════════════════════════════════════════════════════


class TestMapAndFlatMap:
    def test_map_transforms_success_value(self):
        assert Result.success(2).map(lambda x: x * 10).value() == 20

    def test_map_short_circuits_on_failure(self):
        called = []
        Result.failure(ErrorCode.UPLOAD_ERROR, "x").map(lambda v: called.append(v))
        assert called == []

    def test_flat_map_short_circuits_on_first_failure(self):
        calls: list[str] = []

        def step(name: str, ok: bool):
            def _run(_):
                calls.append(name)
                return Result.success(name) if ok else Result.failure(ErrorCode.REGISTRATION_ERROR, name)
            return _run

        result = (
            Result.success("start")
            .flat_map(step("resolve", True))
            .flat_map(step("register", False))
            .flat_map(step("upload", True))
        )
        assert result.error().code == ErrorCode.REGISTRATION_ERROR
        assert calls == ["resolve", "register"]

    def test_map_failure_transforms_error(self):
        result = Result.failure(ErrorCode.BACKEND_ERROR, "HTTP 500").map_failure(
            lambda err: err.with_code(ErrorCode.UPLOAD_ERROR, "Finalize failed")
        )
        assert result.error().code == ErrorCode.UPLOAD_ERROR
        assert result.error().message == "Finalize failed: HTTP 500"

    def test_map_failure_passes_through_success(self):
        result = Result.success(1).map_failure(lambda err: err.with_code(ErrorCode.UPLOAD_ERROR))
        assert result.value() == 1


class TestEnsure:
    def test_ensure_passes_when_predicate_true(self):
        result = Result.success([1]).ensure(lambda ops: len(ops) > 0, ErrorCode.UPLOAD_ERROR, "empty")
        assert result.is_success()

    def test_ensure_fails_when_predicate_false(self):
        result = Result.success([]).ensure(lambda ops: len(ops) > 0, ErrorCode.UPLOAD_ERROR, "empty")
        assert result.error().code == ErrorCode.UPLOAD_ERROR
        assert result.error().message == "empty"

    def test_ensure_with_failure_description(self):
        desc = FailureDescription(ErrorCode.EXTRACTION_ERROR, "not a dict")
        assert Result.success([]).ensure(lambda v: isinstance(v, dict), desc).error() is desc


class TestSideEffects:
    def test_peek_runs_on_success_only(self):
        seen: list[int] = []
        Result.success(5).peek(seen.append)
        Result.failure(ErrorCode.UPLOAD_ERROR, "x").peek(seen.append)
        assert seen == [5]


# ═══════════════════════════════════════════════════════════════
# 3. Static factories
# ═══════════════════════════════════════════════════════════════


class TestFactories:
    def test_from_computation_success(self):
        result = Result.from_computation(lambda: {"id": "1"}["id"], ErrorCode.BACKEND_ERROR, "no id")
        assert result.value() == "1"

    def test_from_computation_wraps_exception(self):
        result = Result.from_computation(lambda: {}["id"], ErrorCode.BACKEND_ERROR, "no id")
        assert result.error().code == ErrorCode.BACKEND_ERROR
        assert isinstance(result.error().exception, KeyError)


class TestPatternMatching:
    def test_match_success_and_failure(self):
        match Result.success("998877"):
            case Success(build_id):
                assert build_id == "998877"
            case Failure(_):
                pytest.fail("expected success")

        match Result.failure(ErrorCode.RESOLUTION_ERROR, "app not found"):
            case Failure(err):
                assert err.code == ErrorCode.RESOLUTION_ERROR
            case Success(_):
                pytest.fail("expected failure")


class TestEquality:
    def test_success_equality(self):
        assert Result.success(1) == Result.success(1)
        assert Result.success(1) != Result.success(2)

    def test_success_not_equal_to_failure(self):
        assert Result.success(1) != Result.failure(ErrorCode.UPLOAD_ERROR, "x")


# ═══════════════════════════════════════════════════════════════
# 4. FailureDescription & ResultFailures
# ═══════════════════════════════════════════════════════════════


class TestFailureDescription:
    def test_with_code_keeps_exception_and_timestamp(self):
        exc = RuntimeError("boom")
        original = FailureDescription(ErrorCode.BACKEND_ERROR, "HTTP 500", exc)
        claimed = original.with_code(ErrorCode.REGISTRATION_ERROR)
        assert claimed.code == ErrorCode.REGISTRATION_ERROR
        assert claimed.message == "HTTP 500"
        assert claimed.exception is exc
        assert claimed.timestamp == original.timestamp

    def test_repr_hides_exception(self):
        desc = FailureDescription(ErrorCode.UPLOAD_ERROR, "x", RuntimeError("secret detail"))
        assert "secret detail" not in repr(desc)

    def test_full_stack_trace_includes_exception(self):
        try:
            raise ValueError("deep")
        except ValueError as e:
            desc = FailureDescription(ErrorCode.UNKNOWN_ERROR, "outer", e)
        trace = desc.full_stack_trace()
        assert trace.startswith("outer")
        assert "ValueError: deep" in trace

    def test_full_stack_trace_without_exception(self):
        assert FailureDescription(ErrorCode.UPLOAD_ERROR, "only").full_stack_trace() == "only"


class TestResultFailures:
    @pytest.mark.parametrize(
        ("factory", "code"),
        [
            (ResultFailures.backend_error, ErrorCode.BACKEND_ERROR),
            (ResultFailures.extraction_error, ErrorCode.EXTRACTION_ERROR),
            (ResultFailures.resolution_error, ErrorCode.RESOLUTION_ERROR),
            (ResultFailures.upload_error, ErrorCode.UPLOAD_ERROR),
            (ResultFailures.transport_error, ErrorCode.TRANSPORT_ERROR),
        ],
    )
    def test_factory_sets_code(self, factory, code):
        assert factory("msg").error().code == code

    def test_app_not_found_message(self):
        result = ResultFailures.app_not_found("com.example.demo")
        assert result.error().code == ErrorCode.RESOLUTION_ERROR
        assert result.error().message == "app not found for bundle id com.example.demo"


# ═══════════════════════════════════════════════════════════════
# 5. Execution contexts
# ═══════════════════════════════════════════════════════════════


class TestExecutionContexts:
    def test_logging_context_records_success(self):
        ctx = LoggingExecutionContext(operation="BuildSubmission")
        with capture_logs() as logs:
            result = ctx.execute(lambda: Result.success("ok"))
        assert result.value() == "ok"
        completed = [entry for entry in logs if entry["event"] == "execution.completed"]
        assert completed[0]["operation"] == "BuildSubmission"
        assert completed[0]["state"] == "SUCCESS"

    def test_logging_context_records_failure(self):
        ctx = LoggingExecutionContext(operation="BuildSubmission")
        with capture_logs() as logs:
            ctx.execute(lambda: Result.failure(ErrorCode.UPLOAD_ERROR, "x"))
        assert [e["state"] for e in logs if e["event"] == "execution.completed"] == ["FAILURE"]

    def test_logging_context_catches_exception(self):
        def failing():
            raise RuntimeError("exploded")

        with capture_logs() as logs:
            result = LoggingExecutionContext(operation="Boom").execute(failing)
        assert result.error().code == ErrorCode.UNKNOWN_ERROR
        assert "exploded" in result.error().message
        assert any(entry["event"] == "execution.crashed" for entry in logs)


# ═══════════════════════════════════════════════════════════════
# 6. ResultAssertions
# ═══════════════════════════════════════════════════════════════


class TestResultAssertions:
    def test_assert_success_returns_value(self):
        assert ResultAssertions.assert_success(Result.success(3)) == 3

    def test_assert_success_fails_on_failure(self):
        with pytest.raises(AssertionError, match="Expected Success"):
            ResultAssertions.assert_success(Result.failure(ErrorCode.UPLOAD_ERROR, "x"))

    def test_assert_failure_checks_code(self):
        with pytest.raises(AssertionError, match="Expected error code"):
            ResultAssertions.assert_failure(
                Result.failure(ErrorCode.UPLOAD_ERROR, "x"), ErrorCode.RESOLUTION_ERROR
            )

    def test_message_contains_is_case_insensitive(self):
        ResultAssertions.assert_failure_message_contains(
            Result.failure(ErrorCode.RESOLUTION_ERROR, "App Not Found"), "app not found"
        )

    def test_caused_by(self):
        result = Result.failure(ErrorCode.UPLOAD_ERROR, "x", OSError("disk"))
        assert isinstance(ResultAssertions.assert_failure_caused_by(result, OSError), OSError)
