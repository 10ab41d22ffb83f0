"""Tests for the single-change workflow."""

from __future__ import annotations

import pytest

from changecontrol.change import Change, Frequency, Mode, Outcome
from changecontrol.changelog import ChangeLog
from changecontrol.console import RecordingLogger
from changecontrol.errors import ChangeFailed, ChangeModified, PreconditionAborted, PreconditionFailed, StoreError
from changecontrol.store import MemoryStore
from changecontrol.util import compute_checksum

from conftest import CountingAction


class TestConstruction:
    def test_requires_id(self, changelog: ChangeLog):
        with pytest.raises(ValueError):
            Change("", lambda: None, changelog, payload="x")

    def test_requires_payload(self, changelog: ChangeLog):
        with pytest.raises(ValueError, match="test:a"):
            Change("test:a", lambda: None, changelog, payload=None)

    def test_str_is_id(self, make_change):
        change, _ = make_change("test:a")
        assert str(change) == "test:a"

    def test_checksum_from_payload(self, make_change):
        change, _ = make_change("test:a", payload={"sql": "select 1"})
        assert change.checksum == compute_checksum({"sql": "select 1"})

    def test_frequency_accepts_string(self, make_change):
        change, _ = make_change("test:a", frequency="always")
        assert change.frequency is Frequency.ALWAYS

    def test_answers_to(self, make_change):
        change, _ = make_change("test:foo:1")
        assert change.answers_to("*")
        assert change.answers_to("test:foo:*")
        assert not change.answers_to("test:bar:*")


class TestExecute:
    def test_runs_once(self, make_change):
        change, action = make_change("test:once")
        assert change.execute() is Outcome.EXECUTED
        assert change.execute() is Outcome.SKIPPED
        assert action.invocations == 1

    def test_audits_checksum(self, make_change, changelog: ChangeLog):
        change, _ = make_change("test:once")
        change.execute()
        entry = changelog.get_entry("test:once")
        assert entry is not None
        assert entry.checksum == change.checksum

    def test_always_runs_every_time(self, make_change, changelog: ChangeLog):
        change, action = make_change("test:always", frequency=Frequency.ALWAYS)
        change.execute()
        change.execute()
        assert action.invocations == 2
        assert changelog.get_entry("test:always").sequence == 2

    def test_always_runs_even_when_modified(self, make_change):
        first, _ = make_change("test:always", payload={"v": 1}, frequency=Frequency.ALWAYS)
        first.execute()
        second, action = make_change("test:always", payload={"v": 2}, frequency=Frequency.ALWAYS)
        assert second.execute() is Outcome.EXECUTED
        assert action.invocations == 1

    def test_modified_change_is_rejected(self, make_change):
        original, _ = make_change("test:b", payload={"v": 1})
        original.execute()
        modified, action = make_change("test:b", payload={"v": 2})
        with pytest.raises(ChangeModified, match="test:b has been modified"):
            modified.execute()
        assert action.invocations == 0

    def test_foreign_checksum_is_modified(self, make_change, store):
        store.hset("prefix:changelog:change:test:b", {"checksum": "foobar"})
        change, action = make_change("test:b")
        with pytest.raises(ChangeModified):
            change.execute()
        assert action.invocations == 0

    def test_skip_is_logged(self, make_change, logger: RecordingLogger):
        change, _ = make_change("test:once")
        change.execute()
        change.execute()
        assert "Executing test:once" in logger.messages("info")
        assert "Skipping (already executed)" in logger.messages("info")

    def test_action_error_is_wrapped(self, make_change, changelog: ChangeLog):
        change, action = make_change("test:boom", error=RuntimeError("disk full"))
        with pytest.raises(ChangeFailed) as exc_info:
            change.execute()
        assert exc_info.value.change_id == "test:boom"
        assert "disk full" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert changelog.get_entry("test:boom") is None

    def test_failed_change_can_be_retried(self, make_change, changelog: ChangeLog):
        change, action = make_change("test:retry", error=RuntimeError("flaky"))
        with pytest.raises(ChangeFailed):
            change.execute()
        action.error = None
        assert change.execute() is Outcome.EXECUTED
        assert action.invocations == 2


class TestPrecondition:
    def test_false_aborts(self, make_change, changelog: ChangeLog):
        change, action = make_change("test:pre", precondition=lambda: False)
        assert change.execute() is Outcome.ABORTED
        assert action.invocations == 0
        assert changelog.get_entry("test:pre") is None

    def test_none_proceeds(self, make_change):
        change, action = make_change("test:pre", precondition=lambda: None)
        assert change.execute() is Outcome.EXECUTED
        assert action.invocations == 1

    def test_abort_signal(self, make_change):
        def precondition():
            raise PreconditionAborted("not today")

        change, action = make_change("test:pre", precondition=precondition)
        assert change.execute() is Outcome.ABORTED
        assert action.invocations == 0

    def test_error_is_precondition_failed(self, make_change):
        def precondition():
            raise KeyError("missing")

        change, action = make_change("test:pre", precondition=precondition)
        with pytest.raises(PreconditionFailed) as exc_info:
            change.execute()
        assert "test:pre" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert action.invocations == 0

    def test_precondition_runs_before_modification_check(self, make_change):
        original, _ = make_change("test:b", payload={"v": 1})
        original.execute()
        modified, _ = make_change("test:b", payload={"v": 2}, precondition=lambda: False)
        assert modified.execute() is Outcome.ABORTED

    def test_sync_also_honours_precondition(self, make_change, changelog: ChangeLog):
        change, _ = make_change("test:pre", precondition=lambda: False)
        assert change.sync() is Outcome.ABORTED
        assert changelog.get_entry("test:pre") is None


class TestOtherModes:
    def test_validate_neither_runs_nor_audits(self, make_change, changelog: ChangeLog):
        change, action = make_change("test:v")
        assert change.validate() is Outcome.VALIDATED
        assert action.invocations == 0
        assert changelog.get_entry("test:v") is None

    def test_validate_detects_modification(self, make_change):
        make_change("test:v", payload={"v": 1})[0].execute()
        modified, _ = make_change("test:v", payload={"v": 2})
        with pytest.raises(ChangeModified):
            modified.validate()

    def test_pretend_neither_runs_nor_audits(self, make_change, changelog: ChangeLog, logger: RecordingLogger):
        change, action = make_change("test:p")
        assert change.pretend() is Outcome.PRETENDED
        assert action.invocations == 0
        assert changelog.get_entry("test:p") is None
        assert "Pretending to execute test:p" in logger.messages("info")

    def test_pretend_skips_applied(self, make_change):
        change, _ = make_change("test:p")
        change.execute()
        assert change.pretend() is Outcome.SKIPPED

    def test_sync_audits_without_running(self, make_change, changelog: ChangeLog):
        change, action = make_change("test:s")
        assert change.sync() is Outcome.SYNCED
        assert action.invocations == 0
        assert changelog.get_entry("test:s").checksum == change.checksum

    def test_sync_overwrites_modified_entry(self, make_change, changelog: ChangeLog):
        make_change("test:s", payload={"v": 1})[0].execute()
        modified, _ = make_change("test:s", payload={"v": 2})
        assert modified.sync() is Outcome.SYNCED
        assert changelog.get_entry("test:s").checksum == modified.checksum
        assert modified.execute() is Outcome.SKIPPED

    @pytest.mark.parametrize(
        "mode,outcome",
        [
            (Mode.VALIDATE, Outcome.VALIDATED),
            (Mode.EXECUTE, Outcome.EXECUTED),
            ("pretend", Outcome.PRETENDED),
            ("sync", Outcome.SYNCED),
        ],
    )
    def test_invoke_dispatches(self, make_change, mode, outcome):
        change, _ = make_change("test:i")
        assert change.invoke(mode) is outcome


class CounterFailingStore(MemoryStore):
    def incr(self, key: str) -> int:
        raise StoreError("Redis INCR failed: connection reset")


class TestErrorsNameTheChange:
    def test_audit_failure_names_change(self):
        changelog = ChangeLog(CounterFailingStore(), prefix="prefix")
        action = CountingAction()
        change = Change("test:audit", action, changelog, payload="x")
        with pytest.raises(StoreError, match="test:audit: Redis INCR failed") as exc_info:
            change.execute()
        assert action.invocations == 1
        assert isinstance(exc_info.value.__cause__, StoreError)

    def test_abort_signal_from_action_is_change_failed(self, make_change):
        change, _ = make_change("test:abort", error=PreconditionAborted())
        with pytest.raises(ChangeFailed) as exc_info:
            change.execute()
        assert str(exc_info.value) == "test:abort failed: PreconditionAborted"
        assert isinstance(exc_info.value.__cause__, PreconditionAborted)

    def test_store_error_from_action_is_change_failed(self, make_change):
        change, _ = make_change("test:write", error=StoreError("Redis HSET failed"))
        with pytest.raises(ChangeFailed, match="test:write failed: Redis HSET failed"):
            change.execute()

    def test_store_error_from_precondition_is_precondition_failed(self, make_change):
        def precondition():
            raise StoreError("Redis HGETALL failed")

        change, action = make_change("test:pre", precondition=precondition)
        with pytest.raises(PreconditionFailed, match="test:pre"):
            change.execute()
        assert action.invocations == 0

    def test_errors_naming_another_change_pass_through(self, make_change):
        change, _ = make_change("test:outer", error=ChangeModified("test:inner"))
        with pytest.raises(ChangeModified, match="test:inner"):
            change.execute()
