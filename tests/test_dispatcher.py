import io
import sys
from dataclasses import dataclass, field

import pytest
from structlog.testing import capture_logs

from notifyme.dispatcher import NO_OUTPUT_MESSAGE, build_message, dispatch, run_and_notify
from notifyme.errors import DeliveryError, SpawnError
from notifyme.executor import ExecutionOutcome


@dataclass
class _RecordingSender:
    name: str
    fail: bool = False
    sent: list[str] = field(default_factory=list)

    def channel(self) -> str:
        return self.name

    def target(self) -> str:
        return f"{self.name}-target"

    async def send(self, message: str) -> None:
        self.sent.append(message)
        if self.fail:
            raise DeliveryError(f"{self.name} is down")

    async def aclose(self) -> None:
        return None


def test_message_on_success_has_no_error_text() -> None:
    outcome = ExecutionOutcome(captured_output="all good\n", success=True, returncode=0)
    message = build_message(outcome)
    assert message == "Command output:\nall good\n"
    assert "failed" not in message


def test_message_without_output() -> None:
    outcome = ExecutionOutcome(captured_output=None, success=True, returncode=0)
    assert build_message(outcome) == NO_OUTPUT_MESSAGE


def test_message_on_failure_appends_detail() -> None:
    outcome = ExecutionOutcome(
        captured_output="step 1 ok\n",
        success=False,
        failure_detail="exit status 2: no such file",
        returncode=2,
    )
    assert build_message(outcome) == (
        "Command output:\nstep 1 ok\n\nCommand failed with error: exit status 2: no such file"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrent", [False, True])
async def test_failing_sender_does_not_stop_the_others(concurrent: bool) -> None:
    senders = [_RecordingSender("one"), _RecordingSender("two", fail=True), _RecordingSender("three")]

    with capture_logs() as logs:
        results = await dispatch(senders, "hello", concurrent=concurrent)

    assert [s.sent for s in senders] == [["hello"], ["hello"], ["hello"]]
    assert [r.channel for r in results] == ["one", "two", "three"]
    assert [r.success for r in results] == [True, False, True]
    assert results[1].error == "two is down"
    assert results[1].target == "two-target"
    assert any(e["event"] == "dispatch.sender_failed" and e["channel"] == "two" for e in logs)


@pytest.mark.asyncio
async def test_dispatch_with_no_senders() -> None:
    assert await dispatch([], "hello") == []


@pytest.mark.asyncio
async def test_run_and_notify_success_ignores_delivery_failures() -> None:
    senders = [_RecordingSender("one"), _RecordingSender("two", fail=True), _RecordingSender("three")]

    report = await run_and_notify(
        sys.executable, ["-c", "print('built 3 targets')"], senders, echo=io.StringIO()
    )

    assert report.ok is True
    assert report.delivery_failures == 1
    assert report.message == "Command output:\nbuilt 3 targets\n"
    assert all(s.sent == [report.message] for s in senders)


@pytest.mark.asyncio
async def test_run_and_notify_failure_still_notifies() -> None:
    sender = _RecordingSender("one")
    script = "import sys; print('compiling'); sys.stderr.write('linker error'); sys.exit(1)"

    report = await run_and_notify(sys.executable, ["-c", script], [sender], echo=io.StringIO())

    assert report.ok is False
    assert report.outcome.returncode == 1
    assert sender.sent == [report.message]
    assert report.message.startswith("Command output:\ncompiling\n")
    assert "Command failed with error: exit status 1: linker error" in report.message


@pytest.mark.asyncio
async def test_spawn_error_sends_nothing() -> None:
    sender = _RecordingSender("one")

    with pytest.raises(SpawnError):
        await run_and_notify("/nonexistent/notifyme-missing", [], [sender])

    assert sender.sent == []
