"""
Dispatcher — run the command, then fan the outcome message out to every sender.

Delivery is best-effort: one channel failing is logged and recorded in its
SendResult, the remaining channels are still attempted, and the run's result
only reflects the command itself.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TextIO

import structlog

from notifyme.errors import CommandFailure
from notifyme.executor import CommandExecutor, ExecutionOutcome
from notifyme.notifications.base import NotificationSender, SendResult

logger = structlog.get_logger()

NO_OUTPUT_MESSAGE = "Command executed but produced no output"


@dataclass
class RunReport:
    outcome: ExecutionOutcome
    message: str
    results: list[SendResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome.success

    @property
    def delivery_failures(self) -> int:
        return sum(1 for r in self.results if not r.success)


def build_message(outcome: ExecutionOutcome) -> str:
    if outcome.captured_output:
        message = f"Command output:\n{outcome.captured_output}"
    else:
        message = NO_OUTPUT_MESSAGE

    if not outcome.success:
        message += f"\nCommand failed with error: {outcome.failure_detail}"
    return message


async def deliver(sender: NotificationSender, message: str) -> SendResult:
    """Send through one sender; never raises."""
    channel = sender.channel()
    target = sender.target()
    try:
        await sender.send(message)
    except Exception as e:
        logger.exception("dispatch.sender_failed", channel=channel, target=target)
        return SendResult(channel=channel, success=False, target=target, error=str(e))

    logger.info("dispatch.sent", channel=channel, target=target)
    return SendResult(channel=channel, success=True, target=target)


async def dispatch(
    senders: Sequence[NotificationSender],
    message: str,
    *,
    concurrent: bool = False,
) -> list[SendResult]:
    """Deliver message to every sender.

    Args:
        senders: Already-built senders.
        message: The outcome message, identical for every channel.
        concurrent: Send to all channels at once instead of one by one.

    Returns:
        One SendResult per sender, in sender order.
    """
    if concurrent:
        results = list(await asyncio.gather(*(deliver(s, message) for s in senders)))
    else:
        results = []
        for sender in senders:
            results.append(await deliver(sender, message))

    failed = sum(1 for r in results if not r.success)
    if failed:
        logger.warning("dispatch.done", sent=len(results) - failed, failed=failed)
    else:
        logger.info("dispatch.done", sent=len(results), failed=0)
    return results


async def run_and_notify(
    command: str,
    args: Sequence[str],
    senders: Sequence[NotificationSender],
    *,
    concurrent: bool = False,
    echo: TextIO | None = None,
) -> RunReport:
    """Execute the command and notify every sender of the outcome.

    SpawnError / CaptureError propagate: no message exists to send. A
    non-zero exit is folded into the message and reported via RunReport.ok.
    """
    log = logger.bind(command=command)
    executor = CommandExecutor(command, list(args), echo=echo)
    try:
        await executor.execute()
    except CommandFailure as e:
        log.warning("run.command_failed", returncode=e.returncode)

    outcome = executor.outcome
    message = build_message(outcome)
    results = await dispatch(senders, message, concurrent=concurrent)

    log.info(
        "run.done",
        success=outcome.success,
        interrupted=outcome.interrupted,
        channels=len(results),
        delivery_failures=sum(1 for r in results if not r.success),
    )
    return RunReport(outcome=outcome, message=message, results=results)
