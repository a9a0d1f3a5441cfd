import asyncio
import logging
import time
from datetime import timedelta

import pytest

from assist_bridge.tickets import AssistRequest, TicketCoordinator, TicketStatus, WaitStatus

async def _attach(coordinator: TicketCoordinator, ticket_id: str, timeout: float = 1.0) -> asyncio.Task:
    task = asyncio.create_task(coordinator.wait(ticket_id, timeout))
    while not coordinator.store.get(ticket_id).waiting:
        await asyncio.sleep(0)
    return task


def test_coordinator_rejects_inconsistent_timeouts(store, notifier):
    with pytest.raises(ValueError):
        TicketCoordinator(store, notifier, default_timeout=200, max_timeout=120)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 60.0),
        ("", 60.0),
        ("abc", 60.0),
        (float("nan"), 60.0),
        (0, 1.0),
        ("0", 1.0),
        (-5, 1.0),
        (30, 30.0),
        ("45.5", 45.5),
        (500, 120.0),
        (float("inf"), 120.0),
    ],
)
def test_clamp_timeout(store, notifier, value, expected):
    coordinator = TicketCoordinator(store, notifier)
    assert coordinator.clamp_timeout(value) == expected


@pytest.mark.asyncio
async def test_create_ticket_registers_pending_ticket_and_notifies(coordinator, notifier):
    request = AssistRequest(conversation_id="conv-1", lang="en", question="Is he covered?", context={"plan": "gold"})

    ticket = await coordinator.create_ticket(request)
    await coordinator.flush_notifications()

    assert ticket.status is TicketStatus.PENDING
    assert coordinator.store.get(ticket.id) is ticket
    assert ticket.request.question == "Is he covered?"
    assert notifier.tickets == [ticket]


@pytest.mark.asyncio
async def test_ticket_ids_are_unique_random_uuids(coordinator):
    tickets = [await coordinator.create_ticket() for _ in range(50)]
    ids = {ticket.id for ticket in tickets}
    assert len(ids) == 50
    assert all(len(ticket_id) == 36 for ticket_id in ids)


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_creation(store, failing_notifier, caplog):
    caplog.set_level(logging.ERROR)
    coordinator = TicketCoordinator(store, failing_notifier, default_timeout=0.2, min_timeout=0.05, max_timeout=1.0)

    ticket = await coordinator.create_ticket()
    await coordinator.flush_notifications()

    assert ticket.id in store
    assert failing_notifier.tickets == [ticket]
    assert "channel_not_found" in caplog.text
    assert (await coordinator.wait(ticket.id, 0.05)).status is WaitStatus.TIMEOUT


@pytest.mark.asyncio
async def test_wait_returns_answer_delivered_while_waiting(coordinator):
    ticket = await coordinator.create_ticket()
    task = await _attach(coordinator, ticket.id, timeout=1.0)

    assert coordinator.resolve(ticket.id, "yes he is covered", actor="dispatcher") is True
    result = await task

    assert result.status is WaitStatus.ANSWERED
    assert result.answer == "yes he is covered"
    assert ticket.id not in coordinator.store


@pytest.mark.asyncio
async def test_wait_delivers_buffered_early_answer(coordinator):
    ticket = await coordinator.create_ticket()
    assert coordinator.resolve(ticket.id, "answered before waiting") is True

    result = await coordinator.wait(ticket.id, 0.05)

    assert result.status is WaitStatus.ANSWERED
    assert result.answer == "answered before waiting"
    assert ticket.id not in coordinator.store


@pytest.mark.asyncio
async def test_wait_unknown_ticket_returns_not_found(coordinator):
    started = time.monotonic()
    result = await coordinator.wait("does-not-exist", 1.0)
    assert result.status is WaitStatus.NOT_FOUND
    assert time.monotonic() - started < 0.5


@pytest.mark.asyncio
async def test_wait_times_out_and_late_resolve_is_rejected(coordinator):
    ticket = await coordinator.create_ticket()

    result = await coordinator.wait(ticket.id, 0.05)

    assert result.status is WaitStatus.TIMEOUT
    assert result.answer is None
    assert ticket.status is TicketStatus.EXPIRED
    assert ticket.id not in coordinator.store
    assert coordinator.resolve(ticket.id, "too late") is False
    assert (await coordinator.wait(ticket.id, 0.05)).status is WaitStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_zero_timeout_is_clamped_to_one_second(store, notifier):
    coordinator = TicketCoordinator(store, notifier)
    ticket = await coordinator.create_ticket()

    started = time.monotonic()
    result = await coordinator.wait(ticket.id, 0)
    elapsed = time.monotonic() - started

    assert result.status is WaitStatus.TIMEOUT
    assert 0.9 <= elapsed < 2.0
    assert coordinator.resolve(ticket.id, "late") is False


@pytest.mark.asyncio
async def test_second_waiter_gets_conflict(coordinator):
    ticket = await coordinator.create_ticket()
    first = await _attach(coordinator, ticket.id, timeout=1.0)

    second = await coordinator.wait(ticket.id, 1.0)
    assert second.status is WaitStatus.CONFLICT

    coordinator.resolve(ticket.id, "for the first waiter")
    result = await first
    assert result.status is WaitStatus.ANSWERED
    assert result.answer == "for the first waiter"


@pytest.mark.asyncio
async def test_cancelled_waiter_releases_registration(coordinator):
    ticket = await coordinator.create_ticket()
    task = await _attach(coordinator, ticket.id, timeout=1.0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert ticket.id in coordinator.store
    assert ticket.waiting is False
    assert ticket.status is TicketStatus.PENDING

    retry = await _attach(coordinator, ticket.id, timeout=1.0)
    coordinator.resolve(ticket.id, "second attempt")
    assert (await retry).answer == "second attempt"


@pytest.mark.asyncio
async def test_answer_committed_during_timeout_wins(coordinator, monkeypatch):
    ticket = await coordinator.create_ticket()

    async def racing_wait_for(awaitable, timeout):
        awaitable.cancel()
        coordinator.resolve(ticket.id, "just in time")
        raise asyncio.TimeoutError

    monkeypatch.setattr("assist_bridge.tickets.coordinator.asyncio.wait_for", racing_wait_for)

    result = await coordinator.wait(ticket.id, 1.0)

    assert result.status is WaitStatus.ANSWERED
    assert result.answer == "just in time"
    assert ticket.id not in coordinator.store


@pytest.mark.asyncio
async def test_racing_resolves_and_timeout_deliver_exactly_one_outcome(coordinator):
    loop = asyncio.get_running_loop()
    for _ in range(20):
        ticket = await coordinator.create_ticket()
        outcomes: list[bool] = []
        loop.call_later(0.05, lambda ticket_id=ticket.id: outcomes.append(coordinator.resolve(ticket_id, "first")))
        loop.call_later(0.05, lambda ticket_id=ticket.id: outcomes.append(coordinator.resolve(ticket_id, "second")))

        result = await coordinator.wait(ticket.id, 0.05)
        await asyncio.sleep(0.01)

        assert outcomes.count(True) <= 1
        if result.status is WaitStatus.ANSWERED:
            assert outcomes == [True, False]
            assert result.answer == "first"
        else:
            assert result.status is WaitStatus.TIMEOUT
            assert outcomes == [False, False]
        assert ticket.id not in coordinator.store


@pytest.mark.asyncio
async def test_sweep_purges_tickets_nobody_waits_on(coordinator):
    stale = await coordinator.create_ticket()
    fresh = await coordinator.create_ticket()
    stale.created_at -= timedelta(minutes=30)

    assert coordinator.sweep(max_age=600) == 1
    assert stale.id not in coordinator.store
    assert fresh.id in coordinator.store
    assert coordinator.resolve(stale.id, "too late") is False


@pytest.mark.asyncio
async def test_run_sweeper_until_cancelled(coordinator):
    stale = await coordinator.create_ticket()
    stale.created_at -= timedelta(minutes=30)

    sweeper = asyncio.create_task(coordinator.run_sweeper(interval=0.01, max_age=600))
    await asyncio.sleep(0.05)
    sweeper.cancel()
    with pytest.raises(asyncio.CancelledError):
        await sweeper

    assert stale.id not in coordinator.store


@pytest.mark.asyncio
async def test_aclose_cancels_pending_notifications(store):
    release = asyncio.Event()

    class SlowNotifier:
        async def notify(self, ticket):
            await release.wait()

        async def aclose(self):
            return None

    coordinator = TicketCoordinator(store, SlowNotifier())
    await coordinator.create_ticket()
    await asyncio.sleep(0)

    await coordinator.aclose()

    assert not coordinator._notifications
    await asyncio.wait_for(coordinator.flush_notifications(), timeout=1.0)
