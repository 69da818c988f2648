"""
Tests for `scripts/sweep_abandoned_checkouts.py`.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import make_draft
from domain.ad import AdStatus
from fakes import completed_event, sign_payload
from scripts.sweep_abandoned_checkouts import WEBHOOK_RETRY_WINDOW_HOURS, sweep_abandoned_checkouts


def test_dry_run_lists_without_deleting(orchestrator, store, clock) -> None:
    result = orchestrator.start_checkout(make_draft())

    sweep = sweep_abandoned_checkouts(store, hours=96, now=clock.now + timedelta(hours=97))

    assert [r.ad_id for r in sweep.found] == [result.ad_id]
    assert sweep.deleted == 0
    assert store.get_by_id(result.ad_id) is not None


def test_delete_removes_only_old_unpaid_ads(orchestrator, webhook_handler, store, clock) -> None:
    old_unpaid = orchestrator.start_checkout(make_draft()).ad_id
    old_paid = orchestrator.start_checkout(make_draft()).ad_id
    payload = completed_event(old_paid)
    webhook_handler.handle(payload, sign_payload(payload))

    clock.advance(hours=95)
    recent_unpaid = orchestrator.start_checkout(make_draft()).ad_id

    sweep = sweep_abandoned_checkouts(store, hours=96, delete=True, now=clock.now + timedelta(hours=2))

    assert sweep.deleted == 1
    assert store.get_by_id(old_unpaid) is None
    assert store.get_by_id(old_paid).status == AdStatus.PENDING
    assert store.get_by_id(recent_unpaid) is not None


def test_late_webhook_still_finds_its_ad(orchestrator, webhook_handler, store, clock) -> None:
    unpaid = orchestrator.start_checkout(make_draft()).ad_id

    # Stripe's last retry lands just inside its three day window.
    clock.advance(hours=WEBHOOK_RETRY_WINDOW_HOURS - 1)
    with pytest.raises(ValueError):
        sweep_abandoned_checkouts(store, hours=48, delete=True, now=clock.now)
    sweep_abandoned_checkouts(store, hours=WEBHOOK_RETRY_WINDOW_HOURS + 1, delete=True, now=clock.now)

    payload = completed_event(unpaid)
    webhook_handler.handle(payload, sign_payload(payload))
    assert store.get_by_id(unpaid).status == AdStatus.PENDING


@pytest.mark.parametrize("hours", [0, 48, WEBHOOK_RETRY_WINDOW_HOURS])
def test_cutoff_must_exceed_webhook_retry_window(store, hours) -> None:
    with pytest.raises(ValueError):
        sweep_abandoned_checkouts(store, hours=hours)
