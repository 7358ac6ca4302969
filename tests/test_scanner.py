"""Tests for the background trend scanner."""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from db import SubscriberStore
from errors import UpstreamError
from models import Entity
from notifiers import EmailNotifier, WebhookNotifier
from scanner import TrendScanner

from conftest import NOW, FakeGitHub


def entity(name, stars, age_days):
    return Entity(full_name=name, created_at=NOW - timedelta(days=age_days), stars=stars)


CONFIG = {
    "scanner": {
        "enabled": True,
        "interval_minutes": 30,
        "created_within_days": 7,
        "min_stars": 20,
        "min_velocity": 20,
    }
}


@pytest.fixture
def store(tmp_path):
    s = SubscriberStore(str(tmp_path / "spark.db"))
    yield s
    s.close()


@pytest.fixture
def github():
    gh = FakeGitHub()
    gh.search_results = [
        entity("acme/rocket", 600, 3),   # 200/day
        entity("acme/jet", 100, 2),      # 50/day
        entity("acme/slow", 60, 6),      # 10/day
        entity("acme/tiny", 10, 1),      # below min_stars
    ]
    return gh


def make_notifier(cls):
    notifier = MagicMock(spec=cls)
    notifier.notify.return_value = True
    return notifier


class TestScanOnce:
    @pytest.mark.asyncio
    async def test_alerts_new_fast_repos(self, github, store):
        store.add_subscriber("dev@example.com")
        email = make_notifier(EmailNotifier)
        scanner = TrendScanner(CONFIG, github, store, [email], clock=lambda: NOW)

        report = await scanner.scan_once()

        assert report.candidates == 3
        assert report.qualifying == 2
        assert [r.entity.full_name for r in report.new_repos] == ["acme/rocket", "acme/jet"]
        assert report.notified == 1
        repos, addresses = email.notify.call_args[0]
        assert addresses == ["dev@example.com"]
        assert store.has_alerted("acme/rocket")
        assert github.calls[0] == ("search", 7, 1, 100, 20)

    @pytest.mark.asyncio
    async def test_does_not_alert_twice(self, github, store):
        webhook = make_notifier(WebhookNotifier)
        scanner = TrendScanner(CONFIG, github, store, [webhook], clock=lambda: NOW)

        await scanner.scan_once()
        second = await scanner.scan_once()

        assert second.new_repos == []
        assert webhook.notify.call_count == 1

    @pytest.mark.asyncio
    async def test_email_skipped_without_subscribers(self, github, store):
        email = make_notifier(EmailNotifier)
        webhook = make_notifier(WebhookNotifier)
        scanner = TrendScanner(CONFIG, github, store, [email, webhook], clock=lambda: NOW)

        report = await scanner.scan_once()

        email.notify.assert_not_called()
        webhook.notify.assert_called_once()
        assert report.notified == 1

    @pytest.mark.asyncio
    async def test_failed_delivery_retried_next_round(self, github, store):
        store.add_subscriber("dev@example.com")
        email = make_notifier(EmailNotifier)
        email.notify.return_value = False
        scanner = TrendScanner(CONFIG, github, store, [email], clock=lambda: NOW)

        first = await scanner.scan_once()
        assert first.notified == 0
        assert not store.has_alerted("acme/rocket")

        email.notify.return_value = True
        second = await scanner.scan_once()

        assert [r.entity.full_name for r in second.new_repos] == ["acme/rocket", "acme/jet"]
        assert second.notified == 1
        assert store.has_alerted("acme/rocket")
        assert email.notify.call_count == 2

    @pytest.mark.asyncio
    async def test_without_notifiers_repos_are_recorded(self, github, store):
        scanner = TrendScanner(CONFIG, github, store, clock=lambda: NOW)

        await scanner.scan_once()

        assert store.has_alerted("acme/jet")
        assert (await scanner.scan_once()).new_repos == []

    def test_settings(self, github, store):
        scanner = TrendScanner({}, github, store)
        assert scanner.enabled is False
        assert scanner.interval_seconds == 3600
        assert TrendScanner(CONFIG, github, store).interval_seconds == 1800


class TestRunForever:
    @pytest.mark.asyncio
    async def test_failed_round_does_not_stop_loop(self, github, store):
        scanner = TrendScanner(CONFIG, github, store, clock=lambda: NOW)
        scanner.scan_once = AsyncMock(side_effect=[UpstreamError("rate limited", 403), None])
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 2:
                raise asyncio.CancelledError()

        with patch("scanner.asyncio.sleep", side_effect=fake_sleep):
            with pytest.raises(asyncio.CancelledError):
                await scanner.run_forever()

        assert scanner.scan_once.await_count == 2
        assert sleeps == [1800, 1800]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged(self, github, store, caplog):
        scanner = TrendScanner(CONFIG, github, store, clock=lambda: NOW)
        scanner.scan_once = AsyncMock(side_effect=[KeyError("stars"), None])
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 2:
                raise asyncio.CancelledError()

        with caplog.at_level("ERROR", logger="spark.scanner"):
            with patch("scanner.asyncio.sleep", side_effect=fake_sleep):
                with pytest.raises(asyncio.CancelledError):
                    await scanner.run_forever()

        assert scanner.scan_once.await_count == 2
        assert "Unexpected error in scan round" in caplog.text
