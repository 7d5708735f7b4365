"""Tests for cooldown, mute precedence and delivery in the alert dispatcher."""
import pytest

from alerts.dispatcher import AlertDispatcher
from alerts.mutes import MuteRegistry
from models.alerts import AlertCandidate, DispatchOutcome
from models.enums import Severity, SuppressedBy
from utils.constants import HOUR_MS, MINUTE_MS, SECOND_MS

from conftest import RecordingChannel


def cpu_alert(value=92.0, threshold=80.0):
    return AlertCandidate(
        category="resource_cpu", severity=Severity.WARNING, title="High CPU Usage",
        body=f"Current: {value:.1f}%", threshold=threshold, value=value,
    )


def info_alert(body="Core service is back UP"):
    return AlertCandidate(category="service_health", severity=Severity.INFO, body=body)


class ExplodingChannel:
    def send(self, text, actions=None):
        raise RuntimeError("boom")


@pytest.fixture
def mutes(temp_db, clock):
    return MuteRegistry(temp_db, clock=clock)


@pytest.fixture
def dispatcher(mutes, channel, runtime, temp_db, clock):
    return AlertDispatcher(mutes, [channel], runtime_config=runtime, db=temp_db, clock=clock)


class TestCooldown:
    def test_first_alert_is_sent(self, dispatcher, channel):
        outcome = dispatcher.dispatch(cpu_alert())
        assert outcome.sent
        assert outcome.suppressed_by == SuppressedBy.NONE
        text, actions = channel.sent[0]
        assert text.startswith("⚠️ *WARNING*\n\n*High CPU Usage*")
        assert actions == [{"text": "🔕 Mute", "callback_data": "mute_menu:resource_cpu"}]

    def test_repeat_within_cooldown_is_suppressed_without_history(self, dispatcher, channel, clock):
        dispatcher.dispatch(cpu_alert())
        clock.advance(5 * MINUTE_MS)
        outcome = dispatcher.dispatch(cpu_alert(value=97.0))
        assert outcome == DispatchOutcome(sent=False, suppressed_by=SuppressedBy.COOLDOWN)
        assert len(channel.sent) == 1
        assert len(dispatcher.history) == 1

    def test_cooldown_does_not_extend(self, dispatcher, channel, clock):
        dispatcher.dispatch(cpu_alert())
        clock.advance(9 * MINUTE_MS)
        dispatcher.dispatch(cpu_alert())
        clock.advance(1 * MINUTE_MS)
        assert dispatcher.dispatch(cpu_alert()).sent
        assert len(channel.sent) == 2

    def test_different_threshold_is_a_different_key(self, dispatcher, channel):
        dispatcher.dispatch(cpu_alert(threshold=80.0))
        assert dispatcher.dispatch(cpu_alert(threshold=70.0)).sent

    def test_non_threshold_alerts_dedupe_on_body(self, dispatcher):
        assert dispatcher.dispatch(info_alert()).sent
        assert not dispatcher.dispatch(info_alert()).sent
        assert dispatcher.dispatch(info_alert("Observer service is back UP")).sent

    def test_cooldown_follows_runtime_config(self, dispatcher, runtime, clock):
        runtime.set("alert_cooldown_seconds", 30)
        dispatcher.dispatch(cpu_alert())
        clock.advance(30 * SECOND_MS)
        assert dispatcher.dispatch(cpu_alert()).sent


class TestMutes:
    def test_global_mute_records_history(self, dispatcher, mutes, channel, temp_db):
        mutes.mute_global(HOUR_MS)
        outcome = dispatcher.dispatch(cpu_alert())
        assert outcome.suppressed_by == SuppressedBy.GLOBAL_MUTE
        assert not outcome.sent
        assert channel.sent == []
        assert len(dispatcher.history) == 1
        assert temp_db.recent_alerts()[0].category == "resource_cpu"

    def test_global_takes_precedence_over_category(self, dispatcher, mutes):
        mutes.mute_category("resource_cpu", HOUR_MS)
        mutes.mute_global(HOUR_MS)
        assert dispatcher.dispatch(cpu_alert()).suppressed_by == SuppressedBy.GLOBAL_MUTE

    def test_category_mute(self, dispatcher, mutes, channel):
        mutes.mute_category("resource_cpu", HOUR_MS)
        assert dispatcher.dispatch(cpu_alert()).suppressed_by == SuppressedBy.CATEGORY_MUTE
        assert dispatcher.dispatch(info_alert()).sent

    def test_muted_alert_still_starts_cooldown(self, dispatcher, mutes, clock):
        mutes.mute_global(MINUTE_MS)
        dispatcher.dispatch(cpu_alert())
        clock.advance(2 * MINUTE_MS)
        assert dispatcher.dispatch(cpu_alert()).suppressed_by == SuppressedBy.COOLDOWN

    def test_expired_category_mute_is_swept(self, dispatcher, mutes, clock, channel):
        mutes.mute_category("resource_cpu", MINUTE_MS)
        clock.advance(MINUTE_MS)
        assert dispatcher.dispatch(cpu_alert()).sent
        assert mutes.category_mutes == {}

    def test_mute_key_falls_back_to_severity(self, dispatcher, mutes):
        mutes.mute_category("critical", HOUR_MS)
        alert = AlertCandidate(severity=Severity.CRITICAL, body="uncategorised")
        assert dispatcher.dispatch(alert).suppressed_by == SuppressedBy.CATEGORY_MUTE


class TestDelivery:
    def test_failed_channel_reports_not_sent(self, mutes, runtime, clock):
        failing = RecordingChannel(ok=False)
        dispatcher = AlertDispatcher(mutes, [failing], runtime_config=runtime, clock=clock)
        outcome = dispatcher.dispatch(cpu_alert())
        assert not outcome.sent
        assert outcome.suppressed_by == SuppressedBy.NONE
        assert len(dispatcher.history) == 1

    def test_any_successful_channel_counts(self, mutes, runtime, clock):
        good = RecordingChannel()
        dispatcher = AlertDispatcher(mutes, [ExplodingChannel(), RecordingChannel(ok=False), good],
                                     runtime_config=runtime, clock=clock)
        assert dispatcher.dispatch(cpu_alert()).sent
        assert len(good.sent) == 1

    def test_history_is_bounded(self, mutes, runtime, clock):
        dispatcher = AlertDispatcher(mutes, [], runtime_config=runtime, clock=clock)
        for i in range(150):
            dispatcher.dispatch(info_alert(f"event {i}"))
        assert len(dispatcher.history) == 100
        assert dispatcher.history[-1].message == "event 149"

    def test_dispatch_all_preserves_order(self, dispatcher, channel):
        outcomes = dispatcher.dispatch_all([cpu_alert(), cpu_alert(), info_alert()])
        assert [o.sent for o in outcomes] == [True, False, True]
