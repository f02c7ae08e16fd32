"""
Tests for Event Bus - lifecycle notification infrastructure.

This test suite covers:
1. Event dispatch order verification
2. Glob pattern matching
3. Priority tie-breaking
4. Failure isolation between consumers
5. Unsubscribe
6. Concurrent publishing (thread safety)
"""

import threading

import pytest

from addonkit.addon.events import ALL_EVENTS, AddonInstalled, AddonUpdated
from addonkit.core.event_bus import EventBus, RegistrationError, glob_to_regex


class TestEventDispatch:
    """Test event dispatch to exact consumers."""

    def test_event_dispatch_order(self):
        """Events should dispatch to all consumers in priority order."""
        bus = EventBus()
        execution_order = []

        @bus.consumer('test.event', priority=10)
        def handler1(event):
            execution_order.append(('handler1', event))

        @bus.consumer('test.event', priority=20)
        def handler2(event):
            execution_order.append(('handler2', event))

        @bus.consumer('test.event', priority=5)
        def handler3(event):
            execution_order.append(('handler3', event))

        bus.publish('test.event', 'test_data')

        assert execution_order == [
            ('handler2', 'test_data'),
            ('handler1', 'test_data'),
            ('handler3', 'test_data'),
        ]

    def test_same_priority_runs_in_registration_order(self):
        """Same priority should execute in registration order."""
        bus = EventBus()
        execution_order = []

        for name in ('first', 'second', 'third'):
            bus.subscribe('test.tie', lambda event, name=name: execution_order.append(name))

        bus.publish('test.tie', None)

        assert execution_order == ['first', 'second', 'third']

    def test_event_handler_error_doesnt_stop_others(self):
        """A failing consumer is logged; the rest still run."""
        bus = EventBus()
        execution_order = []

        @bus.consumer('test.error', priority=30)
        def handler1(event):
            execution_order.append('handler1')

        @bus.consumer('test.error', priority=20)
        def handler2(event):
            execution_order.append('handler2')
            raise ValueError("Handler error")

        @bus.consumer('test.error', priority=10)
        def handler3(event):
            execution_order.append('handler3')

        bus.publish('test.error', None)

        assert execution_order == ['handler1', 'handler2', 'handler3']

    def test_publish_without_consumers(self):
        EventBus().publish('nobody.listens', None)

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []

        def handler(event):
            calls.append(event)

        bus.subscribe('a', handler)
        bus.subscribe('b', handler)
        assert bus.unsubscribe(handler) == 2
        bus.publish('a', 1)
        assert calls == []


class TestPatternConsumers:
    """Test glob pattern subscriptions."""

    def test_glob_single_segment(self):
        """`*` matches within one segment."""
        pattern = glob_to_regex('addon.*')
        assert pattern.match('addon.installed')
        assert not pattern.match('addon.config.changed')
        assert not pattern.match('cache.flushed')

    def test_glob_multi_segment(self):
        """`**` matches across segments."""
        pattern = glob_to_regex('addon.**')
        assert pattern.match('addon.config.changed')

    def test_pattern_consumer_receives_src(self):
        bus = EventBus()
        received = []

        @bus.consumer_re('addon.*')
        def audit(src, event):
            received.append((src, event.addon_id))

        bus.publish(AddonInstalled.event_id, AddonInstalled('A', '1.0'))
        bus.publish('other.thing', None)

        assert received == [('addon.installed', 'A')]

    def test_pattern_consumer_requires_src(self):
        """Pattern consumers must name their first parameter `src`."""
        bus = EventBus()

        with pytest.raises(RegistrationError):
            bus.subscribe_pattern('addon.*', lambda event: None)

    def test_exact_and_pattern_interleave_by_priority(self):
        bus = EventBus()
        order = []
        bus.subscribe('addon.activated', lambda event: order.append('exact'), priority=1)
        bus.subscribe_pattern('addon.*', lambda src, event: order.append('pattern'), priority=5)

        bus.publish('addon.activated', None)

        assert order == ['pattern', 'exact']


class TestLifecycleEvents:
    """Test the lifecycle event payloads."""

    def test_event_ids(self):
        assert [e.event_id for e in ALL_EVENTS] == [
            'addon.installed',
            'addon.uninstalled',
            'addon.activated',
            'addon.deactivated',
            'addon.updated',
        ]

    def test_updated_carries_both_versions(self):
        event = AddonUpdated('A', '1.1.0', old_version='1.0.0')
        assert event.new_version == '1.1.0'
        assert event.old_version == '1.0.0'


def test_concurrent_publish():
    """Publishing from many threads delivers every event once."""
    bus = EventBus()
    lock = threading.Lock()
    counter = {'count': 0}

    def handler(event):
        with lock:
            counter['count'] += 1

    bus.subscribe('test.concurrent', handler)

    def publish_many():
        for _ in range(100):
            bus.publish('test.concurrent', None)

    threads = [threading.Thread(target=publish_many) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter['count'] == 1000
