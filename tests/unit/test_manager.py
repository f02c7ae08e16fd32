"""
Tests for Addon Manager.

This test suite covers:
1. Install / activate / deactivate / update / uninstall transitions
2. Idempotent no-ops and the events they (do not) emit
3. Fail-fast dependency checks leaving the store untouched
4. Hook failures rolled back before any store mutation
5. Start-up registration and boot in dependency order
6. Concurrent operations on related addons
7. Per-addon configuration access
"""

import tempfile
import threading
from pathlib import Path

import pytest

from addonkit.addon.errors import (
    AddonError,
    AddonStateError,
    DependencyUnsatisfiedError,
    HasDependentsError,
    HookExecutionError,
    NotFoundError,
)
from addonkit.addon.hooks import Addon
from addonkit.addon.manager import AddonManager, AddonState
from addonkit.addon.manifest import RawManifest
from addonkit.addon.registry import discover
from addonkit.addon.store import ActivationRecord, MemoryActivationStore
from addonkit.config import ValidationError, load_settings
from addonkit.core.event_bus import EventBus


class RecordingAddon(Addon):
    """Addon that logs every hook call into a shared list."""

    def __init__(self, addon_id, calls, fail_on=None):
        super().__init__()
        self.addon_id = addon_id
        self.calls = calls
        self.fail_on = fail_on

    def _hook(self, name):
        self.calls.append((self.addon_id, name))
        if name == self.fail_on:
            raise RuntimeError(f"{name} exploded")

    def install(self):
        self._hook("install")

    def uninstall(self):
        self._hook("uninstall")

    def activate(self):
        self._hook("activate")

    def deactivate(self):
        self._hook("deactivate")

    def register(self):
        self._hook("register")

    def boot(self):
        self._hook("boot")

    def update(self, from_version):
        self._hook(f"update:{from_version}")


def make_manager(manifests, records=(), fail_on=None, config_file=None):
    """Build a manager whose addons record hook calls into `manager.calls`."""
    calls = []
    raws = [
        RawManifest(
            data=m,
            addon=RecordingAddon(m["id"], calls, (fail_on or {}).get(m["id"])),
        )
        for m in manifests
    ]
    manager = AddonManager(
        discover(raws),
        MemoryActivationStore(list(records)),
        events=EventBus(),
        config_file=config_file,
    )
    manager.calls = calls
    manager.published = []
    manager.events.subscribe_pattern("addon.*", lambda src, event: manager.published.append(
        (src, event.addon_id)
    ))
    return manager


A = {"id": "A", "version": "1.0.0"}
B = {"id": "B", "version": "1.0.0", "dependencies": {"A": ">=1.0.0"}}


class TestInstall:
    """Test installing addons."""

    def test_install_creates_inactive_record(self):
        manager = make_manager([A])

        assert manager.install("A") is True

        record = manager.record("A")
        assert record.installed_version == "1.0.0"
        assert record.is_active is False
        assert manager.state("A") is AddonState.INSTALLED
        assert manager.calls == [("A", "install")]
        assert manager.published == [("addon.installed", "A")]

    def test_install_twice_is_noop(self):
        """Second install does nothing and emits no event."""
        manager = make_manager([A])

        manager.install("A")
        assert manager.install("A") is False

        assert manager.calls == [("A", "install")]
        assert manager.published == [("addon.installed", "A")]

    def test_install_unknown_addon(self):
        manager = make_manager([A])
        with pytest.raises(NotFoundError):
            manager.install("ghost")

    def test_install_with_missing_dependency(self):
        manager = make_manager([B])

        with pytest.raises(DependencyUnsatisfiedError):
            manager.install("B")

        assert not manager.is_installed("B")
        assert manager.calls == []

    def test_install_dependent_before_dependency(self):
        """Dependencies only need to be discoverable at install time."""
        manager = make_manager([A, B])
        assert manager.install("B") is True

    def test_failed_install_hook_leaves_no_record(self):
        manager = make_manager([A], fail_on={"A": "install"})

        with pytest.raises(HookExecutionError) as exc_info:
            manager.install("A")

        error = exc_info.value
        assert error.hook == "install"
        assert isinstance(error.original, RuntimeError)
        assert error.__cause__ is error.original
        assert not manager.is_installed("A")
        assert manager.published == []


class TestActivate:
    """Test activating addons."""

    def test_activate_runs_hooks_in_order(self):
        manager = make_manager([A])
        manager.install("A")

        assert manager.activate("A") is True

        assert manager.calls[1:] == [("A", "activate"), ("A", "register"), ("A", "boot")]
        assert manager.is_active("A")
        assert manager.state("A") is AddonState.ACTIVE
        assert ("addon.activated", "A") in manager.published

    def test_activate_twice_is_noop(self):
        manager = make_manager([A])
        manager.install("A")
        manager.activate("A")

        assert manager.activate("A") is False
        assert manager.published.count(("addon.activated", "A")) == 1

    def test_activate_not_installed(self):
        manager = make_manager([A])
        with pytest.raises(NotFoundError):
            manager.activate("A")

    def test_activate_with_inactive_dependency(self):
        """Activating B while A is only installed fails and writes nothing."""
        manager = make_manager([A, B])
        manager.install("A")
        manager.install("B")

        with pytest.raises(DependencyUnsatisfiedError) as exc_info:
            manager.activate("B")

        assert exc_info.value.reason == "inactive"
        assert not manager.is_active("B")

    def test_failed_boot_leaves_addon_inactive(self):
        manager = make_manager([A], fail_on={"A": "boot"})
        manager.install("A")

        with pytest.raises(HookExecutionError):
            manager.activate("A")

        assert manager.state("A") is AddonState.INSTALLED
        assert ("addon.activated", "A") not in manager.published


class TestDependentScenario:
    """The A / B walk-through: B depends on A >= 1.0.0."""

    def test_full_lifecycle(self):
        manager = make_manager([A, B])

        manager.install("A")
        manager.activate("A")
        manager.install("B")
        manager.activate("B")

        with pytest.raises(HasDependentsError) as exc_info:
            manager.deactivate("A")
        assert exc_info.value.blocking == ["B"]
        assert manager.is_active("A")

        assert manager.deactivate("B") is True
        assert manager.deactivate("A") is True

        with pytest.raises(HasDependentsError):
            manager.uninstall("A")
        assert manager.is_installed("A")

        assert manager.uninstall("B") is True
        assert manager.state("B") is AddonState.DISCOVERED

    def test_uninstall_blocked_by_uninstalled_dependent(self):
        """Any discovered dependent blocks uninstalling."""
        manager = make_manager([A, B])
        manager.install("A")

        with pytest.raises(HasDependentsError):
            manager.uninstall("A")


class TestDeactivateAndUninstall:
    """Test switching off and removing addons."""

    def test_deactivate_inactive_is_noop(self):
        manager = make_manager([A])
        manager.install("A")

        assert manager.deactivate("A") is False
        assert ("A", "deactivate") not in manager.calls

    def test_deactivate_not_installed(self):
        manager = make_manager([A])
        with pytest.raises(NotFoundError):
            manager.deactivate("A")

    def test_uninstall_active_addon_refused(self):
        manager = make_manager([A])
        manager.install("A")
        manager.activate("A")

        with pytest.raises(AddonStateError):
            manager.uninstall("A")
        assert manager.is_active("A")

    def test_uninstall_removes_record(self):
        manager = make_manager([A])
        manager.install("A")

        assert manager.uninstall("A") is True

        assert manager.record("A") is None
        assert manager.calls[-1] == ("A", "uninstall")
        assert manager.published[-1] == ("addon.uninstalled", "A")

    def test_uninstall_not_installed(self):
        manager = make_manager([A])
        with pytest.raises(NotFoundError):
            manager.uninstall("A")

    def test_failed_uninstall_hook_keeps_record(self):
        manager = make_manager([A], fail_on={"A": "uninstall"})
        manager.install("A")

        with pytest.raises(HookExecutionError):
            manager.uninstall("A")
        assert manager.is_installed("A")


class TestUpdate:
    """Test updating to a newer discovered version."""

    def test_update_to_newer_version(self):
        manager = make_manager(
            [{"id": "A", "version": "1.1.0"}],
            records=[ActivationRecord(id="A", installed_version="1.0.0")],
        )
        events = []
        manager.events.subscribe("addon.updated", events.append)

        assert manager.update("A") is True

        assert manager.record("A").installed_version == "1.1.0"
        assert manager.calls == [("A", "update:1.0.0")]
        assert events[0].old_version == "1.0.0"
        assert events[0].new_version == "1.1.0"

    @pytest.mark.parametrize("installed", ["1.0.0", "1.0", "2.0.0"])
    def test_same_or_older_version_is_noop(self, installed):
        """Nothing is rewritten and no hook runs unless strictly newer."""
        manager = make_manager(
            [A], records=[ActivationRecord(id="A", installed_version=installed)]
        )
        before = manager.record("A")

        assert manager.update("A") is False

        assert manager.record("A") == before
        assert manager.calls == []
        assert manager.published == []

    def test_update_breaking_active_dependent(self):
        manager = make_manager(
            [{"id": "A", "version": "2.0.0"}, {"id": "B", "version": "1.0", "dependencies": {"A": "^1.0"}}],
            records=[
                ActivationRecord(id="A", installed_version="1.0.0", is_active=True),
                ActivationRecord(id="B", installed_version="1.0", is_active=True),
            ],
        )

        with pytest.raises(DependencyUnsatisfiedError):
            manager.update("A")
        assert manager.record("A").installed_version == "1.0.0"

    def test_failed_update_hook_keeps_old_version(self):
        manager = make_manager(
            [{"id": "A", "version": "1.1.0"}],
            records=[ActivationRecord(id="A", installed_version="1.0.0")],
            fail_on={"A": "update:1.0.0"},
        )

        with pytest.raises(HookExecutionError):
            manager.update("A")
        assert manager.record("A").installed_version == "1.0.0"

    def test_update_not_installed(self):
        manager = make_manager([A])
        with pytest.raises(NotFoundError):
            manager.update("A")


class TestQueries:
    """Test read-only manager queries."""

    def test_state_of_unknown_addon(self):
        manager = make_manager([A])
        with pytest.raises(NotFoundError):
            manager.state("ghost")

    def test_installed_and_active(self):
        manager = make_manager([A, B, {"id": "C", "version": "1.0"}])
        manager.install("A")
        manager.activate("A")
        manager.install("B")

        assert manager.has("C")
        assert not manager.has("ghost")
        assert manager.get("A").id == "A"
        assert [d.id for d in manager.installed()] == ["A", "B"]
        assert [d.id for d in manager.active()] == ["A"]


class TestStartup:
    """Test batch register/boot of active addons."""

    def test_start_boots_dependencies_first(self):
        manifests = [
            {"id": "app", "version": "1.0", "dependencies": {"db": ">=1.0", "cache": ">=1.0"}},
            {"id": "cache", "version": "1.0", "dependencies": {"db": ">=1.0"}},
            {"id": "db", "version": "1.0"},
            {"id": "idle", "version": "1.0"},
        ]
        records = [
            ActivationRecord(id="app", installed_version="1.0", is_active=True),
            ActivationRecord(id="cache", installed_version="1.0", is_active=True),
            ActivationRecord(id="db", installed_version="1.0", is_active=True),
            ActivationRecord(id="idle", installed_version="1.0"),
        ]
        manager = make_manager(manifests, records)

        booted = manager.start()

        assert booted == ["db", "cache", "app"]
        assert manager.calls == [
            ("db", "register"),
            ("cache", "register"),
            ("app", "register"),
            ("db", "boot"),
            ("cache", "boot"),
            ("app", "boot"),
        ]

    def test_start_runs_once(self):
        manager = make_manager([A])
        manager.start()
        with pytest.raises(AddonStateError):
            manager.start()

    def test_failed_start_can_be_retried(self):
        """A hook failure during start does not mark the manager started."""
        manager = make_manager(
            [A],
            records=[ActivationRecord(id="A", installed_version="1.0.0", is_active=True)],
            fail_on={"A": "register"},
        )

        with pytest.raises(HookExecutionError):
            manager.start()

        manager.get("A").addon.fail_on = None
        assert manager.start() == ["A"]
        assert manager.calls[-2:] == [("A", "register"), ("A", "boot")]

    def test_undiscovered_active_record_skipped(self):
        manager = make_manager(
            [A],
            records=[
                ActivationRecord(id="A", installed_version="1.0.0", is_active=True),
                ActivationRecord(id="gone", installed_version="1.0", is_active=True),
            ],
        )
        assert manager.register_active() == ["A"]
        assert manager.boot_active() == ["A"]


class TestEvents:
    """Test lifecycle event publication."""

    def test_failing_subscriber_does_not_break_operation(self):
        manager = make_manager([A])

        def broken(event):
            raise RuntimeError("subscriber failed")

        manager.events.subscribe("addon.installed", broken)

        assert manager.install("A") is True
        assert manager.is_installed("A")

    def test_event_payload(self):
        manager = make_manager([A])
        received = []
        manager.events.subscribe("addon.installed", received.append)

        manager.install("A")

        assert received[0].addon_id == "A"
        assert received[0].version == "1.0.0"

    def test_events_for_one_addon_arrive_in_commit_order(self):
        """An uninstall racing a slow install subscriber is delivered second."""
        manager = make_manager([A])
        order = []
        racer = []

        def slow_subscriber(event):
            thread = threading.Thread(target=manager.uninstall, args=("A",))
            racer.append(thread)
            thread.start()
            thread.join(timeout=0.2)

        manager.events.subscribe("addon.installed", slow_subscriber, priority=10)
        manager.events.subscribe_pattern("addon.*", lambda src, event: order.append(src))

        manager.install("A")
        racer[0].join()

        assert order == ["addon.installed", "addon.uninstalled"]
        assert not manager.is_installed("A")


class TestConcurrency:
    """Test concurrent operations on related addons."""

    def test_concurrent_install_single_winner(self):
        manager = make_manager([A])
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(manager.install("A"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert manager.calls == [("A", "install")]

    def test_deactivate_and_activate_dependent_race(self):
        """Either B ends up active on an active A, or A is off and B is not on."""
        for _ in range(20):
            manager = make_manager(
                [A, B],
                records=[
                    ActivationRecord(id="A", installed_version="1.0.0", is_active=True),
                    ActivationRecord(id="B", installed_version="1.0.0"),
                ],
            )
            barrier = threading.Barrier(2)

            def run(operation, addon_id, manager=manager, barrier=barrier):
                barrier.wait()
                try:
                    operation(addon_id)
                except AddonError:
                    pass

            threads = [
                threading.Thread(target=run, args=(manager.activate, "B")),
                threading.Thread(target=run, args=(manager.deactivate, "A")),
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            if manager.is_active("B"):
                assert manager.is_active("A")


class TestAddonConfig:
    """Test per-addon configuration access through the manager."""

    MANIFEST = {
        "id": "reviews",
        "version": "1.0",
        "config": {
            "per_page": {"type": "int", "default": 10, "min": 1, "max": 100},
            "mode": {"type": "str", "default": "fast", "choices": ["fast", "safe"]},
        },
    }

    def test_defaults_and_write(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "addons.toml"
            manager = make_manager([self.MANIFEST], config_file=config_file)

            cfg = manager.config("reviews")
            assert cfg.per_page == 10
            cfg.per_page = 25

            assert manager.config("reviews") is cfg
            assert "per_page = 25" in config_file.read_text()

    def test_invalid_write_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            manager = make_manager([self.MANIFEST], config_file=Path(tmpdir) / "addons.toml")

            with pytest.raises(ValidationError):
                manager.config("reviews").mode = "reckless"

    def test_config_without_file(self):
        manager = make_manager([self.MANIFEST])
        with pytest.raises(AddonError):
            manager.config("reviews")


def test_from_settings(tmp_path):
    """A manager built from settings discovers packages on disk."""
    addon_dir = tmp_path / "addons" / "catalog"
    addon_dir.mkdir(parents=True)
    (addon_dir / "addon.json").write_text('{"id": "catalog", "version": "1.2.0"}')

    settings = load_settings(tmp_path / "addonkit.toml")
    manager = AddonManager.from_settings(settings)

    assert manager.install("catalog") is True
    assert (tmp_path / "var" / "addons-state.toml").exists()
    assert manager.config_file == tmp_path / "config" / "addons.toml"
