# tests/unit/app/test_lifecycle.py
"""Tests for the application lifecycle state machine."""

from typing import Any

import pytest
from structlog.testing import capture_logs

from zapforge.app.lifecycle import ApplicationLifecycle
from zapforge.contracts.enums import LifecycleState
from zapforge.contracts.errors import LifecycleTransitionError, ServerStartError
from zapforge.core.store.database import MetadataStore


def _lifecycle(fakes: Any, quits: list[str], platform: str = "linux") -> ApplicationLifecycle:
    return ApplicationLifecycle(
        store=fakes.store,
        server=fakes.server,
        window_manager=fakes.window_manager,
        request_quit=lambda: quits.append("quit"),
        platform=platform,
    )


class TestStarted:
    def test_started_enters_running(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [])

        lifecycle.started(9070)

        assert lifecycle.state == LifecycleState.RUNNING
        assert lifecycle.bound_port == 9070

    def test_started_twice_rejected(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [])
        lifecycle.started(9070)

        with pytest.raises(LifecycleTransitionError, match="started"):
            lifecycle.started(9071)

    def test_signals_before_start_rejected(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [])

        with pytest.raises(LifecycleTransitionError):
            lifecycle.window_all_closed()
        with pytest.raises(LifecycleTransitionError):
            lifecycle.reactivate()


class TestWindowAllClosed:
    def test_quits_on_linux(self, fakes) -> None:
        quits: list[str] = []
        lifecycle = _lifecycle(fakes, quits, platform="linux")
        lifecycle.started(9070)

        assert lifecycle.window_all_closed() is True
        assert quits == ["quit"]
        assert "window_closed" in fakes.recorder.calls

    def test_quits_on_windows(self, fakes) -> None:
        quits: list[str] = []
        lifecycle = _lifecycle(fakes, quits, platform="win32")
        lifecycle.started(9070)

        assert lifecycle.window_all_closed() is True
        assert quits == ["quit"]

    def test_stays_alive_on_macos(self, fakes) -> None:
        quits: list[str] = []
        lifecycle = _lifecycle(fakes, quits, platform="darwin")
        lifecycle.started(9070)

        assert lifecycle.window_all_closed() is False
        assert quits == []
        assert lifecycle.state == LifecycleState.RUNNING


class TestReactivate:
    def test_reopens_window_without_rerunning_startup(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [], platform="darwin")
        lifecycle.started(9070)
        lifecycle.window_all_closed()

        with capture_logs() as logs:
            opened = lifecycle.reactivate()

        assert opened is True
        assert fakes.window_manager.opened == [(9070, None)]
        assert "open_store" not in fakes.recorder.calls
        assert "server_start" not in fakes.recorder.calls
        assert [entry["event"] for entry in logs] == ["Activate..."]

    def test_window_already_present(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [])
        lifecycle.started(9070)
        fakes.window_manager.open(9070)

        assert lifecycle.reactivate() is False
        assert len(fakes.window_manager.opened) == 1

    def test_running_without_port_rejected(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [])
        lifecycle._state = LifecycleState.RUNNING

        with pytest.raises(LifecycleTransitionError, match="without a bound port"):
            lifecycle.reactivate()
        assert "window_create_if_not_there" not in fakes.recorder.calls


class TestQuit:
    @pytest.mark.asyncio
    async def test_quit_stops_server_then_closes_store(self, fakes) -> None:
        store = MetadataStore.in_memory()
        fakes.store.set_current(store)
        fakes.server.is_running = True
        lifecycle = _lifecycle(fakes, [])
        lifecycle.started(9070)

        with capture_logs() as logs:
            await lifecycle.quit()

        assert fakes.recorder.calls[-2:] == ["server_stop", "close_store"]
        assert not store.is_open
        assert lifecycle.state == LifecycleState.STOPPED
        assert [entry["event"] for entry in logs] == ["Database closed, shutting down."]

    @pytest.mark.asyncio
    async def test_quit_without_store(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [])

        with capture_logs() as logs:
            await lifecycle.quit()

        assert "server_stop" not in fakes.recorder.calls
        assert [entry["event"] for entry in logs] == ["Shutting down."]
        assert lifecycle.state == LifecycleState.STOPPED

    @pytest.mark.asyncio
    async def test_second_quit_is_noop(self, fakes) -> None:
        fakes.store.set_current(MetadataStore.in_memory())
        lifecycle = _lifecycle(fakes, [])

        await lifecycle.quit()
        await lifecycle.quit()

        assert fakes.recorder.count("close_store") == 1
        assert fakes.store.closed == 1

    @pytest.mark.asyncio
    async def test_store_closed_even_if_server_stop_fails(self, fakes) -> None:
        store = MetadataStore.in_memory()
        fakes.store.set_current(store)
        fakes.server.is_running = True
        fakes.recorder.failures["server_stop"] = ServerStartError("stuck")
        lifecycle = _lifecycle(fakes, [])

        with pytest.raises(ServerStartError):
            await lifecycle.quit()

        assert not store.is_open
        assert lifecycle.state == LifecycleState.STOPPED

    @pytest.mark.asyncio
    async def test_signals_after_quit_rejected(self, fakes) -> None:
        lifecycle = _lifecycle(fakes, [])
        lifecycle.started(9070)
        await lifecycle.quit()

        with pytest.raises(LifecycleTransitionError, match="stopped"):
            lifecycle.reactivate()
