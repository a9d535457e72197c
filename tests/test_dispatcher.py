import pytest

from runtara_tui.models.metrics import MetricsGranularity
from runtara_tui.state.dispatcher import Outcome
from runtara_tui.state.viewmodel import FrameKind, StatusFilter, Tab


async def press(dispatcher, *keys):
    outcome = Outcome.CONTINUE
    for key in keys:
        outcome = await dispatcher.dispatch(key)
    return outcome


class TestListFrame:
    @pytest.mark.asyncio
    async def test_quit(self, dispatcher):
        assert await press(dispatcher, "q") is Outcome.QUIT

    @pytest.mark.asyncio
    async def test_escape_at_base_does_not_quit(self, dispatcher, vm):
        assert await press(dispatcher, "escape", "escape") is Outcome.CONTINUE
        assert vm.frame is FrameKind.LIST

    @pytest.mark.asyncio
    async def test_tab_keys(self, dispatcher, vm):
        await press(dispatcher, "tab", "tab")
        assert vm.tab is Tab.METRICS
        await press(dispatcher, "shift+tab")
        assert vm.tab is Tab.IMAGES
        await press(dispatcher, "4")
        assert vm.tab is Tab.HEALTH
        await press(dispatcher, "1")
        assert vm.tab is Tab.INSTANCES

    @pytest.mark.asyncio
    async def test_refresh_key(self, dispatcher, vm, server):
        await press(dispatcher, "r")
        assert server.names()[0] == "connect"
        assert len(vm.instances) == 3

    @pytest.mark.asyncio
    async def test_navigation_keys(self, dispatcher, vm):
        await press(dispatcher, "r", "j", "down")
        assert vm.instances.selected == 2
        await press(dispatcher, "k", "up", "up")
        assert vm.instances.selected == 2

    @pytest.mark.asyncio
    async def test_filter_does_not_fetch(self, dispatcher, vm, server):
        await press(dispatcher, "f", "f")
        assert vm.status_filter is StatusFilter.COMPLETED
        assert server.calls == []

    @pytest.mark.asyncio
    async def test_granularity_only_on_metrics_tab(self, dispatcher, vm, server):
        await press(dispatcher, "g")
        assert vm.metrics_granularity is MetricsGranularity.HOURLY
        assert server.calls == []

        await press(dispatcher, "3", "g")
        assert vm.metrics_granularity is MetricsGranularity.DAILY
        assert ("get_tenant_metrics", "acme", MetricsGranularity.DAILY) in server.calls

    @pytest.mark.asyncio
    async def test_enter_opens_instance_only_on_instances_tab(self, dispatcher, vm):
        await press(dispatcher, "r", "2", "enter")
        assert vm.frame is FrameKind.LIST
        await press(dispatcher, "1", "enter")
        assert vm.frame is FrameKind.INSTANCE_DETAIL

    @pytest.mark.asyncio
    async def test_unmapped_keys_are_ignored(self, dispatcher, vm, server):
        for key in ("x", "ctrl+z", "c", "pagedown", "f12"):
            assert await dispatcher.dispatch(key) is Outcome.CONTINUE
        assert vm.frame is FrameKind.LIST
        assert vm.detail_scroll == 0
        assert server.calls == []


class TestDrillDownFrames:
    @pytest.mark.asyncio
    async def test_walk_down_and_back(self, dispatcher, vm):
        await press(dispatcher, "r", "enter", "c", "j", "enter")
        assert vm.frame is FrameKind.CHECKPOINT_DETAIL
        assert vm.checkpoint_detail.checkpoint_id == "cp-1"
        await press(dispatcher, "escape", "escape", "escape")
        assert vm.frame is FrameKind.LIST
        assert vm.instance_detail is None

    @pytest.mark.asyncio
    async def test_quit_only_at_base(self, dispatcher, vm):
        await press(dispatcher, "r", "enter")
        assert await press(dispatcher, "q") is Outcome.CONTINUE
        assert vm.frame is FrameKind.INSTANCE_DETAIL

    @pytest.mark.asyncio
    async def test_detail_scrolling(self, dispatcher, vm):
        await press(dispatcher, "r", "enter", "j", "j", "pagedown")
        assert vm.detail_scroll == 12
        await press(dispatcher, "k", "pageup", "pageup")
        assert vm.detail_scroll == 0

    @pytest.mark.asyncio
    async def test_list_keys_inactive_in_detail(self, dispatcher, vm):
        await press(dispatcher, "r", "enter", "tab", "f", "3")
        assert vm.tab is Tab.INSTANCES
        assert vm.status_filter is StatusFilter.ALL

    @pytest.mark.asyncio
    async def test_checkpoint_navigation_wraps(self, dispatcher, vm):
        await press(dispatcher, "r", "enter", "c", "k")
        assert vm.checkpoints.selected == 1
        await press(dispatcher, "down")
        assert vm.checkpoints.selected == 0


class TestErrorPopup:
    @pytest.mark.asyncio
    async def test_any_key_dismisses_without_acting(self, dispatcher, vm):
        vm.set_error("Connection failed: refused")
        assert await press(dispatcher, "q") is Outcome.CONTINUE
        assert vm.error is None
        assert await press(dispatcher, "q") is Outcome.QUIT

    @pytest.mark.asyncio
    async def test_failed_open_shows_error_and_stays(self, dispatcher, vm, server):
        await press(dispatcher, "r")
        server.fail("get_instance")
        await press(dispatcher, "enter")
        assert vm.frame is FrameKind.LIST
        assert vm.error.startswith("Failed to get instance details")
        assert len(vm.instances) == 3
