from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Tuple, Union

from .viewmodel import FrameKind, Tab, ViewModel
from ..services.orchestrator import RefreshOrchestrator

log = logging.getLogger(__name__)

PAGE_SCROLL = 10


class Outcome(Enum):
    CONTINUE = "continue"
    QUIT = "quit"


Action = Callable[[], Union[None, Outcome, Awaitable[None]]]


class InputDispatcher:
    """
    Maps (current frame, key) to exactly one action.

    Keys use Textual's names ("enter", "escape", "shift+tab", "j", ...).
    Keys that mean nothing in the current frame are ignored.
    """

    def __init__(self, vm: ViewModel, orchestrator: RefreshOrchestrator) -> None:
        self.vm = vm
        self.orchestrator = orchestrator
        self._keymap: Dict[Tuple[FrameKind, str], Action] = {}
        self._build_keymap()

    def _bind(self, frame: FrameKind, keys: Tuple[str, ...], action: Action) -> None:
        for key in keys:
            self._keymap[(frame, key)] = action

    def _build_keymap(self) -> None:
        vm = self.vm
        orch = self.orchestrator
        LIST = FrameKind.LIST

        self._bind(LIST, ("q",), lambda: Outcome.QUIT)
        self._bind(LIST, ("r",), orch.refresh)
        self._bind(LIST, ("tab",), vm.advance_tab)
        self._bind(LIST, ("shift+tab",), vm.retreat_tab)
        for index in range(4):
            self._bind(LIST, (str(index + 1),), lambda index=index: vm.select_tab(index))
        self._bind(LIST, ("down", "j"), lambda: vm.move_selection(1))
        self._bind(LIST, ("up", "k"), lambda: vm.move_selection(-1))
        self._bind(LIST, ("f",), vm.cycle_status_filter)
        self._bind(LIST, ("g",), self._toggle_granularity)
        self._bind(LIST, ("enter",), self._open_selected_instance)

        for frame in (FrameKind.INSTANCE_DETAIL, FrameKind.CHECKPOINTS_LIST, FrameKind.CHECKPOINT_DETAIL, LIST):
            self._bind(frame, ("escape",), vm.pop_frame)

        for frame in (FrameKind.INSTANCE_DETAIL, FrameKind.CHECKPOINT_DETAIL):
            self._bind(frame, ("down", "j"), lambda: vm.scroll(1))
            self._bind(frame, ("up", "k"), lambda: vm.scroll(-1))
            self._bind(frame, ("pagedown",), lambda: vm.scroll(PAGE_SCROLL))
            self._bind(frame, ("pageup",), lambda: vm.scroll(-PAGE_SCROLL))

        self._bind(FrameKind.INSTANCE_DETAIL, ("c",), orch.open_checkpoints_list)

        self._bind(FrameKind.CHECKPOINTS_LIST, ("enter",), orch.open_checkpoint_detail)
        self._bind(FrameKind.CHECKPOINTS_LIST, ("down", "j"), lambda: vm.move_checkpoint_selection(1))
        self._bind(FrameKind.CHECKPOINTS_LIST, ("up", "k"), lambda: vm.move_checkpoint_selection(-1))

    async def _toggle_granularity(self) -> None:
        if self.vm.tab is not Tab.METRICS:
            return
        self.vm.toggle_metrics_granularity()
        await self.orchestrator.refresh()

    async def _open_selected_instance(self) -> None:
        if self.vm.tab is Tab.INSTANCES:
            await self.orchestrator.open_instance_detail()

    def action_for(self, key: str) -> Optional[Action]:
        return self._keymap.get((self.vm.frame, key))

    async def dispatch(self, key: str) -> Outcome:
        # an open error popup swallows the key that dismisses it
        if self.vm.error is not None:
            self.vm.clear_error()
            return Outcome.CONTINUE
        action = self.action_for(key)
        if action is None:
            return Outcome.CONTINUE
        log.debug(f"key {key!r} in {self.vm.frame.value}")
        result = action()
        if isinstance(result, Outcome):
            return result
        if result is not None:
            await result
        return Outcome.CONTINUE
