from __future__ import annotations

import logging

from textual import events, on
from textual.app import ComposeResult
from textual.message import Message
from textual.screen import Screen
from textual.widgets import Header, Static

from ...services.orchestrator import RefreshOrchestrator
from ...state.dispatcher import InputDispatcher, Outcome
from ...state.viewmodel import ViewModel
from ..render import render

log = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


class PollTick(Message):
    """Posted every poll interval; handled in order with key presses."""


class DashboardScreen(Screen):
    DEFAULT_CSS = """
    DashboardScreen { layers: base overlay; }
    #tabs { height: 1; padding: 0 1; }
    #body { height: 1fr; padding: 0 1; }
    #footer { height: 1; padding: 0 1; }
    #error { layer: overlay; dock: top; margin: 6 12; height: auto; display: none; }
    """

    def __init__(self, vm: ViewModel, orchestrator: RefreshOrchestrator, dispatcher: InputDispatcher) -> None:
        super().__init__()
        self.vm = vm
        self.orchestrator = orchestrator
        self.dispatcher = dispatcher

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(id="tabs")
        yield Static(id="body")
        yield Static(id="footer")
        yield Static(id="error")

    def on_mount(self) -> None:
        self.render_view()
        self.set_interval(POLL_INTERVAL, self._post_tick)

    def _post_tick(self) -> None:
        # while a fetch is in flight the queue is blocked anyway; don't pile up ticks
        if not self.orchestrator.busy:
            self.post_message(PollTick())

    @on(PollTick)
    async def handle_tick(self, message: PollTick) -> None:
        if self.orchestrator.is_due():
            await self.orchestrator.refresh()
        self.render_view()

    async def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        outcome = await self.dispatcher.dispatch(event.key)
        if outcome is Outcome.QUIT:
            log.info("quit requested")
            self.app.exit()
            return
        self.render_view()

    def render_view(self) -> None:
        frame = render(self.vm.snapshot(self.orchestrator.now()))
        self.query_one("#tabs", Static).update(frame.header)
        self.query_one("#body", Static).update(frame.body)
        self.query_one("#footer", Static).update(frame.footer)
        error = self.query_one("#error", Static)
        if frame.error is None:
            error.display = False
        else:
            error.update(frame.error)
            error.display = True
