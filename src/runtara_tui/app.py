from __future__ import annotations
from textual.app import App
from .config import SessionConfig
from .ui.screens.dashboard import DashboardScreen
from .services.management import ManagementClient
from .services.orchestrator import ClientFactory, RefreshOrchestrator
from .state.dispatcher import InputDispatcher
from .state.viewmodel import ViewModel

class RuntaraTui(App):
    TITLE = "Runtara Monitor"
    CSS_PATH = None

    def __init__(self, config: SessionConfig, client_factory: ClientFactory = ManagementClient.from_config) -> None:
        super().__init__()
        self.vm = ViewModel(config)
        self.orchestrator = RefreshOrchestrator(self.vm, client_factory)
        self.dispatcher = InputDispatcher(self.vm, self.orchestrator)

    def on_mount(self) -> None:
        self.sub_title = str(self.vm.config.server_addr)
        self.push_screen(DashboardScreen(self.vm, self.orchestrator, self.dispatcher))
