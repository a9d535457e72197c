from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from ..config import SessionConfig
from ..errors import ManagementError, ServerConnectionError
from ..state.viewmodel import FrameKind, ViewModel
from .management import ManagementClient, RemoteClient

log = logging.getLogger(__name__)

ClientFactory = Callable[[SessionConfig], RemoteClient]


class RefreshOrchestrator:
    """
    Runs every remote operation the dashboard performs and folds the results
    into the view model.

    A refresh cycle always reloads the base list data (health, instances,
    images, metrics), whatever frame is open. Drill-downs fetch one record
    and push the matching frame only when the fetch succeeds. All of it is
    serialized behind one lock: at most one operation talks to the server at
    any time.
    """

    def __init__(
        self,
        vm: ViewModel,
        client_factory: ClientFactory = ManagementClient.from_config,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.vm = vm
        self.config = vm.config
        self._client_factory = client_factory
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def now(self) -> float:
        return self._clock()

    def is_due(self, now: Optional[float] = None) -> bool:
        if self.vm.last_refresh is None:
            return True
        now = self._clock() if now is None else now
        return now - self.vm.last_refresh >= self.config.refresh_interval

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[RemoteClient]:
        # a fresh client per operation, closed when the operation ends
        try:
            client = self._client_factory(self.config)
        except Exception as e:
            raise ServerConnectionError(f"cannot create client: {e}") from e
        async with client:
            await client.connect()
            yield client

    async def refresh(self) -> None:
        vm = self.vm
        async with self._lock:
            vm.clear_error()
            try:
                async with self._connection() as client:
                    vm.connected = True
                    await self._fetch_all(client)
            except ServerConnectionError as e:
                log.warning(f"connection to {self.config.server_addr} failed: {e}")
                vm.connected = False
                vm.set_error(f"Connection failed: {e}")
            finally:
                vm.last_refresh = self._clock()

    async def _fetch_all(self, client: RemoteClient) -> None:
        vm = self.vm
        cfg = self.config

        try:
            vm.set_health(await client.health_check())
        except ManagementError as e:
            log.warning(f"health check failed: {e}")
            vm.set_error(f"Health check failed: {e}")

        try:
            page = await client.list_instances(cfg.tenant_id, vm.status_filter.instance_status, cfg.page_limit)
            vm.set_instances(page)
            log.debug(f"instances: {len(page.items)} of {page.total_count} (filter={vm.status_filter.label})")
        except ManagementError as e:
            log.warning(f"list instances failed: {e}")
            vm.set_error(f"Failed to list instances: {e}")

        try:
            page = await client.list_images(cfg.tenant_id, cfg.page_limit)
            vm.set_images(page)
            log.debug(f"images: {len(page.items)} of {page.total_count}")
        except ManagementError as e:
            log.warning(f"list images failed: {e}")
            vm.set_error(f"Failed to list images: {e}")

        # metrics are per tenant; without one there is nothing to ask for
        if cfg.tenant_id:
            try:
                vm.set_metrics(await client.get_tenant_metrics(cfg.tenant_id, vm.metrics_granularity))
            except ManagementError as e:
                log.warning(f"tenant metrics failed: {e}")
                vm.set_error(f"Failed to get metrics: {e}")

    async def open_instance_detail(self) -> None:
        selected = self.vm.instances.current
        if selected is None or self.vm.frame is not FrameKind.LIST:
            return
        async with self._lock:
            try:
                async with self._connection() as client:
                    info = await client.get_instance(selected.instance_id)
            except ServerConnectionError as e:
                log.warning(f"connection to {self.config.server_addr} failed: {e}")
                self.vm.set_error(f"Connection failed: {e}")
                return
            except ManagementError as e:
                log.warning(f"get instance {selected.instance_id} failed: {e}")
                self.vm.set_error(f"Failed to get instance details: {e}")
                return
            self.vm.push_frame(FrameKind.INSTANCE_DETAIL, info)

    async def open_checkpoints_list(self) -> None:
        info = self.vm.instance_detail
        if info is None or self.vm.frame is not FrameKind.INSTANCE_DETAIL:
            return
        async with self._lock:
            try:
                async with self._connection() as client:
                    page = await client.list_checkpoints(info.instance_id, self.config.page_limit)
            except ServerConnectionError as e:
                log.warning(f"connection to {self.config.server_addr} failed: {e}")
                self.vm.set_error(f"Connection failed: {e}")
                return
            except ManagementError as e:
                log.warning(f"list checkpoints for {info.instance_id} failed: {e}")
                self.vm.set_error(f"Failed to list checkpoints: {e}")
                return
            self.vm.push_frame(FrameKind.CHECKPOINTS_LIST, page)

    async def open_checkpoint_detail(self) -> None:
        listing = self.vm.checkpoints
        selected = listing.current if listing is not None else None
        if selected is None or self.vm.frame is not FrameKind.CHECKPOINTS_LIST:
            return
        async with self._lock:
            try:
                async with self._connection() as client:
                    checkpoint = await client.get_checkpoint(selected.instance_id, selected.checkpoint_id)
            except ServerConnectionError as e:
                log.warning(f"connection to {self.config.server_addr} failed: {e}")
                self.vm.set_error(f"Connection failed: {e}")
                return
            except ManagementError as e:
                log.warning(f"get checkpoint {selected.checkpoint_id} failed: {e}")
                self.vm.set_error(f"Failed to get checkpoint: {e}")
                return
            if checkpoint is None:
                log.info(f"checkpoint {selected.checkpoint_id} of {selected.instance_id} no longer exists")
                self.vm.set_error("Checkpoint not found")
                return
            self.vm.push_frame(FrameKind.CHECKPOINT_DETAIL, checkpoint)
