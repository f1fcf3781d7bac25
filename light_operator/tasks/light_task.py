# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Per-Light reconcile runner

Each pass builds its own clients, so it can run inside a fresh event loop in
a Celery worker. The next pass is handed back to the scheduler.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from light_operator.concurrent_control import RedisLock, create_lock
from light_operator.config import Settings, settings
from light_operator.k8s.controller import Action, Context, error_policy, reconcile
from light_operator.k8s.errors import KubernetesError
from light_operator.k8s.store import KubernetesLightStore
from light_operator.smarthome import get_smart_home_api
from light_operator.tasks.scheduler import ReconcileScheduler, create_reconcile_scheduler

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "light-operator:lock:"


@asynccontextmanager
async def build_context(config: Settings) -> AsyncIterator[Context]:
    """Open the smart home backend and the store for one pass"""
    smart_home_api = get_smart_home_api(config)
    store = KubernetesLightStore(config.kubernetes, field_manager=config.controller.field_manager)
    try:
        yield Context(config=config, smart_home_api=smart_home_api, store=store)
    finally:
        await store.aclose()
        await smart_home_api.aclose()


class LightReconcileTask:
    """Runs reconcile passes and keeps each Light's requeue chain going"""

    def __init__(
        self,
        scheduler: Optional[ReconcileScheduler] = None,
        scheduler_type: str = "celery",
        config: Optional[Settings] = None,
        context_builder: Callable = build_context,
        use_lock: bool = True,
    ):
        self._scheduler = scheduler
        self._scheduler_type = scheduler_type
        self.config = config or settings
        self.context_builder = context_builder
        self.use_lock = use_lock

    @property
    def scheduler(self) -> ReconcileScheduler:
        if self._scheduler is None:
            self._scheduler = create_reconcile_scheduler(self._scheduler_type)
        return self._scheduler

    def _create_lock(self, namespace: str, name: str) -> RedisLock:
        return create_lock(
            "redis",
            key=f"{LOCK_KEY_PREFIX}{namespace}/{name}",
            redis_url=self.config.redis_url,
            expire_time=self.config.controller.lock_expire_seconds,
            retry_times=0,
        )

    @staticmethod
    async def _reconcile(light, ctx: Context) -> Action:
        try:
            return await reconcile(light, ctx)
        except Exception as e:
            return error_policy(light, e, ctx)

    async def _run_pass(self, ctx: Context, namespace: str, name: str) -> Optional[Action]:
        try:
            light = await ctx.store.get_light(namespace, name)
        except KubernetesError as e:
            logger.error(f"Failed to read Light {namespace}/{name}: {e}", exc_info=True)
            return Action.requeue(self.config.controller.error_requeue_seconds)

        if light is None:
            logger.info(f"Light {namespace}/{name} no longer exists, stopping its reconcile chain")
            return None

        if not self.use_lock:
            return await self._reconcile(light, ctx)

        lock = self._create_lock(namespace, name)
        try:
            try:
                acquired = await lock.acquire()
            except ConnectionError as e:
                logger.error(f"Cannot lock Light {namespace}/{name}: {e}")
                return Action.requeue(self.config.controller.error_requeue_seconds)
            if not acquired:
                logger.info(f"Light {namespace}/{name} is being reconciled elsewhere, skipping")
                return None
            return await self._reconcile(light, ctx)
        finally:
            await lock.close()

    async def run_once(self, namespace: str, name: str) -> Optional[Action]:
        """
        Run one pass for a Light and schedule the next one

        Args:
            namespace: Resource namespace
            name: Resource name

        Returns:
            The action of the pass, or None if no pass ran
        """
        self.scheduler.clear_reservation(namespace, name)

        async with self.context_builder(self.config) as ctx:
            action = await self._run_pass(ctx, namespace, name)

        if action is not None and action.requeue_after is not None:
            self.scheduler.schedule_reconcile(namespace, name, action.requeue_after)
        return action

    async def resync_all(self) -> int:
        """
        Make sure every Light has a pending pass

        Returns:
            Number of Lights found
        """
        async with self.context_builder(self.config) as ctx:
            lights = await ctx.store.list_lights()

        for light in lights:
            self.scheduler.schedule_reconcile(light.namespace, light.name, 0)
        logger.info(f"Resynced {len(lights)} Lights")
        return len(lights)


# Global instance used by the Celery entry points
light_reconcile_task = LightReconcileTask()
