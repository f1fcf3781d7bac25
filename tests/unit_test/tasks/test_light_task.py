"""
Tests for the per-Light reconcile runner: chain continuation, deletion, locking and resync.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from light_operator.config import Settings
from light_operator.k8s.controller import Context
from light_operator.k8s.crd import Light
from light_operator.k8s.errors import KubernetesError
from light_operator.k8s.store import LightStore
from light_operator.smarthome import LightStatus, SmartHomeApi, UnknownDeviceIdError
from light_operator.tasks.light_task import LightReconcileTask
from light_operator.tasks.scheduler import LocalReconcileScheduler, ScheduledReconcile

DEVICE_ID = "5f3f8d4c-7d1e-4b8a-9b52-0d5c6f1e2a3b"


class StaticSmartHome(SmartHomeApi):
    def __init__(self, status=None, read_error=None):
        self.status = status or LightStatus(online=True, switched_on=True)
        self.read_error = read_error

    async def get_light_status(self, device_id):
        if self.read_error is not None:
            raise self.read_error
        return self.status

    async def set_switched_on(self, device_id, switched_on):
        pass

    async def set_brightness(self, device_id, brightness):
        pass

    async def set_color_temperature(self, device_id, kelvin):
        pass

    async def set_color(self, device_id, hue, saturation):
        pass


class MemoryStore(LightStore):
    def __init__(self, lights=(), get_error=None):
        self.lights = {light.key: light for light in lights}
        self.get_error = get_error
        self.patches = []

    async def list_lights(self):
        return list(self.lights.values())

    async def get_light(self, namespace, name):
        if self.get_error is not None:
            raise self.get_error
        return self.lights.get(f"{namespace}/{name}")

    async def patch_status(self, namespace, name, conditions):
        self.patches.append((namespace, name))


def make_light(name="desk", namespace="default") -> Light:
    return Light.model_validate(
        {
            "metadata": {"name": name, "namespace": namespace, "generation": 1},
            "spec": {"deviceId": DEVICE_ID, "state": "SwitchedOn"},
        }
    )


def make_task(store, api=None, use_lock=False):
    scheduler = LocalReconcileScheduler()
    scheduler.clear_reservation = lambda namespace, name: scheduler.requests.append(("cleared", namespace, name))

    @asynccontextmanager
    async def context_builder(config):
        yield Context(config=config, smart_home_api=api or StaticSmartHome(), store=store)

    task = LightReconcileTask(scheduler=scheduler, config=Settings(), context_builder=context_builder, use_lock=use_lock)
    return task, scheduler


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_success_requeues_after_sync_interval(self):
        store = MemoryStore([make_light()])
        task, scheduler = make_task(store)

        action = await task.run_once("default", "desk")

        assert action.requeue_after == 60
        assert store.patches == [("default", "desk")]
        assert scheduler.requests == [("cleared", "default", "desk"), ScheduledReconcile("default", "desk", 60)]

    @pytest.mark.asyncio
    async def test_failure_requeues_after_error_delay(self):
        store = MemoryStore([make_light()])
        task, scheduler = make_task(store, api=StaticSmartHome(read_error=UnknownDeviceIdError(DEVICE_ID)))

        action = await task.run_once("default", "desk")

        assert action.requeue_after == 5
        assert scheduler.requests[-1] == ScheduledReconcile("default", "desk", 5)

    @pytest.mark.asyncio
    async def test_deleted_light_stops_chain(self):
        task, scheduler = make_task(MemoryStore())

        assert await task.run_once("default", "gone") is None
        assert scheduler.requests == [("cleared", "default", "gone")]

    @pytest.mark.asyncio
    async def test_store_read_failure_requeues(self):
        task, scheduler = make_task(MemoryStore(get_error=KubernetesError("timeout")))

        action = await task.run_once("default", "desk")

        assert action.requeue_after == 5
        assert scheduler.requests[-1] == ScheduledReconcile("default", "desk", 5)


class TestLocking:
    @patch("light_operator.tasks.light_task.create_lock")
    @pytest.mark.asyncio
    async def test_busy_light_is_skipped(self, mock_create_lock):
        lock = AsyncMock()
        lock.acquire.return_value = False
        mock_create_lock.return_value = lock

        store = MemoryStore([make_light()])
        task, scheduler = make_task(store, use_lock=True)

        assert await task.run_once("default", "desk") is None
        assert store.patches == []
        assert scheduler.requests == [("cleared", "default", "desk")]

    @patch("light_operator.tasks.light_task.create_lock")
    @pytest.mark.asyncio
    async def test_lock_is_released_after_pass(self, mock_create_lock):
        lock = AsyncMock()
        lock.acquire.return_value = True
        mock_create_lock.return_value = lock

        task, _ = make_task(MemoryStore([make_light()]), use_lock=True)
        await task.run_once("default", "desk")

        kwargs = mock_create_lock.call_args[1]
        assert kwargs["key"] == "light-operator:lock:default/desk"
        assert kwargs["retry_times"] == 0
        assert kwargs["expire_time"] == 120
        lock.close.assert_awaited_once()

    @patch("light_operator.tasks.light_task.create_lock")
    @pytest.mark.asyncio
    async def test_unreachable_redis_requeues(self, mock_create_lock):
        lock = AsyncMock()
        lock.acquire.side_effect = ConnectionError("Cannot connect to Redis")
        mock_create_lock.return_value = lock

        task, scheduler = make_task(MemoryStore([make_light()]), use_lock=True)
        action = await task.run_once("default", "desk")

        assert action.requeue_after == 5
        assert scheduler.requests[-1] == ScheduledReconcile("default", "desk", 5)


    @patch("light_operator.concurrent_control.redis_lock.redis")
    @pytest.mark.asyncio
    async def test_redis_failure_while_locking_requeues(self, mock_redis_module):
        client = AsyncMock()
        client.ping.return_value = True
        client.script_load.return_value = "sha-release"
        client.set.side_effect = RedisConnectionError("Connection reset by peer")
        mock_redis_module.from_url.return_value = client

        store = MemoryStore([make_light()])
        task, scheduler = make_task(store, use_lock=True)
        action = await task.run_once("default", "desk")

        assert action.requeue_after == 5
        assert store.patches == []
        assert scheduler.requests[-1] == ScheduledReconcile("default", "desk", 5)
        client.close.assert_awaited_once()

class TestResync:
    @pytest.mark.asyncio
    async def test_schedules_every_light_immediately(self):
        store = MemoryStore([make_light("desk"), make_light("hall", "home")])
        task, scheduler = make_task(store)

        assert await task.resync_all() == 2
        assert scheduler.requests == [
            ScheduledReconcile("default", "desk", 0),
            ScheduledReconcile("home", "hall", 0),
        ]
