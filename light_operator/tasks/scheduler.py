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


import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import redis

from light_operator.config import settings

logger = logging.getLogger(__name__)

SCHEDULED_KEY_PREFIX = "light-operator:scheduled:"

# Extra lifetime of a reservation past the scheduled run, so a lost task
# cannot keep a resource unscheduled forever
RESERVATION_GRACE_SECONDS = 60


def scheduled_key(namespace: str, name: str) -> str:
    return f"{SCHEDULED_KEY_PREFIX}{namespace}/{name}"


@dataclass
class ScheduledReconcile:
    namespace: str
    name: str
    delay_seconds: float


class ReconcileScheduler(ABC):
    """Abstract base class for reconcile schedulers"""

    @abstractmethod
    def schedule_reconcile(self, namespace: str, name: str, delay_seconds: float = 0) -> Optional[str]:
        """
        Schedule a reconcile pass for one Light

        Args:
            namespace: Resource namespace
            name: Resource name
            delay_seconds: Seconds to wait before the pass runs

        Returns:
            Task ID for tracking, or None if a pass is already pending
        """
        pass

    def clear_reservation(self, namespace: str, name: str):
        """Forget the pending pass of a Light; called when that pass starts"""
        pass


class LocalReconcileScheduler(ReconcileScheduler):
    """In-memory implementation for tests and one-shot runs; nothing is executed"""

    def __init__(self):
        self._task_counter = 0
        self.requests: List[ScheduledReconcile] = []

    def schedule_reconcile(self, namespace: str, name: str, delay_seconds: float = 0) -> Optional[str]:
        self._task_counter += 1
        self.requests.append(ScheduledReconcile(namespace, name, delay_seconds))
        return f"local_task_{self._task_counter}"


class CeleryReconcileScheduler(ReconcileScheduler):
    """Celery implementation of ReconcileScheduler, with at most one pending task per Light"""

    def __init__(self, redis_url: str = None, redis_client=None):
        self._redis_url = redis_url or settings.redis_url
        self._redis_client = redis_client

    @property
    def redis_client(self):
        if self._redis_client is None:
            self._redis_client = redis.Redis.from_url(self._redis_url, decode_responses=True)
        return self._redis_client

    def schedule_reconcile(self, namespace: str, name: str, delay_seconds: float = 0) -> Optional[str]:
        from config.celery_tasks import reconcile_light_task

        key = scheduled_key(namespace, name)
        expire = int(delay_seconds) + RESERVATION_GRACE_SECONDS
        if not self.redis_client.set(key, "1", nx=True, ex=expire):
            logger.debug(f"Reconcile of Light {namespace}/{name} already pending")
            return None

        task = reconcile_light_task.apply_async(args=[namespace, name], countdown=delay_seconds)
        logger.debug(f"Scheduled reconcile task {task.id} for Light {namespace}/{name} in {delay_seconds}s")
        return task.id

    def clear_reservation(self, namespace: str, name: str):
        self.redis_client.delete(scheduled_key(namespace, name))


def create_reconcile_scheduler(scheduler_type: str = "celery") -> ReconcileScheduler:
    """
    Create a reconcile scheduler

    Args:
        scheduler_type: "celery" or "local"
    """
    if scheduler_type == "celery":
        return CeleryReconcileScheduler()
    if scheduler_type == "local":
        return LocalReconcileScheduler()
    raise ValueError(f"Unknown scheduler type: {scheduler_type}")
