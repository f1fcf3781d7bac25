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


import asyncio
import logging

from celery import current_app

from config.celery import app  # noqa: F401

logger = logging.getLogger(__name__)


@current_app.task
def reconcile_light_task(namespace: str, name: str):
    """
    Reconcile one Light entry point

    Args:
        namespace: Resource namespace
        name: Resource name
    """
    # Import here to avoid circular dependencies
    from light_operator.tasks.light_task import light_reconcile_task

    try:
        action = asyncio.run(light_reconcile_task.run_once(namespace, name))
        return action.requeue_after if action else None
    except Exception as e:
        logger.error(f"Reconcile of Light {namespace}/{name} failed: {e}", exc_info=True)
        raise


@current_app.task
def resync_lights_task():
    """Periodic task giving every Light a pending reconcile pass"""
    from light_operator.tasks.light_task import light_reconcile_task

    try:
        logger.info("Starting Light resync")
        count = asyncio.run(light_reconcile_task.resync_all())
        logger.info(f"Light resync completed, {count} Lights")
        return count
    except Exception as e:
        logger.error(f"Light resync failed: {e}", exc_info=True)
        raise
