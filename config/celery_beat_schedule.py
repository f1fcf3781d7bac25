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
Celery Beat schedule for the Light operator
"""

from light_operator.config import settings

# Beat schedule for the periodic full resync
CELERY_BEAT_SCHEDULE = {
    # Give every Light a pending reconcile pass; restarts chains that were lost
    'resync-lights': {
        'task': 'config.celery_tasks.resync_lights_task',
        'schedule': float(settings.controller.resync_interval_seconds),
        'options': {
            'expires': settings.controller.resync_interval_seconds,  # Never overlap with the next resync
        }
    },
}

CELERY_TIMEZONE = 'UTC'
