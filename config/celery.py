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


from celery import Celery

from config.celery_beat_schedule import CELERY_BEAT_SCHEDULE, CELERY_TIMEZONE
from light_operator.config import get_settings, setup_logging
from light_operator.smarthome import check_smart_home_config

settings = get_settings()
setup_logging(settings)

# Workers and Beat refuse to start without a usable smart home backend
check_smart_home_config(settings)

app = Celery("light_operator")
app.conf.update(
    broker_url=settings.celery.broker_url,
    result_backend=settings.celery.result_backend,
    beat_schedule=CELERY_BEAT_SCHEDULE,
    timezone=CELERY_TIMEZONE,
    include=["config.celery_tasks"],
    task_ignore_result=settings.celery.result_backend is None,
    worker_hijack_root_logger=False,
)
