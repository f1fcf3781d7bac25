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
Status condition bookkeeping

Conditions are keyed by type. `lastTransitionTime` only moves when the status,
reason or observed generation of a condition changes, so watchers can rely on
it to detect real state changes.
"""

from datetime import datetime, timezone
from typing import List, Optional

from light_operator.k8s.crd import Condition, ConditionStatus

CONDITION_INVALID_DEVICE = "InvalidDevice"
CONDITION_READY = "Ready"

REASON_UNKNOWN = "Unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def find_condition(conditions: List[Condition], condition_type: str) -> Optional[Condition]:
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def create_condition(
    condition_type: str,
    status: Optional[bool],
    reason: str,
    message: Optional[str] = None,
    generation: Optional[int] = None,
) -> Condition:
    return Condition(
        type=condition_type,
        status=ConditionStatus.from_bool(status),
        reason=reason,
        message=message or "",
        observed_generation=generation,
    )


def update_conditions(conditions: List[Condition], new_condition: Condition):
    """Insert or update the condition of the same type in place"""
    existing = find_condition(conditions, new_condition.type)
    if existing is None:
        conditions.append(new_condition.model_copy(update={"last_transition_time": utc_now()}))
        return

    if (
        existing.status != new_condition.status
        or existing.reason != new_condition.reason
        or existing.observed_generation != new_condition.observed_generation
    ):
        existing.status = new_condition.status
        existing.reason = new_condition.reason
        existing.message = new_condition.message
        existing.observed_generation = new_condition.observed_generation
        existing.last_transition_time = utc_now()
    else:
        existing.message = new_condition.message


def ensure_condition(conditions: List[Condition], condition_type: str, generation: Optional[int]):
    """Seed a condition of the given type as Unknown if the resource has none yet"""
    if find_condition(conditions, condition_type) is None:
        update_conditions(conditions, create_condition(condition_type, None, REASON_UNKNOWN, None, generation))
