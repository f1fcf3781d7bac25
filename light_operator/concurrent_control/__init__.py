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


from light_operator.concurrent_control.redis_lock import RedisLock


def create_lock(lock_type: str = "redis", **kwargs) -> RedisLock:
    """
    Build a lock of the given type

    Args:
        lock_type: Only "redis" is supported
        **kwargs: Passed to the lock constructor
    """
    if lock_type == "redis":
        return RedisLock(**kwargs)
    raise ValueError(f"Unsupported lock type: {lock_type}")


__all__ = ["RedisLock", "create_lock"]
