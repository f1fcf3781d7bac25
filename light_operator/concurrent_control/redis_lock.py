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
Distributed lock backed by Redis

The lock is a single key set with NX and an expiry, holding a random UUID so
that only the holder can delete it. Release goes through a Lua script that
compares the value before deleting.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import NoScriptError, RedisError

logger = logging.getLogger(__name__)

RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisLock:
    """
    Async distributed lock

    Args:
        key: Redis key guarding the resource
        redis_url: Redis connection URL
        expire_time: Seconds after which a lock whose holder died is freed
        retry_times: Extra attempts made by `acquire` when no timeout is given
        retry_delay: Seconds between attempts
    """

    def __init__(
        self,
        key: str,
        redis_url: str = "redis://localhost:6379",
        expire_time: int = 30,
        retry_times: int = 3,
        retry_delay: float = 0.1,
    ):
        if not key:
            raise ValueError("Redis lock key is required")

        self._key = key
        self._redis_url = redis_url
        self._expire_time = expire_time
        self._retry_times = retry_times
        self._retry_delay = retry_delay
        self._redis_client = None
        self._release_sha: Optional[str] = None
        self._lock_value: Optional[str] = None

    async def _get_client(self):
        if self._redis_client is None:
            client = redis.from_url(self._redis_url, decode_responses=True)
            try:
                await client.ping()
            except Exception as e:
                await client.close()
                raise ConnectionError(f"Cannot connect to Redis at {self._redis_url}: {e}") from e
            self._release_sha = await client.script_load(RELEASE_SCRIPT)
            self._redis_client = client
        return self._redis_client

    async def _try_set(self, client, value: str) -> bool:
        try:
            return bool(await client.set(self._key, value, nx=True, ex=self._expire_time))
        except RedisError as e:
            # Lock state is unknown here, not busy
            raise ConnectionError(f"Redis failed while setting lock {self._key}: {e}") from e
        except Exception as e:
            logger.warning(f"Failed to set lock {self._key}: {e}")
            return False

    async def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Try to take the lock

        Args:
            timeout: Keep trying for this many seconds; if None, make
                `retry_times` extra attempts instead

        Returns:
            True if the lock is held by this instance afterwards

        Raises:
            ConnectionError: Redis is unreachable or failed while setting the key
        """
        if self._lock_value is not None:
            return True

        client = await self._get_client()
        value = str(uuid.uuid4())

        if timeout is not None:
            deadline = time.monotonic() + timeout
            while True:
                if await self._try_set(client, value):
                    self._lock_value = value
                    return True
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                await asyncio.sleep(min(self._retry_delay, remaining))
        else:
            for attempt in range(self._retry_times + 1):
                if await self._try_set(client, value):
                    self._lock_value = value
                    return True
                if attempt < self._retry_times:
                    await asyncio.sleep(self._retry_delay)

        logger.debug(f"Could not acquire lock {self._key}")
        return False

    async def release(self):
        """Release the lock if this instance holds it"""
        if self._lock_value is None:
            return

        value = self._lock_value
        try:
            if self._release_sha:
                try:
                    await self._redis_client.evalsha(self._release_sha, 1, self._key, value)
                except NoScriptError:
                    # Script cache was flushed on the server
                    await self._redis_client.eval(RELEASE_SCRIPT, 1, self._key, value)
            else:
                await self._redis_client.eval(RELEASE_SCRIPT, 1, self._key, value)
        except Exception as e:
            # The key expires on its own
            logger.warning(f"Failed to release lock {self._key}: {e}")
        finally:
            self._lock_value = None

    def is_locked(self) -> bool:
        return self._lock_value is not None

    async def close(self):
        await self.release()
        if self._redis_client is not None:
            await self._redis_client.close()
            self._redis_client = None

    async def __aenter__(self):
        if not await self.acquire():
            raise TimeoutError(f"Could not acquire lock {self._key}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()
