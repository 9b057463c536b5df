"""
Redis executor: connect with redis-py's asyncio client and send PING.
"""

from __future__ import annotations

import re
import time
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import AuthenticationError, RedisError, TimeoutError as RedisTimeoutError
from pydantic import field_validator

from config.constants import MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.models import Monitor, ProbeResult
from utils.logger import get_logger


logger = get_logger("RedisExecutor")

_CONNECTION_STRING = re.compile(
    r"^(rediss?://)([^@]*@)?(\[[^\]]+\]|[^:/]+)(:\d{1,5})?(/[0-9]*)?$"
)


class RedisConfig(ExecutorConfig):
    connection_string: str
    ignore_tls: bool = False

    @field_validator("connection_string")
    @classmethod
    def validate_connection_string(cls, v: str) -> str:
        match = _CONNECTION_STRING.match(v)
        if not match:
            raise ValueError("must look like redis[s]://[user:password@]host[:port][/db]")
        port = match.group(4)
        if port and not 1 <= int(port[1:]) <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v


class RedisExecutor(Executor):
    """Key-value store PING check."""

    type = MonitorType.REDIS.value
    config_model = RedisConfig

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        config: RedisConfig = self.parse(monitor)
        timeout = max(context.remaining(), 0.001)

        options: Dict[str, Any] = {
            "socket_timeout": timeout,
            "socket_connect_timeout": timeout,
            "retry_on_timeout": False,
        }
        if config.connection_string.startswith("rediss://") and config.ignore_tls:
            options["ssl_cert_reqs"] = "none"

        client = aioredis.from_url(config.connection_string, **options)
        start_time = time.perf_counter()
        try:
            pong = await client.ping()
        except RedisTimeoutError as e:
            return context.down(f"Redis connection timeout: {e}")
        except AuthenticationError as e:
            return context.down(f"Redis authentication failed: {e}")
        except (RedisError, OSError) as e:
            return context.down(f"Redis ping failed: {e}")
        finally:
            await client.aclose()

        elapsed_ms = round((time.perf_counter() - start_time) * 1000.0, 3)
        if not pong:
            return context.down("Redis ping returned no reply")

        return context.up("Redis ping successful: PONG", ping=elapsed_ms)
