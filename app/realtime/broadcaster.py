import asyncio
import json
import logging
from typing import Any

from redis.asyncio import Redis, RedisError

from app.core.config import get_settings
from app.realtime.connections import ConnectionManager, manager

logger = logging.getLogger(__name__)


class Broadcaster:
    """
    Fans events out to every connected real-time client.

    Backends:
    - redis: events are published on a pub/sub channel and a listener task
      relays the channel to this worker's connections, so clients attached
      to any worker see every event
    - local: events go straight to this worker's connections

    Features:
    - Graceful degradation to local delivery when Redis is unavailable
    - At most once, best effort: no acknowledgement, no replay
    """

    def __init__(self, connections: ConnectionManager):
        self.connections = connections
        self._settings = None
        self._redis: Redis | None = None
        self._listener: asyncio.Task | None = None
        self._initialized = False

        # Stats tracking
        self.stats = {
            "published": 0,
            "delivered": 0,
            "errors": 0,
        }

    @property
    def backend(self) -> str:
        return "redis" if self._redis else "local"

    async def init_broadcast(self):
        """Initialize settings and, when configured, the Redis connection."""
        if self._initialized:
            return

        if self._settings is None:
            self._settings = get_settings()

        settings = self._settings

        if settings.redis_dsn and self._redis is None:
            try:
                self._redis = Redis.from_url(
                    settings.redis_dsn,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                    health_check_interval=30,
                )

                # Verify connection
                await self._redis.ping()
                logger.info("Redis connection established")

                pubsub = self._redis.pubsub()
                await pubsub.subscribe(settings.broadcast_channel)
                self._listener = asyncio.create_task(self._listen(pubsub))

            except RedisError as e:
                logger.error(f"Redis initialization failed: {e}")
                # Allow degraded operation (local delivery only)
                await self._drop_redis()

        self._initialized = True
        logger.info("Broadcast layer initialized (%s)", self.backend)

    async def publish(self, event: str, data: Any):
        """Send ``{"event": event, "data": data}`` to every client."""
        await self.init_broadcast()

        message = {"event": event, "data": data}
        self.stats["published"] += 1

        if self._redis:
            try:
                await self._redis.publish(
                    self._settings.broadcast_channel, json.dumps(message, default=str)
                )
                return
            except RedisError as e:
                logger.error(f"Redis PUBLISH error: {e}", extra={"event": event})
                self.stats["errors"] += 1
                # Fall through to local delivery

        await self._deliver(message)

    async def _deliver(self, message: dict):
        self.stats["delivered"] += await self.connections.broadcast(message)

    async def _listen(self, pubsub):
        """Relay messages from the Redis channel to local connections."""
        lost = False
        try:
            async for raw in pubsub.listen():
                if raw.get("type") != "message":
                    continue
                try:
                    message = json.loads(raw["data"])
                except (TypeError, ValueError) as e:
                    logger.warning(f"Ignoring malformed broadcast message: {e}")
                    continue
                await self._deliver(message)
        except asyncio.CancelledError:
            raise
        except RedisError as e:
            logger.error(f"Redis subscription lost: {e}")
            self.stats["errors"] += 1
            lost = True
        finally:
            await pubsub.aclose()
            if lost:
                # Keep serving this worker's clients locally
                self._listener = None
                await self._drop_redis()

    async def close(self):
        """Graceful shutdown of the listener and Redis connection."""
        if self._listener:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None

        await self._drop_redis()
        self._initialized = False

    async def _drop_redis(self):
        """Release the Redis client and fall back to local delivery."""
        redis, self._redis = self._redis, None
        if redis is None:
            return
        try:
            await redis.aclose()
            logger.info("Redis connection closed")
        except RedisError as e:
            logger.error(f"Error closing Redis: {e}")

    def get_stats(self) -> dict:
        return {
            **self.stats,
            "backend": self.backend,
            "connections": len(self.connections),
        }


# Broadcaster instance (singleton per worker)
broadcaster = Broadcaster(manager)
