"""
Change notification broker.

Store writes publish a topic ("pair:<key>" for messages, "user:<id>" for user
records); open conversation streams subscribe to the topics they depend on.
Fan-out is in-process. When Redis is configured, topics are published through
a Redis channel instead and relayed back to local listeners, so every server
process sees every write.
"""
import asyncio
import logging
from typing import Callable, Dict, Optional, Set

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from profinder.config import settings
from profinder.core.errors import TransportError

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


def pair_topic(key: str) -> str:
    """Topic for message changes of a pair."""
    return f"pair:{key}"


def user_topic(user_id: str) -> str:
    """Topic for changes of a user record."""
    return f"user:{user_id}"


class ChangeBroker:
    """Topic fan-out with optional Redis relay."""

    def __init__(self, redis_url: str = "", channel: str = "profinder:changes"):
        """
        Initialize the broker.

        Args:
            redis_url: Redis URL; empty keeps fan-out in-process
            channel: Redis pub/sub channel carrying topic names
        """
        self.redis_url = redis_url
        self.channel = channel
        self.redis: Optional[aioredis.Redis] = None
        self._listeners: Dict[str, Set[Listener]] = {}
        self._relay_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        """Connect to Redis and start relaying, if a URL is configured."""
        if not self.redis_url:
            logger.info("No Redis URL provided - change notifications stay in-process")
            return

        try:
            self.redis = aioredis.from_url(
                self.redis_url,
                password=settings.redis_password or None,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.redis.ping()
        except (RedisError, OSError) as e:
            logger.warning(f"Could not connect to Redis, falling back to in-process fan-out: {e}")
            self.redis = None
            return

        self._relay_task = asyncio.create_task(self._relay())
        logger.info(f"Relaying change notifications through Redis channel {self.channel}")

    async def disconnect(self) -> None:
        """Stop relaying and close the Redis connection."""
        if self._relay_task:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            self._relay_task = None

        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def ping(self) -> bool:
        """True if Redis answers; False when it is down or not connected."""
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except (RedisError, OSError):
            return False

    async def _relay(self) -> None:
        """Forward topics received on the Redis channel to local listeners."""
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") == "message":
                    self._dispatch(message["data"])
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()

    def subscribe(self, topic: str, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for a topic.

        Args:
            topic: Topic name
            listener: Called with the topic on every publish; must not block

        Returns:
            Unsubscribe callable; calling it more than once is harmless

        Example:
            ```python
            unsubscribe = change_broker.subscribe(pair_topic(key), queue.put_nowait)
            try:
                ...
            finally:
                unsubscribe()
            ```
        """
        self._listeners.setdefault(topic, set()).add(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(topic)
            if listeners is None:
                return
            listeners.discard(listener)
            if not listeners:
                del self._listeners[topic]

        return unsubscribe

    async def publish(self, topic: str) -> None:
        """
        Publish a change on a topic.

        Raises:
            TransportError: If Redis is configured but unreachable
        """
        if self.redis is None:
            self._dispatch(topic)
            return

        try:
            await self.redis.publish(self.channel, topic)
        except (RedisError, OSError) as e:
            raise TransportError("Change broker unreachable", original=e) from e

    def _dispatch(self, topic: str) -> None:
        for listener in list(self._listeners.get(topic, ())):
            try:
                listener(topic)
            except Exception:
                logger.exception(f"Change listener failed for topic {topic}")

    def listener_count(self, topic: Optional[str] = None) -> int:
        """Number of listeners on a topic, or on all topics."""
        if topic is not None:
            return len(self._listeners.get(topic, ()))
        return sum(len(listeners) for listeners in self._listeners.values())


# Global broker instance
change_broker = ChangeBroker(settings.redis_url, settings.redis_channel)
