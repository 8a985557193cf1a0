import redis
import json
from typing import Dict, List, Optional, Any
import logging
from workorbit.core.config import settings

logger = logging.getLogger(__name__)


class RedisQueueService:
    """Redis-backed list queue used to hand events to out-of-band consumers"""

    def __init__(self, redis_url: str = None, password: Optional[str] = None, client: Any = None):
        self.redis_url = redis_url or settings.redis_url
        self.password = password or settings.redis_password
        self.redis_client = client

        if self.redis_client is None and settings.enable_redis:
            try:
                self.redis_client = redis.from_url(
                    self.redis_url,
                    password=self.password,
                    decode_responses=True,
                    socket_timeout=settings.redis_socket_timeout,
                    socket_connect_timeout=settings.redis_socket_connect_timeout,
                    max_connections=settings.redis_max_connections
                )

                # Test connection
                self.redis_client.ping()
                logger.info("Redis connection established successfully")

            except Exception as e:
                logger.error(f"Failed to connect to Redis: {str(e)}")
                self.redis_client = None

    def is_available(self) -> bool:
        """Check if Redis is available"""
        return self.redis_client is not None

    def enqueue(self, queue_key: str, payload: Dict[str, Any]) -> bool:
        """Append a JSON payload to the tail of ``queue_key``"""
        if not self.is_available():
            logger.warning(f"Redis unavailable, dropping message for queue {queue_key}")
            return False

        try:
            self.redis_client.rpush(queue_key, json.dumps(payload, default=str))
            return True
        except Exception as e:
            logger.error(f"Error enqueuing message on {queue_key}: {str(e)}")
            return False

    def dequeue_batch(self, queue_key: str, max_items: int) -> List[Dict[str, Any]]:
        """Pop up to ``max_items`` payloads from the head of ``queue_key``"""
        if not self.is_available():
            return []

        messages = []
        for _ in range(max_items):
            try:
                raw = self.redis_client.lpop(queue_key)
            except Exception as e:
                logger.error(f"Error reading from queue {queue_key}: {str(e)}")
                break

            if raw is None:
                break

            try:
                messages.append(json.loads(raw))
            except (TypeError, ValueError) as e:
                logger.error(f"Discarding malformed message on {queue_key}: {str(e)}")

        return messages

    def queue_length(self, queue_key: str) -> int:
        if not self.is_available():
            return 0

        try:
            return int(self.redis_client.llen(queue_key))
        except Exception as e:
            logger.error(f"Error reading length of {queue_key}: {str(e)}")
            return 0

    def health_check(self) -> bool:
        """Check Redis connection health"""
        if not self.is_available():
            return False

        try:
            self.redis_client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis health check failed: {str(e)}")
            return False


# Global Redis service instance
redis_service = RedisQueueService()
