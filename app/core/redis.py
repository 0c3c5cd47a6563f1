import json
import redis
from redis.exceptions import RedisError

from app.core import config
from app.core.logging_config import get_logger

logger = get_logger()

_redis_client = None


def get_redis_client():
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_url = config.REDIS_URL
    if not redis_url:
        return None

    try:
        client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
        logger.info("Redis connected")
        _redis_client = client
        return _redis_client
    except RedisError as e:
        logger.warning(f"Redis unavailable: {e}")
        return None


# -------- CACHE --------
def get_cache(key: str):
    client = get_redis_client()
    if not client:
        return None
    try:
        data = client.get(key)
        return json.loads(data) if data else None
    except RedisError:
        return None


def set_cache(key: str, value, ttl: int = 60):
    client = get_redis_client()
    if not client:
        return
    try:
        client.setex(key, ttl, json.dumps(value, default=str))
    except RedisError:
        pass


def delete_cache(key: str):
    client = get_redis_client()
    if not client:
        return
    try:
        client.delete(key)
    except RedisError:
        pass


# -------- CHANGE FEED --------
def change_channel(collection: str) -> str:
    return f"changes:{collection}"


def publish_change(collection: str, record_id: str, fields: dict):
    client = get_redis_client()
    if not client:
        return
    event = {"collection": collection, "id": record_id, "fields": sorted(fields)}
    try:
        client.publish(change_channel(collection), json.dumps(event))
    except RedisError as e:
        logger.warning(f"Change event for {collection}/{record_id} not published: {e}")


class ChangeFeed:
    """Pub/sub subscription to one collection, read by polling."""

    def __init__(self, client, collection: str):
        self.collection = collection
        self.pubsub = client.pubsub(ignore_subscribe_messages=True)
        self.pubsub.subscribe(change_channel(collection))

    def next_event(self, timeout: float):
        """Next change event, or None if nothing arrived within ``timeout`` seconds."""
        message = self.pubsub.get_message(timeout=timeout)
        if not message or message.get("type") != "message":
            return None
        return json.loads(message["data"])

    def close(self):
        self.pubsub.close()


def listen_changes(collection: str):
    """Subscribe to a collection's change events; None when Redis is off."""
    client = get_redis_client()
    if not client:
        return None
    return ChangeFeed(client, collection)
