import logging
import threading
import time

import redis

from config import REDIS_URL

# ---------------------------------------------------------
# LOGGING
# ---------------------------------------------------------
logger = logging.getLogger("api.redis")

_client = None
_client_lock = threading.Lock()


# ---------------------------------------------------------
# REDIS INIT
# ---------------------------------------------------------
def get_redis_client() -> redis.Redis:
    """Create the shared client on first use; memory-backed deployments never connect."""
    global _client
    with _client_lock:
        if _client is not None:
            return _client

        logger.info("[REDIS] Initializing Redis client REDIS_URL=%s", REDIS_URL)
        _client = redis.from_url(REDIS_URL, decode_responses=True)

        # ---------------------------------------------------------
        # CONNECTION DIAGNOSTICS
        # ---------------------------------------------------------
        try:
            t0 = time.time()
            pong = _client.ping()
            ms = int((time.time() - t0) * 1000)
            logger.info("[REDIS] Connected OK ping=%s latency=%sms", pong, ms)
        except redis.RedisError as e:
            logger.error("[REDIS] Initial ping failed: %s", e)

        return _client
