"""Per-article locks with a pluggable keystore (Redis-like).

acquire는 소유 토큰을 돌려주고, release는 토큰이 일치할 때만 키를 지운다.
TTL이 지나 다른 워커가 다시 잡은 락을 늦게 끝난 워커가 지우지 않도록 하기 위함.
"""

from __future__ import annotations

import threading
import time
import uuid
from typing import Optional, Protocol

import redis

from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class KeyStore(Protocol):
    def acquire(self, key: str, ttl_seconds: int) -> Optional[str]: ...  # noqa: D401
    def release(self, key: str, token: str) -> bool: ...  # noqa: D401


def _new_token() -> str:
    return uuid.uuid4().hex


class InMemoryKeyStore:
    """Process-local keystore for tests/local runs."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._mutex = threading.Lock()

    def acquire(self, key: str, ttl_seconds: int) -> Optional[str]:
        now = time.monotonic()
        with self._mutex:
            entry = self._entries.get(key)
            if entry is not None and entry[1] > now:
                return None
            token = _new_token()
            self._entries[key] = (token, now + ttl_seconds)
            return token

    def release(self, key: str, token: str) -> bool:
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None or entry[0] != token:
                return False
            del self._entries[key]
            return True

    def held(self, key: str) -> bool:
        with self._mutex:
            entry = self._entries.get(key)
            return entry is not None and entry[1] > time.monotonic()


class _RedisLikeClient(Protocol):
    def set(self, name: str, value: str, *, ex: int | None = None, nx: bool | None = None) -> bool | None: ...
    def eval(self, script: str, numkeys: int, *keys_and_args: str) -> int: ...


# GET과 DEL을 한 번에 실행해야 비교 후 삭제 사이에 다른 소유자가 끼어들지 않는다
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisKeyStore:
    """Redis 기반 KeyStore 구현.

    - 획득: `SET key <token> NX EX <ttl>` → 키가 없을 때만 설정, TTL로 워커 비정상 종료 시 자동 해제
    - 해제: Lua 스크립트로 저장된 값이 내 토큰일 때만 `DEL key`

    redis-py 클라이언트 호환 인터페이스를 기대하며, 테스트에서는 fake 클라이언트를 주입한다.
    """

    def __init__(self, client: _RedisLikeClient, *, prefix: str = "enhance-lock") -> None:
        self._client = client
        self._prefix = prefix

    def _format(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def acquire(self, key: str, ttl_seconds: int) -> Optional[str]:
        token = _new_token()
        # redis-py: set(name, value, ex=seconds, nx=True) returns True if set, None if not set
        if self._client.set(self._format(key), token, ex=ttl_seconds, nx=True):
            return token
        return None

    def release(self, key: str, token: str) -> bool:
        removed = self._client.eval(_RELEASE_SCRIPT, 1, self._format(key), token)
        if not removed:
            logger.warning("lock.release_skipped", extra={"key": key})
        return bool(removed)


def build_lock_store(settings: Optional[Settings] = None) -> KeyStore:
    """Redis keystore when the server answers, otherwise an in-memory one."""
    config = settings or get_settings()
    try:
        client = redis.Redis.from_url(config.redis_url, socket_connect_timeout=2)
        client.ping()
    except (redis.RedisError, ValueError) as exc:
        logger.warning("lock.redis_unavailable", extra={"error": str(exc)})
        return InMemoryKeyStore()
    return RedisKeyStore(client)
