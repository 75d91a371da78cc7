import uuid
from contextlib import contextmanager

import redis
from app.domain.errors import CartBusy
from app.utils.retry import redis_retry, until_acquired
from app.utils.settings import CART_LOCK_TTL_SECONDS, REDIS_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje atomowo przez lua, skrypt dziala jako jedna nieprzerywalna operacja
#nie mozna wcisnac sie miedzy GET a DEL, wiec tu jest get + porownanie + del wszystko naraz


class LockService:
    """
    -blokada koszyka per wlasciciel (szybkie podwojne klikniecia)
    -zwalnianie locka tylko przez tego kto go zalozyl
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, ttl: int = CART_LOCK_TTL_SECONDS, wait: float = 2.0):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl
        self.wait = wait

    @redis_retry()
    def acquire_owner_lock(self, owner_key: str, token: str) -> bool:
        key = f"cart:{owner_key}:lock"
        #SET cart:user:1:lock "<token>" NX EX 10
        return bool(
            self.redis.set(
                name=key,
                value=token,
                nx=True,  #tylko jesli nie istnieje
                ex=self.ttl,  #wygasa sam, nawet gdy proces padnie
            )
        )

    @redis_retry()
    def release_owner_lock(self, owner_key: str, token: str) -> bool:
        key = f"cart:{owner_key}:lock"
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def owner_lock(self, owner_key: str):
        token = uuid.uuid4().hex
        acquired = until_acquired(self.wait)(self.acquire_owner_lock)(owner_key, token)
        if not acquired:
            logger.warning(f"Cart lock for {owner_key} not acquired within {self.wait}s")
            raise CartBusy()
        try:
            yield
        finally:
            if not self.release_owner_lock(owner_key, token):
                logger.warning(f"Cart lock for {owner_key} expired before release")
