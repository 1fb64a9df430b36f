import redis
from redis.exceptions import RedisError

from app.utils.retry import redis_retry
from app.utils.settings import REDIS_URL
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
    Krotkie locki w redisie (SET NX EX):
    - webhook checkout.session.completed bierze lock na id sesji,
      zeby dwa rownolegle dostarczenia tego samego eventu nie robily zamowienia naraz
    - zwalnianie tylko przez wlasciciela (lua)
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, owner: str, ttl: int) -> bool:
        logger.info(f"Acquire lock {key} for {owner}")
        #SET checkout_session:cs_123:lock "owner" NX EX 60
        return bool(
            self.redis.set(
                name=key,
                value=owner,
                nx=True, #not eXists, jesli klucz jest to nic nie rob i None
                ex=ttl, #wygasa sam, nie trzeba recznie czyscic jak proces padnie
            )
        )

    def release(self, key: str, owner: str) -> bool:
        try:
            res = self._release(key, owner)
        except RedisError as e:
            #lock i tak wygasnie po ttl
            logger.warning(f"Failed to release lock {key}: {e}")
            return False
        return bool(res)

    @redis_retry()
    def _release(self, key: str, owner: str):
        logger.info(f"Release lock {key} for {owner}")
        return self.redis.eval(_RELEASE_LUA, 1, key, owner)


def checkout_session_lock_key(session_id: str) -> str:
    return f"checkout_session:{session_id}:lock"
