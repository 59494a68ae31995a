"""Redis-based per-job execution locks so two workers never run the same job."""

from __future__ import annotations

from dataclasses import dataclass
import uuid

from redis import Redis


LOCK_KEY_TEMPLATE = "mysteryfactory:publication_job:{job_id}:lock"
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
  return redis.call("del", KEYS[1])
end
return 0
"""


def job_lock_key(job_id: str) -> str:
    return LOCK_KEY_TEMPLATE.format(job_id=job_id)


@dataclass(frozen=True)
class JobLockHandle:
    manager: "JobLockManager"
    job_id: str
    token: str
    key: str

    def release(self) -> bool:
        return self.manager.release(self.job_id, self.token)


class JobLockManager:
    """SET NX EX on acquire; release only deletes the key while it still holds our token."""

    def __init__(self, redis_client: Redis, *, ttl_seconds: int = 900) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def acquire(self, job_id: str) -> JobLockHandle | None:
        key = job_lock_key(job_id)
        token = str(uuid.uuid4())
        if not self._redis.set(key, token, nx=True, ex=self._ttl_seconds):
            return None
        return JobLockHandle(manager=self, job_id=job_id, token=token, key=key)

    def release(self, job_id: str, token: str) -> bool:
        released = self._redis.eval(RELEASE_LOCK_SCRIPT, 1, job_lock_key(job_id), token)
        return int(released) == 1
