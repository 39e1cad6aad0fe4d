from __future__ import annotations

from phoneauth.domain.errors import CodeExpired, CodeInvalid, MaxAttemptsExceeded
from phoneauth.domain.ports.volatile_store import VolatileStorePort
from phoneauth.domain.services import secure_compare

HASH_FIELD = "hash"
ATTEMPTS_FIELD = "attempts"


async def redeem_hashed_record(
    store: VolatileStorePort,
    key: str,
    candidate_digest: str,
    max_attempts: int,
) -> dict[str, str]:
    """
    Check `candidate_digest` against the record at `key` and consume it on match.

    The attempt is reserved (counter incremented) before comparing, so
    concurrent guesses cannot exceed `max_attempts` between them. A matching
    guess deletes the record; only the request whose delete removed it wins.
    Returns the record's fields.
    """
    record = await store.get_hash(key)
    if not record:
        raise CodeExpired()

    if int(record.get(ATTEMPTS_FIELD) or 0) >= max_attempts:
        raise MaxAttemptsExceeded()

    attempt = await store.increment_field(key, ATTEMPTS_FIELD)
    if attempt is None:
        raise CodeExpired()
    if attempt > max_attempts:
        raise MaxAttemptsExceeded()

    stored = record.get(HASH_FIELD, "")
    if not stored or not secure_compare(stored, candidate_digest):
        if attempt >= max_attempts:
            raise MaxAttemptsExceeded()
        raise CodeInvalid()

    if not await store.delete(key):
        raise CodeExpired()
    return record
