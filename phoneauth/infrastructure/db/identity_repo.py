from __future__ import annotations

from typing import Optional

import psycopg
from psycopg_pool import AsyncConnectionPool

from phoneauth.domain.entities import Identity, IdentityKind, NewIdentity
from phoneauth.domain.errors import PhoneAlreadyRegistered
from phoneauth.domain.ports.identity_repository import IdentityRepositoryPort


class _PgIdentityRepository(IdentityRepositoryPort):
    """
    Postgres implementation of IdentityRepositoryPort over one table.

    Each call checks a connection out of the shared pool; the pool's
    connection context commits on success and rolls back on error.
    The schema (unique index on phone) is managed outside this service.
    """

    kind: IdentityKind
    table: str
    columns: tuple[str, ...]

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    def _select(self, where: str) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.table} WHERE {where}"

    def _to_identity(self, row: tuple) -> Identity:
        data = dict(zip(self.columns, row))
        data["id"] = str(data["id"])
        return Identity(kind=self.kind, **data)

    async def _fetch_one(self, sql: str, params: tuple) -> Optional[Identity]:
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, params)
                row = await cur.fetchone()
        if not row:
            return None
        return self._to_identity(row)

    async def find_by_phone(self, phone: str) -> Optional[Identity]:
        return await self._fetch_one(self._select("phone = %s"), (phone,))

    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        return await self._fetch_one(self._select("id::text = %s"), (identity_id,))

    async def update_phone(self, identity_id: str, new_phone: str) -> None:
        sql = f"UPDATE {self.table} SET phone = %s, updated_at = now() WHERE id::text = %s"
        try:
            async with self._pool.connection() as conn:
                await conn.execute(sql, (new_phone, identity_id))
        except psycopg.errors.UniqueViolation as e:
            raise PhoneAlreadyRegistered() from e

    async def update_password_hash(self, identity_id: str, password_hash: str) -> None:
        raise NotImplementedError(f"{self.table} do not have passwords")

    async def _insert(self, values: dict) -> str:
        names = ", ".join(values)
        placeholders = ", ".join(["%s"] * len(values))
        sql = (
            f"INSERT INTO {self.table} ({names}, created_at, updated_at) "
            f"VALUES ({placeholders}, now(), now()) RETURNING id"
        )
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, tuple(values.values()))
                    row = await cur.fetchone()
        except psycopg.errors.UniqueViolation as e:
            raise PhoneAlreadyRegistered() from e

        if not row:
            raise RuntimeError(f"insert into {self.table} returned no row")
        return str(row[0])


class PgDriverRepository(_PgIdentityRepository):
    kind = IdentityKind.DRIVER
    table = "drivers"
    columns = ("id", "phone", "name", "created_at", "updated_at")

    async def create(self, new: NewIdentity) -> str:
        return await self._insert({"phone": new.phone, "name": new.name})


class PgDispatcherRepository(_PgIdentityRepository):
    kind = IdentityKind.DISPATCHER
    table = "dispatchers"
    columns = (
        "id",
        "phone",
        "name",
        "password_hash",
        "passport_series",
        "passport_number",
        "pinfl",
        "photo",
        "created_at",
        "updated_at",
    )

    async def create(self, new: NewIdentity) -> str:
        return await self._insert(
            {
                "phone": new.phone,
                "name": new.name,
                "password_hash": new.password_hash,
                "passport_series": new.passport_series,
                "passport_number": new.passport_number,
                "pinfl": new.pinfl,
                "photo": new.photo,
            }
        )

    async def update_password_hash(self, identity_id: str, password_hash: str) -> None:
        sql = (
            "UPDATE dispatchers SET password_hash = %s, updated_at = now() "
            "WHERE id::text = %s"
        )
        async with self._pool.connection() as conn:
            await conn.execute(sql, (password_hash, identity_id))
