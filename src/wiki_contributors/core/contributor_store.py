"""Keyed access to the ``contributors`` table.

:class:`ContributorStore` is the only code that reads or writes contributor
rows.  It holds no logic beyond point lookup, upsert, delete and range scan
by page; the aggregation rules live in the services that call it.

Every write is a single statement.  Inserts use the database's native
insert-or-update form (``ON CONFLICT DO UPDATE`` on PostgreSQL and SQLite,
``ON DUPLICATE KEY UPDATE`` on MySQL/MariaDB) against the
``(cn_page_id, cn_user_id, cn_user_text)`` unique key, so there is never a
window between an existence check and the write.

The store does not commit on its own.  Callers decide the transaction
boundary with :meth:`ContributorStore.commit`; any SQLAlchemy failure rolls
the session back and is re-raised as
:class:`~wiki_contributors.core.exceptions.ContributorStoreError`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Callable, NoReturn, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wiki_contributors.config.contributors import SortField
from wiki_contributors.core.exceptions import ContributorStoreError, UnsupportedDialectError
from wiki_contributors.core.models.contributor import CONTRIBUTOR_KEY_COLUMNS, Contributor
from wiki_contributors.core.records import ContributorKey, ContributorRecord
from wiki_contributors.core.revisions import RevisionFact

logger = logging.getLogger(__name__)

_table = Contributor.__table__

_ON_CONFLICT_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}
_ON_DUPLICATE_INSERTS: dict[str, Callable[..., Any]] = {
    "mysql": mysql.insert,
    "mariadb": mysql.insert,
}

_SORT_COLUMNS = {
    SortField.USER_TEXT: Contributor.user_text,
    SortField.REVISION_COUNT: Contributor.revision_count,
    SortField.CHARACTERS_ADDED: Contributor.characters_added,
}


def _row_values(record: ContributorRecord) -> dict[str, Any]:
    return {
        "cn_page_id": record.page_id,
        "cn_user_id": record.user_id,
        "cn_user_text": record.user_text,
        "cn_revision_count": record.revision_count,
        "cn_characters_added": record.characters_added,
        "cn_first_edit": record.first_edit,
        "cn_last_edit": record.last_edit,
    }


def _key_clause(key: ContributorKey) -> list[Any]:
    return [
        Contributor.page_id == key.page_id,
        Contributor.user_id == key.user_id,
        Contributor.user_text == key.user_text,
    ]


class ContributorStore:
    """Row-level access to contributor aggregates through one session.

    Args:
        session: The ``AsyncSession`` all statements run on.  Its transaction
            is owned by the caller.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def dialect_name(self) -> str:
        return self._session.get_bind().dialect.name

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(
        self,
        key: ContributorKey,
        *,
        for_update: bool = False,
    ) -> Optional[ContributorRecord]:
        """Return the record stored under *key*, or ``None``.

        Args:
            key: The ``(page_id, user_id, user_text)`` key.
            for_update: Lock the row until the transaction ends (ignored by
                backends without row locks).
        """
        stmt = select(Contributor).where(*_key_clause(key))
        if for_update:
            stmt = stmt.with_for_update()
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            await self._fail("lookup", key, exc)
        row = result.scalar_one_or_none()
        return ContributorRecord.from_row(row) if row is not None else None

    async def list_for_page(
        self,
        page_id: int,
        *,
        exclude_anonymous: bool = False,
        exclude_user_texts: Iterable[str] = (),
        order_by: SortField = SortField.REVISION_COUNT,
        descending: bool = True,
    ) -> list[ContributorRecord]:
        """Return every contributor of *page_id* in display order.

        Ties on the sort column are broken by user name ascending so the
        order is stable between calls.

        Args:
            page_id: Page to scan.
            exclude_anonymous: Skip rows of anonymous editors (user id 0).
            exclude_user_texts: User names to leave out.
            order_by: Sort column.
            descending: Sort direction of *order_by*.
        """
        column = _SORT_COLUMNS[order_by]
        stmt = select(Contributor).where(Contributor.page_id == page_id)
        if exclude_anonymous:
            stmt = stmt.where(Contributor.user_id != 0)
        excluded = sorted(set(exclude_user_texts))
        if excluded:
            stmt = stmt.where(Contributor.user_text.not_in(excluded))
        stmt = stmt.order_by(column.desc() if descending else column.asc())
        if order_by is not SortField.USER_TEXT:
            stmt = stmt.order_by(Contributor.user_text.asc())
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            await self._fail("page scan", None, exc)
        return [ContributorRecord.from_row(row) for row in result.scalars().all()]

    async def count_for_page(self, page_id: int) -> int:
        """Return the number of contributor rows stored for *page_id*."""
        stmt = select(func.count()).select_from(Contributor).where(Contributor.page_id == page_id)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            await self._fail("page count", None, exc)
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(self, record: ContributorRecord) -> None:
        """Insert *record*, or overwrite the non-key columns of the existing row.

        Raises:
            ValueError: If the record has no revisions; such rows must be
                deleted instead (see :meth:`delete`).
        """
        if record.is_empty:
            raise ValueError(f"Refusing to store contributor {record.key} with no revisions")
        values = _row_values(record)

        def overwrite(inserted: Any) -> dict[str, Any]:
            return {
                column: inserted[column]
                for column in values
                if column not in CONTRIBUTOR_KEY_COLUMNS
            }

        stmt = self._build_upsert(values, overwrite)
        try:
            await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            await self._fail("upsert", record.key, exc)

    async def add_revision(self, fact: RevisionFact) -> None:
        """Count one attributed revision in a single insert-or-increment statement.

        A new row starts at one revision; an existing row has its count and
        character total incremented and its edit bounds widened by the
        database itself, so concurrent writers on one key cannot lose updates.
        """
        record = ContributorRecord.empty(fact.contributor_key)
        record.include_revision(fact)
        values = _row_values(record)
        least, greatest = self._bound_functions()

        def increments(inserted: Any) -> dict[str, Any]:
            return {
                "cn_revision_count": _table.c.cn_revision_count + 1,
                "cn_characters_added": _table.c.cn_characters_added
                + inserted.cn_characters_added,
                "cn_first_edit": least(
                    func.coalesce(_table.c.cn_first_edit, inserted.cn_first_edit),
                    inserted.cn_first_edit,
                ),
                "cn_last_edit": greatest(
                    func.coalesce(_table.c.cn_last_edit, inserted.cn_last_edit),
                    inserted.cn_last_edit,
                ),
            }

        stmt = self._build_upsert(values, increments)
        try:
            await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            await self._fail("increment", record.key, exc)

    async def apply_delta(
        self,
        key: ContributorKey,
        *,
        revision_delta: int,
        characters_delta: int,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Adjust the row under *key* relative to its current values.

        The adjustment is one insert-or-update statement evaluated by the
        database: the revision count moves by *revision_delta*, the character
        total by *characters_delta* (never below zero) and, when *timestamp*
        is given, the edit bounds are widened to include it.  A row left with
        no revisions is deleted in the same transaction.

        Returns:
            ``True`` if the row exists afterwards, ``False`` if it was deleted
            (or never existed).
        """
        least, greatest = self._bound_functions()
        values = {
            "cn_page_id": key.page_id,
            "cn_user_id": key.user_id,
            "cn_user_text": key.user_text,
            "cn_revision_count": revision_delta,
            "cn_characters_added": max(0, characters_delta),
            "cn_first_edit": timestamp,
            "cn_last_edit": timestamp,
        }

        def adjustments(inserted: Any) -> dict[str, Any]:
            assignments: dict[str, Any] = {
                "cn_revision_count": _table.c.cn_revision_count + revision_delta,
                "cn_characters_added": greatest(
                    _table.c.cn_characters_added + characters_delta, 0
                ),
            }
            if timestamp is not None:
                assignments["cn_first_edit"] = least(
                    func.coalesce(_table.c.cn_first_edit, inserted.cn_first_edit),
                    inserted.cn_first_edit,
                )
                assignments["cn_last_edit"] = greatest(
                    func.coalesce(_table.c.cn_last_edit, inserted.cn_last_edit),
                    inserted.cn_last_edit,
                )
            return assignments

        stmt = self._build_upsert(values, adjustments)
        try:
            await self._session.execute(stmt)
            result = await self._session.execute(
                delete(Contributor).where(*_key_clause(key), Contributor.revision_count <= 0)
            )
        except SQLAlchemyError as exc:
            await self._fail("adjust", key, exc)
        return not result.rowcount

    async def delete(self, key: ContributorKey) -> bool:
        """Delete the row stored under *key*.

        Returns:
            ``True`` if a row was removed.
        """
        try:
            result = await self._session.execute(delete(Contributor).where(*_key_clause(key)))
        except SQLAlchemyError as exc:
            await self._fail("delete", key, exc)
        return bool(result.rowcount)

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._fail("commit", None, exc)

    async def rollback(self) -> None:
        await self._session.rollback()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_upsert(
        self,
        values: dict[str, Any],
        on_conflict: Callable[[Any], dict[str, Any]],
    ) -> Any:
        """Build a dialect-specific insert-or-update statement.

        Args:
            values: Column values of the row to insert.
            on_conflict: Receives the "proposed row" accessor
                (``excluded`` / ``inserted``) and returns the column
                assignments applied to an existing row.
        """
        dialect = self.dialect_name
        if dialect in _ON_CONFLICT_INSERTS:
            stmt = _ON_CONFLICT_INSERTS[dialect](_table).values(**values)
            return stmt.on_conflict_do_update(
                index_elements=list(CONTRIBUTOR_KEY_COLUMNS),
                set_=on_conflict(stmt.excluded),
            )
        if dialect in _ON_DUPLICATE_INSERTS:
            stmt = _ON_DUPLICATE_INSERTS[dialect](_table).values(**values)
            return stmt.on_duplicate_key_update(**on_conflict(stmt.inserted))
        raise UnsupportedDialectError(dialect)

    def _bound_functions(self) -> tuple[Callable[..., Any], Callable[..., Any]]:
        # SQLite spells two-argument LEAST/GREATEST as scalar min()/max().
        if self.dialect_name == "sqlite":
            return func.min, func.max
        return func.least, func.greatest

    async def _fail(
        self,
        operation: str,
        key: Optional[ContributorKey],
        exc: SQLAlchemyError,
    ) -> NoReturn:
        await self._session.rollback()
        logger.error(
            "contributor_store_failure",
            extra={"operation": operation, "key": tuple(key) if key else None, "error": str(exc)},
        )
        raise ContributorStoreError(f"Contributor store {operation} failed: {exc}", key=key) from exc
