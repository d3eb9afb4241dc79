"""
Credential store: transactional access to account and profile records.

Every write the identity services make goes through a CredentialStore.
A transaction is represented by a StoreTransaction handle returned from
``begin()``. The handle pins the calling thread's database connection for
its lifetime and releases it exactly once, on commit or rollback.

Django keeps one connection per thread, so two requests served by two
threads never share a transaction. Within one thread a store refuses to
open a second transaction while one is still open instead of silently
nesting it.

Usage:
    store = CredentialStore()

    # Scoped: commits on success, rolls back on any exception
    with store.transaction() as tx:
        user = User.objects.create_user(email=email, password=password)
        Profile.objects.create(user=user, username=username)

    # Explicit bracket
    tx = store.begin()
    try:
        rows = tx.execute("SELECT id FROM authentication_user WHERE email = %s", [email])
        tx.commit()
    except Exception:
        tx.rollback()
        raise

Error translation:
    - django.db.IntegrityError   -> core.exceptions.ConflictError
    - django.db.OperationalError -> core.exceptions.TransientStoreError, for
      lock, deadlock, serialization and connection failures only
    Other database errors propagate unchanged after the rollback.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import (
    DEFAULT_DB_ALIAS,
    DatabaseError,
    IntegrityError,
    OperationalError,
    connections,
    transaction,
)

from core.exceptions import ConflictError, TransientStoreError

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence
    from typing import Any

logger = logging.getLogger(__name__)


class TransactionStateError(RuntimeError):
    """Raised on misuse of the transaction bracket (a programming error)."""


# SQLSTATE classes and codes a retry can get past: connection exceptions,
# serialization failure, deadlock, lock not available, admin shutdown
TRANSIENT_SQLSTATE_PREFIXES = ("08", "40001", "40P01", "55P03", "57P01", "57P02", "57P03")

# Driver messages for the same conditions where no SQLSTATE is available (SQLite)
TRANSIENT_MESSAGE_MARKERS = (
    "locked",
    "deadlock",
    "could not serialize",
    "connection",
    "gone away",
    "timeout",
    "timed out",
    "terminating",
)


def is_transient(exc: DatabaseError) -> bool:
    """
    Return True for lock, deadlock, serialization and connection failures.

    Other operational errors (a missing table, a bad column) fail the same
    way on every attempt and are not worth retrying.
    """
    if not isinstance(exc, OperationalError):
        return False
    cause = exc.__cause__
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate:
        return sqlstate.startswith(TRANSIENT_SQLSTATE_PREFIXES)
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)


def translate_database_error(exc: DatabaseError) -> Exception:
    """
    Map a Django database error onto the domain taxonomy.

    Returns the exception to raise; callers use ``raise ... from exc``.
    Non-transient operational errors are returned unchanged.
    """
    if isinstance(exc, IntegrityError):
        return ConflictError(
            "A record with the same unique value already exists",
            error_code="UNIQUE_VIOLATION",
        )
    if is_transient(exc):
        return TransientStoreError(f"Database temporarily unavailable: {exc}")
    return exc


def _fetch_rows(cursor) -> list[dict[str, Any]]:
    if cursor.description is None:
        return []
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


class StoreTransaction:
    """
    Handle for one open transaction.

    Created by CredentialStore.begin(). The handle is bound to the thread
    that opened it because Django connections are thread-local.

    States: open -> committed | rolled_back. Once closed, ``rollback()`` is
    a no-op and ``commit()`` / ``execute()`` raise TransactionStateError.
    """

    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    def __init__(self, store: CredentialStore):
        self._store = store
        self._thread_id = threading.get_ident()
        self._atomic = transaction.atomic(using=store.using)
        self._atomic.__enter__()
        self.state = self.OPEN

    @property
    def is_open(self) -> bool:
        return self.state == self.OPEN

    def execute(
        self, query: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a parameterized query inside this transaction."""
        self._check_usable("execute")
        return self._store._run(query, params)

    def commit(self) -> None:
        """
        Commit all writes made since ``begin()``.

        If the commit itself fails, the transaction is rolled back by Django
        and the translated error is raised.
        """
        self._check_usable("commit")
        if transaction.get_rollback(using=self._store.using):
            # A failed statement inside the block poisoned the transaction
            self.rollback()
            raise TransactionStateError(
                "Cannot commit: transaction is marked for rollback"
            )
        self._release()
        try:
            self._atomic.__exit__(None, None, None)
        except DatabaseError as exc:
            self.state = self.ROLLED_BACK
            error = translate_database_error(exc)
            if error is exc:
                raise
            raise error from exc
        self.state = self.COMMITTED

    def rollback(self) -> None:
        """Discard all writes made since ``begin()``. Safe to call twice."""
        if not self.is_open:
            return
        self._check_thread("rollback")
        self._release()
        transaction.set_rollback(True, using=self._store.using)
        self._atomic.__exit__(None, None, None)
        self.state = self.ROLLED_BACK

    def _release(self) -> None:
        self._store._local.transaction = None

    def _check_usable(self, action: str) -> None:
        if not self.is_open:
            raise TransactionStateError(
                f"Cannot {action}: transaction already {self.state}"
            )
        self._check_thread(action)

    def _check_thread(self, action: str) -> None:
        if threading.get_ident() != self._thread_id:
            raise TransactionStateError(
                f"Cannot {action} from a different thread than the one "
                "that began the transaction"
            )


class CredentialStore:
    """
    Transactional gateway to the account and profile tables.

    Args:
        using: Django database alias (defaults to "default")

    The underlying connection pool is Django's per-thread connection
    handler; the store only adds transaction discipline and error
    translation on top of it.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using
        self._local = threading.local()

    def begin(self) -> StoreTransaction:
        """
        Open a transaction and return its handle.

        Raises:
            TransactionStateError: a transaction from this store is still
                open on the calling thread
        """
        current = getattr(self._local, "transaction", None)
        if current is not None and current.is_open:
            raise TransactionStateError(
                "A transaction is already open on this store for this thread"
            )
        try:
            tx = StoreTransaction(self)
        except DatabaseError as exc:
            error = translate_database_error(exc)
            if error is exc:
                raise
            raise error from exc
        self._local.transaction = tx
        return tx

    @contextmanager
    def transaction(self) -> Generator[StoreTransaction, None, None]:
        """
        Scoped transaction: commit on normal exit, roll back on any error.

        Database errors raised inside the block are translated after the
        rollback, so callers only ever see domain exceptions for integrity
        and connection failures.
        """
        tx = self.begin()
        try:
            yield tx
        except DatabaseError as exc:
            tx.rollback()
            error = translate_database_error(exc)
            if error is exc:
                raise
            raise error from exc
        except BaseException:
            tx.rollback()
            raise
        if tx.is_open:
            tx.commit()

    def execute(
        self, query: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        """
        Run a parameterized query outside any explicit transaction.

        Rows are returned as dicts keyed by column name.
        """
        try:
            return self._run(query, params)
        except DatabaseError as exc:
            error = translate_database_error(exc)
            if error is exc:
                raise
            raise error from exc

    def is_available(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            self._run("SELECT 1", None)
        except DatabaseError as exc:
            logger.warning(f"Credential store unavailable: {exc}")
            return False
        return True

    def quote_name(self, name: str) -> str:
        return connections[self.using].ops.quote_name(name)

    def _run(self, query: str, params) -> list[dict[str, Any]]:
        with connections[self.using].cursor() as cursor:
            cursor.execute(query, params)
            return _fetch_rows(cursor)
