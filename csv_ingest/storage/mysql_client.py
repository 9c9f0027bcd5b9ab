# ==============================================
# MySQLClient
# ==============================================
#
# PURPOSE:
#   Owns the single pymysql connection behind MySQLUploadStore
#   and the handful of SQL primitives the store is written in.
#
# CLASS: MySQLClient
# ------------------
#   Stateful: one connection, guarded by a lock. The API serves
#   requests from a thread pool and a pymysql connection must not
#   be used by two threads at once.
#
#   Lifecycle:
#   ----------
#   - connect()     bootstrap the database (utf8mb4), then select it
#   - disconnect()  idempotent
#   - with MySQLClient(...) as db:  connect / disconnect
#
#   SQL primitives:
#   ---------------
#   - ensure_tables(statements)     DDL, one statement at a time
#   - execute(query, params) -> int write + commit, returns lastrowid
#   - fetch_all(query, params)      rows as dicts (DictCursor)
#   - fetch_one(query, params)      first row or None
#
#   Failures surface as StoreError; a failed write is rolled back.
#
# ==============================================

import threading
from typing import Any, Dict, List, Optional, Sequence

import pymysql
import pymysql.cursors

from csv_ingest.errors import StoreError
from csv_ingest.logger import get_logger

logger = get_logger(__name__)


class MySQLClient:
    def __init__(self, host: str, port: int, user: str, password: str, database: str):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection: Optional[pymysql.connections.Connection] = None
        self._lock = threading.RLock()

    def connect(self) -> None:
        if self.connection is not None:
            return
        try:
            self.connection = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                charset="utf8mb4",
                cursorclass=pymysql.cursors.DictCursor,
            )
            with self.connection.cursor() as cursor:
                cursor.execute(
                    f"CREATE DATABASE IF NOT EXISTS `{self.database}` "
                    "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
                )
            self.connection.select_db(self.database)
        except pymysql.MySQLError as e:
            self.connection = None
            raise StoreError(f"Cannot reach MySQL at {self.host}:{self.port}: {e}") from e
        logger.info("✓ MySQL ready at %s:%s/%s", self.host, self.port, self.database)

    def disconnect(self) -> None:
        with self._lock:
            if self.connection is not None:
                self.connection.close()
                self.connection = None

    def ensure_tables(self, statements: Sequence[str]) -> None:
        for statement in statements:
            self.execute(statement)

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        with self._lock:
            try:
                connection = self._live_connection()
                with connection.cursor() as cursor:
                    cursor.execute(query, params)
                    last_id = cursor.lastrowid
                connection.commit()
            except pymysql.MySQLError as e:
                self._rollback()
                raise StoreError(f"MySQL write failed: {e}") from e
            return last_id

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        with self._lock:
            try:
                connection = self._live_connection()
                with connection.cursor() as cursor:
                    cursor.execute(query, params)
                    return list(cursor.fetchall())
            except pymysql.MySQLError as e:
                raise StoreError(f"MySQL read failed: {e}") from e

    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None

    def _rollback(self) -> None:
        if self.connection is None:
            return
        try:
            self.connection.rollback()
        except pymysql.MySQLError:
            logger.warning("Rollback failed; the connection is gone")

    def _live_connection(self) -> pymysql.connections.Connection:
        if self.connection is None:
            raise StoreError("MySQLClient.connect() has not been called")
        # Long-lived server process; the server may have dropped an idle connection
        self.connection.ping(reconnect=True)
        return self.connection

    def __enter__(self) -> "MySQLClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
