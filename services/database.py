import sqlite3
from contextlib import contextmanager
from flask import current_app
from flask.cli import with_appcontext
import click
import logging


logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Raised for any sqlite failure, constraint violations included."""
    pass


class DatabaseManager:
    """
    Thin helper over one sqlite connection.

    Single-statement helpers commit on their own unless they run inside
    ``transaction()``, in which case the block commits once at the end or rolls
    back everything on error.
    """

    def __init__(self, connection):
        self.connection = connection
        self._depth = 0

    def close(self):
        if self.connection:
            try:
                self.connection.close()
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to close the database connection: {e}")

    def execute_query(self, query, params=None, auto_commit=False):
        """
        Run one statement.

        :param query: SQL with ``?`` placeholders.
        :type query: str
        :param params: Placeholder values.
        :type params: list | tuple, optional
        :param auto_commit: Commit right after executing (ignored inside a transaction).
        :type auto_commit: bool
        :return: The cursor, ready for ``fetchone`` / ``fetchall``.
        :rtype: sqlite3.Cursor
        :raises DatabaseError: If sqlite rejects the statement.
        """
        try:
            cursor = self.connection.cursor()
            cursor.execute(query, params or [])
        except sqlite3.Error as e:
            raise DatabaseError(f"Database query failed: {e}")

        if auto_commit:
            self.commit()
        return cursor

    def commit(self):
        if self._depth:
            return
        try:
            self.connection.commit()
        except sqlite3.Error as e:
            raise DatabaseError(f"Commit failed: {e}")

    def rollback(self):
        try:
            self.connection.rollback()
            logger.info("Transaction rolled back.")
        except sqlite3.Error as e:
            raise DatabaseError(f"Rollback failed: {e}")

    @contextmanager
    def transaction(self):
        """Group several writes into one commit. Nested blocks join the outer one."""
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if not self._depth:
                self.rollback()
            raise
        self._depth -= 1
        self.commit()

    def _write(self, query, params, action):
        try:
            cursor = self.execute_query(query, params)
            self.commit()
            return cursor.rowcount
        except DatabaseError as e:
            if not self._depth:
                self.rollback()
            raise DatabaseError(f"{action} failed: {e}")

    def insert_item(self, table, data):
        """
        Insert one row. Unlike a silent ``INSERT OR IGNORE``, a unique
        violation raises, so callers can tell a duplicate from a success.

        :raises DatabaseError: If the insert fails.
        """
        columns = ", ".join(data.keys())
        placeholders = ", ".join(["?"] * len(data))
        self._write(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(data.values()), "Insertion")

    def update_item(self, table, data, criteria):
        """
        :return: Number of rows changed.
        :rtype: int
        """
        assignments = ", ".join(f"{k}=?" for k in data.keys())
        query = f"UPDATE {table} SET {assignments} WHERE {_where(criteria)}"
        return self._write(query, tuple(data.values()) + tuple(criteria.values()), "Update")

    def get_item(self, table, criteria):
        """All rows of ``table`` matching every ``column=value`` pair in ``criteria``."""
        query = f"SELECT * FROM {table} WHERE {_where(criteria)}"
        try:
            return self.execute_query(query, tuple(criteria.values())).fetchall()
        except DatabaseError as e:
            raise DatabaseError(f"Retrieval failed: {e}")

    def delete_item(self, table, criteria):
        """
        :return: Number of rows deleted.
        :rtype: int
        """
        query = f"DELETE FROM {table} WHERE {_where(criteria)}"
        return self._write(query, tuple(criteria.values()), "Deletion")


def _where(criteria):
    if not criteria:
        raise DatabaseError("refusing to run without criteria")
    return " AND ".join(f"{k}=?" for k in criteria.keys())


def create_db_manager(db_file: str):
    """
    Open ``db_file`` (or ``:memory:``) and wrap it in a ``DatabaseManager``.
    Rows come back as ``sqlite3.Row``; foreign keys are enforced.
    """
    connection = sqlite3.connect(db_file, timeout=30.0, check_same_thread=False)
    connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute("PRAGMA synchronous=NORMAL;")
    connection.execute("PRAGMA foreign_keys=ON;")
    connection.row_factory = sqlite3.Row
    return DatabaseManager(connection)


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the warehouse, locker, medicine and sheet binding tables."""
    init_db(current_app.extensions['db_manager'])
    click.echo("Initialized the database.")


TABLES = {
    "warehouses": '''
        CREATE TABLE IF NOT EXISTS warehouses (
            warehouse_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT
        );
    ''',

    "lockers": '''
        CREATE TABLE IF NOT EXISTS lockers (
            locker_id TEXT PRIMARY KEY,
            warehouse_id TEXT NOT NULL,
            name TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT,
            FOREIGN KEY (warehouse_id) REFERENCES warehouses (warehouse_id),
            UNIQUE (warehouse_id, name)
        );
    ''',

    "medicines": '''
        CREATE TABLE IF NOT EXISTS medicines (
            medicine_id TEXT PRIMARY KEY,
            warehouse_id TEXT NOT NULL,
            locker_id TEXT NOT NULL,
            floor INTEGER NOT NULL,
            no INTEGER NOT NULL,
            address TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            medical_name TEXT NOT NULL DEFAULT '',
            label TEXT NOT NULL DEFAULT '',
            image_ref TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT,
            FOREIGN KEY (warehouse_id) REFERENCES warehouses (warehouse_id),
            FOREIGN KEY (locker_id) REFERENCES lockers (locker_id)
        );
    ''',

    # one row per warehouse; each *_sheet_id is a tab id inside spreadsheet_id
    "warehouse_sheets": '''
        CREATE TABLE IF NOT EXISTS warehouse_sheets (
            warehouse_id TEXT PRIMARY KEY,
            spreadsheet_id TEXT NOT NULL,
            medicine_sheet_id INTEGER NOT NULL,
            locker_sheet_id INTEGER,
            brand_sheet_id INTEGER,
            history_sheet_id INTEGER,
            latest_synced_at TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (warehouse_id) REFERENCES warehouses (warehouse_id)
        );
    ''',

    "medicines_address_index": '''
        CREATE INDEX IF NOT EXISTS idx_medicines_warehouse_address
            ON medicines (warehouse_id, address);
    ''',

    "warehouse_sheets_spreadsheet_index": '''
        CREATE INDEX IF NOT EXISTS idx_warehouse_sheets_spreadsheet
            ON warehouse_sheets (spreadsheet_id);
    ''',
}


def init_db(db_manager: DatabaseManager):
    """Create every table and index that is missing. Safe to run repeatedly."""
    logger.info("Initializing the database...")
    try:
        with db_manager.transaction():
            for name, schema in TABLES.items():
                logger.debug(f"Creating {name} (if required)")
                db_manager.execute_query(schema)
    except DatabaseError as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    logger.info("Database initialized.")
