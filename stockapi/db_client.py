"""
Database client for the Stock API.

Provides pooled SQLAlchemy access to the stocks table. Every operation runs
exactly one parameterized statement on a connection checked out from the pool.
"""

import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

from loguru import logger
from sqlalchemy import create_engine, text, Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from .config import Settings, get_settings
from .models import Stock, StockIn

T = TypeVar("T")


class StorageError(Exception):
    """
    Raised when a statement against the stocks table fails.

    ``unavailable`` is set when the store could not be reached at all
    (connection refused, pool exhausted) as opposed to a rejected statement.
    """

    def __init__(self, message: str, unavailable: bool = False):
        super().__init__(message)
        self.unavailable = unavailable


def _row_to_stock(row) -> Stock:
    return Stock(
        stockid=row[0],
        name=row[1] or "",
        price=row[2] or 0,
        company=row[3] or ""
    )


class StockDB:
    """
    Storage accessor for the stocks table.

    Owns a bounded connection pool; create one instance at startup and
    call dispose() at shutdown.
    """

    def __init__(self, dsn: Optional[str] = None, settings: Optional[Settings] = None):
        """
        Initialize database client.

        Args:
            dsn: Database connection string. If None, uses settings.database_url.
            settings: Application settings. If None, uses the global settings.
        """
        if settings is None:
            settings = get_settings()
        if dsn is None:
            dsn = settings.database_url

        self.read_retries = settings.db_read_retries
        self.retry_delay = settings.db_retry_delay
        self.engine: Engine = create_engine(
            dsn,
            echo=False,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=True
        )

        logger.debug(f"Initialized StockDB with engine: {self.engine.url}")

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()
        logger.debug("Disposed StockDB connection pool")

    def _storage_error(self, action: str, e: SQLAlchemyError) -> StorageError:
        unavailable = isinstance(e, (OperationalError, PoolTimeoutError))
        logger.error(f"Unable to {action}: {e}")
        return StorageError(f"Unable to {action}", unavailable=unavailable)

    def _read(self, action: str, query: Callable[[], T]) -> T:
        """Run an idempotent read, retrying up to read_retries extra times."""
        attempts = self.read_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return query()
            except SQLAlchemyError as e:
                if attempt == attempts:
                    raise self._storage_error(action, e) from e
                logger.warning(f"Attempt {attempt}/{attempts} to {action} failed, retrying: {e}")
                time.sleep(self.retry_delay)

    def insert_stock(self, stock: StockIn) -> int:
        """
        Insert a stock and return the id assigned by the database.

        Args:
            stock: Stock fields (name, price, company)

        Returns:
            int: stockid of the new row
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("""
                    INSERT INTO stocks (name, price, company)
                    VALUES (:name, :price, :company)
                    RETURNING stockid
                """), {
                    'name': stock.name,
                    'price': stock.price,
                    'company': stock.company
                })
                stock_id = result.scalar()
                conn.commit()

        except SQLAlchemyError as e:
            raise self._storage_error("insert stock", e) from e

        logger.info(f"Inserted a single record {stock_id}")
        return stock_id

    def get_stock(self, stock_id: int) -> Optional[Stock]:
        """
        Look up a single stock by primary key.

        Args:
            stock_id: Stock identifier

        Returns:
            Stock: The stock, or None if no row matches
        """
        def query() -> Optional[Any]:
            with self.engine.connect() as conn:
                result = conn.execute(text("""
                    SELECT stockid, name, price, company
                    FROM stocks
                    WHERE stockid = :stockid
                """), {'stockid': stock_id})
                return result.fetchone()

        row = self._read(f"get stock {stock_id}", query)
        if row is None:
            logger.debug(f"No rows were returned for stock {stock_id}")
            return None

        return _row_to_stock(row)

    def all_stocks(self) -> List[Stock]:
        """
        Fetch every stock. Row order is whatever the database returns.

        Returns:
            List[Stock]: All stocks, empty if none exist
        """
        def query() -> List[Any]:
            with self.engine.connect() as conn:
                result = conn.execute(text("SELECT stockid, name, price, company FROM stocks"))
                return result.fetchall()

        rows = self._read("get stocks", query)
        logger.debug(f"Retrieved {len(rows)} stocks")
        return [_row_to_stock(row) for row in rows]

    def update_stock(self, stock_id: int, stock: StockIn) -> int:
        """
        Replace name, price and company of a stock.

        Args:
            stock_id: Stock identifier
            stock: New field values; all three are written

        Returns:
            int: Number of rows affected (0 or 1)
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("""
                    UPDATE stocks
                    SET name = :name, price = :price, company = :company
                    WHERE stockid = :stockid
                """), {
                    'stockid': stock_id,
                    'name': stock.name,
                    'price': stock.price,
                    'company': stock.company
                })
                rows_affected = result.rowcount
                conn.commit()

        except SQLAlchemyError as e:
            raise self._storage_error(f"update stock {stock_id}", e) from e

        logger.info(f"Total rows/record affected {rows_affected}")
        return rows_affected

    def delete_stock(self, stock_id: int) -> int:
        """
        Delete a stock by primary key.

        Args:
            stock_id: Stock identifier

        Returns:
            int: Number of rows affected (0 or 1)
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    text("DELETE FROM stocks WHERE stockid = :stockid"),
                    {'stockid': stock_id}
                )
                rows_affected = result.rowcount
                conn.commit()

        except SQLAlchemyError as e:
            raise self._storage_error(f"delete stock {stock_id}", e) from e

        logger.info(f"Total rows/record affected {rows_affected}")
        return rows_affected

    def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            dict: Health check results
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
                stock_count = conn.execute(text("SELECT COUNT(*) FROM stocks")).scalar()

            return {
                'status': 'healthy',
                'database_connected': True,
                'stock_count': stock_count,
                'pool_status': self.engine.pool.status(),
                'timestamp': datetime.now().isoformat()
            }

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'database_connected': False,
                'error': str(e),
                'timestamp': datetime.now().isoformat()
            }
