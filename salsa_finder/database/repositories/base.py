"""Base repository class for common database operations."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TypeVar, Generic
import asyncpg
import structlog

from salsa_finder.database.connections import DatabaseManager


logger = structlog.get_logger(__name__)

T = TypeVar('T')


class BaseRepository(ABC, Generic[T]):
    """Base repository class providing common database operations."""

    def __init__(self, db_manager: DatabaseManager, table_name: str):
        """
        Initialize base repository.

        Args:
            db_manager: Database manager instance
            table_name: Name of the database table
        """
        self.db_manager = db_manager
        self.table_name = table_name
        self.logger = logger.bind(component=f"{table_name}_repository")

    @abstractmethod
    def _row_to_model(self, row: asyncpg.Record) -> T:
        """Convert database row to model instance."""
        pass

    @abstractmethod
    def _model_to_dict(self, model: T) -> Dict[str, Any]:
        """Convert model instance to dictionary for database storage."""
        pass

    async def find_by_id(self, id_value: int) -> Optional[T]:
        """
        Find a record by its ID.

        Args:
            id_value: The ID to search for

        Returns:
            Model instance if found, None otherwise
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                query = f"SELECT * FROM {self.table_name} WHERE id = $1"
                row = await conn.fetchrow(query, id_value)

                if row:
                    return self._row_to_model(row)
                return None

        except Exception as e:
            self.logger.error("Error finding record by ID",
                            table=self.table_name, id=id_value, error=str(e))
            raise

    async def find_all(self, order_by: str = "id", limit: int = 1000, offset: int = 0) -> List[T]:
        """
        Find all records with pagination.

        Args:
            order_by: ORDER BY clause
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List of model instances
        """
        try:
            async with self.db_manager.get_postgres_connection() as conn:
                query = f"SELECT * FROM {self.table_name} ORDER BY {order_by} LIMIT $1 OFFSET $2"
                rows = await conn.fetch(query, limit, offset)

                return [self._row_to_model(row) for row in rows]

        except Exception as e:
            self.logger.error("Error finding all records",
                            table=self.table_name, error=str(e))
            raise

    async def create(self, model: T) -> T:
        """
        Create a new record.

        None values are left out so the column defaults apply.

        Args:
            model: Model instance to create

        Returns:
            Created model instance with storage-assigned fields (id, timestamps)
        """
        try:
            data = self._model_to_dict(model)
            filtered_data = {k: v for k, v in data.items() if v is not None}

            columns = list(filtered_data.keys())
            placeholders = [f"${i+1}" for i in range(len(columns))]
            values = list(filtered_data.values())

            query = f"""
                INSERT INTO {self.table_name} ({', '.join(columns)})
                VALUES ({', '.join(placeholders)})
                RETURNING *
            """

            async with self.db_manager.get_postgres_connection() as conn:
                row = await conn.fetchrow(query, *values)
                created_model = self._row_to_model(row)

                self.logger.info("Record created",
                               table=self.table_name, id=getattr(created_model, 'id', None))

                return created_model

        except Exception as e:
            self.logger.error("Error creating record",
                            table=self.table_name, error=str(e))
            raise

    async def find_by_criteria(self,
                              where_clause: str,
                              params: List[Any] = None,
                              order_by: str = "id",
                              limit: int = 1000,
                              offset: int = 0) -> List[T]:
        """
        Find records matching criteria.

        Args:
            where_clause: WHERE clause (without WHERE keyword)
            params: Parameters for the WHERE clause
            order_by: ORDER BY clause
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            List of matching model instances
        """
        try:
            params = params or []

            query = f"""
                SELECT * FROM {self.table_name}
                WHERE {where_clause}
                ORDER BY {order_by}
                LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
            """

            async with self.db_manager.get_postgres_connection() as conn:
                rows = await conn.fetch(query, *params, limit, offset)

                return [self._row_to_model(row) for row in rows]

        except Exception as e:
            self.logger.error("Error finding records by criteria",
                            table=self.table_name, error=str(e))
            raise
