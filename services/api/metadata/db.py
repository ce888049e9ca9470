"""
Metadata database connection and initialization.
"""
import os
from typing import Optional

from psycopg2.extras import RealDictCursor
from psycopg2.pool import SimpleConnectionPool

from config import CONFIG
from shared.utils import setup_logger

logger = setup_logger(__name__)


class MetadataDB:
    """Manages connections to the PostgreSQL metadata database."""

    def __init__(
        self,
        host: str = None,
        port: int = None,
        database: str = None,
        user: str = None,
        password: str = None,
        min_conn: int = 2,
        max_conn: int = 10
    ):
        """
        Initialize metadata database connection pool.

        Args:
            host: PostgreSQL host
            port: PostgreSQL port
            database: Database name
            user: Database user
            password: Database password
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
        """
        settings = CONFIG.storage
        self.host = host or settings.db_host
        self.port = port or settings.db_port
        self.database = database or settings.db_name
        self.user = user or settings.db_user
        self.password = password or settings.db_password

        self.pool: Optional[SimpleConnectionPool] = None
        self.min_conn = min_conn
        self.max_conn = max_conn

    def connect(self):
        """Initialize connection pool."""
        try:
            self.pool = SimpleConnectionPool(
                self.min_conn,
                self.max_conn,
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                cursor_factory=RealDictCursor
            )
            logger.info(
                f"Connected to metadata DB: {self.user}@{self.host}:{self.port}/{self.database}"
            )
        except Exception as e:
            logger.error(f"Failed to connect to metadata DB: {e}")
            raise

    def get_connection(self):
        """
        Get a connection from the pool.

        Returns:
            Database connection
        """
        if not self.pool:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self.pool.getconn()

    def return_connection(self, conn):
        if self.pool:
            self.pool.putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        if self.pool:
            self.pool.closeall()
            self.pool = None
            logger.info("Metadata DB connection pool closed")

    def initialize_schema(self, schema_file: str = None):
        """
        Initialize database schema from SQL file.

        Args:
            schema_file: Path to SQL schema file
        """
        schema_file = str(schema_file or CONFIG.storage.schema_file)
        if not os.path.exists(schema_file):
            logger.warning(f"Schema file not found: {schema_file}")
            return

        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT EXISTS (SELECT FROM information_schema.tables "
                "WHERE table_schema = 'public' AND table_name = 'repository_connections');"
            )
            result = cursor.fetchone()
            schema_exists = result['exists'] if isinstance(result, dict) else result[0]

            if schema_exists:
                logger.info("Database schema already initialized, skipping")
                return

            with open(schema_file, 'r') as f:
                schema_sql = f.read()

            cursor.execute(schema_sql)
            conn.commit()
            logger.info("Database schema initialized successfully")
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to initialize schema: {e}")
            raise
        finally:
            self.return_connection(conn)

    def health_check(self) -> bool:
        """
        Check if database is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            conn = self.get_connection()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            return cursor.fetchone() is not None
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False
        finally:
            self.return_connection(conn)


# Singleton instance
_metadata_db: Optional[MetadataDB] = None


def get_metadata_db() -> MetadataDB:
    """
    Get the singleton metadata database instance.

    Returns:
        MetadataDB instance
    """
    global _metadata_db
    if _metadata_db is None:
        _metadata_db = MetadataDB()
        _metadata_db.connect()
    return _metadata_db
