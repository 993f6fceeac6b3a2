"""Database configuration and initialization."""
import logging
import time

from sqlalchemy import create_engine, BigInteger, Integer
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Create SQLAlchemy base
Base = declarative_base()

# BIGINT keys on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    echo = app.config.get('SQLALCHEMY_ECHO', False)

    if database_uri.startswith('sqlite'):
        # Single shared connection so an in-memory database survives across sessions
        engine = create_engine(
            database_uri,
            echo=echo,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool
        )
    else:
        engine = create_engine(
            database_uri,
            echo=echo,
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=10,
            max_overflow=20
        )

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def get_session():
    """Get database session."""
    return db_session


def get_engine():
    """Get database engine."""
    return engine


def _dialect_insert(session):
    """Return the dialect-specific INSERT construct supporting ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f'Atomic upsert not supported on dialect {dialect}')
    return insert


def upsert_increment(session, model, values: dict, key_columns: list, counter: str = 'quantity'):
    """
    Insert a row with counter=1 or increment the counter of the existing row.

    Emitted as a single INSERT ... ON CONFLICT DO UPDATE so two concurrent
    calls for the same key can neither duplicate the row nor lose an increment.
    The key columns must be covered by a UNIQUE constraint.
    """
    insert = _dialect_insert(session)
    table = model.__table__

    stmt = insert(table).values(**values, **{counter: 1})
    stmt = stmt.on_conflict_do_update(
        index_elements=key_columns,
        set_={counter: table.c[counter] + 1}
    )
    session.execute(stmt)


def upsert_values(session, model, values: dict, key_columns: list):
    """Insert a row or overwrite the non-key columns of the existing row atomically."""
    insert = _dialect_insert(session)
    table = model.__table__

    stmt = insert(table).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=key_columns,
        set_={k: stmt.excluded[k] for k in values if k not in key_columns}
    )
    session.execute(stmt)


def run_in_transaction(session, work, attempts: int = 3, backoff: float = 0.05):
    """
    Run ``work(session)`` and commit it as one transaction.

    Transient store failures (serialization failure, deadlock, lock timeout
    surface as OperationalError) roll back and re-run the whole unit of work
    with exponential backoff, at most ``attempts`` times. Any other exception
    rolls back and propagates unchanged.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work(session)
            session.commit()
            return result
        except OperationalError as e:
            session.rollback()
            if attempt >= attempts:
                logger.error(f"Transaction failed after {attempt} attempts: {e}")
                raise
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(f"Transaction attempt {attempt} failed ({e.orig!r}); retrying in {delay:.3f}s")
            time.sleep(delay)
        except Exception:
            session.rollback()
            raise


