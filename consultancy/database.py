import logging
from threading import Lock
from weakref import WeakSet

from sqlalchemy import DateTime, create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from consultancy.core import config
from consultancy.scheduling.availability import occupies_slot
from consultancy.scheduling.time_grid import normalize_slot, slot_key


logger = logging.getLogger(__name__)

engine = create_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_engines: WeakSet = WeakSet()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_booking_schema(bind: Engine | None = None) -> None:
    """Bring an older ``consultancy_bookings`` table up to date.

    Runs once per engine per process.
    """
    bind = bind or engine

    if bind in _checked_engines:
        return

    with _schema_lock:
        if bind in _checked_engines:
            return

        inspector = inspect(bind)

        if 'consultancy_bookings' not in inspector.get_table_names():
            _checked_engines.add(bind)
            return

        existing_columns = {column['name'] for column in inspector.get_columns('consultancy_bookings')}
        migration_steps = [
            ('slot_lock', 'ALTER TABLE consultancy_bookings ADD COLUMN slot_lock VARCHAR(16)'),
            ('deleted', 'ALTER TABLE consultancy_bookings ADD COLUMN deleted BOOLEAN DEFAULT FALSE'),
            ('is_admin_block', 'ALTER TABLE consultancy_bookings ADD COLUMN is_admin_block BOOLEAN DEFAULT FALSE'),
            ('transaction_id', 'ALTER TABLE consultancy_bookings ADD COLUMN transaction_id VARCHAR'),
            ('payment_status_date', 'ALTER TABLE consultancy_bookings ADD COLUMN payment_status_date TIMESTAMP'),
            ('payment_requested_at', 'ALTER TABLE consultancy_bookings ADD COLUMN payment_requested_at TIMESTAMP'),
            ('updated_at', 'ALTER TABLE consultancy_bookings ADD COLUMN updated_at TIMESTAMP'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            _backfill_slot_locks(connection)
            connection.execute(
                text('CREATE UNIQUE INDEX IF NOT EXISTS uq_consultancy_bookings_slot_lock ON consultancy_bookings(slot_lock)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_consultancy_bookings_slot ON consultancy_bookings(slot)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_consultancy_bookings_block_slot ON consultancy_bookings(is_admin_block, deleted, slot)')
            )

        _checked_engines.add(bind)


def _backfill_slot_locks(connection) -> None:
    """Claim slots for rows written before the slot lock existed.

    When older rows already share a slot, the lowest id keeps the lock and
    the rest stay unlocked so the unique index can still be created.
    """
    taken = {
        row.slot_lock
        for row in connection.execute(
            text('SELECT slot_lock FROM consultancy_bookings WHERE slot_lock IS NOT NULL')
        )
    }
    rows = connection.execute(
        text(
            'SELECT id, slot, status, deleted, is_admin_block FROM consultancy_bookings '
            'WHERE slot_lock IS NULL ORDER BY id'
        ).columns(slot=DateTime)
    ).all()

    for row in rows:
        if row.slot is None or not occupies_slot(row):
            continue
        key = slot_key(normalize_slot(row.slot))
        if key in taken:
            logger.warning('Booking %s shares slot %s with an earlier booking; left unlocked', row.id, key)
            continue
        connection.execute(
            text('UPDATE consultancy_bookings SET slot_lock = :slot_lock WHERE id = :id'),
            {'slot_lock': key, 'id': row.id},
        )
        taken.add(key)


def init_db(bind: Engine | None = None) -> None:
    from consultancy.models import booking, notification  # noqa: F401

    config.validate_runtime_config()
    bind = bind or engine
    try:
        Base.metadata.create_all(bind=bind)
        ensure_booking_schema(bind)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        raise
