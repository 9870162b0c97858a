import aiosqlite
import structlog

from gymdesk.config import settings

logger = structlog.get_logger()

_db: aiosqlite.Connection | None = None

DDL_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        gym_id TEXT NOT NULL,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL DEFAULT '',
        email TEXT,
        phone TEXT NOT NULL DEFAULT '',
        gender TEXT,
        date_of_birth TEXT,
        emergency_name TEXT,
        emergency_phone TEXT,
        relationship TEXT,
        fitness_goal TEXT,
        status TEXT NOT NULL DEFAULT 'active',
        membership_expiry TEXT,
        qr_code_data TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_users_gym_email ON users (gym_id, email)",
    "CREATE INDEX IF NOT EXISTS ix_users_gym_phone ON users (gym_id, phone)",
    """
    CREATE TABLE IF NOT EXISTS packages (
        id TEXT PRIMARY KEY,
        gym_id TEXT NOT NULL,
        name TEXT NOT NULL,
        price REAL NOT NULL,
        duration INTEGER NOT NULL,
        duration_unit TEXT NOT NULL DEFAULT 'months',
        access_type TEXT NOT NULL DEFAULT 'all_hours',
        max_freezes INTEGER NOT NULL DEFAULT 0,
        description TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_packages_gym_name ON packages (gym_id, name)",
    """
    CREATE TABLE IF NOT EXISTS client_checkins (
        id TEXT PRIMARY KEY,
        gym_id TEXT NOT NULL,
        user_id TEXT NOT NULL REFERENCES users (id),
        check_in_time TEXT NOT NULL,
        check_in_date TEXT NOT NULL,
        check_out_time TEXT,
        notes TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS roles (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS staff (
        id TEXT PRIMARY KEY,
        gym_id TEXT NOT NULL,
        first_name TEXT NOT NULL DEFAULT '',
        last_name TEXT NOT NULL DEFAULT '',
        email TEXT NOT NULL,
        phone TEXT,
        date_of_birth TEXT,
        gender TEXT,
        role_id TEXT REFERENCES roles (id),
        hire_date TEXT,
        salary REAL NOT NULL DEFAULT 0,
        is_active INTEGER NOT NULL DEFAULT 1,
        qr_code TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_staff_gym_email ON staff (gym_id, email)",
]


async def create_schema(db: aiosqlite.Connection) -> None:
    for ddl in DDL_STATEMENTS:
        await db.execute(ddl)
    await db.commit()


async def init_database() -> None:
    global _db
    _db = await aiosqlite.connect(settings.db_path)
    _db.row_factory = aiosqlite.Row
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await create_schema(_db)

    logger.info("database_initialized", path=settings.db_path)


async def close_database() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("database_closed")


def get_db() -> aiosqlite.Connection:
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _db


async def check_health() -> None:
    db = get_db()
    cursor = await db.execute("SELECT 1")
    await cursor.close()
