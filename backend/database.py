from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _connect_args(database_url: str) -> dict:
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    connect_args=_connect_args(config.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_user_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_user_schema(bind=None) -> None:
    global _user_schema_checked

    if _user_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _user_schema_checked:
            return

        inspector = inspect(bind)

        if 'users' not in inspector.get_table_names():
            _user_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('users')}
        migration_steps = [
            ('bio', 'ALTER TABLE users ADD COLUMN bio VARCHAR'),
            ('linkedin', 'ALTER TABLE users ADD COLUMN linkedin VARCHAR'),
            ('phone', 'ALTER TABLE users ADD COLUMN phone VARCHAR'),
            ('location', 'ALTER TABLE users ADD COLUMN location VARCHAR'),
            ('profile_picture', 'ALTER TABLE users ADD COLUMN profile_picture VARCHAR'),
            ('last_login', 'ALTER TABLE users ADD COLUMN last_login TIMESTAMP'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_users_role_department ON users(role, department)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_users_role_graduation_year ON users(role, graduation_year)')
            )

        _user_schema_checked = True
