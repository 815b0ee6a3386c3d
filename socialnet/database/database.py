from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from socialnet.core.config import settings

DATABASE_URL = settings.DATABASE_URL
if not DATABASE_URL:
    raise ValueError("❌ DATABASE_URL не найден в .env файле!")

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # SQLite-соединение используется из потоков FastAPI
    connect_args["check_same_thread"] = False

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

Base = declarative_base()


def get_db():
    """
    Создаёт сессию БД для каждого запроса.
    После использования - закрывает её.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
