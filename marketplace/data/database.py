# marketplace/data/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from marketplace.utils.settings import DATABASE_URL, SQL_ECHO, SQLITE_BUSY_TIMEOUT

Base = declarative_base()


def _sqlite_immediate_transactions(engine: Engine) -> None:
    """
    sqlite (dev/testy): pysqlite sam zarzadza BEGIN, wylaczamy to i zaczynamy
    kazda transakcje od BEGIN IMMEDIATE - pisarze czekaja na siebie (busy timeout)
    zamiast wpadac na 'database is locked' przy podbijaniu locka.
    Dodatkowo SAVEPOINT (begin_nested) dziala poprawnie.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str | None = None, echo: bool = SQL_ECHO) -> Engine:
    url = url or DATABASE_URL
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        )
        _sqlite_immediate_transactions(engine)
        return engine
    return create_engine(url, echo=echo, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)
