from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from posadmin.config import settings
from posadmin.db import Base
import posadmin.models  # noqa: F401  registers the tables on Base.metadata


def main() -> None:
    database_url = settings.database_url
    print(f"DATABASE_URL={database_url} STORE_CODE={settings.store_code}")
    engine = create_engine(database_url, pool_pre_ping=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("DB connection OK")
        existing = set(inspect(engine).get_table_names())
        missing = sorted(set(Base.metadata.tables) - existing)
        if missing:
            print(f"Missing tables: {', '.join(missing)} (run python -m posadmin.seed to create them)")
        else:
            print(f"All {len(Base.metadata.tables)} tables present")
    except SQLAlchemyError as exc:
        print("DB connection FAILED")
        print(exc)


if __name__ == "__main__":
    main()
