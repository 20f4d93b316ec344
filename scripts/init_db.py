from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv

from tenant_attendance.config import get_settings_module
from tenant_attendance.database.bootstrap import apply_schema
from tenant_attendance.database.connection import DBConfig, DatabaseConnection


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    settings = importlib.import_module(get_settings_module())
    config = DBConfig.from_dict(dict(settings.DB_CONFIG))
    count = apply_schema(DatabaseConnection(config))
    print(
        "OK: Applied schema.sql -> "
        f"{config.user}@{config.host}:{config.port}/{config.database} "
        f"(statements={count})"
    )


if __name__ == "__main__":
    main()
