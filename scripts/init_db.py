from __future__ import annotations

import importlib
from pathlib import Path

from dotenv import load_dotenv

from class_attendance.common.logging import get_logger, setup_logging
from class_attendance.database.bootstrap import apply_schema, list_tables
from class_attendance.settings import get_settings_module

logger = get_logger("init_db")


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(json_output=False, log_level=str(getattr(settings, "LOG_LEVEL", "INFO")))
    db_config = dict(settings.DB_CONFIG)

    schema_path = Path(__file__).resolve().parents[1] / "database" / "schema.sql"
    apply_schema(db_config, schema_path=schema_path)
    tables = list_tables(db_config)
    logger.info(
        "schema_applied",
        target=f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
        tables=len(tables),
    )


if __name__ == "__main__":
    main()
