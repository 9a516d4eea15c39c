from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from stockpipe.app.core.config import settings

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


def test_upgrade_head_builds_schema(tmp_path, monkeypatch):
    """
    GIVEN
    - une base SQLite vide, URL passée par les settings (comme STOCKPIPE_DATABASE_URL)

    THEN
    - `upgrade head` crée les six tables lues par le moteur
    - `downgrade base` les retire
    """
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setattr(settings, "DATABASE_URL", url)
    # pas d'alembic.ini : on ne touche pas à la config logging des tests
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))

    command.upgrade(cfg, "head")
    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
        assert {
            "suppliers",
            "products",
            "purchase_orders",
            "purchase_order_lines",
            "transfers",
            "transfer_lines",
        } <= tables

        command.downgrade(cfg, "base")
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
