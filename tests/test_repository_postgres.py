from __future__ import annotations

import importlib
import os
import unittest
from typing import Any

from mini_dao import Dao, Database, PostgresDialect, Repository
from tests._dao_behaviour_mixin import DaoBehaviourMixin


def _load_connect() -> Any:
    for module_name in ("psycopg", "psycopg2"):
        try:
            module = importlib.import_module(module_name)
        except (ModuleNotFoundError, ImportError):
            continue
        connect = getattr(module, "connect", None)
        if connect is not None:
            return connect
    return None


POSTGRES_CONNECT = _load_connect()
HAS_POSTGRES_DRIVER = POSTGRES_CONNECT is not None


class PgUser:
    def __init__(self, row: dict[str, Any]):
        self.id = row["id"]
        self.name = row["name"]
        self.active = row["active"]


@unittest.skipUnless(HAS_POSTGRES_DRIVER, "psycopg/psycopg2 is not installed")
class DaoPostgresTests(DaoBehaviourMixin, unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        password = os.getenv(
            "MINI_DAO_PG_PASSWORD",
            os.getenv("PGPASSWORD", os.getenv("POSTGRES_PASSWORD", "password")),
        )
        params = {
            "host": os.getenv("MINI_DAO_PG_HOST", os.getenv("PGHOST", "localhost")),
            "port": int(os.getenv("MINI_DAO_PG_PORT", os.getenv("PGPORT", "5432"))),
            "user": os.getenv("MINI_DAO_PG_USER", os.getenv("PGUSER", "postgres")),
            "password": password,
            "dbname": os.getenv("MINI_DAO_PG_DATABASE", os.getenv("PGDATABASE", "postgres")),
        }

        try:
            cls.conn = POSTGRES_CONNECT(**params)
        except Exception as exc:
            raise unittest.SkipTest(
                "PostgreSQL is not reachable with configured credentials: "
                f"{exc}"
            ) from exc

        cls.db = Database(cls.conn, PostgresDialect())
        cls.dao = Dao(cls.db)

    @classmethod
    def tearDownClass(cls) -> None:
        db = getattr(cls, "db", None)
        if db is not None:
            db.close()

    def setUp(self) -> None:
        self.db.command('DROP TABLE IF EXISTS "users"')
        self.db.command(
            'CREATE TABLE "users" ('
            '"id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL, '
            '"active" BOOLEAN NOT NULL, "age" INTEGER)'
        )
        self.seed_users()

    def test_native_booleans_round_trip(self) -> None:
        rows = self.dao.records("users", {"active": False})
        self.assertEqual(rows, [{"id": 2, "name": "bob", "active": False, "age": 25}])

    def test_connection_is_idle_between_statements(self) -> None:
        self.dao.records("users")
        self.assertFalse(self.db.in_transaction())

    def test_repository_over_postgres(self) -> None:
        users = Repository(self.dao).with_table("users").with_item_class(PgUser)

        active = users.find_all({"active": True}, order="id", limit=2)
        self.assertEqual([user.id for user in active], [1, 3])
        self.assertIs(active[0].active, True)

        self.assertEqual(users.patch_id(1, {"name": "alicia", "age": None}), 1)
        self.assertEqual(users.find({"id": 1}).name, "alicia")
        self.assertEqual(users.with_static({"active": True}).count(), 3)


if __name__ == "__main__":
    unittest.main()
