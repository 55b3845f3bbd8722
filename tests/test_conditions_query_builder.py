from __future__ import annotations

import sqlite3
import unittest

from mini_dao.core.conditions import (
    Condition,
    ConditionGroup,
    NotCondition,
    merge_where,
    parse_where,
)
from mini_dao.core.query_builder import CompiledQuery, QueryCompiler
from mini_dao.ports.db_api.dialects import Dialect, MySQLDialect, PostgresDialect, SQLiteDialect


class ParseWhereTests(unittest.TestCase):
    def test_empty_inputs(self) -> None:
        self.assertEqual(parse_where(None), [])
        self.assertEqual(parse_where({}), [])

    def test_plain_keys(self) -> None:
        parsed = parse_where({"age": 30, "deleted_at": None, "id": [1, 2]})

        self.assertEqual(parsed[0], Condition(col="age", op="=", value=30))
        self.assertEqual(parsed[1], Condition(col="deleted_at", op="IS NULL", is_unary=True))
        self.assertEqual(parsed[2], Condition(col="id", op="IN", values=[1, 2]))

    def test_operator_keys(self) -> None:
        samples = [
            ("age:eq", 1, "="),
            ("age:neq", 1, "<>"),
            ("age:lt", 1, "<"),
            ("age:lte", 1, "<="),
            ("age:gt", 1, ">"),
            ("age:gte", 1, ">="),
            ("name:like", "a%", "LIKE"),
            ("name:notlike", "a%", "NOT LIKE"),
            ("id:in", [1], "IN"),
            ("id:notin", [1], "NOT IN"),
            ("age:between", [1, 2], "BETWEEN"),
            ("deleted_at:null", True, "IS NULL"),
            ("deleted_at:notnull", True, "IS NOT NULL"),
        ]
        for key, value, op in samples:
            with self.subTest(key=key):
                (condition,) = parse_where({key: value})
                self.assertEqual(condition.op, op)

    def test_null_operator_false_inverts(self) -> None:
        (condition,) = parse_where({"deleted_at:null": False})
        self.assertEqual(condition.op, "IS NOT NULL")

    def test_eq_and_neq_with_none(self) -> None:
        eq, neq = parse_where({"a:eq": None, "b:neq": None})
        self.assertEqual(eq.op, "IS NULL")
        self.assertEqual(neq.op, "IS NOT NULL")

    def test_groups(self) -> None:
        (group,) = parse_where({":or": {"role": "admin", "age:gt": 30}})
        (negated,) = parse_where({":not": {"status": "banned"}})
        (listed,) = parse_where({":or_2": [{"a": 1}, {"b": 2, "c": 3}]})

        self.assertIsInstance(group, ConditionGroup)
        self.assertEqual(group.operator, "OR")
        self.assertEqual(len(group.items), 2)
        self.assertIsInstance(negated, NotCondition)
        self.assertIsInstance(listed.items[1], ConditionGroup)
        self.assertEqual(listed.items[1].operator, "AND")

    def test_invalid_inputs(self) -> None:
        with self.assertRaises(ValueError):
            parse_where({"age:approx": 1})
        with self.assertRaises(ValueError):
            parse_where({":xor": {"a": 1}})
        with self.assertRaises(ValueError):
            parse_where({":or": {}})
        with self.assertRaises(ValueError):
            parse_where({":or": [1, 2]})
        with self.assertRaises(ValueError):
            parse_where({"age:between": [1]})
        with self.assertRaises(ValueError):
            parse_where({":eq": 1})
        with self.assertRaises(TypeError):
            parse_where(["age", 1])  # type: ignore[arg-type]

    def test_merge_where_later_wins(self) -> None:
        merged = merge_where({"a": 1, "b": 2}, None, {"b": 3}, {"c": 4})
        self.assertEqual(merged, {"a": 1, "b": 3, "c": 4})


class QueryCompilerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sqlite = QueryCompiler(SQLiteDialect())
        self.postgres = QueryCompiler(PostgresDialect())
        self.mysql = QueryCompiler(MySQLDialect())
        self.named = QueryCompiler(Dialect(paramstyle="named"))

    def test_select_with_all_clauses(self) -> None:
        compiled = self.sqlite(
            {
                "select": "*",
                "from": "users",
                "where": {"active": True},
                "order": "id",
                "offset": 1,
                "limit": 2,
            }
        )
        self.assertEqual(
            compiled.sql,
            'SELECT * FROM "users" WHERE "active" = ? ORDER BY id LIMIT ? OFFSET ?',
        )
        self.assertEqual(compiled.binds, [True, 2, 1])

    def test_select_defaults_to_star(self) -> None:
        sql, binds = self.sqlite({"from": "users"})
        self.assertEqual(sql, 'SELECT * FROM "users"')
        self.assertEqual(binds, [])

    def test_offset_without_limit_per_dialect(self) -> None:
        self.assertEqual(
            self.sqlite({"from": "users", "offset": 5}).sql,
            'SELECT * FROM "users" LIMIT -1 OFFSET ?',
        )
        self.assertEqual(
            self.postgres({"from": "users", "offset": 5}).sql,
            'SELECT * FROM "users" OFFSET %s',
        )
        self.assertEqual(
            self.mysql({"from": "users", "offset": 5}).sql,
            "SELECT * FROM `users` LIMIT 18446744073709551615 OFFSET %s",
        )

    def test_where_operators_and_in_lists(self) -> None:
        compiled = self.sqlite(
            {
                "from": "users",
                "where": {
                    "age:gte": 18,
                    "name:like": "a%",
                    "deleted_at": None,
                    "id": [1, 2],
                    "role:notin": [],
                    "score:between": [1, 9],
                },
            }
        )
        self.assertEqual(
            compiled.sql,
            'SELECT * FROM "users" WHERE "age" >= ? AND "name" LIKE ? AND '
            '"deleted_at" IS NULL AND "id" IN (?, ?) AND 1=1 AND "score" BETWEEN ? AND ?',
        )
        self.assertEqual(compiled.binds, [18, "a%", 1, 2, 1, 9])

    def test_empty_in_matches_nothing(self) -> None:
        compiled = self.sqlite({"from": "users", "where": {"id": []}})
        self.assertEqual(compiled.sql, 'SELECT * FROM "users" WHERE 1=0')

    def test_grouped_where(self) -> None:
        compiled = self.postgres(
            {
                "from": "users",
                "where": {
                    "active": True,
                    ":or": {"role": "admin", "age:gt": 30},
                    ":not": {"status": "banned"},
                },
            }
        )
        self.assertEqual(
            compiled.sql,
            'SELECT * FROM "users" WHERE "active" = %s AND '
            '(("role" = %s) OR ("age" > %s)) AND NOT ("status" = %s)',
        )
        self.assertEqual(compiled.binds, [True, "admin", 30, "banned"])

    def test_named_placeholders_follow_bind_order(self) -> None:
        compiled = self.named({"from": "t", "where": {"a": 1, "b": "x"}, "limit": 3})
        self.assertEqual(
            compiled.sql,
            'SELECT * FROM "t" WHERE "a" = :b1 AND "b" = :b2 LIMIT :b3',
        )
        self.assertEqual(compiled.binds, [1, "x", 3])

    def test_identifiers_and_expressions(self) -> None:
        compiled = self.sqlite(
            {"select": "u.id, u.name", "from": "users u", "where": {"u.id": 1}}
        )
        self.assertEqual(compiled.sql, 'SELECT u.id, u.name FROM users u WHERE "u"."id" = ?')

    def test_count_with_group(self) -> None:
        compiled = self.sqlite({"select": "COUNT(*)", "from": "users", "group": "role"})
        self.assertEqual(compiled.sql, 'SELECT COUNT(*) FROM "users" GROUP BY role')

    def test_insert(self) -> None:
        compiled = self.sqlite({"insert": "users", "values": {"name": "a", "age": 3}})
        self.assertEqual(compiled.sql, 'INSERT INTO "users" ("name", "age") VALUES (?, ?)')
        self.assertEqual(compiled.binds, ["a", 3])

    def test_insert_bulk_uses_first_row_column_order(self) -> None:
        compiled = self.mysql(
            {
                "insert": "users",
                "values_bulk": [{"name": "a", "age": 1}, {"age": 2, "name": "b"}],
            }
        )
        self.assertEqual(
            compiled.sql,
            "INSERT INTO `users` (`name`, `age`) VALUES (%s, %s), (%s, %s)",
        )
        self.assertEqual(compiled.binds, ["a", 1, "b", 2])

    def test_update_and_delete(self) -> None:
        update = self.sqlite(
            {"update": "users", "set": {"name": "z", "age": None}, "where": {"id": 1}}
        )
        delete = self.sqlite({"delete": "users", "where": {"id:in": [1, 2]}})

        self.assertEqual(update.sql, 'UPDATE "users" SET "name" = ?, "age" = ? WHERE "id" = ?')
        self.assertEqual(update.binds, ["z", None, 1])
        self.assertEqual(delete.sql, 'DELETE FROM "users" WHERE "id" IN (?, ?)')
        self.assertEqual(delete.binds, [1, 2])

    def test_invalid_descriptors(self) -> None:
        with self.assertRaises(ValueError):
            self.sqlite({"from": "users", "having": "x"})
        with self.assertRaises(ValueError):
            self.sqlite({"update": "users", "where": {"id": 1}})
        with self.assertRaises(ValueError):
            self.sqlite({"insert": "users"})
        with self.assertRaises(ValueError):
            self.sqlite({"insert": "users", "values_bulk": [{"a": 1}, {"b": 2}]})

    def test_compiled_query_unpacks(self) -> None:
        sql, binds = CompiledQuery("SELECT 1")
        self.assertEqual(sql, "SELECT 1")
        self.assertEqual(binds, [])

    def test_compiled_sql_runs_on_sqlite(self) -> None:
        conn = sqlite3.connect(":memory:")
        conn.execute('CREATE TABLE "users" ("id" INTEGER, "role" TEXT, "age" INTEGER)')
        conn.executemany(
            'INSERT INTO "users" VALUES (?, ?, ?)',
            [(1, "admin", 20), (2, "user", 35), (3, "user", 41), (4, "owner", None)],
        )
        compiled = self.sqlite(
            {
                "select": "id",
                "from": "users",
                "where": {":or": {"role": "admin", "age:gt": 40}},
                "order": "id DESC",
                "offset": 0,
            }
        )
        rows = conn.execute(compiled.sql, compiled.binds).fetchall()
        conn.close()
        self.assertEqual(rows, [(3,), (1,)])


if __name__ == "__main__":
    unittest.main()
