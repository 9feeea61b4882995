"""
CRUD core unit tests for the query builder
"""

import unittest

from crud_core.persistence import queries


class QueryBuilderTests(unittest.TestCase):
    def test_select(self):
        self.assertEqual("select *", queries.build_select())
        self.assertEqual("select *", queries.build_select("*"))
        self.assertEqual("select test", queries.build_select("test"))
        self.assertEqual("select id, name", queries.build_select(["id", "name"]))
        self.assertEqual("select ", queries.build_select(""))
        self.assertEqual("select ", queries.build_select([]))

    def test_bindings(self):
        self.assertEqual("id = :id", queries.build_bindings(["id"]))
        self.assertEqual("id = :id name = :name", queries.build_bindings(["id", "name"]))
        self.assertEqual("id = :id", queries.build_bindings({"id": 3}))
        self.assertEqual("id = :id and name = :name", queries.build_bindings({"id": 3, "name": "hello"}))
        self.assertEqual("id = :id or name = :name", queries.build_bindings(["id", "name"], " or"))
        self.assertEqual("id = :id or name = :name", queries.build_bindings({"id": 3, "name": "x"}, " or"))
        self.assertEqual("a = :a, b = :b", queries.build_bindings(["a", "b"], ","))
        self.assertEqual("", queries.build_bindings([]))
        self.assertEqual("", queries.build_bindings({}))

    def test_where_clause(self):
        self.assertEqual("", queries.build_where_clause())
        self.assertEqual("", queries.build_where_clause(None))
        self.assertEqual("", queries.build_where_clause({}))
        self.assertEqual("", queries.build_where_clause([]))
        self.assertEqual(" where name = :name", queries.build_where_clause({"name": "Hello"}))
        self.assertEqual(" where id = :id and name = :name", queries.build_where_clause({"id": 3, "name": "noop"}))

        for bindings in [{"a": 1}, {"a": 1, "b": 2}, {"a": 1, "b": 2, "c": 3, "d": None}]:
            clause = queries.build_where_clause(bindings)
            self.assertTrue(clause.startswith(" where "), clause)
            self.assertEqual(len(bindings) - 1, clause.count(" and "), clause)

    def test_find_queries(self):
        self.assertEqual("select * from test where id = :id", queries.build_find_by({"id": 3}, "test"))
        self.assertEqual("select * from test", queries.build_find_by(None, "test"))
        self.assertEqual(
            "select id, name from test where name = :name",
            queries.build_find_by({"name": "x"}, "test", ["id", "name"])
        )
        self.assertEqual("select * from test where id = :id", queries.build_find_by_id("test"))
        self.assertEqual("select name from test where id = :id", queries.build_find_by_id("test", ["name"]))

    def test_count_and_page_queries(self):
        self.assertEqual("select count(*) as count from test", queries.build_count("test"))
        self.assertEqual(
            "select count(*) as count from test where name = :name",
            queries.build_count("test", {"name": "x"})
        )
        self.assertEqual(
            "select * from test limit :limit offset :offset",
            queries.build_page(queries.build_find_by(None, "test"))
        )

    def test_insert(self):
        self.assertEqual(
            "insert into Item(name) values (:name) returning id",
            queries.build_insert("Item", {"name": "x"})
        )
        self.assertEqual(
            "insert into Item(name, weight) values (:name, :weight) returning id",
            queries.build_insert("Item", ["name", "weight"])
        )

    def test_update(self):
        self.assertEqual(
            "update Item set name = :name where id = :id",
            queries.build_update_by_id({"name": "x"}, "Item")
        )
        self.assertEqual(
            "update Item set name = :name, weight = :weight where id = :id",
            queries.build_update_by_id(["name", "weight"], "Item")
        )
        self.assertEqual(
            "update Item set name = :name where weight = :weight and kind = :kind",
            queries.build_update_by(["name"], "Item", {"weight": 1, "kind": 2})
        )
        self.assertEqual("update Item set name = :name", queries.build_update_by(["name"], "Item", None))

    def test_delete(self):
        self.assertEqual("delete from Item where id = :id", queries.build_delete_by_id("Item"))
        self.assertEqual("delete from Item", queries.build_delete_by("Item"))
        self.assertEqual("delete from Item where name = :name", queries.build_delete_by("Item", {"name": "x"}))

    def test_create_table(self):
        schema = {"id": "SERIAL", "name": "TEXT"}
        self.assertEqual("id SERIAL, name TEXT", queries.build_fields(schema))
        self.assertEqual(
            "create table if not exists test (id SERIAL, name TEXT, constraint pk_test_id primary key(id))",
            queries.build_create_table("test", schema)
        )
        self.assertEqual(
            "create table if not exists test (id SERIAL, name TEXT, "
            "constraint pk_test_id primary key(id), constraint uq_name unique(name))",
            queries.build_create_table("test", schema, "constraint uq_name unique(name)")
        )
        self.assertEqual(
            "create table if not exists test (id SERIAL, name TEXT, "
            "constraint pk_test_id primary key(id), unique(name), check(name <> ''))",
            queries.build_create_table("test", schema, ["unique(name)", "check(name <> '')"])
        )


if __name__ == '__main__':
    unittest.main()
