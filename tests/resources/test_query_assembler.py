import unittest
from dataclasses import replace

from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from tests.resources.base import ALICE_EXTERNAL_ID, POST_SEARCH_FIELDS, Post, ResourceDbTestCase
from resource_browser.schemas.resource_query import OrderClause, PageRequest, SearchFilter
from resource_browser.services.errors import ConfigurationError, InvalidField, MalformedInput
from resource_browser.services.field_types import FieldType
from resource_browser.services.query_assembler import build_query
from resource_browser.services.resource_registry import ResourceRegistry

DESC_ID = [OrderClause(field="id", dir="desc")]


def _status(value):
    return SearchFilter(name="status", value=value, type=FieldType.STRING)


class _JsonBase(DeclarativeBase):
    pass


class _Operator(_JsonBase):
    __tablename__ = "_qa_operators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    login: Mapped[str] = mapped_column(String(50))


class _AuditEntry(_JsonBase):
    __tablename__ = "_qa_audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    action: Mapped[str] = mapped_column(String(50))
    diff: Mapped[dict] = mapped_column(JSON)
    operator_id: Mapped[int] = mapped_column(ForeignKey("_qa_operators.id"))
    operator: Mapped[_Operator] = relationship()


class PageRequestOffsetTests(unittest.TestCase):
    def test_offsets(self):
        self.assertEqual(PageRequest(page=3, per_page=20).offset, 40)
        self.assertEqual(PageRequest(page=1, per_page=20).offset, 0)


class AssociationSearchSqlTests(unittest.TestCase):
    def setUp(self):
        self.audit = ResourceRegistry().register(_AuditEntry, name="audit")

    def _sql(self, spec):
        return str(spec.compile(dialect=postgresql.dialect()))

    def test_association_search_on_json_table_avoids_distinct(self):
        pair = build_query(self.audit, ["action", ("operator", ["login"])], [], "root", 10, DESC_ID, 0)
        page_sql = self._sql(pair.paginated.to_select())
        count_sql = self._sql(pair.unpaginated.to_count_select())
        self.assertNotIn("DISTINCT", page_sql)
        self.assertNotIn("DISTINCT", count_sql)
        self.assertIn("_qa_audit_entries.id IN (SELECT search_root.id", page_sql)
        self.assertEqual(page_sql.count("JOIN _qa_operators AS search_operator"), 1)

    def test_plain_search_stays_in_the_outer_query(self):
        pair = build_query(self.audit, ["action"], [], "login", 10, DESC_ID, 0)
        self.assertNotIn("search_root", self._sql(pair.paginated.to_select()))


class QueryPairStructureTests(unittest.TestCase):
    def setUp(self):
        self.registry = ResourceRegistry()
        self.posts = self.registry.register(Post, name="posts", search_fields=POST_SEARCH_FIELDS)

    def test_paginated_only_adds_ordering_limit_and_offset(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [_status("draft")], "Alice", 20, DESC_ID, 40)
        self.assertFalse(pair.unpaginated.is_paginated)
        self.assertEqual(pair.unpaginated.ordering, ())
        self.assertEqual(pair.paginated, replace(pair.unpaginated, ordering=tuple(DESC_ID), limit=20, offset=40))

    def test_same_input_builds_the_same_query(self):
        first = build_query(self.posts, POST_SEARCH_FIELDS, [_status("draft")], "Alice", 10, DESC_ID, 0)
        second = build_query(self.posts, POST_SEARCH_FIELDS, [_status("draft")], "Alice", 10, DESC_ID, 0)
        self.assertEqual(first, second)
        self.assertEqual(str(first.unpaginated.to_select()), str(second.unpaginated.to_select()))

    def test_empty_search_skips_search(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [], "   ", 10, DESC_ID, 0)
        self.assertFalse(pair.unpaginated.has_search)

    def test_no_search_fields_skips_search(self):
        pair = build_query(self.posts, None, [], "Alice", 10, DESC_ID, 0)
        self.assertFalse(pair.unpaginated.has_search)

    def test_no_type_compatible_field_skips_search(self):
        pair = build_query(self.posts, ["title"], [], "42", 10, DESC_ID, 0)
        self.assertFalse(pair.unpaginated.has_search)
        self.assertEqual(pair.unpaginated.search_term, "")

    def test_search_is_narrowed_to_term_type(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [], "Alice", 10, DESC_ID, 0)
        self.assertEqual(pair.unpaginated.search_fields, ("title",))
        self.assertEqual(pair.unpaginated.search_associations, (("author", ("name",)), ("comments", ("body",))))

    def test_resource_without_primary_key_is_a_configuration_error(self):
        keyless = self.registry.register(Post, name="keyless_posts", primary_keys=())
        with self.assertRaises(ConfigurationError):
            build_query(keyless, [], [], "", 10, [], 0)


class QueryExecutionTests(ResourceDbTestCase):
    def _ids(self, spec):
        return [row.id for row in self.db.scalars(spec.to_select())]

    def _count(self, spec):
        return self.db.execute(spec.to_count_select()).scalar_one()

    def test_search_ors_plain_and_association_fields(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [], "Alice", 10, DESC_ID, 0)
        self.assertEqual(self._ids(pair.paginated), [3, 2, 1])
        self.assertEqual(self._count(pair.unpaginated), 3)

    def test_search_matches_records_without_association_rows(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [], "Orphan", 10, DESC_ID, 0)
        self.assertEqual(self._ids(pair.paginated), [4])

    def test_search_is_exact_match(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [], "Ali", 10, DESC_ID, 0)
        self.assertEqual(self._ids(pair.paginated), [])

    def test_numeric_search_compares_ids(self):
        pair = build_query(self.authors, ["id", "name"], [], "2", 10, DESC_ID, 0)
        self.assertEqual(self._ids(pair.paginated), [2])

    def test_uuid_search_through_association(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [], str(ALICE_EXTERNAL_ID).upper(), 10, DESC_ID, 0)
        self.assertEqual(self._ids(pair.paginated), [3, 1])

    def test_filters_are_anded_with_search(self):
        pair = build_query(self.posts, POST_SEARCH_FIELDS, [_status("published")], "Alice", 10, DESC_ID, 0)
        self.assertEqual(self._ids(pair.paginated), [3, 1])
        self.assertEqual(self._count(pair.unpaginated), 2)

    def test_typed_filter_values_are_coerced(self):
        views = SearchFilter(name="views", value="7", type=FieldType.INTEGER)
        pair = build_query(self.posts, [], [views], "", 10, DESC_ID, 0)
        self.assertEqual(self._ids(pair.paginated), [3])

    def test_uncoercible_filter_value_is_malformed(self):
        views = SearchFilter(name="views", value="many", type=FieldType.INTEGER)
        pair = build_query(self.posts, [], [views], "", 10, DESC_ID, 0)
        with self.assertRaises(MalformedInput):
            pair.paginated.to_select()

    def test_unresolvable_filter_name_is_invalid_field(self):
        bogus = SearchFilter(name="author", value="1", type=FieldType.ID)
        pair = build_query(self.posts, [], [bogus], "", 10, DESC_ID, 0)
        with self.assertRaises(InvalidField):
            pair.unpaginated.to_select()

    def test_pagination_and_ordering(self):
        pair = build_query(self.posts, [], [], "", 2, [OrderClause(field="title", dir="asc")], PageRequest(page=2, per_page=2).offset)
        self.assertEqual([row.title for row in self.db.scalars(pair.paginated.to_select())], ["Orphan", "Third"])
        self.assertEqual(self._count(pair.unpaginated), 4)


if __name__ == "__main__":
    unittest.main()
