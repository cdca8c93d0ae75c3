"""
Tests unitarios para SchemaCatalog y la gramática de columnas.
"""
from dataclasses import FrozenInstanceError

import pytest

from docsync.application.dto.mapping_dto import parse_collection_meta, parse_column_entry
from docsync.application.services.schema_catalog import SchemaCatalog
from docsync.domain.entities.schema import ColumnSpec, Namespace
from docsync.shared.exceptions.domain import SchemaError


class TestColumnEntryGrammar:
    """Las dos formas de entrada de columna."""

    def test_shorthand_uses_name_as_source(self):
        assert parse_column_entry({"title": "TEXT"}) == ColumnSpec("title", "title", "TEXT")

    def test_explicit_entry(self):
        spec = parse_column_entry({"author_name": None, "source": "author.name", "type": "TEXT"})

        assert spec.source == "author.name"
        assert spec.name == "author_name"
        assert spec.sql_type == "TEXT"
        assert spec.is_key is True

    def test_explicit_entry_with_key_false_is_not_primary_key(self):
        spec = parse_column_entry({"oid": None, "source": "_id", "type": "TEXT", "key": False})

        assert spec.is_key is False
        assert not spec.is_primary_key

    def test_multiple_keys_without_source_or_type_is_rejected(self):
        with pytest.raises(ValueError):
            parse_column_entry({"a": "TEXT", "b": "TEXT"})

    def test_explicit_entry_with_two_names_is_rejected(self):
        with pytest.raises(ValueError):
            parse_column_entry({"a": None, "b": None, "source": "x", "type": "TEXT"})

    def test_explicit_entry_without_type_is_rejected(self):
        with pytest.raises(ValueError):
            parse_column_entry({"a": None, "source": "x"})

    def test_non_boolean_key_is_rejected(self):
        with pytest.raises(ValueError):
            parse_column_entry({"id": None, "source": "_id", "type": "TEXT", "key": "no"})

    def test_meta_accepts_camel_and_snake_case(self):
        assert parse_collection_meta({"table": "t", "extraProps": True}).extra_props is True
        assert parse_collection_meta({"table": "t", "created_at": True}).created_at is True

    def test_meta_requires_table(self):
        with pytest.raises(ValueError):
            parse_collection_meta({"extra_props": True})


class TestSchemaCatalogParse:
    """Construcción y validación del catálogo."""

    def test_parse_valid_mapping(self, catalog):
        assert catalog.source_databases() == ["blog"]
        assert catalog.collections_for_database("blog") == ["posts", "authors"]
        assert catalog.collections_for_database("otra") == []

    def test_duplicate_source_is_rejected(self, blog_mapping):
        blog_mapping["blog"]["posts"]["columns"].append({"title_copy": None, "source": "title", "type": "TEXT"})

        with pytest.raises(SchemaError) as exc_info:
            SchemaCatalog.parse(blog_mapping)

        assert any("Source duplicado title" in issue for issue in exc_info.value.issues)

    def test_all_issues_are_reported(self, blog_mapping):
        blog_mapping["blog"]["posts"]["columns"].append({"a": "TEXT", "b": "TEXT"})
        blog_mapping["blog"]["authors"]["meta"] = {"createdAt": True}

        with pytest.raises(SchemaError) as exc_info:
            SchemaCatalog.parse(blog_mapping)

        issues = exc_info.value.issues
        assert len(issues) == 2
        assert any(issue.startswith("blog.posts.columns[3]") for issue in issues)
        assert any(issue.startswith("blog.authors.meta") for issue in issues)
        assert exc_info.value.details["issues"] == issues

    def test_collection_without_primary_key_is_rejected(self, blog_mapping):
        blog_mapping["blog"]["authors"]["columns"] = [{"name": "TEXT"}]

        with pytest.raises(SchemaError):
            SchemaCatalog.parse(blog_mapping)

    def test_relation_without_parent_reference_is_rejected(self, blog_mapping):
        blog_mapping["blog"]["posts"]["related"]["post_tags"] = [
            {"tag": None, "source": "tags[]", "type": "TEXT"},
        ]

        with pytest.raises(SchemaError) as exc_info:
            SchemaCatalog.parse(blog_mapping)

        assert "blog.posts.post_tags" in exc_info.value.issues[0]

    def test_relation_referencing_parent_without_id_is_rejected(self, blog_mapping):
        blog_mapping["blog"]["posts"]["related"]["post_tags"] = [
            {"post_title": None, "source": "title", "type": "TEXT"},
            {"tag": None, "source": "tags[]", "type": "TEXT"},
        ]

        with pytest.raises(SchemaError) as exc_info:
            SchemaCatalog.parse(blog_mapping)

        assert "blog.posts.post_tags" in exc_info.value.issues[0]

    def test_non_mapping_root_is_rejected(self):
        with pytest.raises(SchemaError):
            SchemaCatalog.parse(["blog"])

    def test_created_at_column_is_synthesized(self, catalog):
        schema = catalog.lookup("blog.authors")

        created = schema.columns[-1]
        assert created == ColumnSpec("_id", "createdAt", "TIMESTAMP", is_key=False)
        assert schema.primary_key.name == "id"

    def test_catalog_is_read_only(self, catalog):
        schema = catalog.lookup("blog.posts")

        with pytest.raises(TypeError):
            schema.relations["nueva"] = ()
        with pytest.raises(FrozenInstanceError):
            schema.table_name = "otra"


class TestSchemaCatalogLookup:
    """Consultas sobre el catálogo."""

    def test_lookup_collection(self, catalog):
        schema = catalog.lookup("blog.posts")

        assert schema.table_name == "blog_posts"
        assert schema.extra_props is True
        assert [c.name for c in schema.columns] == ["id", "author_name", "title"]

    def test_lookup_relation(self, catalog):
        schema = catalog.lookup("blog.posts.post_tags")

        assert schema.table_name == "post_tags"
        assert [c.source for c in schema.columns] == ["_id", "tags[]"]
        assert schema.extra_props is False

    def test_lookup_accepts_namespace_objects(self, catalog):
        assert catalog.lookup(Namespace("blog", "posts")).table_name == "blog_posts"

    @pytest.mark.parametrize("ns", ["blog.missing", "otra.posts", "blog.posts.missing"])
    def test_lookup_missing_returns_none(self, catalog, ns):
        assert catalog.lookup(ns) is None

    def test_lookup_required_raises(self, catalog):
        with pytest.raises(SchemaError) as exc_info:
            catalog.lookup_required("blog.missing")

        assert exc_info.value.namespace == "blog.missing"

    @pytest.mark.parametrize("ns", ["blog", "blog.some.dotted.coll", "blog..x"])
    def test_unparseable_namespace_returns_none(self, catalog, ns):
        assert catalog.lookup(ns) is None

    @pytest.mark.parametrize("ns", ["blog", "blog.some.dotted.coll"])
    def test_lookup_required_rejects_unparseable_namespace(self, catalog, ns):
        with pytest.raises(SchemaError) as exc_info:
            catalog.lookup_required(ns)

        assert exc_info.value.namespace == ns

    def test_primary_key_column(self, catalog):
        assert catalog.primary_key_column("blog.posts") == "id"

    def test_relation_has_no_primary_key_column(self, catalog):
        with pytest.raises(SchemaError):
            catalog.primary_key_column("blog.posts.post_tags")

    def test_table_for_namespace(self, catalog):
        assert catalog.table_for_namespace("blog.posts") == "blog_posts"
        assert catalog.table_for_namespace("blog.posts.post_tags") == "post_tags"

    def test_relation_namespaces(self, catalog):
        assert catalog.relation_namespaces("blog.posts") == [Namespace("blog", "posts", "post_tags")]
        assert catalog.relation_namespaces("blog.authors") == []

    def test_parent_reference_columns(self, catalog):
        refs = catalog.parent_reference_columns("blog.posts.post_tags")

        assert [c.name for c in refs] == ["post_id"]

    def test_copied_parent_fields_are_not_parent_reference(self, blog_mapping):
        blog_mapping["blog"]["posts"]["related"]["post_tags"].insert(
            1, {"post_title": None, "source": "title", "type": "TEXT"}
        )
        catalog = SchemaCatalog.parse(blog_mapping)

        refs = catalog.parent_reference_columns("blog.posts.post_tags")

        assert [c.name for c in refs] == ["post_id"]

    def test_parent_reference_columns_requires_relation(self, catalog):
        with pytest.raises(SchemaError):
            catalog.parent_reference_columns("blog.posts")


class TestSchemaCatalogTables:
    """Definiciones DDL y creación de tablas."""

    def test_table_definitions(self, catalog):
        definitions = {d.name: d for d in catalog.table_definitions()}

        assert list(definitions) == ["blog_posts", "post_tags", "authors"]

        posts = definitions["blog_posts"]
        assert [c.name for c in posts.columns] == ["id", "author_name", "title", "_extra_props"]
        assert posts.primary_key == ("id",)
        assert posts.identity_column is None

        tags = definitions["post_tags"]
        assert [c.name for c in tags.columns] == ["post_id", "tag"]
        assert tags.primary_key == ("__id",)
        assert tags.identity_column == "__id"

        authors = definitions["authors"]
        assert [(c.name, c.sql_type) for c in authors.columns] == [
            ("id", "TEXT"),
            ("name", "TEXT"),
            ("createdAt", "TIMESTAMP"),
        ]

    def test_create_tables(self, catalog, sink):
        assert sink.created == [("blog_posts", False), ("post_tags", False), ("authors", False)]

        catalog.create_tables(sink, clobber=True)

        assert sink.created[-3:] == [("blog_posts", True), ("post_tags", True), ("authors", True)]
