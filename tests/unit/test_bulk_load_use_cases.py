"""
Tests unitarios para BulkLoader (carga masiva vía COPY).
"""
import json
from unittest.mock import MagicMock

import pytest

from docsync.application.use_cases.bulk_load_use_cases import BulkLoader
from docsync.shared.exceptions.domain import BulkLoadError, SchemaError


class TestBulkLoader:

    @pytest.fixture
    def loader(self, projector, sink):
        return BulkLoader(projector, sink)

    def test_lines_follow_column_order(self, loader, sink, post_doc):
        sent = loader.bulk_load("blog.posts", [post_doc])

        assert sent == 1
        row = sink.copied["blog_posts"][0]
        assert row[:3] == ["5f0c0b6e1c9d440000a1b2c3", "Ana", "Hola mundo"]
        assert json.loads(row[3])["views"] == 42

    def test_relation_rows_are_flattened(self, loader, sink, post_doc):
        other = {"_id": "p2", "tags": ["x"]}

        sent = loader.bulk_load("blog.posts.post_tags", [post_doc, other])

        assert sent == 4
        assert [r[1] for r in sink.copied["post_tags"]] == ["python", "postgres", "mongo", "x"]
        assert sink.copied["post_tags"][3] == ["p2", "x"]

    def test_without_flatten_keeps_first_row_per_document(self, loader, sink, post_doc):
        sent = loader.bulk_load("blog.posts.post_tags", [post_doc], flatten=False)

        assert sent == 1
        assert sink.copied["post_tags"] == [["5f0c0b6e1c9d440000a1b2c3", "python"]]

    def test_null_values_are_sent_as_null(self, loader, sink):
        loader.bulk_load("blog.posts", [{"_id": "p1"}])

        assert sink.copied["blog_posts"][0][1] is None

    def test_empty_input_sends_nothing(self, loader, sink):
        assert loader.bulk_load("blog.posts", []) == 0

    def test_sink_failure_raises_bulk_load_error(self, projector, post_doc):
        failing = MagicMock()
        failing.copy_lines.side_effect = RuntimeError("conexión perdida")

        with pytest.raises(BulkLoadError) as exc_info:
            BulkLoader(projector, failing).bulk_load("blog.posts", [post_doc])

        assert exc_info.value.namespace == "blog.posts"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_transform_failure_aborts_load(self, loader, post_doc):
        post_doc["tags"] = 5

        with pytest.raises(BulkLoadError):
            loader.bulk_load("blog.posts.post_tags", [post_doc])

    def test_unknown_namespace_raises_schema_error(self, loader, post_doc):
        with pytest.raises(SchemaError):
            loader.bulk_load("blog.missing", [post_doc])
