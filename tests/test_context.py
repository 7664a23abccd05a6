"""Tests for council.context.load_context."""

import pytest

from council.context import load_context
from council.errors import ConfigurationError
from council.models import Context


def _config(**paths):
    return {"context": paths}


class TestLoadContext:
    def test_reads_all_documents(self, tmp_path):
        (tmp_path / "standards.md").write_text("Use RuboCop defaults.", encoding="utf-8")
        (tmp_path / "product.md").write_text("Task tracker CLI.", encoding="utf-8")
        (tmp_path / "specs.md").write_text("Add CSV export.", encoding="utf-8")
        config = _config(
            standards_path="standards.md", product_path="product.md", specs_path="specs.md",
        )

        context = load_context(config, root=tmp_path)

        assert context == Context("Use RuboCop defaults.", "Task tracker CLI.", "Add CSV export.")

    def test_missing_document_degrades_to_empty(self, tmp_path):
        (tmp_path / "standards.md").write_text("Two-space indent.", encoding="utf-8")
        config = _config(standards_path="standards.md", product_path="nope.md")

        context = load_context(config, root=tmp_path)

        assert context.standards == "Two-space indent."
        assert context.product == ""
        assert context.specs == ""

    def test_no_context_section_is_empty(self, tmp_path):
        assert load_context({}, root=tmp_path) == Context.empty()

    def test_absolute_path_used_as_is(self, tmp_path):
        doc = tmp_path / "abs.md"
        doc.write_text("absolute", encoding="utf-8")
        context = load_context(_config(specs_path=str(doc)), root=tmp_path / "elsewhere")
        assert context.specs == "absolute"

    def test_directory_path_raises(self, tmp_path):
        (tmp_path / "docs").mkdir()
        with pytest.raises(ConfigurationError, match="directory"):
            load_context(_config(product_path="docs"), root=tmp_path)

    def test_undecodable_file_raises(self, tmp_path):
        (tmp_path / "bin.md").write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(ConfigurationError, match="Could not read"):
            load_context(_config(specs_path="bin.md"), root=tmp_path)

    def test_non_mapping_section_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="mapping"):
            load_context({"context": ["standards.md"]}, root=tmp_path)

    def test_non_string_path_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="path string"):
            load_context(_config(standards_path=42), root=tmp_path)
