"""Tests for cached YAML document loading."""

import pytest
import yaml

from orcaloop.config import OrcaloopConfig, set_config
from orcaloop.yaml_loader import YAMLLoader, get_yaml_loader, reset_yaml_loader, resolve_document_path


class TestYAMLLoader:
    """Test YAML loading and caching."""

    def test_load_yaml(self, tmp_path):
        """Test loading a mapping document."""
        path = tmp_path / "doc.yaml"
        path.write_text("name: demo\nsteps: []\n")

        assert YAMLLoader().load_yaml(path) == {"name": "demo", "steps": []}

    def test_cache_hit(self, tmp_path):
        """Test that unchanged files are served from the cache."""
        path = tmp_path / "doc.yaml"
        path.write_text("name: demo\n")
        loader = YAMLLoader()

        first = loader.load_yaml(path)

        def fail_read(_path):
            raise AssertionError("document was read again")

        loader._read = fail_read
        second = loader.load_yaml(path)

        assert second == first
        assert loader.get_cache_stats()["cache_size"] == 1

    def test_results_do_not_share_cached_content(self, tmp_path):
        """Test that modifying a loaded document leaves later loads untouched."""
        path = tmp_path / "doc.yaml"
        path.write_text("settings:\n  mode: orig\n")
        loader = YAMLLoader()

        first = loader.load_yaml(path)
        first["settings"]["mode"] = "mutated"
        second = loader.load_yaml(path)
        second["settings"]["extra"] = True

        assert loader.load_yaml(path) == {"settings": {"mode": "orig"}}

    def test_changed_file_is_reloaded(self, tmp_path):
        """Test that a modified file invalidates its cache entry."""
        path = tmp_path / "doc.yaml"
        path.write_text("name: demo\n")
        loader = YAMLLoader()
        loader.load_yaml(path)

        path.write_text("name: changed-demo\n")

        assert loader.load_yaml(path) == {"name": "changed-demo"}

    def test_empty_document(self, tmp_path):
        """Test that an empty document is an empty mapping."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert YAMLLoader().load_yaml(path) == {}

    def test_non_mapping_document(self, tmp_path):
        """Test that top-level lists are rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n")

        with pytest.raises(ValueError, match="must contain a mapping"):
            YAMLLoader().load_yaml(path)

    def test_missing_file(self, tmp_path):
        """Test that missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            YAMLLoader().load_yaml(tmp_path / "missing.yaml")

    def test_directory_is_not_a_file(self, tmp_path):
        """Test that directories are rejected."""
        with pytest.raises(ValueError, match="not a file"):
            YAMLLoader().load_yaml(tmp_path)

    def test_syntax_error(self, tmp_path):
        """Test that YAML errors propagate."""
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            YAMLLoader().load_yaml(path)

    def test_invalidate_cache(self, tmp_path):
        """Test invalidating one entry and the whole cache."""
        loader = YAMLLoader()
        for name in ("a.yaml", "b.yaml"):
            (tmp_path / name).write_text("x: 1\n")
            loader.load_yaml(tmp_path / name)

        assert loader.invalidate_cache(tmp_path / "a.yaml") == 1
        assert loader.invalidate_cache(tmp_path / "a.yaml") == 0
        assert loader.invalidate_cache() == 1
        assert loader.get_cache_stats()["cache_size"] == 0


class TestDocumentPaths:
    """Test path resolution and confinement."""

    def test_relative_to_root(self, tmp_path):
        """Test resolving a relative path under a root directory."""
        (tmp_path / "doc.yaml").write_text("x: 1\n")

        assert resolve_document_path("doc.yaml", tmp_path) == (tmp_path / "doc.yaml").resolve()
        assert YAMLLoader().load_yaml("doc.yaml", root_dir=tmp_path) == {"x": 1}

    def test_path_outside_root(self, tmp_path):
        """Test that paths escaping the root are rejected."""
        root = tmp_path / "root"
        root.mkdir()

        with pytest.raises(ValueError, match="outside"):
            resolve_document_path("../secret.yaml", root)


class TestGlobalLoader:
    """Test the shared loader instance."""

    def test_uses_configuration(self):
        """Test that the shared loader follows the configuration."""
        set_config(OrcaloopConfig(yaml_cache_ttl=42, yaml_cache_size=5))

        loader = get_yaml_loader()

        assert loader is get_yaml_loader()
        assert loader.cache_ttl == 42
        assert loader.max_cache_size == 5

        reset_yaml_loader()
        assert get_yaml_loader() is not loader
