"""
Unit tests for __init__.py files

This module provides tests for package initialization files to ensure:
- Version attributes are defined
- __all__ exports are correct
- Module imports work without errors
"""

import importlib

import pytest


class TestDbMergeInit:
    """Test src/db_merge/__init__.py"""

    def test_version_attribute_exists(self):
        """Test that __version__ attribute is defined"""
        # Arrange & Act
        import src.db_merge

        # Assert
        assert isinstance(src.db_merge.__version__, str)
        assert src.db_merge.__version__ == "1.0.0"

    def test_all_attribute_lists_components(self):
        import src.db_merge

        assert sorted(src.db_merge.__all__) == [
            "backup",
            "connections",
            "merge",
            "orchestrator",
            "report",
            "schema",
        ]

    @pytest.mark.parametrize(
        "module_name", ["backup", "connections", "merge", "orchestrator", "report", "schema"]
    )
    def test_submodules_can_be_imported(self, module_name):
        """Test that submodules listed in __all__ can be imported"""
        module = importlib.import_module(f"src.db_merge.{module_name}")

        assert module is not None

    def test_subpackage_exports_resolve(self):
        """Every name in a subpackage's __all__ is an attribute of it"""
        for package in ("merge", "report", "schema", "cli"):
            module = importlib.import_module(f"src.db_merge.{package}")
            for name in module.__all__:
                assert hasattr(module, name), f"src.db_merge.{package} is missing {name}"


class TestUtilsInit:
    """Test src/utils/__init__.py"""

    def test_version_attribute_exists(self):
        import src.utils

        assert src.utils.__version__ == "1.0.0"

    def test_submodules_can_be_imported(self):
        """Test that submodules listed in __all__ can be imported"""
        import src.utils

        for module_name in src.utils.__all__:
            try:
                importlib.import_module(f"src.utils.{module_name}")
            except ImportError as e:
                pytest.fail(f"Failed to import src.utils.{module_name}: {e}")

    @pytest.mark.parametrize("package", ["db_pool", "logging", "metrics", "tracing"])
    def test_subpackage_exports_resolve(self, package):
        module = importlib.import_module(f"src.utils.{package}")

        for name in module.__all__:
            assert hasattr(module, name), f"src.utils.{package} is missing {name}"

    def test_vault_client_module_accessible(self):
        from src.utils import vault_client

        assert hasattr(vault_client, "VaultClient")
