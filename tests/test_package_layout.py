"""Tests for the importable package layout."""

import src
import src.navigation


def test_src_is_a_namespace_package():
    # No src/__init__.py: subpackages are found through the import path
    assert getattr(src, "__file__", None) is None
    assert src.navigation.__file__.endswith("__init__.py")
