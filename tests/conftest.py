"""Fixtures for core and domain tests."""

import pytest


@pytest.fixture
def library(tmp_path):
    root = tmp_path / "music"
    root.mkdir()
    return root
