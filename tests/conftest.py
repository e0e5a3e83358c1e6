"""Shared test fixtures for diarist."""

import os
import tempfile

import pytest

from diarist.journal import EntryStore, Journal


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
            "entries_dir": os.path.join(tmp_dir, "data", "entries"),
        },
        "journal": {
            "autosave_interval": 5,
        },
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def entries_dir(tmp_path):
    return tmp_path / "entries"


@pytest.fixture
def store(entries_dir):
    return EntryStore(entries_dir)


@pytest.fixture
def journal(store):
    return Journal(store)
