"""Sandbox workspace and toolset fixtures for testing."""

import os
from pathlib import Path

import pytest

from homefs.sandbox.workspace import Workspace
from homefs.tools.editing import EditTools
from homefs.tools.filesystem import FileSystemTools
from homefs.tools.registry import ToolRegistry
from homefs.tools.search import SearchTools


@pytest.fixture
def home_dir(tmp_path):
    """Create an isolated home directory (real path, no symlinks)."""
    home = tmp_path / "home"
    home.mkdir()
    return Path(os.path.realpath(home))


@pytest.fixture
def outside_dir(tmp_path):
    """Create a directory next to (not inside) the home directory."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("top secret\n")
    return Path(os.path.realpath(outside))


@pytest.fixture
def workspace(home_dir):
    """Workspace rooted at home_dir with base_dir equal to home."""
    return Workspace.create(str(home_dir))


@pytest.fixture
def sample_home(home_dir):
    """Populate home_dir with a small tree.

    Structure:
        home/
            notes.txt
            .bashrc
            .ssh/
                id_rsa
            apps/
                site/
                    index.php
                    config.php
            logs/
                app.log
    """
    (home_dir / "notes.txt").write_text("alpha\nbeta\ngamma\n")
    (home_dir / ".bashrc").write_text("export PATH=$PATH\n")
    (home_dir / ".ssh").mkdir()
    (home_dir / ".ssh" / "id_rsa").write_text("PRIVATE KEY\n")

    site = home_dir / "apps" / "site"
    site.mkdir(parents=True)
    (site / "index.php").write_text("<?php\necho 'hello';\n")
    (site / "config.php").write_text("<?php\n$debug = true;\n")

    logs = home_dir / "logs"
    logs.mkdir()
    (logs / "app.log").write_text("".join(f"line {i}\n" for i in range(1, 11)))

    return home_dir


@pytest.fixture
def fs_tools(workspace):
    """FileSystemTools bound to the test workspace."""
    return FileSystemTools(workspace)


@pytest.fixture
def edit_tools(workspace):
    """EditTools bound to the test workspace."""
    return EditTools(workspace)


@pytest.fixture
def search_tools(workspace):
    """SearchTools bound to the test workspace."""
    return SearchTools(workspace)


@pytest.fixture
def registry(workspace):
    """ToolRegistry bound to the test workspace."""
    return ToolRegistry(workspace)
