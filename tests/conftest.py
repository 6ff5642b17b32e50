"""Shared test fixtures for all tests.

This file imports and re-exports fixtures from the fixtures/ module so they
are discovered by pytest for every test package.
"""

# Import all fixtures from organized modules
from tests.fixtures.config import (  # noqa: F401
    clean_env,
    config_file,
    settings,
    token_settings,
)
from tests.fixtures.workspace import (  # noqa: F401
    edit_tools,
    fs_tools,
    home_dir,
    outside_dir,
    registry,
    sample_home,
    search_tools,
    workspace,
)
