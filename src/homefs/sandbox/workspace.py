"""Immutable sandbox configuration passed to every tool."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from homefs.exceptions import ProtectedPathError
from homefs.sandbox.guard import is_protected_path, protected_paths
from homefs.sandbox.paths import determine_home_dir, is_within, resolve_base_dir, resolve_path

if TYPE_CHECKING:
    from homefs.config.schema import HomeFSSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    """Home and base directories for one server process.

    Built once from configuration and treated as read-only afterwards.

    Attributes:
        home_dir: Sandbox root; every resolved path lies within it
        base_dir: Root for relative path arguments, itself within home_dir
        protected: Absolute paths that mutation tools refuse to touch

    Example:
        >>> ws = Workspace.create("/home/u", "apps")
        >>> ws.base_dir
        '/home/u/apps'
        >>> ws.resolve("~/logs")
        '/home/u/logs'
    """

    home_dir: str
    base_dir: str
    protected: tuple[str, ...] = field(default=())

    @classmethod
    def create(
        cls, home_dir: str, base_dir: str = "~", extra_protected: tuple[str, ...] = ()
    ) -> "Workspace":
        """Build a workspace from a home directory and a base_dir setting.

        Args:
            home_dir: Home directory (real-path resolved here)
            base_dir: base_dir setting, resolved with fail-closed semantics
            extra_protected: Additional absolute paths to protect

        Returns:
            Workspace instance
        """
        home = determine_home_dir(home_dir)
        base = resolve_base_dir(base_dir, home)
        return cls(home_dir=home, base_dir=base, protected=protected_paths(home, extra_protected))

    @classmethod
    def from_settings(
        cls, settings: "HomeFSSettings", config_path: Path | None = None
    ) -> "Workspace":
        """Build a workspace from loaded settings.

        Args:
            settings: Effective settings
            config_path: Active config file; protected when it lives under home

        Returns:
            Workspace instance
        """
        home = determine_home_dir(settings.sandbox.home_dir)
        extra: tuple[str, ...] = ()
        if config_path is not None:
            config_str = str(Path(config_path).expanduser().absolute())
            if is_within(config_str, home):
                extra = (config_str,)

        workspace = cls.create(home, settings.sandbox.base_dir, extra)
        logger.info(f"Workspace: home={workspace.home_dir} base={workspace.base_dir}")
        return workspace

    def resolve(self, user_path: str) -> str:
        """Resolve a user path inside this workspace (see resolve_path)."""
        return resolve_path(user_path, self.base_dir, self.home_dir)

    def is_protected(self, resolved: str) -> bool:
        """Check a resolved path against the protected set."""
        return is_protected_path(resolved, self.home_dir, self.protected)

    def check_mutable(self, resolved: str) -> None:
        """Raise ProtectedPathError if resolved must not be modified."""
        if self.is_protected(resolved):
            raise ProtectedPathError("Path is protected", context={"resolved": resolved})

    def relative(self, path: str) -> str:
        """Express an absolute path relative to home ('' for home itself)."""
        if path == self.home_dir:
            return ""
        if path.startswith(self.home_dir + "/"):
            return path[len(self.home_dir) + 1 :]
        return path
