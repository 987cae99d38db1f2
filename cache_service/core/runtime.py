"""Serving-vs-build classification of the current process.

A connection to the remote cache must never be attempted while the program
is being packaged, compiled or otherwise invoked without serving requests.
Deployments should set ``CACHE_SERVER_MODE`` explicitly; when it is unset the
guard falls back to inspecting the environment and argv, and ambiguous
environments are classified as build context.
"""

import os
import sys
from typing import Mapping, Optional, Sequence

from cache_service.core.config import Settings, settings as default_settings
from cache_service.core.logging import get_logger

logger = get_logger(__name__)


class BuildSafetyGuard:
    """Decides whether network connections are allowed for this process.

    Usage:
        guard = BuildSafetyGuard(settings)
        if guard.is_build_context():
            return  # skip connecting
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        environ: Optional[Mapping[str, str]] = None,
        argv: Optional[Sequence[str]] = None,
    ):
        """Initialize the guard.

        Args:
            settings: Settings holding the explicit flag and marker names.
            environ: Environment to inspect (defaults to os.environ at call time).
            argv: Process arguments to inspect (defaults to sys.argv at call time).
        """
        self._settings = settings or default_settings
        self._environ = environ
        self._argv = argv

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    @property
    def argv(self) -> Sequence[str]:
        return self._argv if self._argv is not None else sys.argv

    def is_build_context(self) -> bool:
        """Return True when the process must not open network connections."""
        explicit = self._settings.server_mode
        if explicit is not None:
            return not explicit

        if self._has_build_phase_signal() or self._has_build_tool_argv():
            return True

        if self._has_runtime_signal():
            return False

        # Nothing conclusive: prefer skipping the connection
        return True

    def is_serving(self) -> bool:
        return not self.is_build_context()

    def _has_build_phase_signal(self) -> bool:
        phase = self.environ.get(self._settings.build_phase_env_var, "").lower()
        if not phase:
            return False
        return any(marker in phase for marker in self._settings.build_phase_markers)

    def _has_build_tool_argv(self) -> bool:
        markers = [m.lower() for m in self._settings.build_tool_argv_markers]
        for arg in self.argv:
            if not isinstance(arg, str):
                continue
            lowered = arg.lower()
            if any(marker in lowered for marker in markers):
                return True
        return False

    def _has_runtime_signal(self) -> bool:
        return any(self.environ.get(name) for name in self._settings.runtime_env_markers)
