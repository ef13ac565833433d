"""
BrowserStack Local tunnel lifecycle.

The tunnel lets the remote grid reach services on this machine. One tunnel is
shared by every test in a run: connect() starts it on first use and is a
no-op afterwards, disconnect() stops it once when the suite finishes.
"""

from typing import Any, Callable, Mapping, Optional

import structlog
from browserstack.local import Local

from browserstack_grid.errors import TunnelError
from browserstack_grid.utils.logging import log_operation

logger = structlog.get_logger(__name__)


class TunnelManager:
    """Owns the single BrowserStack Local handle for a test run.

    Usage:
        with TunnelManager(access_key, {"forcelocal": "true"}) as tunnel:
            tunnel.connect()
            ...
        # tunnel stopped here
    """

    def __init__(
        self,
        access_key: str,
        arguments: Optional[Mapping[str, Any]] = None,
        local_factory: Callable[[], Any] = Local,
    ):
        """
        Initialize the tunnel manager.

        Args:
            access_key: BrowserStack access key passed as the `key` argument
            arguments: Extra BrowserStack Local flags (forcelocal, localIdentifier, ...)
            local_factory: Builds the Local handle; replaced in tests
        """
        self.access_key = access_key
        self.extra_arguments = dict(arguments or {})
        self._local_factory = local_factory
        self._connection = None
        self.start_count = 0

    def __enter__(self) -> "TunnelManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        """Whether a started tunnel process is still running."""
        return self._connection is not None and bool(self._connection.isRunning())

    def arguments(self) -> dict[str, Any]:
        """Arguments for Local.start(), empty values dropped."""
        arguments = {"key": self.access_key, **self.extra_arguments}
        return {k: v for k, v in arguments.items() if v not in (None, "", False)}

    def connect(self) -> None:
        """Start the tunnel unless it is already running.

        Raises:
            TunnelError: If the Local binary fails to start
        """
        if self.is_connected:
            return

        # A handle whose process died is replaced
        self._connection = None
        arguments = self.arguments()
        flags = sorted(k for k in arguments if k != "key")

        with log_operation("tunnel_start", logger=logger, flags=flags):
            try:
                connection = self._local_factory()
                connection.start(**arguments)
            except Exception as e:
                raise TunnelError(f"Failed to start BrowserStack Local: {e}") from e

        self._connection = connection
        self.start_count += 1

    def disconnect(self) -> None:
        """Stop the tunnel. Does nothing when it was never started.

        Raises:
            TunnelError: If the Local binary fails to stop
        """
        if self._connection is None:
            return

        connection, self._connection = self._connection, None
        with log_operation("tunnel_stop", logger=logger):
            try:
                connection.stop()
            except Exception as e:
                raise TunnelError(f"Failed to stop BrowserStack Local: {e}") from e
