"""Reverse-proxy reload after certificate changes.

Runs ``<docker> exec <container> <command>`` (by default
``docker exec <container> nginx -s reload``) so the proxy picks up the
rewritten certificate files.
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import TYPE_CHECKING

from certsmith.core.errors import ReloadFailed

if TYPE_CHECKING:
    from certsmith.config.settings import ReloadSettings

log = logging.getLogger(__name__)

# Docker container names: [a-zA-Z0-9][a-zA-Z0-9_.-]*
_CONTAINER_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")


class ProxyReloader:
    def __init__(self, settings: ReloadSettings) -> None:
        self._settings = settings

    def build_command(self, container: str) -> list[str]:
        return [self._settings.docker_binary, "exec", container, *self._settings.command]

    def reload(self, container: str, domain: str = "") -> bool:
        """Reload *container*; return ``False`` when there was nothing to do.

        An empty container name means the domain has no dependent proxy.

        Raises
        ------
        ReloadFailed
            If the command cannot be run, times out, or exits non-zero.
        """
        container = (container or "").strip()
        if not container:
            log.debug("No proxy container configured for %s; skipping reload", domain)
            return False
        if not self._settings.enabled:
            log.info("Proxy reload disabled; not reloading %s for %s", container, domain)
            return False
        if not _CONTAINER_RE.match(container):
            msg = f"invalid container name {container!r}"
            raise ReloadFailed("reload", domain, msg)

        argv = self.build_command(container)
        try:
            subprocess.run(  # noqa: S603
                argv,
                check=True,
                timeout=self._settings.timeout_seconds,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as exc:
            log.error(
                "Reload of %s exited with %d: %s",
                container,
                exc.returncode,
                (exc.stderr or "").strip()[:500],
            )
            msg = f"certificate renewed but reload of {container} failed (exit {exc.returncode})"
            raise ReloadFailed("reload", domain, msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"certificate renewed but reload of {container} timed out"
            raise ReloadFailed("reload", domain, msg) from exc
        except OSError as exc:
            msg = f"certificate renewed but reload of {container} could not start: {exc}"
            raise ReloadFailed("reload", domain, msg) from exc

        log.info("Reloaded proxy container %s for %s", container, domain)
        return True
