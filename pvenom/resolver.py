"""
Transport auto-detection: HTTPS first, one HTTP fallback.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple
from urllib.parse import urlsplit

from .errors import ResolutionError, Unreachable
from .models import TransportMode

DEFAULT_PORT = 8006

_log = logging.getLogger(__name__)


class EndpointResolver:
    """Decide once per process whether the controller speaks HTTPS or HTTP.

    ``probe`` is called with a candidate base URL and is expected to be the
    first real authentication attempt, so a successful resolution leaves the
    caller with a live session and no redundant round trip. Only an
    ``Unreachable`` from the probe triggers the fallback; any HTTP answer
    means the transport works and the error belongs to the caller.
    """

    def __init__(
        self,
        probe: Callable[[str], Any],
        port: int = DEFAULT_PORT,
        logger: Optional[logging.Logger] = None,
    ):
        self.probe = probe
        self.port = port
        self.log = logger or _log

    def _candidate(self, scheme: str, host: str) -> str:
        host = host.strip().rstrip("/")
        if urlsplit(f"//{host}").port is None:
            host = f"{host}:{self.port}"
        return f"{scheme}://{host}"

    def candidates(self, host: str, insecure_allowed: bool = True) -> List[str]:
        lowered = host.lower()
        if lowered.startswith(("http://", "https://")):
            scheme, rest = host.split("://", 1)
            return [self._candidate(scheme.lower(), rest)]
        urls = [self._candidate(TransportMode.ENCRYPTED.scheme, host)]
        if insecure_allowed:
            urls.append(self._candidate(TransportMode.PLAINTEXT.scheme, host))
        return urls

    def resolve(self, host: str, insecure_allowed: bool = True) -> Tuple[str, TransportMode]:
        """Return the first base URL the probe reaches, with its transport mode."""
        attempts: List[Tuple[str, Exception]] = []
        for base_url in self.candidates(host, insecure_allowed):
            mode = TransportMode.from_url(base_url)
            self.log.info("Attempting %s connection to %s", mode.scheme.upper(), base_url)
            try:
                self.probe(base_url)
            except Unreachable as e:
                self.log.warning("%s connection to %s failed: %s", mode.scheme.upper(), base_url, e.cause)
                attempts.append((base_url, e.cause))
                continue
            if mode is TransportMode.PLAINTEXT:
                self.log.warning("Connected over plain HTTP to %s; consider enabling HTTPS", base_url)
            else:
                self.log.info("HTTPS connection established to %s", base_url)
            return base_url, mode
        raise ResolutionError(attempts)
