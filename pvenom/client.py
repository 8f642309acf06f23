"""
Ticket-based session client for the Proxmox VE API.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

import requests
import urllib3

from .errors import (
    ControllerError,
    DecodeError,
    InvalidCredentials,
    RequestTimeout,
    SessionExpired,
    TransportError,
    UnexpectedResponse,
    Unreachable,
)
from .models import Credentials, Session

API_PREFIX = "/api2/json"
TICKET_PATH = f"{API_PREFIX}/access/ticket"
AUTH_COOKIE = "PVEAuthCookie"
CSRF_HEADER = "CSRFPreventionToken"
MUTATING_METHODS = frozenset({"POST", "PUT", "DELETE"})

_log = logging.getLogger(__name__)


class SessionClient:
    """Owns the authenticated session and issues requests on its behalf.

    Certificate verification is a property of this instance: it is handed to
    every request as ``verify=`` and never changes the transport of any other
    client in the process.
    """

    def __init__(
        self,
        timeout: Tuple[float, float] = (10, 30),
        ca_cert_path: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.timeout = timeout
        self.ca_cert_path = ca_cert_path
        self.log = logger or _log
        self.http = requests.Session()
        self.verify: Union[bool, str] = True
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def close(self):
        self.http.close()

    def _verify_param(self, cert_verification: bool) -> Union[bool, str]:
        if not cert_verification:
            return False
        if self.ca_cert_path:
            return self.ca_cert_path
        return True

    def authenticate(
        self, base_url: str, credentials: Credentials, cert_verification: bool = True
    ) -> Session:
        """Exchange username/password for a ticket and CSRF token.

        Raises InvalidCredentials on 401/403, UnexpectedResponse on any other
        non-2xx status or malformed body, and Unreachable when the request
        never got an HTTP answer.
        """
        base_url = base_url.rstrip("/")
        url = f"{base_url}{TICKET_PATH}"
        self.verify = self._verify_param(cert_verification)
        if self.verify is False and base_url.startswith("https://"):
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            self.log.warning("SSL certificate verification is disabled for %s", base_url)

        self.log.debug("Requesting authentication ticket for %s at %s", credentials.username, url)
        try:
            resp = self.http.post(
                url,
                data={"username": credentials.username, "password": credentials.password},
                verify=self.verify,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            self.log.debug("Ticket request to %s failed: %s", url, e)
            raise Unreachable(url, e) from e

        if resp.status_code in (401, 403):
            self.log.error("Authentication rejected for %s (HTTP %s)", credentials.username, resp.status_code)
            raise InvalidCredentials(url, resp.status_code)
        if not 200 <= resp.status_code < 300:
            raise UnexpectedResponse(url, resp.status_code, resp.text)

        try:
            data = resp.json()["data"]
            ticket = data["ticket"]
            csrf_token = data["CSRFPreventionToken"]
        except (ValueError, KeyError, TypeError) as e:
            raise UnexpectedResponse(url, resp.status_code, resp.text) from e
        if not isinstance(ticket, str) or not isinstance(csrf_token, str) or not ticket:
            raise UnexpectedResponse(url, resp.status_code, resp.text)

        self._session = Session(
            auth_ticket=ticket,
            csrf_token=csrf_token,
            base_url=base_url,
            username=str(data.get("username") or credentials.username),
        )
        self.log.info("Authenticated as %s at %s", self._session.username, base_url)
        return self._session

    def _headers(self, method: str) -> Dict[str, str]:
        headers = {"Cookie": f"{AUTH_COOKIE}={self._session.auth_ticket}"}
        if method in MUTATING_METHODS:
            headers[CSRF_HEADER] = self._session.csrf_token
        return headers

    def request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Issue one authenticated request against the session's base URL."""
        method = method.upper()
        if self._session is None:
            raise SessionExpired(path, "no active session")
        url = f"{self._session.base_url}{path}"
        self.log.debug("%s %s", method, url)
        try:
            resp = self.http.request(
                method,
                url,
                headers=self._headers(method),
                data=body,
                verify=self.verify,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            self.log.error("%s %s timed out", method, url)
            raise RequestTimeout(url, self.timeout) from e
        except requests.exceptions.RequestException as e:
            self.log.error("%s %s failed: %s", method, url, e)
            raise TransportError(url, e) from e

        if resp.status_code == 401:
            raise SessionExpired(url)
        if not 200 <= resp.status_code < 300:
            self.log.debug("%s %s returned HTTP %s", method, url, resp.status_code)
            raise ControllerError(url, resp.status_code, resp.text)
        return resp

    def get_json(self, path: str) -> Any:
        """GET ``path`` and unwrap the controller's ``data`` envelope."""
        resp = self.request("GET", path)
        try:
            return resp.json()["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise DecodeError(path, e) from e
