"""
HTTP client for the AppDynamics controller and the Config Exporter service.

This module wraps ``requests`` with the authentication rules the controller
expects. Each target controller (source or destination) gets its own
:class:`ControllerSession` carrying credentials, proxy, the login cookie jar,
the CSRF token and/or an OAuth bearer token. Calls to the locally-run Config
Exporter are made without a controller session.

Key Features:
- OAuth bearer, HTTP Basic (``user@account``) or anonymous requests
- Login cookie persisted to a per-run cookie jar file, CSRF token captured
- Per-target proxy applied to every request made for that target
- Explicit per-request timeout, single attempt, no retries

Example Usage:
    client = AppDynamicsAPIClient(timeout=60)
    source = ControllerSession.from_settings(settings.source)
    client.get_cookie(source)
    response = client.request(source, True, 'GET', f"{source.url}/controller/restui/...")
    source.close()
    client.close()
"""

import logging
import os
import re
from dataclasses import dataclass, field
from http.cookiejar import MozillaCookieJar
from pathlib import Path
from typing import Any, Dict, Optional

import requests
from requests.exceptions import RequestException, Timeout

from .config import ControllerSettings, DEFAULT_HTTP_TIMEOUT
from .exceptions import AuthError, HttpError

OAUTH_ENDPOINT = "/controller/api/oauth/access_token"
LOGIN_ENDPOINT = "/controller/auth?action=login"
CSRF_COOKIE_NAME = "X-CSRF-TOKEN"
OAUTH_CONTENT_TYPE = "application/vnd.appd.cntrl+protobuf;v=1"


@dataclass
class ControllerSession:
    """Connection state for one controller target.

    Attributes:
        url: Controller base URL (no trailing slash)
        account: Controller account name
        api_user: API user (or API client name for OAuth)
        api_password: API user password, used for HTTP Basic auth
        api_secret: API client secret, used for the OAuth client-credentials grant
        proxy: Proxy URL applied to every request for this target
        cookie_path: Cookie jar file written by :meth:`AppDynamicsAPIClient.get_cookie`
        csrf_token: CSRF token captured from the login cookie
        oauth_token: Bearer token from :meth:`AppDynamicsAPIClient.get_oauth_token`
        http: Underlying requests session holding the cookie jar
    """

    url: str
    account: str
    api_user: str
    api_password: Optional[str] = None
    api_secret: Optional[str] = None
    proxy: Optional[str] = None
    cookie_path: Optional[Path] = None
    csrf_token: Optional[str] = None
    oauth_token: Optional[str] = None
    http: requests.Session = field(default_factory=requests.Session, repr=False)

    @classmethod
    def from_settings(cls, controller: ControllerSettings) -> "ControllerSession":
        return cls(
            url=controller.url,
            account=controller.account,
            api_user=controller.api_user,
            api_password=controller.api_password,
            api_secret=controller.api_secret,
            proxy=controller.proxy,
        )

    @property
    def username(self) -> str:
        return f"{self.api_user}@{self.account}"

    @property
    def proxies(self) -> Optional[Dict[str, str]]:
        if not self.proxy:
            return None
        return {"http": self.proxy, "https": self.proxy}

    def close(self) -> None:
        """Close the HTTP session and delete the temporary cookie jar file."""
        self.http.close()
        if self.cookie_path and self.cookie_path.exists():
            os.remove(self.cookie_path)
            logging.getLogger(__name__).debug(f"Removed cookie file: {self.cookie_path}")


class AppDynamicsAPIClient:
    """
    HTTP client shared by the export and migrate workflows.

    Attributes:
        timeout (float): Timeout applied to every request, in seconds
        session (requests.Session): Plain session used for calls without a controller target
        logger (logging.Logger): Logger instance for operation tracking
    """

    DEFAULT_TIMEOUT = DEFAULT_HTTP_TIMEOUT

    def __init__(self, timeout: Optional[float] = None, logger: Optional[logging.Logger] = None):
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.logger = logger or logging.getLogger(__name__)
        self.session = requests.Session()
        self.session.headers.update({'accept': 'application/json'})

    def request(self, session: Optional[ControllerSession], authenticated: bool, method: str,
                url: str, **options: Any) -> requests.Response:
        """
        Issue a single HTTP request.

        With ``authenticated`` set, the session's OAuth token is used if there
        is one, otherwise HTTP Basic auth with ``user@account`` plus the
        captured CSRF token. Without credentials the request goes out as is.

        Args:
            session: Controller target, or None for Config Exporter calls
            authenticated: Whether to attach the target's credentials
            method: HTTP method
            url: Absolute request URL
            **options: Extra keyword arguments for ``requests.Session.request``

        Returns:
            The successful (2xx) response

        Raises:
            HttpError: On transport failure, timeout or non-2xx status
        """
        method = method.upper()
        headers = dict(options.pop('headers', None) or {})
        options.setdefault('timeout', self.timeout)

        http = self.session
        if session is not None:
            http = session.http
            if session.proxies:
                options.setdefault('proxies', session.proxies)
            # A bearer token takes precedence over basic auth
            if authenticated:
                if session.oauth_token:
                    headers['Authorization'] = f"Bearer {session.oauth_token}"
                elif session.api_password:
                    options['auth'] = (session.username, session.api_password)
                    if session.csrf_token:
                        headers[CSRF_COOKIE_NAME] = session.csrf_token

        self.logger.debug(f"Making {method} request to: {url} (timeout: {options['timeout']}s)")

        try:
            response = http.request(method, url, headers=headers, **options)
            response.raise_for_status()
        except Timeout:
            self.logger.debug(f"Request timed out for {method} {url}")
            raise HttpError(f"Request timed out for {method} {url}", url=url)
        except RequestException as e:
            status_code = None
            if e.response is not None:
                status_code = e.response.status_code
                self.logger.debug(f"Response status code: {status_code}")
                self.logger.debug(f"Response content: {e.response.text}")
            raise HttpError(f"Failed to make {method} request to {url}: {e}", url=url, status_code=status_code)

        self.logger.debug(f"Successfully completed {method} request to {url} ({response.status_code})")
        return response

    def get_json(self, session: Optional[ControllerSession], authenticated: bool, url: str) -> Any:
        """GET a URL and decode its JSON body.

        Raises:
            HttpError: If the request fails or the body is not valid JSON
        """
        response = self.request(session, authenticated, 'GET', url)
        try:
            return response.json()
        except ValueError:
            raise HttpError(f"Invalid JSON returned by {url}: {response.text[:200]}", url=url,
                            status_code=response.status_code)

    def get_oauth_token(self, session: ControllerSession) -> str:
        """
        Obtain an OAuth bearer token with the client-credentials grant.

        The token is stored on the session so later authenticated calls use it.

        Raises:
            AuthError: If no secret is configured or the response has no access_token
        """
        if not session.api_secret:
            raise AuthError(f"No API client secret configured for {session.url}", url=session.url)

        url = f"{session.url}{OAUTH_ENDPOINT}"
        payload = {
            'grant_type': 'client_credentials',
            'client_id': session.username,
            'client_secret': session.api_secret,
        }
        try:
            response = self.request(session, True, 'POST', url, data=payload,
                                    headers={'Content-Type': OAUTH_CONTENT_TYPE})
        except AuthError:
            raise
        except HttpError as e:
            raise AuthError(f"Could not retrieve oauth token: {e}", url=url, status_code=e.status_code)

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or not body.get('access_token'):
            raise AuthError(f"Could not retrieve oauth token: {response.text}", url=url,
                            status_code=response.status_code)

        session.oauth_token = re.sub(r"\s", "", str(body['access_token']))
        self.logger.debug(f"Retrieved OAuth token for {session.url}")
        return session.oauth_token

    def get_cookie(self, session: ControllerSession) -> Optional[str]:
        """
        Log in to the controller UI and capture the session cookie and CSRF token.

        The cookies are kept in the session's jar (persisted to
        ``session.cookie_path`` when set). A missing CSRF token is not fatal:
        a warning is logged and later calls go out without CSRF protection.

        Returns:
            The CSRF token, or None if it could not be retrieved
        """
        # Swap in a file backed jar, keeping any cookies already held
        if session.cookie_path is not None:
            jar = MozillaCookieJar(str(session.cookie_path))
            for cookie in session.http.cookies:
                jar.set_cookie(cookie)
            session.http.cookies = jar

        url = f"{session.url}{LOGIN_ENDPOINT}"
        try:
            self.request(session, True, 'GET', url)
        except HttpError as e:
            self.logger.warning(f"Could not retrieve AppDynamics login cookie: {e}")
            return None

        if isinstance(session.http.cookies, MozillaCookieJar):
            try:
                session.http.cookies.save(ignore_discard=True, ignore_expires=True)
            except OSError as e:
                self.logger.warning(f"Could not write cookie file {session.cookie_path}: {e}")

        for cookie in session.http.cookies:
            if cookie.name == CSRF_COOKIE_NAME and cookie.value:
                session.csrf_token = cookie.value.strip()
                break

        if not session.csrf_token:
            self.logger.warning("Could not retrieve AppDynamics login cookie")
            return None
        self.logger.debug(f"Captured CSRF token for {session.url}")
        return session.csrf_token

    def close(self) -> None:
        """Close the plain HTTP session."""
        self.session.close()
