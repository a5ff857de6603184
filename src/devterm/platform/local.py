"""Default development platform backed by local files, launchers and HTTP.

Project settings and packager info live in ``<project>/.devterm/``; user
settings and the account session live in ``<state_dir>/state.json``.
Devices are reached through their command-line launchers (adb, simctl),
and the account service and the running bundler through HTTP.
"""

from __future__ import annotations

import asyncio
import getpass
import logging
import socket
import threading
from pathlib import Path
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from devterm.config.settings import PlatformConfig
from devterm.domain.models import HostType, OpenResult, PackagerInfo, ProjectSettings
from devterm.platform.base import DevPlatform, PlatformError, SettingsError
from devterm.platform.store import JsonFileStore

logger = logging.getLogger(__name__)

PROJECT_SETTINGS_FILE = "settings.json"
PACKAGER_INFO_FILE = "packager-info.json"
USER_STATE_FILE = "state.json"
AUTH_KEY = "auth"
CREDENTIALS_THREAD = "devterm-credentials"


def lan_address() -> str:
    """Best-effort IPv4 address of the interface with the default route."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # UDP connect sends nothing; it only selects a route.
        sock.connect(("10.255.255.255", 1))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()


class LocalDevPlatform(DevPlatform):
    """Platform façade for a project served from this machine."""

    def __init__(
        self,
        config: PlatformConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or PlatformConfig()
        self._client = client
        self._owns_client = client is None
        self._user_store = JsonFileStore(
            self._config.state_dir.expanduser() / USER_STATE_FILE
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this platform created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> LocalDevPlatform:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.aclose()

    # -- project settings -------------------------------------------------

    def _project_store(self, project_dir: Path, name: str) -> JsonFileStore:
        return JsonFileStore(Path(project_dir) / self._config.project_dir_name / name)

    async def read_project_settings(self, project_dir: Path) -> ProjectSettings:
        store = self._project_store(project_dir, PROJECT_SETTINGS_FILE)
        try:
            return ProjectSettings.model_validate(store.read())
        except ValidationError as e:
            raise SettingsError(f"Invalid project settings in {store.path}: {e}", path=store.path) from e

    async def write_project_settings(self, project_dir: Path, *, dev: bool, minify: bool) -> None:
        self._project_store(project_dir, PROJECT_SETTINGS_FILE).update(dev=dev, minify=minify)
        logger.info("Project settings updated: dev=%s minify=%s", dev, minify)

    async def read_packager_info(self, project_dir: Path) -> PackagerInfo:
        store = self._project_store(project_dir, PACKAGER_INFO_FILE)
        try:
            return PackagerInfo.model_validate(store.read())
        except ValidationError as e:
            raise SettingsError(f"Invalid packager info in {store.path}: {e}", path=store.path) from e

    # -- user settings ----------------------------------------------------

    async def get_setting(self, key: str, default: Any = None) -> Any:
        return self._user_store.read().get(key, default)

    async def set_setting(self, key: str, value: Any) -> None:
        self._user_store.update(**{key: value})

    # -- urls -------------------------------------------------------------

    async def construct_shareable_url(
        self, project_dir: Path, host_type: HostType | None = None
    ) -> str:
        if host_type is None:
            host_type = (await self.read_project_settings(project_dir)).host_type
        info = await self.read_packager_info(project_dir)
        if info.packager_port is None:
            raise PlatformError(
                "The development server is not running (no packager port recorded)",
                operation="construct_url",
            )
        host = lan_address() if HostType(host_type) == HostType.LAN else "localhost"
        return f"{self._config.url_scheme}://{host}:{info.packager_port}"

    # -- account ----------------------------------------------------------

    async def _auth(self) -> dict[str, Any]:
        auth = await self.get_setting(AUTH_KEY, None)
        return auth if isinstance(auth, dict) else {}

    async def get_current_username(self) -> str | None:
        return (await self._auth()).get("username")

    async def get_session(self) -> str | None:
        return (await self._auth()).get("sessionSecret")

    async def logout(self) -> None:
        session = await self.get_session()
        if session:
            try:
                await self._post(
                    f"{self._config.api_base_url}/auth/logout",
                    {},
                    headers={"Authorization": f"Bearer {session}"},
                    operation="logout",
                )
            except PlatformError as e:
                logger.warning("Remote logout failed, clearing local session anyway: %s", e)
        await self.set_setting(AUTH_KEY, None)

    async def interactive_login(self) -> str:
        username, password = await _read_credentials()
        resp = await self._post(
            f"{self._config.api_base_url}/auth/login",
            {"username": username, "password": password},
            operation="login",
        )
        try:
            body = resp.json()
            secret = body["sessionSecret"]
        except (ValueError, KeyError, TypeError) as e:
            raise PlatformError(f"Unexpected login response: {e}", operation="login") from e
        name = body.get("username") or username
        await self.set_setting(AUTH_KEY, {"username": name, "sessionSecret": secret})
        logger.info("Signed in as %s", name)
        return name

    # -- devices ----------------------------------------------------------

    async def open_on_android(self, project_dir: Path) -> OpenResult:
        url = await self.construct_shareable_url(project_dir)
        return await _run_launcher([*self._config.android_command, url])

    async def open_on_ios_simulator(self, project_dir: Path) -> OpenResult:
        url = await self.construct_shareable_url(project_dir)
        return await _run_launcher([*self._config.ios_command, url])

    # -- sharing and bundler ----------------------------------------------

    async def send_link(self, recipient: str, url: str) -> None:
        await self._post(
            f"{self._config.api_base_url}/send-link",
            {"recipient": recipient, "url": url},
            operation="send_link",
        )
        logger.info("Sent %s to %s", url, recipient)

    async def restart_bundler(self, project_dir: Path, *, reset: bool = False) -> None:
        info = await self.read_packager_info(project_dir)
        if info.packager_port is None:
            raise PlatformError("The development server is not running", operation="restart")
        await self._post(
            f"http://localhost:{info.packager_port}/restart",
            {"reset": reset},
            operation="restart",
        )
        logger.info("Bundler restart requested (reset=%s)", reset)

    # -- http -------------------------------------------------------------

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.http_timeout)
        return self._client

    async def _post(
        self,
        url: str,
        payload: dict,
        headers: dict[str, str] | None = None,
        operation: str = "",
    ) -> httpx.Response:
        try:
            resp = await self._http().post(url, json=payload, headers=headers)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            raise PlatformError(
                f"{_error_message(e.response)} (HTTP {e.response.status_code})",
                operation=operation,
            ) from e
        except httpx.HTTPError as e:
            raise PlatformError(f"Request to {url} failed: {e}", operation=operation) from e


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason_phrase


def _ask_credentials() -> tuple[str, str]:
    """Read credentials from the cooked terminal (runs on a reader thread)."""
    try:
        username = input("Username or email: ").strip()
        password = getpass.getpass("Password: ")
    except (EOFError, KeyboardInterrupt) as e:
        raise PlatformError("Login aborted", operation="login") from e
    if not username or not password:
        raise PlatformError("Username and password are required", operation="login")
    return username, password


async def _read_credentials() -> tuple[str, str]:
    """Run _ask_credentials on a daemon thread and await its answer.

    A blocking input() cannot be interrupted from the event loop, so the
    thread is never joined: cancelling the caller abandons it, and
    interpreter shutdown does not wait for the user to press Enter.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[tuple[str, str]] = loop.create_future()

    def deliver(setter: Callable[[Any], None], value: Any) -> None:
        if not future.done():
            setter(value)

    def reader() -> None:
        try:
            outcome = (future.set_result, _ask_credentials())
        except Exception as e:
            outcome = (future.set_exception, e)
        try:
            loop.call_soon_threadsafe(deliver, *outcome)
        except RuntimeError:
            logger.debug("Credentials read after the event loop closed, discarding")

    threading.Thread(target=reader, name=CREDENTIALS_THREAD, daemon=True).start()
    return await future


async def _run_launcher(argv: list[str]) -> OpenResult:
    """Run a device launcher command and report how it went."""
    logger.debug("Running %s", " ".join(argv))
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return OpenResult(success=False, error=f"{argv[0]} was not found on PATH")
    _, stderr = await proc.communicate()
    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        return OpenResult(success=False, error=message or f"{argv[0]} exited with {proc.returncode}")
    return OpenResult(success=True)
