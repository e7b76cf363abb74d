"""
HTTP client for the remote ledger.

The ledger is a script endpoint reachable through a single URL: reads are signed GET query strings, writes are signed
POSTs whose JSON payload travels as an opaque text body (the endpoint may bounce the POST through an HTML landing page
before answering). This module turns all of that into either a parsed body or a classified LedgerError.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from ledger_sync.api.models import (
    CheckAccessResponse,
    DeleteLastGameRequest,
    HistoryResponse,
    ParamsResponse,
    StatsResponse,
    SubmitRequest,
    SubmitResponse,
    VersionResponse,
)
from ledger_sync.api.signer import RequestSigner
from ledger_sync.core.exceptions import (
    AccessDenied,
    AuthRequired,
    ClientHTTPError,
    ConfigurationError,
    LedgerError,
    MalformedResponse,
    NetworkError,
    NotLoggedIn,
    RemoteError,
    ServerError,
    ValidationQuirk,
)
from ledger_sync.core.logging_utils import get_logger
from ledger_sync.core.models import PlayerStats, ServerParams
from ledger_sync.core.shared_types import ErrorCode, StatsRange

logger = get_logger(__name__)

# Actions the ledger answers without a verified identity
AUTH_EXEMPT_ACTIONS = frozenset({"checkAccess", "getSheetUrl", "requestAccess"})

# Wording the ledger uses when its own cell validation complains about a row it already wrote.
# NOTE only consulted when the body carries no structured code: this breaks silently if the backend rewords it.
LEGACY_VALIDATION_MARKERS = ("data validation rules", "cell B")

Model = TypeVar("Model", bound=BaseModel)


class IdentityProvider(Protocol):
    """The piece of the auth session the client needs: who is calling, and a way to forget them."""

    def identity(self) -> Optional[str]:
        """Email of the active session, if any."""
        ...

    def clear(self) -> None:
        """Drop the session (forced logout)."""
        ...


@dataclass(frozen=True)
class RemoteResponse:
    """A POST outcome that counts as success, with flags for the benign oddities of the endpoint."""

    body: dict[str, Any] = field(default_factory=lambda: {"success": True})
    validation_warning: bool = False
    malformed: bool = False


class RemoteClient:
    """Signed GET/POST calls against the ledger endpoint."""

    def __init__(
        self,
        base_url: str,
        signer: RequestSigner,
        session: IdentityProvider,
        app_version: str,
        timeout: float = 30,
        http: Optional[requests.Session] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
    ) -> None:
        self.base_url = base_url
        self.signer = signer
        self.session = session
        self.app_version = app_version
        self.timeout = timeout
        self.http = http or requests.Session()
        self.on_session_expired = on_session_expired

    @property
    def identity(self) -> Optional[str]:
        return self.session.identity()

    # --- Core calls ---
    def get(self, action: str, params: Optional[dict[str, str]] = None) -> dict[str, Any]:
        """Signed GET. Returns the decoded body of a successful call."""
        url = self._require_url()
        identity = self.identity
        if action not in AUTH_EXEMPT_ACTIONS and not identity:
            raise NotLoggedIn(f"Cannot call {action!r} without a logged in identity.")

        query: dict[str, str] = {"action": action, "appVersion": self.app_version}
        if identity:
            query["userEmail"] = identity
        query.update(self.signer.sign(action, identity or "").as_params())
        query.update(params or {})

        response = self._send("GET", url, action, params=query)
        self._raise_for_status(response)
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(f"{action}: response is not JSON") from e
        if not isinstance(data, dict):
            raise MalformedResponse(f"{action}: expected a JSON object")
        if not data.get("success"):
            self._raise_for_body(data)
        return data

    def post(self, action: str, payload: dict[str, Any]) -> RemoteResponse:
        """
        Signed POST with the JSON payload sent as plain text.
        ---
        Empty bodies, HTML landing pages and unparsable bodies are what the endpoint returns after a redirect that
        still executed the write, so they count as success (flagged `malformed`). So does the benign validation
        warning (flagged `validation_warning`).
        """
        url = self._require_url()
        identity = self.identity
        if not identity:
            raise NotLoggedIn(f"Cannot call {action!r} without a logged in identity.")

        body = {
            **payload,
            "action": action,
            "appVersion": self.app_version,
            "userEmail": identity,
            **self.signer.sign(action, identity).as_params(),
        }
        response = self._send(
            "POST",
            url,
            action,
            data=json.dumps(body, ensure_ascii=False).encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )
        self._raise_for_status(response)

        text = response.text.strip()
        if not text or text.startswith("<"):
            return RemoteResponse(malformed=True)
        try:
            data = json.loads(text)
        except ValueError:
            return RemoteResponse(malformed=True)
        if not isinstance(data, dict):
            return RemoteResponse(malformed=True)

        if not is_success(data.get("success")):
            try:
                self._raise_for_body(data)
            except ValidationQuirk as quirk:
                logger.warning(
                    "Ignoring ledger validation warning, row was written: %s",
                    quirk,
                    extra={"action": action},
                )
                return RemoteResponse(validation_warning=True)
        return RemoteResponse(body=data)

    # --- Actions ---
    def check_access(self, email: str) -> CheckAccessResponse:
        return _parse(CheckAccessResponse, self.get("checkAccess", {"email": email}))

    def get_params(self) -> ServerParams:
        return _parse(ParamsResponse, self.get("getParams")).to_model()

    def get_history(self, offset: int, limit: int) -> HistoryResponse:
        data = self.get("getHistory", {"offset": str(offset), "limit": str(limit)})
        return _parse(HistoryResponse, data)

    def get_stats(self, stats_range: StatsRange) -> list[PlayerStats]:
        data = self.get("getStats", {"range": stats_range.api_value()})
        return [row.to_model() for row in _parse(StatsResponse, data).stats]

    def get_version(self) -> str:
        return _parse(VersionResponse, self.get("getVersion")).version

    def submit_game(self, request: SubmitRequest) -> str:
        """
        Record one game. Returns the timestamp the ledger stored it under.

        When the response does not carry a usable timestamp (validation warning, redirect page, unreadable value), the
        newest history row is asked for instead; failing that, the client timestamp is the best available answer.
        """
        response = self.post("submit", request.model_dump(by_alias=True))
        try:
            timestamp = _parse(SubmitResponse, response.body).timestamp
        except MalformedResponse as e:
            # The write landed; only the timestamp is unusable
            logger.warning("Ignoring unreadable submit timestamp: %s", e, extra={"action": "submit"})
            timestamp = None

        if not timestamp or response.validation_warning:
            try:
                latest = self.get_history(0, 1)
                if latest.data:
                    timestamp = latest.data[0].timestamp
            except LedgerError as e:
                logger.warning("Could not fetch server timestamp for undo: %s", e)
        return timestamp or request.client_timestamp

    def delete_last_game(self, timestamp: str) -> RemoteResponse:
        request = DeleteLastGameRequest.for_timestamp(timestamp)
        return self.post("deleteLastGame", request.model_dump(by_alias=True))

    # -- Internal helpers --
    def _require_url(self) -> str:
        if not self.base_url:
            raise ConfigurationError("Web App URL is not configured.")
        return self.base_url

    def _send(self, method: str, url: str, action: str, **kwargs: Any) -> requests.Response:
        """Issue the request. Timeouts and connectivity failures become NetworkError."""
        start = time.monotonic()
        try:
            response = self.http.request(
                method, url, timeout=self.timeout, allow_redirects=True, **kwargs
            )
        except requests.exceptions.Timeout as e:
            raise NetworkError(f"{action}: request timed out", code=ErrorCode.TIMEOUT) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"{action}: {e}") from e

        logger.info(
            "%s %s",
            method,
            action,
            extra={
                "action": action,
                "status": response.status_code,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return response

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status >= 500:
            raise ServerError(status)
        if not 200 <= status < 300:
            raise ClientHTTPError(status)

    def _raise_for_body(self, data: dict[str, Any]) -> None:
        """Classify an explicit `success: false` body."""
        code = str(data.get("code") or data.get("error") or "")
        message = str(data.get("message") or data.get("error") or "")

        if code in (ErrorCode.AUTH_REQUIRED, ErrorCode.ACCESS_DENIED):
            self._expire_session()
            if code == ErrorCode.AUTH_REQUIRED:
                raise AuthRequired(message or code)
            raise AccessDenied(message or code)

        if code == ErrorCode.VALIDATION_WARNING or is_legacy_validation_warning(message):
            raise ValidationQuirk(message)

        raise RemoteError(message or "Request failed")

    def _expire_session(self) -> None:
        logger.warning("Session expired, clearing cached identity")
        self.session.clear()
        if self.on_session_expired is not None:
            self.on_session_expired()


def is_success(flag: Any) -> bool:
    """The endpoint reports success as a boolean, the string 'true' or the number 1."""
    return flag is True or flag == "true" or flag == 1


def is_legacy_validation_warning(message: str) -> bool:
    return any(marker in message for marker in LEGACY_VALIDATION_MARKERS)


def _parse(model: type[Model], data: dict[str, Any]) -> Model:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f"Unexpected {model.__name__} shape: {e}") from e
