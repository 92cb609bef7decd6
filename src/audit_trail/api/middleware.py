"""Request auditing middleware.

Records one audit event per API request.  The event is handed to the bounded
dispatcher, so the response is never delayed by, or failed by, auditing.
"""

import json
import time
import uuid

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from audit_trail.lib.enrichment.taxonomy import AuditAction
from audit_trail.schemas.audit import AuditEventParams

_DEFAULT_TRUSTED_HEADERS = ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"]


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Extract the real client IP from proxy headers or direct connection.

    Checks headers in priority order. For X-Forwarded-For, uses the
    leftmost (client-supplied) IP. Falls back to request.client.host.

    Args:
        request: The incoming Starlette request.
        trusted_headers: Ordered list of header names to check.
            Defaults to ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"].

    Returns:
        The client IP address string, or "unknown" if not determinable.
    """
    headers = trusted_headers if trusted_headers is not None else _DEFAULT_TRUSTED_HEADERS

    for header in headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        # X-Forwarded-For can contain multiple IPs: "client, proxy1, proxy2"
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()
        return value

    if request.client:
        return request.client.host
    return "unknown"


def infer_action(method: str, path: str) -> AuditAction:
    """Map an HTTP method and path to the audit action it most likely represents.

    Args:
        method: HTTP method.
        path: Request path.

    Returns:
        The inferred action; GENERIC_EVENT when no route pattern matches.
    """
    method = method.upper()
    path = path.lower()

    if "/api/auth/signin" in path or "/api/auth/callback" in path:
        return AuditAction.LOGIN
    if "/api/auth/signout" in path:
        return AuditAction.LOGOUT
    if "/api/auth/register" in path:
        return AuditAction.REGISTERED

    if "/api/user" in path and method in ("PUT", "PATCH"):
        return AuditAction.PROFILE_UPDATED

    if "/api/invoicing" in path:
        if "/emit" in path:
            return AuditAction.DOCUMENT_EMITTED
        if "/download" in path:
            return AuditAction.DOCUMENT_DOWNLOADED
        if method == "POST":
            return AuditAction.DOCUMENT_CREATED
        if method == "DELETE":
            return AuditAction.DOCUMENT_VOIDED

    if "/api/clients" in path:
        if method == "POST":
            return AuditAction.CLIENT_CREATED
        if method in ("PUT", "PATCH"):
            return AuditAction.CLIENT_UPDATED
        if method == "DELETE":
            return AuditAction.CLIENT_DELETED

    if "/api/ai/" in path or "/api/chat" in path:
        return AuditAction.AI_QUERY

    if "/api/privacy/export" in path:
        return AuditAction.DATA_EXPORTED
    if "/api/privacy/delete-account" in path:
        return AuditAction.DELETION_REQUESTED

    if "/api/upload" in path:
        if method == "POST":
            return AuditAction.FILE_UPLOADED
        if method == "DELETE":
            return AuditAction.FILE_DELETED
    if "/download" in path:
        return AuditAction.FILE_DOWNLOADED

    return AuditAction.GENERIC_EVENT


async def _read_error_message(response: Response) -> tuple[Response, str | None]:
    """Consume a JSON error body, returning a replayable response and its message."""
    body = b""
    async for chunk in response.body_iterator:  # type: ignore[attr-defined]
        body += chunk if isinstance(chunk, bytes) else chunk.encode()

    replay = Response(
        content=body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
    )
    try:
        payload = json.loads(body)
    except ValueError:
        return replay, None
    if not isinstance(payload, dict):
        return replay, None
    message = payload.get("detail") or payload.get("error") or payload.get("message")
    return replay, str(message) if message is not None else None


class AuditMiddleware(BaseHTTPMiddleware):
    """Record an audit event for every request outside the skip list.

    The pipeline and dispatcher are taken from ``app.state`` (set up by the
    application lifespan).  Handlers can attach the authenticated user by
    setting ``request.state.user_id``.
    """

    def __init__(
        self,
        app: ASGIApp,
        trusted_proxy_headers: list[str] | None = None,
        skip_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.trusted_proxy_headers = trusted_proxy_headers
        self.skip_paths = skip_paths or []

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Run the request and schedule its audit record.

        Args:
            request: The incoming request.
            call_next: The next middleware/handler.

        Returns:
            The handler's response.
        """
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self.skip_paths):
            return await call_next(request)

        started = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        success = True
        error_code: str | None = None
        error_message: str | None = None

        try:
            response = await call_next(request)
        except Exception as e:
            success = False
            error_code = type(e).__name__
            error_message = str(e)
            self._schedule(request, path, request_id, started, success, error_code, error_message)
            raise

        if response.status_code >= 400:
            success = False
            error_code = str(response.status_code)
            if "application/json" in response.headers.get("content-type", ""):
                response, error_message = await _read_error_message(response)

        self._schedule(request, path, request_id, started, success, error_code, error_message)
        response.headers["X-Request-ID"] = request_id
        return response

    def _schedule(
        self,
        request: Request,
        path: str,
        request_id: str,
        started: float,
        success: bool,
        error_code: str | None,
        error_message: str | None,
    ) -> None:
        pipeline = getattr(request.app.state, "audit_pipeline", None)
        dispatcher = getattr(request.app.state, "dispatcher", None)
        if pipeline is None or dispatcher is None:
            return

        try:
            params = AuditEventParams(
                action=infer_action(request.method, path),
                user_id=getattr(request.state, "user_id", None),
                success=success,
                error_code=error_code,
                error_message=error_message,
                ip=get_client_ip(request, self.trusted_proxy_headers),
                user_agent=request.headers.get("user-agent"),
                http_method=request.method,
                path=path,
                duration_ms=int((time.perf_counter() - started) * 1000),
                session_id=request.headers.get("X-Session-ID"),
                request_id=request_id,
            )
            dispatcher.submit_task(pipeline.record_audit_event(params), name=f"audit-request-{request_id}")
        except Exception:
            logger.exception(f"Failed to schedule audit event for {request.method} {path}")
