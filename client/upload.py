"""Document upload with progress, cancellation and a fallback transport.

The primary attempt streams the multipart body in chunks so progress can be
reported; if it fails for any reason other than cancellation the same
payload is sent once more as a plain POST.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

import httpx

from client.context import ClientContext
from client.errors import ClientError, ServerError, Timeout, ValidationError, classify_exception

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/documents"
DOCUMENTS_CACHE_KEY = "documents"

ProgressCallback = Callable[[int], None]


class UploadStage(str, enum.Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class SelectedFile:
    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "SelectedFile":
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            content=path.read_bytes(),
            content_type=content_type or guessed or "application/octet-stream",
        )


@dataclass
class UploadMetadata:
    title: str
    document_type: Optional[str] = None
    description: Optional[str] = None
    # Either the raw comma-delimited input or an already split list
    tags: Union[str, Sequence[str]] = ""
    is_confidential: bool = False

    def tag_list(self) -> list[str]:
        items = self.tags.split(",") if isinstance(self.tags, str) else list(self.tags)
        return [t.strip() for t in items if t and t.strip()]

    def form_fields(self) -> dict[str, str]:
        fields = {
            "title": self.title,
            "tags": json.dumps(self.tag_list()),
            "isConfidential": "true" if self.is_confidential else "false",
        }
        if self.document_type:
            fields["documentType"] = self.document_type
        if self.description:
            fields["description"] = self.description
        return fields


class CancelToken:
    """One-shot cancellation signal shared by every attempt of an upload."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class UploadCancelled(Exception):
    pass


@dataclass
class UploadResult:
    """Outcome of an upload: a document, an error, or a cancellation."""

    document: Optional[dict[str, Any]] = None
    error: Optional[ClientError] = None
    cancelled: bool = False
    transport: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.document is not None


@dataclass
class UploadSession:
    file: SelectedFile
    stage: UploadStage = UploadStage.IDLE
    progress: int = 0
    token: CancelToken = field(default_factory=CancelToken)
    error: Optional[ClientError] = None
    field_errors: dict[str, str] = field(default_factory=dict)


class UploadTransport:
    def __init__(self, ctx: ClientContext):
        self._ctx = ctx

    @property
    def max_bytes(self) -> int:
        return self._ctx.settings.max_upload_mb * 1024 * 1024

    def check_file(self, file: SelectedFile) -> Optional[ValidationError]:
        limit = self._ctx.settings.max_upload_mb
        if file.size > self.max_bytes:
            message = f"File exceeds {limit}MB limit"
            return ValidationError(message, field_errors={"file": message})
        if file.size == 0:
            return ValidationError("File is empty", field_errors={"file": "File is empty"})
        return None

    async def send(
        self,
        file: SelectedFile,
        metadata: UploadMetadata,
        token: CancelToken,
        on_progress: ProgressCallback,
        on_restart: Optional[Callable[[], None]] = None,
    ) -> UploadResult:
        fields = metadata.form_fields()
        attempts = (("primary", self._send_streaming), ("fallback", self._send_plain))

        last_error: Optional[ClientError] = None
        for name, sender in attempts:
            if token.cancelled:
                return UploadResult(cancelled=True)
            if last_error is not None and on_restart is not None:
                on_restart()
            try:
                document = await self._guarded(sender(file, fields, token, on_progress), token)
            except UploadCancelled:
                return UploadResult(cancelled=True)
            except ClientError as err:
                logger.warning("Upload of %s via %s transport failed: %s", file.name, name, err.message)
                last_error = err
                continue
            return UploadResult(document=document, transport=name)
        return UploadResult(error=last_error)

    async def _guarded(self, attempt: Awaitable[dict[str, Any]], token: CancelToken) -> dict[str, Any]:
        """Run one attempt bounded by the upload timeout and the cancel token."""
        task = asyncio.ensure_future(asyncio.wait_for(attempt, self._ctx.settings.upload_timeout_s))
        cancelled = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({task, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if token.cancelled or not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if token.cancelled:
            raise UploadCancelled()
        try:
            return task.result()
        except asyncio.TimeoutError as exc:
            raise Timeout("Upload timed out") from exc
        except httpx.HTTPError as exc:
            raise classify_exception(exc) from exc

    @staticmethod
    def _files(file: SelectedFile) -> dict[str, tuple[str, bytes, str]]:
        return {"file": (file.name, file.content, file.content_type)}

    def _document(self, response: httpx.Response) -> dict[str, Any]:
        body = self._ctx.decode(response)
        document = body.get("data")
        if not isinstance(document, dict) or "id" not in document:
            raise ServerError("Upload response did not include the document")
        return document

    async def _send_streaming(
        self,
        file: SelectedFile,
        fields: dict[str, str],
        token: CancelToken,
        on_progress: ProgressCallback,
    ) -> dict[str, Any]:
        request = self._ctx.http.build_request("POST", UPLOAD_PATH, data=fields, files=self._files(file))
        body = request.read()
        total = len(body)
        chunk_size = self._ctx.settings.upload_chunk_size

        async def chunks():
            sent = 0
            for offset in range(0, total, chunk_size):
                if token.cancelled:
                    return
                piece = body[offset : offset + chunk_size]
                yield piece
                sent += len(piece)
                if not token.cancelled:
                    on_progress(sent * 100 // total)

        headers = {
            "Content-Type": request.headers["Content-Type"],
            "Content-Length": str(total),
        }
        response = await self._ctx.http.post(UPLOAD_PATH, content=chunks(), headers=headers)
        return self._document(response)

    async def _send_plain(
        self,
        file: SelectedFile,
        fields: dict[str, str],
        token: CancelToken,
        on_progress: ProgressCallback,
    ) -> dict[str, Any]:
        response = await self._ctx.http.post(UPLOAD_PATH, data=fields, files=self._files(file))
        document = self._document(response)
        if not token.cancelled:
            on_progress(100)
        return document


class UploadHandle:
    """An in-flight upload: observe progress, cancel it, or await its result."""

    def __init__(self, session: UploadSession, task: "asyncio.Future[UploadResult]", dialog: "UploadDialog"):
        self.session = session
        self._task = task
        self._dialog = dialog

    @property
    def progress(self) -> int:
        return self.session.progress

    @property
    def stage(self) -> UploadStage:
        return self.session.stage

    def cancel(self) -> None:
        self._dialog.cancel(self.session)

    async def result(self) -> UploadResult:
        return await self._task

    def __await__(self):
        return self._task.__await__()


class UploadDialog:
    """Owns at most one active upload session."""

    def __init__(self, ctx: ClientContext, transport: Optional[UploadTransport] = None):
        self._ctx = ctx
        self.transport = transport or UploadTransport(ctx)
        self.session: Optional[UploadSession] = None
        self._task: Optional[asyncio.Future] = None

    def validate_file(self, file: SelectedFile) -> bool:
        """Reject oversized or empty files locally; nothing is sent.

        A rejected file that is not the current selection replaces it, so the
        error is always on ``self.session``.
        """
        error = self.transport.check_file(file)
        if error is None:
            return True
        if self.session is None or self.session.file is not file:
            if self.session is not None:
                self.cancel(self.session)
            self.session = UploadSession(file=file)
        self.session.error = error
        self.session.field_errors = dict(error.field_errors)
        self.session.stage = UploadStage.ERROR
        return False

    def select_file(self, file: SelectedFile) -> UploadSession:
        """Replace the current session, cancelling any upload still in flight."""
        if self.session is not None:
            self.cancel(self.session)
        self.session = UploadSession(file=file)
        self.validate_file(file)
        return self.session

    def start_upload(
        self,
        file: SelectedFile,
        metadata: UploadMetadata,
        on_success: Optional[Callable[[dict[str, Any]], None]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadHandle:
        session = self.select_file(file)
        self._task = asyncio.ensure_future(self._run(session, metadata, on_success, on_progress))
        return UploadHandle(session, self._task, self)

    def cancel(self, session: Optional[UploadSession] = None) -> None:
        session = session or self.session
        if session is None or session.stage == UploadStage.COMPLETE:
            return
        session.token.cancel()
        if session.stage != UploadStage.ERROR:
            session.stage = UploadStage.IDLE
            session.progress = 0

    async def close(self) -> None:
        self.cancel()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        self.session = None

    async def _run(
        self,
        session: UploadSession,
        metadata: UploadMetadata,
        on_success: Optional[Callable[[dict[str, Any]], None]],
        on_progress: Optional[ProgressCallback],
    ) -> UploadResult:
        if session.error is not None:
            return UploadResult(error=session.error)

        session.stage = UploadStage.UPLOADING
        session.progress = 0

        def progress(percent: int) -> None:
            if session.token.cancelled or self.session is not session:
                return
            session.progress = max(session.progress, min(percent, 100))
            if session.progress >= 100:
                session.stage = UploadStage.PROCESSING
            if on_progress is not None:
                on_progress(session.progress)

        def restart() -> None:
            if session.token.cancelled or self.session is not session:
                return
            session.stage = UploadStage.UPLOADING
            session.progress = 0
            if on_progress is not None:
                on_progress(0)

        result = await self.transport.send(session.file, metadata, session.token, progress, restart)

        if result.cancelled:
            session.stage = UploadStage.IDLE
            session.progress = 0
            logger.info("Upload of %s cancelled", session.file.name)
            return result

        if result.error is not None:
            session.stage = UploadStage.ERROR
            session.error = result.error
            session.field_errors = dict(result.error.field_errors)
            self._ctx.notify(result.error)
            return result

        session.progress = 100
        session.stage = UploadStage.COMPLETE
        self._ctx.cache.invalidate(DOCUMENTS_CACHE_KEY)
        logger.info("Uploaded %s as document %s", session.file.name, result.document["id"])
        if on_success is not None:
            on_success(result.document)
        return result
