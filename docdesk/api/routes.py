from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response

from ..core.config import Settings
from ..core.errors import UploadRejectedError
from ..core.logging import get_logger
from ..dependencies import get_app_settings, get_session, get_session_registry, get_toolkit
from ..orchestration.batch import BatchReport
from ..orchestration.session import SessionRegistry, WorkspaceSession
from ..schemas.chat import (
    AnalysisItemModel,
    AnalyzeRequest,
    AskRequest,
    ChatStateResponse,
    DocumentContextModel,
    MessageModel,
)
from ..schemas.files import ClearedResponse, DownloadModel, RejectedUpload, UploadedFileModel, UploadResponse
from ..schemas.operations import BatchReportModel, BatchRequest, CreatePdfRequest, CreatePdfResponse
from ..schemas.sessions import NotificationModel, SessionSummary
from ..services.llm import LLMService
from ..services.toolkit import PDFToolkit

logger = get_logger(name=__name__)

router = APIRouter()


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    encoded = quote(filename, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


@router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/sessions", response_model=SessionSummary, status_code=status.HTTP_201_CREATED, tags=["sessions"])
async def create_session(registry: SessionRegistry = Depends(get_session_registry)) -> SessionSummary:
    return SessionSummary.from_session(registry.create())


@router.get("/sessions/{session_id}", response_model=SessionSummary, tags=["sessions"])
async def get_session_summary(session: WorkspaceSession = Depends(get_session)) -> SessionSummary:
    return SessionSummary.from_session(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["sessions"])
async def drop_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    registry.drop(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sessions/{session_id}/files", response_model=UploadResponse, tags=["files"])
async def upload_files(
    files: list[UploadFile] = File(...),
    workspace: str | None = Query(None, description="Workspace preset restricting accepted file types."),
    session: WorkspaceSession = Depends(get_session),
) -> UploadResponse:
    session.files.accepted_extensions(workspace)

    response = UploadResponse()
    for upload in files:
        name = upload.filename or "upload"
        data = await upload.read()
        try:
            uploaded = session.files.add(name, data, content_type=upload.content_type, workspace=workspace)
        except UploadRejectedError as exc:
            await session.notifications.error(str(exc), key=f"upload:{name}")
            response.rejected.append(RejectedUpload(name=name, reason=str(exc)))
            continue
        response.accepted.append(UploadedFileModel.from_file(uploaded))

    if response.rejected:
        logger.info(
            "upload_partially_rejected",
            session_id=session.session_id,
            accepted=len(response.accepted),
            rejected=[item.name for item in response.rejected],
        )
    if not response.accepted:
        reasons = "; ".join(item.reason for item in response.rejected) or "No files were sent."
        raise UploadRejectedError(reasons)
    return response


@router.get("/sessions/{session_id}/files", response_model=list[UploadedFileModel], tags=["files"])
async def list_files(session: WorkspaceSession = Depends(get_session)) -> list[UploadedFileModel]:
    return [UploadedFileModel.from_file(item) for item in session.files.list()]


@router.delete("/sessions/{session_id}/files/{file_id}", response_model=UploadedFileModel, tags=["files"])
async def remove_file(file_id: str, session: WorkspaceSession = Depends(get_session)) -> UploadedFileModel:
    return UploadedFileModel.from_file(session.files.remove(file_id))


@router.delete("/sessions/{session_id}/files", response_model=ClearedResponse, tags=["files"])
async def clear_files(session: WorkspaceSession = Depends(get_session)) -> ClearedResponse:
    return ClearedResponse(removed=session.files.clear())


@router.post("/sessions/{session_id}/operations/{operation}", response_model=BatchReportModel, tags=["operations"])
async def run_operation(
    operation: str,
    payload: BatchRequest | None = None,
    session: WorkspaceSession = Depends(get_session),
    toolkit: PDFToolkit = Depends(get_toolkit),
) -> BatchReportModel:
    file_ids = payload.file_ids if payload is not None else None
    selection = session.files.select(file_ids)
    report: BatchReport = await session.batch_orchestrator(toolkit).run(operation, selection)
    return BatchReportModel.from_report(report)


@router.post("/sessions/{session_id}/pdf", response_model=CreatePdfResponse, tags=["operations"])
async def create_pdf(
    payload: CreatePdfRequest,
    session: WorkspaceSession = Depends(get_session),
    toolkit: PDFToolkit = Depends(get_toolkit),
) -> CreatePdfResponse:
    artifact = await session.pdf_creator(toolkit).create(payload.text, title=payload.title)
    return CreatePdfResponse(filename=artifact.filename, size_bytes=artifact.size_bytes)


@router.get("/sessions/{session_id}/downloads", response_model=list[DownloadModel], tags=["downloads"])
async def list_downloads(session: WorkspaceSession = Depends(get_session)) -> list[DownloadModel]:
    return [
        DownloadModel(
            filename=artifact.filename,
            media_type=artifact.media_type,
            size_bytes=artifact.size_bytes,
            created_at=artifact.created_at,
        )
        for artifact in session.downloads.list()
    ]


@router.get("/sessions/{session_id}/downloads/{filename}", tags=["downloads"])
async def fetch_download(filename: str, session: WorkspaceSession = Depends(get_session)) -> Response:
    artifact = session.downloads.get(filename)
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": content_disposition(artifact.filename)},
    )


@router.delete("/sessions/{session_id}/downloads", response_model=ClearedResponse, tags=["downloads"])
async def clear_downloads(session: WorkspaceSession = Depends(get_session)) -> ClearedResponse:
    removed = len(session.downloads)
    session.downloads.clear()
    return ClearedResponse(removed=removed)


@router.post("/sessions/{session_id}/chat/documents", response_model=list[AnalysisItemModel], tags=["chat"])
async def analyze_documents(
    payload: AnalyzeRequest | None = None,
    session: WorkspaceSession = Depends(get_session),
) -> list[AnalysisItemModel]:
    file_ids = payload.file_ids if payload is not None else None
    results = await session.chat.analyze(session.files.select(file_ids))
    return [AnalysisItemModel.from_item(item) for item in results]


@router.delete("/sessions/{session_id}/chat/documents", status_code=status.HTTP_204_NO_CONTENT, tags=["chat"])
async def clear_documents(session: WorkspaceSession = Depends(get_session)) -> Response:
    session.chat.clear_documents()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/sessions/{session_id}/chat", response_model=ChatStateResponse, tags=["chat"])
async def get_chat_state(session: WorkspaceSession = Depends(get_session)) -> ChatStateResponse:
    return ChatStateResponse(
        documents=[DocumentContextModel.from_context(doc) for doc in session.chat.documents],
        transcript=[MessageModel.from_message(message) for message in session.chat.transcript],
    )


@router.post("/sessions/{session_id}/chat/messages", response_model=MessageModel, tags=["chat"])
async def ask_question(
    payload: AskRequest,
    session: WorkspaceSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> MessageModel:
    llm = LLMService.from_settings(settings)
    reply = await session.chat.ask(payload.question, llm=llm)
    return MessageModel.from_message(reply)


@router.delete("/sessions/{session_id}/chat/messages", status_code=status.HTTP_204_NO_CONTENT, tags=["chat"])
async def clear_transcript(session: WorkspaceSession = Depends(get_session)) -> Response:
    session.chat.clear_transcript()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/sessions/{session_id}/notifications", response_model=list[NotificationModel], tags=["notifications"])
async def drain_notifications(session: WorkspaceSession = Depends(get_session)) -> list[NotificationModel]:
    return [NotificationModel.from_notification(item) for item in session.notifications.drain()]


__all__ = ["router"]
