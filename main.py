import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, FastAPI, File, HTTPException, UploadFile, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel

import config
from agents.encoder import decode_data_url
from agents.errors import (
    DocumentReadError,
    InputLimitError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from agents.llm import get_llm_client
from agents.session import ResearchSession, SessionRegistry
from agents.state import ProcessStatus, ResultTab, UploadedDocument
from presentation import encode_markdown_report, export_filename, render_tab
from presentation.export import EXPORT_MEDIA_TYPE
from realtime import SnapshotBroadcaster, create_snapshot_event, get_connection_manager

config.configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Síntese Acadêmica")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

manager = get_connection_manager()
registry = SessionRegistry(lambda: get_llm_client(), idle_ttl=config.SESSION_IDLE_TTL or None)


# --- Pydantic Schemas for API requests and responses ---
class InlineFile(BaseModel):
    name: str
    data: str
    media_type: Optional[str] = None

class InlineUpload(BaseModel):
    files: List[InlineFile]

class TabSelection(BaseModel):
    tab: ResultTab

class ArticleAnalysisSchema(BaseModel):
    id: str
    filename: str
    title: str
    authors: str
    year: str
    problem: str
    methodology: str
    findings: str
    critique: str

class SynthesisReportSchema(BaseModel):
    analyses: List[ArticleAnalysisSchema]
    matrix_markdown: str
    narrative_synthesis: str
    conflicts: str


# --- Helpers ---
def get_session(session_id: str) -> ResearchSession:
    try:
        return registry.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")

def get_report(session: ResearchSession):
    if session.status != ProcessStatus.COMPLETED or session.report is None:
        raise HTTPException(status_code=409, detail="No completed report for this session")
    return session.report

def add_documents(session: ResearchSession, documents: List[UploadedDocument]) -> dict:
    try:
        return session.add_files(documents).to_dict()
    except InputLimitError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

async def evict_idle_sessions():
    # Sessions with an open stream are still in use
    evicted = registry.evict_idle(keep=lambda sid: manager.get_session_subscriber_count(sid) > 0)
    for session_id in evicted:
        await manager.close_session(session_id)


# --- Sessions Router ---
# Handlers are async so snapshot listeners run on the event loop and can schedule broadcasts
sessions_router = APIRouter()

@sessions_router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_session():
    await evict_idle_sessions()
    session = registry.create()
    session.subscribe(SnapshotBroadcaster(manager))
    return session.snapshot.to_dict()

@sessions_router.get("/sessions/{session_id}")
async def read_session(session_id: str):
    return get_session(session_id).snapshot.to_dict()

@sessions_router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str):
    if not registry.discard(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    await manager.close_session(session_id)
    logger.info(f"Session {session_id}: deleted")

@sessions_router.post("/sessions/{session_id}/files")
async def upload_files(session_id: str, files: List[UploadFile] = File(...)):
    session = get_session(session_id)
    documents = [
        UploadedDocument(
            name=upload.filename or "documento.pdf",
            media_type=upload.content_type or "",
            content=await upload.read(),
        )
        for upload in files
    ]
    return add_documents(session, documents)

@sessions_router.post("/sessions/{session_id}/files/inline")
async def upload_inline_files(session_id: str, upload: InlineUpload):
    session = get_session(session_id)
    try:
        documents = [decode_data_url(f.name, f.data, f.media_type) for f in upload.files]
    except DocumentReadError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return add_documents(session, documents)

@sessions_router.delete("/sessions/{session_id}/files/{index}")
async def remove_file(session_id: str, index: int):
    session = get_session(session_id)
    try:
        return session.remove_file(index).to_dict()
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

@sessions_router.post("/sessions/{session_id}/start", status_code=status.HTTP_202_ACCEPTED)
async def start_session(session_id: str):
    session = get_session(session_id)
    try:
        snapshot = session.start_in_background()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"Session {session_id}: run started with {len(snapshot.files)} files")
    return snapshot.to_dict()

@sessions_router.post("/sessions/{session_id}/reset")
async def reset_session(session_id: str):
    return get_session(session_id).reset().to_dict()

@sessions_router.put("/sessions/{session_id}/tab")
async def select_tab(session_id: str, selection: TabSelection):
    return get_session(session_id).select_tab(selection.tab).to_dict()

@sessions_router.get("/sessions/{session_id}/report", response_model=SynthesisReportSchema)
async def read_report(session_id: str):
    report = get_report(get_session(session_id))
    return report.model_dump()

@sessions_router.get("/sessions/{session_id}/views/{tab}", response_class=HTMLResponse)
async def read_view(session_id: str, tab: ResultTab):
    report = get_report(get_session(session_id))
    return HTMLResponse(render_tab(report, tab))

@sessions_router.get("/sessions/{session_id}/export")
async def export_report(session_id: str):
    report = get_report(get_session(session_id))
    filename = export_filename(date.today())
    return Response(
        content=encode_markdown_report(report),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- App Integration ---
app.include_router(sessions_router, prefix="/api", tags=["Sessions"])

@app.websocket("/ws/sessions/{session_id}")
async def session_stream(websocket: WebSocket, session_id: str):
    try:
        session = registry.get(session_id)
    except SessionNotFoundError:
        await websocket.close(code=4404)
        return

    initial = create_snapshot_event(session.snapshot).to_dict()
    if not await manager.connect(websocket, session_id, initial=initial):
        return
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.disconnect(websocket)
        session.touch()

@app.get("/api/health")
def health_check():
    return {"status": "ok", "sessions": len(registry), "websockets": manager.get_stats()}
