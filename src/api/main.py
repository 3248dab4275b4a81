import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from studio.backends import create_backend
from studio.config import configure_langsmith, is_usable_credential, load_settings
from studio.errors import InvalidTransition
from studio.models import WorkflowStep
from studio.orchestrator import CREATIVE_KINDS
from studio.session import SessionRegistry, WorkflowSession, open_session

from .models import (
    CreativeRequest,
    CredentialRequest,
    EventsResponse,
    ImportRequest,
    MarginRequest,
    SessionView,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    app.state.settings = settings
    app.state.backend_factory = create_backend
    app.state.sessions = SessionRegistry(settings.session_ttl_seconds, settings.max_sessions)
    app.state.langsmith_configured = configure_langsmith(settings)
    logger.info("Starting Dropship Studio API (provider: %s)", settings.provider)
    yield
    await app.state.sessions.close_all()
    logger.info("Shutting down Dropship Studio API")


app = FastAPI(
    title="Dropship Studio API",
    description="Import a dropshipping product, generate ad creatives and a sales page with generative AI",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def get_session(session_id: str, request: Request) -> WorkflowSession:
    sessions: SessionRegistry = request.app.state.sessions
    session = await sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


async def run_action(
    session: WorkflowSession, kind: str, action: Callable[[], Awaitable[bool]]
) -> Dict:
    """Run a workflow action and translate its outcome into an HTTP response."""
    if not session.guard.is_unlocked:
        raise HTTPException(status_code=423, detail="Select an API key before continuing")
    # Triggers stay disabled while the same kind is still running
    if session.state.loading.as_dict()[kind]:
        raise HTTPException(status_code=409, detail=f"'{kind}' generation is already running")

    try:
        committed = await action()
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if not committed:
        # Only this kind's own failure counts; other kinds may have failed meanwhile
        notice = session.orchestrator.failures.get(kind)
        if notice is None:
            raise HTTPException(status_code=423, detail="Select an API key before continuing")
        status_code = 401 if notice.blocking else 502
        raise HTTPException(status_code=status_code, detail=notice.message)
    return session.as_dict()


@app.get("/")
async def root():
    return {"message": "Dropship Studio API", "version": "1.0.0"}


@app.get("/health")
async def health_check(request: Request):
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "workflow_steps": [step.value for step in WorkflowStep],
        "provider": settings.provider,
        "mock_mode": not is_usable_credential(settings.api_key),
        "require_credential": settings.require_credential,
        "langsmith_configured": request.app.state.langsmith_configured,
        "active_sessions": len(request.app.state.sessions),
    }


@app.post("/api/sessions", response_model=SessionView, status_code=201)
async def create_session(request: Request):
    """Start a new workflow session"""
    session = await open_session(request.app.state.settings, request.app.state.backend_factory)
    await request.app.state.sessions.add(session)
    return session.as_dict()


@app.get("/api/sessions/{session_id}", response_model=SessionView)
async def get_session_state(session: WorkflowSession = Depends(get_session)):
    return session.as_dict()


@app.delete("/api/sessions/{session_id}", status_code=204)
async def end_session(request: Request, session: WorkflowSession = Depends(get_session)):
    """Discard a session and everything generated in it"""
    await request.app.state.sessions.remove(session.session_id)


@app.get("/api/sessions/{session_id}/events", response_model=EventsResponse)
async def get_session_events(session: WorkflowSession = Depends(get_session)):
    return {
        "session_id": session.session_id,
        "events": [event.as_dict() for event in session.orchestrator.events],
    }


@app.post("/api/sessions/{session_id}/credential", response_model=SessionView)
async def select_credential(payload: CredentialRequest, session: WorkflowSession = Depends(get_session)):
    """Complete the key selection flow; the key is trusted until a call rejects it"""
    await session.select_credential(payload.api_key)
    return session.as_dict()


@app.post("/api/sessions/{session_id}/import", response_model=SessionView)
async def import_product(payload: ImportRequest, session: WorkflowSession = Depends(get_session)):
    """Import a product from a supplier URL (step 1)"""
    return await run_action(
        session,
        "importing",
        lambda: session.orchestrator.import_product(payload.url, payload.language),
    )


@app.post("/api/sessions/{session_id}/creatives/{kind}", response_model=SessionView)
async def generate_creatives(
    kind: str,
    session: WorkflowSession = Depends(get_session),
    payload: CreativeRequest = CreativeRequest(),
):
    """Generate the video script, 4 lifestyle images or 3 ad copies (step 2)"""
    if kind not in CREATIVE_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown creative kind: {kind}")
    return await run_action(
        session,
        kind,
        lambda: session.orchestrator.generate_creatives(kind, payload.platform),
    )


@app.post("/api/sessions/{session_id}/advance", response_model=SessionView)
async def advance(session: WorkflowSession = Depends(get_session)):
    """Move from the creatives step to the sales page step"""
    if not session.guard.is_unlocked:
        raise HTTPException(status_code=423, detail="Select an API key before continuing")
    try:
        session.orchestrator.advance()
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.as_dict()


@app.post("/api/sessions/{session_id}/sales-page", response_model=SessionView)
async def generate_sales_page(session: WorkflowSession = Depends(get_session)):
    """Generate the landing page content (step 3)"""
    return await run_action(session, "page", session.orchestrator.generate_sales_page)


@app.put("/api/sessions/{session_id}/margin", response_model=SessionView)
async def set_margin(payload: MarginRequest, session: WorkflowSession = Depends(get_session)):
    session.orchestrator.set_margin(payload.margin)
    return session.as_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
