"""FastAPI routes for module-pack."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field, ValidationError

from module_pack.analysis import detect_cycles
from module_pack.errors import (
    BuildError,
    BuildValidationError,
    ModulePackError,
    ScanError,
    UnsupportedConfigurationError,
)
from module_pack.models import BuildRequest as PipelineRequest
from module_pack.models import TechTemplate
from module_pack.pipeline import (
    analyze_dependencies,
    list_modules,
    module_dependency_graph,
    resolve_selection,
    run_build,
)
from module_pack.settings import TemplateStore
from module_pack.strategy import available_tech_stacks, builtin_tech_stacks
from module_pack.web.state import BuildSession, state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

ALLOWED_ROOT_ENV = "MODULE_PACK_ALLOWED_ROOT"


# --- Request / Response models ---

class ProjectRequest(BaseModel):
    path: str
    tech_stack: str = "fastapi"
    modules_dir: str | None = None

class DependencyRequest(ProjectRequest):
    by_module: bool = False

class ClosureRequest(ProjectRequest):
    modules: list[str]

class BuildRequest(ProjectRequest):
    label: str
    modules: list[str]

class TemplateRequest(BaseModel):
    name: str
    modules_dir: str
    entry_file: str = ""
    import_pattern: str = ""
    exclude_dirs: list[str] = Field(default_factory=list)


# --- Path safety ---

def _allowed_root() -> Path:
    override = os.getenv(ALLOWED_ROOT_ENV)
    return Path(override).expanduser().resolve() if override else Path.home().resolve()


def _validate_path(p: str) -> Path:
    """Ensure path exists and is under the allowed root (home directory by default)."""
    resolved = Path(p).expanduser().resolve()
    if not resolved.exists():
        raise HTTPException(404, f"Path not found: {resolved}")
    root = _allowed_root()
    if resolved != root and root not in resolved.parents:
        raise HTTPException(403, f"Path must be under {root}")
    return resolved


def _http_error(e: ModulePackError) -> HTTPException:
    if isinstance(e, (BuildValidationError, UnsupportedConfigurationError)):
        return HTTPException(400, str(e))
    if isinstance(e, ScanError):
        return HTTPException(404, str(e))
    if isinstance(e, BuildError):
        return HTTPException(422, str(e))
    return HTTPException(500, str(e))


def _to_pipeline_request(req: BuildRequest, project_dir: Path) -> PipelineRequest:
    return PipelineRequest(
        project_dir=project_dir,
        label=req.label,
        selected_modules=list(req.modules),
        tech_stack=req.tech_stack,
        modules_dir=req.modules_dir,
    )


def _execute_build(session: BuildSession, request: PipelineRequest, progress=None) -> BuildSession:
    """Run a build synchronously, recording the outcome on *session*."""
    with state.project_lock(session.project_dir):
        try:
            session.result = run_build(request, progress=progress)
            session.status = "done"
        except Exception as e:
            session.status = "failed"
            session.error = str(e) or type(e).__name__
            raise
    return session


# --- Endpoints ---

@router.post("/modules")
async def modules(req: ProjectRequest):
    project_dir = _validate_path(req.path)
    try:
        found = list_modules(project_dir, req.tech_stack, req.modules_dir)
    except ModulePackError as e:
        raise _http_error(e)
    return {
        "count": len(found),
        "modules": [{"name": m.name, "path": str(m.path)} for m in found],
    }


@router.post("/dependencies")
async def dependencies(req: DependencyRequest):
    project_dir = _validate_path(req.path)
    try:
        if req.by_module:
            graph = await asyncio.to_thread(
                module_dependency_graph, project_dir, req.tech_stack, req.modules_dir,
            )
            return {**graph.to_dict(), "cycles": detect_cycles(graph)}
        file_graph = await asyncio.to_thread(analyze_dependencies, project_dir)
    except ModulePackError as e:
        raise _http_error(e)
    return file_graph.to_dict()


@router.post("/closure")
async def closure(req: ClosureRequest):
    project_dir = _validate_path(req.path)
    try:
        result = await asyncio.to_thread(
            resolve_selection, project_dir, req.modules, req.tech_stack, req.modules_dir,
        )
    except ModulePackError as e:
        raise _http_error(e)
    return result.to_dict()


@router.post("/build")
async def build(req: BuildRequest):
    project_dir = _validate_path(req.path)
    session = BuildSession(project_dir=str(project_dir), label=req.label, tech_stack=req.tech_stack)
    state.add_build(session)
    try:
        await asyncio.to_thread(_execute_build, session, _to_pipeline_request(req, project_dir))
    except ModulePackError as e:
        raise _http_error(e)
    except Exception:
        logger.exception("Build %s failed unexpectedly", session.id)
        raise HTTPException(500, f"Build failed: {session.error}")
    return session.to_dict()


@router.get("/builds")
async def list_builds():
    return {"builds": [s.to_dict() for s in state.list_builds()]}


@router.get("/builds/{build_id}")
async def get_build(build_id: str):
    session = state.get_build(build_id)
    if not session:
        raise HTTPException(404, "Build not found")
    return session.to_dict()


@router.get("/builds/{build_id}/download")
async def download_build(build_id: str):
    session = state.get_build(build_id)
    if not session or session.result is None:
        raise HTTPException(404, "Build not found")
    archive = session.result.archive_path
    if not archive.exists():
        raise HTTPException(404, "Archive no longer exists")
    return FileResponse(str(archive), filename=archive.name, media_type="application/zip")


@router.get("/templates")
async def get_templates():
    store = TemplateStore()
    return {
        "tech_stacks": available_tech_stacks(store),
        "templates": [t.to_dict() for t in store.list_templates()],
    }


@router.post("/templates")
async def save_template(req: TemplateRequest):
    if req.name.strip().lower() in builtin_tech_stacks():
        raise HTTPException(400, f"{req.name!r} is a built-in technology")
    template = TechTemplate(
        name=req.name,
        modules_dir=req.modules_dir,
        entry_file=req.entry_file,
        import_pattern=req.import_pattern,
        exclude_dirs=list(req.exclude_dirs),
    )
    try:
        TemplateStore().save(template)
    except ModulePackError as e:
        raise _http_error(e)
    return template.to_dict()


@router.delete("/templates/{name}")
async def delete_template(name: str):
    if not TemplateStore().delete(name):
        raise HTTPException(404, f"No template named {name!r}")
    return {"deleted": name}


@router.websocket("/ws/build")
async def build_ws(websocket: WebSocket):
    """WebSocket streaming one message per pipeline stage, then ``done`` or ``error``."""
    await websocket.accept()
    loop = asyncio.get_running_loop()
    try:
        while True:
            msg = await websocket.receive_json()
            if msg.get("action") != "build":
                await websocket.send_json({"error": f"Unknown action: {msg.get('action')!r}"})
                continue

            try:
                req = BuildRequest(**{k: v for k, v in msg.items() if k != "action"})
                project_dir = _validate_path(req.path)
            except ValidationError as e:
                await websocket.send_json({"error": str(e)})
                continue
            except HTTPException as e:
                await websocket.send_json({"error": e.detail})
                continue

            queue: asyncio.Queue = asyncio.Queue()

            def progress(message: str, step: int, total: int):
                loop.call_soon_threadsafe(
                    queue.put_nowait, {"stage": message, "current": step, "total": total},
                )

            session = BuildSession(project_dir=str(project_dir), label=req.label, tech_stack=req.tech_stack)
            state.add_build(session)
            task = asyncio.create_task(asyncio.to_thread(
                _execute_build, session, _to_pipeline_request(req, project_dir), progress,
            ))

            while not task.done() or not queue.empty():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=0.1)
                except asyncio.TimeoutError:
                    continue
                await websocket.send_json(event)

            try:
                task.result()
            except ModulePackError as e:
                await websocket.send_json({"error": str(e), "build_id": session.id})
                continue
            except Exception:
                logger.exception("Build %s failed unexpectedly", session.id)
                await websocket.send_json({"error": f"Build failed: {session.error}", "build_id": session.id})
                continue
            await websocket.send_json({"done": True, **session.to_dict()})
    except WebSocketDisconnect:
        logger.debug("Build websocket disconnected")
