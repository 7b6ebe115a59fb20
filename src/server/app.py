"""HTTP API that lets AI agents drive the automation orchestrator."""

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from core import (
    AutomationOrchestrator,
    CapabilityFailure,
    InvalidStep,
    MonitorAlreadyExists,
    MonitorNotFound,
    NotInitialized,
    RequiredStepFailed,
    RindBrowserError,
    UnknownAction,
    WorkflowNotFound,
)
from core.qa import QASuite
from core.research import CompetitorTarget
from utils import log, config, BrowserOptions

OrchestratorFactory = Callable[[BrowserOptions], AutomationOrchestrator]

ERROR_STATUS = {
    UnknownAction: 400,
    InvalidStep: 400,
    WorkflowNotFound: 404,
    MonitorNotFound: 404,
    MonitorAlreadyExists: 409,
    CapabilityFailure: 502,
    NotInitialized: 503,
}


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class InitializeRequest(ApiModel):
    options: Dict[str, Any] = Field(default_factory=dict)


class NavigateRequest(ApiModel):
    url: str


class ClickRequest(ApiModel):
    selector: str


class TypeRequest(ApiModel):
    selector: str
    text: str


class ScreenshotRequest(ApiModel):
    full_page: bool = Field(default=False, alias="fullPage")


class WorkflowExecuteRequest(ApiModel):
    workflow_name: Optional[str] = Field(default=None, alias="workflowName")
    steps: Optional[List[Dict[str, Any]]] = None
    params: Dict[str, Any] = Field(default_factory=dict)


class WorkflowRegisterRequest(ApiModel):
    name: str
    steps: List[Dict[str, Any]]


class MonitorStartRequest(ApiModel):
    monitor_id: str = Field(alias="monitorId")
    url: str
    # Milliseconds, as clients send it
    interval: Optional[int] = Field(default=None, gt=0)


class MonitorStopRequest(ApiModel):
    monitor_id: str = Field(alias="monitorId")


class ResearchRequest(ApiModel):
    competitors: List[CompetitorTarget]


class QARequest(ApiModel):
    test_suite: QASuite = Field(alias="testSuite")


def error_status(error: RindBrowserError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


def create_app(orchestrator_factory: OrchestratorFactory = AutomationOrchestrator) -> FastAPI:
    """
    Build the API application.

    Args:
        orchestrator_factory: Builds an orchestrator from browser options on /initialize

    Returns:
        FastAPI application; the live orchestrator is kept on ``app.state``
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.orchestrator = None
        yield
        if app.state.orchestrator is not None:
            log.info("Shutting down: closing orchestrator")
            await app.state.orchestrator.stop()
            app.state.orchestrator = None

    app = FastAPI(
        title="RindBrowser API",
        description="Browser automation, workflows, monitoring, research and QA for AI agents",
        lifespan=lifespan,
    )
    app.state.orchestrator = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path == "/health":
            return await call_next(request)
        start_time = time.time()
        response = await call_next(request)
        process_time_ms = (time.time() - start_time) * 1000
        log.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time_ms:.0f}ms)")
        return response

    @app.exception_handler(RindBrowserError)
    async def handle_engine_error(request: Request, exc: RindBrowserError):
        body: Dict[str, Any] = {"success": False, "error": exc.reason}
        if isinstance(exc, RequiredStepFailed):
            body["results"] = exc.result.model_dump(mode="json")["outcomes"]
        return JSONResponse(status_code=error_status(exc), content=body)

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        return JSONResponse(status_code=422, content={"success": False, "error": message})

    def get_orchestrator(request: Request) -> AutomationOrchestrator:
        orchestrator = request.app.state.orchestrator
        if orchestrator is None:
            raise NotInitialized()
        return orchestrator

    @app.get("/health")
    async def health(request: Request):
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "orchestrator": "initialized" if request.app.state.orchestrator else "not initialized",
        }

    @app.post("/initialize")
    async def initialize(request: Request, body: Optional[InitializeRequest] = None):
        body = body or InitializeRequest()
        if request.app.state.orchestrator is not None:
            await request.app.state.orchestrator.stop()
            request.app.state.orchestrator = None

        orchestrator = orchestrator_factory(config.browser_options(body.options))
        try:
            await orchestrator.start()
        except RindBrowserError:
            await orchestrator.stop()
            raise
        except Exception as e:
            log.error(f"Failed to launch browser: {e}")
            await orchestrator.stop()
            raise CapabilityFailure(f"Failed to launch browser: {e}") from e

        request.app.state.orchestrator = orchestrator
        return {"success": True, "message": "Browser initialized", "status": orchestrator.get_status()}

    @app.post("/navigate")
    async def navigate(body: NavigateRequest, orchestrator: AutomationOrchestrator = Depends(get_orchestrator)):
        await orchestrator.navigate(body.url)
        return {"success": True, "message": f"Navigated to {body.url}"}

    @app.get("/extract")
    async def extract(orchestrator: AutomationOrchestrator = Depends(get_orchestrator)):
        return {"success": True, "data": await orchestrator.extract()}

    @app.get("/analyze")
    async def analyze(
        include: Optional[str] = None,
        orchestrator: AutomationOrchestrator = Depends(get_orchestrator)
    ):
        sections = [section.strip() for section in include.split(",") if section.strip()] if include else []
        return {"success": True, "analysis": await orchestrator.analyze(sections)}

    @app.post("/click")
    async def click(body: ClickRequest, orchestrator: AutomationOrchestrator = Depends(get_orchestrator)):
        await orchestrator.click(body.selector)
        return {"success": True, "message": f"Clicked {body.selector}"}

    @app.post("/type")
    async def type_text(body: TypeRequest, orchestrator: AutomationOrchestrator = Depends(get_orchestrator)):
        await orchestrator.type_text(body.selector, body.text)
        return {"success": True, "message": f"Typed into {body.selector}"}

    @app.post("/screenshot")
    async def screenshot(
        body: Optional[ScreenshotRequest] = None,
        orchestrator: AutomationOrchestrator = Depends(get_orchestrator)
    ):
        body = body or ScreenshotRequest()
        image = await orchestrator.screenshot(full_page=body.full_page)
        return Response(content=image, media_type="image/png")

    @app.post("/workflow/execute")
    async def execute_workflow(
        body: WorkflowExecuteRequest,
        orchestrator: AutomationOrchestrator = Depends(get_orchestrator)
    ):
        if body.steps is not None:
            result = await orchestrator.execute_workflow(body.steps, body.params)
        elif body.workflow_name:
            result = await orchestrator.execute_workflow(body.workflow_name, body.params)
        else:
            raise InvalidStep("Either steps or workflowName required")
        return {"success": True, "results": result.model_dump(mode="json")["outcomes"]}

    @app.post("/workflow/register")
    async def register_workflow(
        body: WorkflowRegisterRequest,
        orchestrator: AutomationOrchestrator = Depends(get_orchestrator)
    ):
        actions = orchestrator.register_workflow(body.name, body.steps)
        return {"success": True, "message": f"Workflow registered: {body.name}", "steps": actions}

    @app.post("/monitor/start")
    async def start_monitor(
        body: MonitorStartRequest,
        orchestrator: AutomationOrchestrator = Depends(get_orchestrator)
    ):
        interval = body.interval / 1000 if body.interval else None
        handle = await orchestrator.start_monitor(body.monitor_id, body.url, interval)
        last = handle.last_event()
        return {
            "success": True,
            "message": f"Monitor started: {body.monitor_id}",
            "monitorId": body.monitor_id,
            "url": body.url,
            "interval": int(handle.interval * 1000),
            "initialCheck": last.model_dump(mode="json", by_alias=True) if last else None,
        }

    @app.post("/monitor/stop")
    async def stop_monitor(
        body: MonitorStopRequest,
        orchestrator: AutomationOrchestrator = Depends(get_orchestrator)
    ):
        await orchestrator.stop_monitor(body.monitor_id)
        return {"success": True, "message": f"Monitor stopped: {body.monitor_id}"}

    @app.get("/monitor/{monitor_id}/events")
    async def monitor_events(monitor_id: str, orchestrator: AutomationOrchestrator = Depends(get_orchestrator)):
        handle = orchestrator.monitors.get(monitor_id)
        return {
            "success": True,
            "monitor": handle.summary(),
            "events": [event.model_dump(mode="json", by_alias=True) for event in handle.history],
        }

    @app.post("/research/competitors")
    async def competitor_research(
        body: ResearchRequest,
        orchestrator: AutomationOrchestrator = Depends(get_orchestrator)
    ):
        records = await orchestrator.competitor_research(body.competitors)
        return {"success": True, "results": [record.model_dump(mode="json", by_alias=True) for record in records]}

    @app.post("/qa/test")
    async def qa_test(body: QARequest, orchestrator: AutomationOrchestrator = Depends(get_orchestrator)):
        result = await orchestrator.qa_test(body.test_suite)
        return {"success": True, "results": result.model_dump(mode="json")}

    @app.get("/status")
    async def status(request: Request):
        orchestrator = request.app.state.orchestrator
        return {
            "success": True,
            "initialized": orchestrator is not None,
            "status": orchestrator.get_status() if orchestrator else None,
            "activeMonitors": orchestrator.monitors.ids() if orchestrator else [],
        }

    @app.post("/close")
    async def close(request: Request):
        if request.app.state.orchestrator is not None:
            await request.app.state.orchestrator.stop()
            request.app.state.orchestrator = None
        return {"success": True, "message": "Browser closed"}

    return app


app = create_app()
