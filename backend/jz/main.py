from __future__ import annotations
from typing import List

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .analyzer import analyze, filter_by_service
from .config import settings
from .errors import InputAbsentError
from .flow_differ import diff_flows
from .flow_extractor import extract_flows
from .models import (
    AnalysisResult, AnalyzeRequest, ExecutionFlow, FlowDiff, FlowDiffRequest, FlowRequest,
)
from .observability import get_metrics_collector
from .report import render_flow_diff_markdown, render_flow_markdown, render_system_markdown

app = FastAPI(title="jz Analyzer")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

FORMAT_QUERY = Query("json", pattern="^(json|markdown)$")


@app.get("/health")
def health():
    return {"ok": True}

@app.get("/metrics")
def metrics():
    return get_metrics_collector().get_metrics_summary()

def _flows(root: str, req: FlowRequest | FlowDiffRequest) -> List[ExecutionFlow]:
    result = analyze(root)
    return extract_flows(result.services, req.resource, req.method, req.path, req.max_depth)

@app.post("/analyze", response_model=AnalysisResult)
def analyze_root(req: AnalyzeRequest, format: str = FORMAT_QUERY):
    try:
        result = filter_by_service(analyze(req.root), req.service)
    except InputAbsentError as e:
        raise HTTPException(404, detail=str(e))
    if format == "markdown":
        return PlainTextResponse(render_system_markdown(result), media_type="text/markdown")
    return result

@app.post("/flows", response_model=List[ExecutionFlow])
def flows(req: FlowRequest, format: str = FORMAT_QUERY):
    try:
        result = _flows(req.root, req)
    except InputAbsentError as e:
        raise HTTPException(404, detail=str(e))
    if format == "markdown":
        return PlainTextResponse(render_flow_markdown(result, req.resource, req.path), media_type="text/markdown")
    return result

@app.post("/flows/diff", response_model=List[FlowDiff])
def flows_diff(req: FlowDiffRequest, format: str = FORMAT_QUERY):
    try:
        before = _flows(req.root_a, req)
        after = _flows(req.root_b, req)
    except InputAbsentError as e:
        raise HTTPException(404, detail=str(e))
    diffs = diff_flows(before, after)
    if format == "markdown":
        return PlainTextResponse(render_flow_diff_markdown(diffs, req.resource), media_type="text/markdown")
    return diffs
