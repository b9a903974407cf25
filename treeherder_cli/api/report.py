"""
Report API
==========
Read-only JSON endpoints over the same ReportOrchestrator the CLI drives.

    GET /api/report/{revision}
    GET /api/compare/{revision}/{compare_revision}
    GET /api/similar/{job_id}

Error mapping:
    InvalidInput        → 400
    UpstreamUnexpected  → 404 (push not found, Lando not landed, ...)
    httpx.HTTPError     → 502
"""
import logging
from typing import AsyncIterator, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from treeherder_cli.agents.orchestrator import ReportOrchestrator
from treeherder_cli.core import config
from treeherder_cli.core.errors import InvalidInput, TreeherderCliError, UpstreamUnexpected
from treeherder_cli.models.options import MatchFilter, ReportOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reports"])


async def get_orchestrator() -> AsyncIterator[ReportOrchestrator]:
    """One orchestrator (and its HTTP clients) per request."""
    orchestrator = ReportOrchestrator()
    try:
        yield orchestrator
    finally:
        await orchestrator.close()


async def _run_report(orchestrator: ReportOrchestrator, options: ReportOptions) -> dict:
    try:
        report = await orchestrator.run(options)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except UpstreamUnexpected as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except httpx.HTTPError as exc:
        logger.error(f"[API] Upstream request failed: {exc}")
        raise HTTPException(status_code=502, detail=f"Upstream request failed: {exc}")
    except TreeherderCliError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return report.model_dump(mode="json")


@router.get("/report/{revision}")
async def get_report(
    revision: str,
    repo: str = config.DEFAULT_REPO,
    match_filter: MatchFilter = "failure",
    filter: Optional[str] = None,
    platform: Optional[str] = None,
    duration_min: Optional[int] = Query(default=None, ge=0),
    include_intermittent: bool = False,
    group_by: Optional[str] = Query(default=None, pattern="^test$"),
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    logger.info(f"[API] Report for {repo}@{revision}")
    options = ReportOptions(
        input=revision,
        repo=repo,
        match_filter=match_filter,
        filter=filter,
        platform=platform,
        duration_min=duration_min,
        include_intermittent=include_intermittent,
        group_by=group_by,
        json_output=True,
    )
    return await _run_report(orchestrator, options)


@router.get("/compare/{revision}/{compare_revision}")
async def get_comparison(
    revision: str,
    compare_revision: str,
    repo: str = config.DEFAULT_REPO,
    match_filter: MatchFilter = "failure",
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    logger.info(f"[API] Compare {repo}@{revision} against {compare_revision}")
    options = ReportOptions(
        input=revision,
        repo=repo,
        compare=compare_revision,
        match_filter=match_filter,
        json_output=True,
    )
    return await _run_report(orchestrator, options)


@router.get("/similar/{job_id}")
async def get_similar_history(
    job_id: int,
    repo: str = config.DEFAULT_REPO,
    count: int = Query(default=config.SIMILAR_COUNT, ge=1),
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    logger.info(f"[API] Similar history for job {job_id} ({count} jobs)")
    options = ReportOptions(repo=repo, similar_history=job_id, similar_count=count, json_output=True)
    return await _run_report(orchestrator, options)
