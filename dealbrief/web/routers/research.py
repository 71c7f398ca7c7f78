"""Research API — run one due-diligence job and return the payload."""

from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from dealbrief.errors import InputValidationError
from dealbrief.pipeline import ResearchPipeline
from dealbrief.web.deps import get_pipeline

logger = logging.getLogger(__name__)
router = APIRouter(tags=["research"])


def coerce_request_body(body: dict[str, Any]) -> dict[str, Any]:
    """Accept both the snake_case body and the legacy camelCase shape.

    Legacy: {companyName|organization, companyDomain?, companyLeader|name?}.
    A missing domain is guessed as the squashed lower-case name + ".com".
    """
    if "company_name" in body:
        return {
            "company_name": body.get("company_name"),
            "domain": body.get("domain"),
            "owner_names": body.get("owner_names"),
        }

    name = body.get("companyName") or body.get("organization")
    domain = body.get("companyDomain") or body.get("domain")
    if not domain and isinstance(name, str) and name.strip():
        domain = re.sub(r"\s+", "", name).lower() + ".com"
    leader = body.get("companyLeader") or body.get("name")
    owners = [leader] if isinstance(leader, str) and leader.strip() else None
    return {"company_name": name, "domain": domain, "owner_names": owners}


@router.post("/dealbrief")
async def run_dealbrief(
    body: Any = Body(...),
    pipeline: ResearchPipeline = Depends(get_pipeline),
):
    """Run the research pipeline for one company."""
    if not isinstance(body, dict):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid research input", "details": ["body must be a JSON object"]},
        )

    try:
        payload = await pipeline.run(coerce_request_body(body))
    except InputValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": str(e), "details": jsonable_encoder(e.errors)},
        )
    except Exception:
        logger.exception("Research pipeline failed")
        return JSONResponse(status_code=500, content={"error": "pipeline failed"})
    finally:
        await pipeline.close()

    return JSONResponse(content=payload.model_dump(mode="json", by_alias=True))
