from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from citriage import __version__
from citriage.config import ServiceSettings
from citriage.signature.fingerprint import CiFailureSignature, SignatureVersion, build_signature
from citriage.triage.models import CiFailureEntry, CiRunObservation, ExecutionPlan, TriageContext
from citriage.triage.planner import plan

logger = logging.getLogger(__name__)

app = FastAPI(title="CI Triage Engine", version=__version__)

# Settings for the API runtime, read once per process.
_SETTINGS = ServiceSettings.from_env()


class SignatureRequest(BaseModel):
    """Request body for the /signature endpoint."""

    timed_out: bool = False
    failures: list[CiFailureEntry] = Field(default_factory=list)
    version: SignatureVersion | None = None


class PlanRequest(BaseModel):
    """Request body for the /plan endpoint."""

    observation: CiRunObservation
    attempt: int = Field(strict=True)
    max_attempts: int | None = Field(default=None, strict=True)
    has_session: bool = False
    signature: str | None = Field(
        default=None,
        description="Precomputed signature; computed from the observation when omitted",
    )
    prior_signature: str | None = None
    signature_version: SignatureVersion | None = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {
        "status": "ok",
        "service": "citriage",
        "version": __version__,
    }


@app.post("/signature")
async def signature(req: SignatureRequest) -> CiFailureSignature:
    """Compute the failure signature of a CI run."""
    observation = CiRunObservation(timed_out=req.timed_out, failures=req.failures)
    return build_signature(observation, req.version or _SETTINGS.signature_version)


@app.post("/plan")
async def plan_attempt(req: PlanRequest) -> ExecutionPlan:
    """Classify a failing run and return the versioned execution plan."""
    signature_version = req.signature_version or _SETTINGS.signature_version
    signature_value = req.signature
    if signature_value is None:
        signature_value = build_signature(req.observation, signature_version).signature

    try:
        context = TriageContext(
            attempt=req.attempt,
            max_attempts=req.max_attempts if req.max_attempts is not None else _SETTINGS.max_attempts,
            has_session=req.has_session,
            signature=signature_value,
            prior_signature=req.prior_signature,
            signature_version=int(signature_version),
        )
    except ValidationError as exc:
        logger.warning("PlanRejected errors=%d", exc.error_count())
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc

    return plan(req.observation, context)
