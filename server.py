"""FastAPI backend for PolicyMatch.

Wraps the policy_match/ package as REST API endpoints under /api/v1.
"""

import logging
from dataclasses import asdict
from functools import lru_cache

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from policy_match.config import load_settings
from policy_match.errors import NotFoundError, PolicyMatchError
from policy_match.logs import setup_logging
from policy_match.models import Document, Policy
from policy_match.pipeline import PolicyService

setup_logging()
log = logging.getLogger("policy_match.server")


@lru_cache(maxsize=1)
def get_service() -> PolicyService:
    return PolicyService.from_settings(load_settings())


def _cors_origin() -> str:
    try:
        return load_settings().origin
    except PolicyMatchError:
        return "http://localhost"


app = FastAPI(title="PolicyMatch API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_cors_origin()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def respond(data=None, message: str = "", status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": data, "message": message})


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def _on_invalid_request(request: Request, exc: RequestValidationError):
    return respond(message="request is invalid", status_code=400)


@app.exception_handler(NotFoundError)
async def _on_not_found(request: Request, exc: NotFoundError):
    return respond(message=str(exc), status_code=404)


@app.exception_handler(PolicyMatchError)
async def _on_policy_match_error(request: Request, exc: PolicyMatchError):
    log.error("error: %s", exc)
    return respond(message=str(exc), status_code=500)


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def _policy_out(policy: Policy) -> dict:
    return {
        "policy_id": policy.id,
        "title": policy.title,
        "category": policy.category,
        "extension": policy.extension,
        "rules": [{"rule_id": r.rule_id, "rule_text": r.rule_text} for r in policy.rules],
        "uploaded_at": policy.created_at[:10],
    }


def _document_out(document: Document) -> dict:
    out = asdict(document)
    out["document_id"] = out.pop("id")
    return out


# ---------------------------------------------------------------------------
# GET /api/v1/health
# ---------------------------------------------------------------------------
@app.get("/api/v1/health")
def api_health():
    return respond("OK", "system is up and running")


# ---------------------------------------------------------------------------
# POST /api/v1/policy: upload a policy and extract its rules
# ---------------------------------------------------------------------------
@app.post("/api/v1/policy")
def api_upload_policy(
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1),
    category: str = Form(..., min_length=1),
    service: PolicyService = Depends(get_service),
):
    policy = service.upload_policy(file.file, file.filename or "", title, category)
    return respond(_policy_out(policy), "file uploaded successfully")


# ---------------------------------------------------------------------------
# POST /api/v1/document: check a document against a policy
# ---------------------------------------------------------------------------
@app.post("/api/v1/document")
def api_check_document(
    file: UploadFile = File(...),
    policy_id: str = Form(..., min_length=1),
    service: PolicyService = Depends(get_service),
):
    verdict = service.check_document_compliance(file.file, file.filename or "", policy_id)
    return respond(verdict.to_dict(), "file uploaded successfully")


# ---------------------------------------------------------------------------
# GET /api/v1/policies, /api/v1/documents: paginated listings
# ---------------------------------------------------------------------------
@app.get("/api/v1/policies")
def api_get_policies(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    service: PolicyService = Depends(get_service),
):
    result = service.get_policies(page, page_size)
    return respond({
        "policies": [_policy_out(p) for p in result.items],
        "page": result.page,
        "page_size": result.page_size,
        "total": result.total,
    }, "policies fetched successfully")


@app.get("/api/v1/documents")
def api_get_documents(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    service: PolicyService = Depends(get_service),
):
    result = service.get_documents(page, page_size)
    return respond({
        "documents": [_document_out(d) for d in result.items],
        "page": result.page,
        "page_size": result.page_size,
        "total": result.total,
    }, "documents fetched successfully")


# ---------------------------------------------------------------------------
# DELETE endpoints
# ---------------------------------------------------------------------------
@app.delete("/api/v1/document/{document_id}")
def api_delete_document(document_id: str, service: PolicyService = Depends(get_service)):
    service.delete_document(document_id)
    return respond(message="document deleted successfully")


@app.delete("/api/v1/policy/{policy_id}")
def api_delete_policy(policy_id: str, service: PolicyService = Depends(get_service)):
    service.delete_policy(policy_id)
    return respond(message="policy deleted successfully")


@app.delete("/api/v1/policy/{policy_id}/rule/{rule_id}")
def api_delete_rule(policy_id: str, rule_id: str, service: PolicyService = Depends(get_service)):
    service.delete_rule(policy_id, rule_id)
    return respond(message="rule deleted successfully")
