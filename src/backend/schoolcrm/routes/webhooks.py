import json
from functools import partial
from typing import Any, Dict, Tuple
from urllib.parse import parse_qsl

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from schoolcrm.ingestion.common import WebhookError
from schoolcrm.ingestion.leads import ingest_lead, payload_from_mapping
from schoolcrm.ingestion.students import ingest_student, payload_from_params
from schoolcrm.utils.logger import get_logger
from schoolcrm.utils.mailer import send_lead_notification
from schoolcrm.utils.payload import lowercase_params

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

WEBHOOK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _json(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


def _preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


def _first_values(query_params) -> Dict[str, str]:
    """Single value per key; the first occurrence of a repeated key wins."""
    return {key: query_params.getlist(key)[0] for key in query_params.keys()}


async def _read_json_object(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    body = json.loads(raw or b"{}")
    if not isinstance(body, dict):
        raise ValueError("JSON body must be an object")
    return body


@router.api_route("/leads", methods=WEBHOOK_METHODS, summary="Ingest an external lead")
async def lead_webhook(request: Request, background_tasks: BackgroundTasks):
    """Accept a lead from GET query parameters or a POST JSON body."""
    if request.method == "OPTIONS":
        return _preflight()

    try:
        if request.method == "GET":
            payload = payload_from_mapping(_first_values(request.query_params), from_body=False)
        elif request.method == "POST":
            try:
                body = await _read_json_object(request)
            except ValueError as exc:
                return _json(400, {"error": "Invalid JSON body", "details": str(exc)})
            payload = payload_from_mapping(body, from_body=True)
        else:
            return _json(405, {"error": "Method not allowed"})

        notify = partial(background_tasks.add_task, send_lead_notification)
        status_code, body = await run_in_threadpool(ingest_lead, payload, notify)
        return _json(status_code, body)
    except WebhookError as exc:
        return _json(exc.status_code, exc.body)
    except Exception as exc:
        logger.exception("Lead webhook error")
        return _json(500, {"error": "Internal server error", "details": str(exc)})


async def _student_params(request: Request) -> Tuple[Dict[str, str], bool]:
    """Collect lower-cased params; the flag is False when the body is unreadable."""
    if request.method == "GET":
        return lowercase_params(request.query_params.items()), True
    if request.method != "POST":
        return {}, True

    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = await _read_json_object(request)
        except ValueError:
            return {}, False
        return lowercase_params(body.items()), True
    if "application/x-www-form-urlencoded" in content_type:
        raw = (await request.body()).decode("utf-8", errors="replace")
        return lowercase_params(parse_qsl(raw, keep_blank_values=True)), True
    return {}, True


@router.api_route("/students", methods=WEBHOOK_METHODS, summary="Ingest an external enrollment")
async def student_webhook(request: Request, background_tasks: BackgroundTasks):
    """Create (or reuse) a lead by phone and enroll it into the matching course."""
    if request.method == "OPTIONS":
        return _preflight()

    try:
        params, readable = await _student_params(request)
        if not readable:
            return _json(400, {"success": False, "error": "JSON inválido"})
        logger.info("Received params: %s", params)
        payload = payload_from_params(params)
        notify = partial(background_tasks.add_task, send_lead_notification)
        status_code, body = await run_in_threadpool(ingest_student, payload, notify)
        return _json(status_code, body)
    except WebhookError as exc:
        return _json(exc.status_code, exc.body)
    except Exception:
        logger.exception("Student webhook error")
        return _json(500, {"success": False, "error": "Erro interno do servidor"})
