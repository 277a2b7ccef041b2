"""kgpath HTTP API."""
from contextlib import contextmanager
import datetime
import logging
import traceback
from typing import Any, Optional
import uuid

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.cors import CORSMiddleware

from .ars import ARSClient, ARSRequestError
from .enrich import enrich_rows
from .flatten import MalformedResponse, flatten
from .logger import QueryLogger
from .models import FlattenedRow
from .paths import analyze_paths, analyze_subject
from .pubmed import RATE_LIMITER, PubMedClient
from .rows import group_phrases, rows_for_subject, subject_stats, unique_subjects
from .utils import setup_logging

setup_logging()
LOGGER = logging.getLogger(__name__)

APP = FastAPI(
    title="kgpath",
    description="Flatten ARS knowledge graph responses and analyze paths between result nodes.",
    version="1.0.0",
)

CORS_OPTIONS = dict(
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

APP.add_middleware(
    CORSMiddleware,
    **CORS_OPTIONS,
)


async def catch_exceptions_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        return JSONResponse(
            {
                "logs": [
                    {
                        "message": f"Exception in kgpath: {repr(e)}",
                        "level": "ERROR",
                        "timestamp": datetime.datetime.now().isoformat(),
                        "stack": traceback.format_exc(),
                    }
                ],
            },
            status_code=500,
        )


APP.middleware("http")(catch_exceptions_middleware)


@contextmanager
def request_logger(log_level: str = "INFO"):
    """Logger whose records are returned with the response."""
    qid = str(uuid.uuid4())[:8]
    query_logger = QueryLogger(f"kgpath.{qid}", log_level)
    try:
        yield query_logger
    finally:
        query_logger.close()


class FlattenRequest(BaseModel):
    response: Any
    pk: Optional[str] = None
    environment: Optional[str] = None
    log_level: str = "INFO"


class RowsRequest(BaseModel):
    rows: list[FlattenedRow]
    log_level: str = "INFO"


class PathsRequest(RowsRequest):
    subject_name: str
    object_name: Optional[str] = None
    max_paths: Optional[int] = None


class EnrichRequest(RowsRequest):
    limit: Optional[int] = None


FLATTEN_EXAMPLE = {
    "pk": "example",
    "environment": "prod",
    "response": {
        "message": {
            "results": [
                {
                    "node_bindings": {"sn": [{"id": "CHEBI:1"}], "on": [{"id": "MONDO:1"}]},
                    "analyses": [{"edge_bindings": {"t_edge": [{"id": "e0"}]}}],
                }
            ],
            "knowledge_graph": {
                "nodes": {
                    "CHEBI:1": {"name": "imatinib"},
                    "MONDO:1": {"name": "leukemia"},
                },
                "edges": {
                    "e0": {
                        "subject": "CHEBI:1",
                        "object": "MONDO:1",
                        "predicate": "biolink:treats",
                    }
                },
            },
        }
    },
}


@APP.post("/flatten")
async def flatten_response(
    request: FlattenRequest = Body(..., examples=[FLATTEN_EXAMPLE]),
) -> dict:
    """Flatten a knowledge graph response into rows."""
    with request_logger(request.log_level) as query_logger:
        try:
            result = flatten(
                request.response,
                request.pk,
                request.environment,
                logger=query_logger.logger,
            )
        except MalformedResponse as err:
            raise HTTPException(400, str(err))
        return {
            **result.model_dump(exclude_none=True),
            "logs": query_logger.contents(),
        }


@APP.get("/ars/{pk}")
async def flatten_ars_message(
    pk: str,
    environment: Optional[str] = None,
    log_level: str = "INFO",
) -> dict:
    """Fetch a message from the ARS and flatten it."""
    with request_logger(log_level) as query_logger:
        client = ARSClient(environment, logger=query_logger.logger)
        try:
            response = await client.fetch_message(pk)
        except ARSRequestError as err:
            raise HTTPException(502, str(err))
        try:
            result = flatten(response, pk, client.environment, logger=query_logger.logger)
        except MalformedResponse as err:
            raise HTTPException(502, f"ARS returned a malformed message: {err}")
        return {
            **result.model_dump(exclude_none=True),
            "logs": query_logger.contents(),
        }


@APP.post("/subjects")
async def list_subjects(request: RowsRequest) -> dict:
    """Distinct result subjects with row and publication counts."""
    return {
        "subjects": [
            {"name": subject, **subject_stats(request.rows, subject)}
            for subject in unique_subjects(request.rows)
        ]
    }


@APP.post("/phrases")
async def phrases(request: RowsRequest) -> dict:
    """Rows grouped by phrase."""
    return {
        "phrases": [group.model_dump() for group in group_phrases(request.rows)],
    }


@APP.post("/paths")
async def paths(request: PathsRequest) -> dict:
    """Paths between a result subject and object."""
    with request_logger(request.log_level) as query_logger:
        if request.object_name is None:
            analysis = analyze_subject(
                request.rows,
                request.subject_name,
                request.max_paths,
                query_logger.logger,
            )
        else:
            analysis = analyze_paths(
                rows_for_subject(request.rows, request.subject_name),
                request.subject_name,
                request.object_name,
                request.max_paths,
                query_logger.logger,
            )
        return {
            **analysis.model_dump(by_alias=True),
            "logs": query_logger.contents(),
        }


@APP.post("/enrich")
async def enrich(request: EnrichRequest) -> dict:
    """Attach PubMed abstracts to rows."""
    with request_logger(request.log_level) as query_logger:
        client = PubMedClient(query_logger.logger, rate_limiter=RATE_LIMITER)
        rows = await enrich_rows(
            request.rows, client, limit=request.limit, logger=query_logger.logger
        )
        return {
            "rows": [row.model_dump(exclude_none=True) for row in rows],
            "logs": query_logger.contents(),
        }
