from __future__ import annotations
from pathlib import Path
from typing import Optional, Dict, Any, List

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dotenv import load_dotenv
ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=ROOT_DIR / ".env", override=False)

from . import __version__
from .agents.coordinator import CoordinatorAgent
from .config import DEFAULT_LIMIT, MAX_LIMIT, MAX_RANDOM
from .errors import ErrorKind, SourceError
from .models import SearchOutcome, SearchQuery

SOURCE_PATTERN = "^(all|met|rijks|va)$"

app = FastAPI(title="Curator Agent API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Built on first use so importing the app never touches the network or config.
COORDINATOR: CoordinatorAgent | None = None


def _coordinator() -> CoordinatorAgent:
    global COORDINATOR
    if COORDINATOR is None:
        COORDINATOR = CoordinatorAgent.from_config()
    return COORDINATOR


# ---------- helpers & models ----------

STATUS_BY_KIND = {
    ErrorKind.INVALID_IDENTIFIER: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.MALFORMED: 502,
}

HINT_BY_KIND = {
    ErrorKind.TIMEOUT: "The museum took too long to answer. Try again or search a different source.",
    ErrorKind.RATE_LIMITED: "The museum is rate limiting requests. Wait before searching again.",
    ErrorKind.NOT_FOUND: "The requested artwork could not be found.",
    ErrorKind.INVALID_IDENTIFIER: "Artwork IDs look like 'met:12345', 'rijks:200107928' or 'va:O12345'.",
}


class SearchResponse(BaseModel):
    """Envelope for every artwork listing."""
    total: int
    query: Optional[str] = None
    source: str
    artworks: List[Dict[str, Any]] = Field(default_factory=list)
    errors: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


def _envelope(outcome: SearchOutcome, query: Optional[str], source: str) -> SearchResponse:
    body = outcome.to_dict()
    return SearchResponse(total=body["total"], query=query, source=source,
                          artworks=body["artworks"], errors=body["errors"])


@app.exception_handler(SourceError)
async def _source_error(request: Request, exc: SourceError) -> JSONResponse:
    """Turns the error taxonomy into status codes + a JSON body."""
    status = STATUS_BY_KIND.get(exc.kind, 502)
    body = {"error": exc.kind.value, "message": exc.message, **exc.to_dict()}
    hint = HINT_BY_KIND.get(exc.kind)
    if hint:
        body["hint"] = hint
    headers = {}
    if exc.retry_after is not None:
        headers["Retry-After"] = str(int(exc.retry_after + 0.999))
    return JSONResponse(status_code=status, content=body, headers=headers)


def _run_search(query: SearchQuery) -> SearchResponse:
    outcome = _coordinator().search(query)
    return _envelope(outcome, query.q, query.source)


# ---------- routes ----------

@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


@app.get("/artworks/search", response_model=SearchResponse)
def search_artworks(
    q: Optional[str] = None,
    source: str = Query("all", pattern=SOURCE_PATTERN),
    hasImages: bool = True,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    departmentId: Optional[int] = None,
    isHighlight: Optional[bool] = None,
    creator: Optional[str] = None,
    type: Optional[str] = None,
):
    """Search one museum or all of them."""
    return _run_search(SearchQuery(
        q=q, source=source, has_images=hasImages, limit=limit, department_id=departmentId,
        is_highlight=isHighlight, creator=creator, type=type,
    ))


@app.get("/artworks/search/title-artist", response_model=SearchResponse)
def search_title_artist(
    q: str = Query(..., min_length=1),
    searchType: str = Query("title", pattern="^(title|artist)$"),
    source: str = Query("all", pattern=SOURCE_PATTERN),
    hasImages: bool = True,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
):
    """Search restricted to titles or to artist names."""
    return _run_search(SearchQuery(
        q=q, source=source, has_images=hasImages, limit=limit,
        title_only=searchType == "title", artist_only=searchType == "artist",
    ))


@app.get("/artworks/random", response_model=SearchResponse)
def random_artworks(
    count: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_RANDOM),
    source: str = Query("all", pattern=SOURCE_PATTERN),
):
    outcome = _coordinator().random(count=count, source=source)
    return _envelope(outcome, None, source)


@app.get("/artworks/departments")
def departments():
    return _coordinator().departments()


@app.get("/artworks/{source}/search", response_model=SearchResponse)
def search_one_museum(
    source: str,
    q: Optional[str] = None,
    hasImages: bool = True,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    departmentId: Optional[int] = None,
    isHighlight: Optional[bool] = None,
    creator: Optional[str] = None,
    type: Optional[str] = None,
    searchType: Optional[str] = Query(None, pattern="^(title|artist)$"),
):
    """Museum-specific search; `searchType` restricts the text to titles or artists."""
    if source not in ("met", "rijks", "va"):
        return JSONResponse(status_code=404, content={"error": "not_found", "message": f"Unknown museum {source!r}"})
    return _run_search(SearchQuery(
        q=q, source=source, has_images=hasImages, limit=limit, department_id=departmentId,
        is_highlight=isHighlight, creator=creator, type=type,
        title_only=searchType == "title", artist_only=searchType == "artist",
    ))


@app.get("/artworks/{artwork_id:path}")
def get_artwork(artwork_id: str):
    """Single artwork by composite id ("met:436532", "rijks:200107928", "va:O18279")."""
    return _coordinator().get_by_id(artwork_id).to_dict()
