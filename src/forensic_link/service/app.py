from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from forensic_link import __version__
from forensic_link.errors import ForensicLinkError, InvalidArgument
from forensic_link.graph.assembler import GraphAssembler
from forensic_link.graph.links import Link
from forensic_link.graph.nodes import NeighborhoodGraph
from forensic_link.graph.provider import LinkDataProvider, load_snapshot
from forensic_link.graph.query_engine import LinkFilter, LinkQueryEngine, TypeSummary
from forensic_link.settings import settings
from forensic_link.styles import style_for

logger = logging.getLogger(__name__)

TOP_LINKS_MAX = 50


def build_provider(snapshot_path: str | None = None, api_url: str | None = None) -> LinkDataProvider:
    """Snapshot file when one is configured, otherwise the REST system of record."""
    path = snapshot_path or settings.snapshot_path
    if path:
        return load_snapshot(path)
    from forensic_link.client.api_provider import ForensicApiProvider

    return ForensicApiProvider(api_url or settings.api_url)


def link_out(link: Link) -> dict[str, Any]:
    out = link.model_dump(mode="json")
    out["tier"] = link.tier.value
    return out


def summary_out(s: TypeSummary) -> dict[str, Any]:
    # Averages are rounded here, never in the engine.
    return {
        "link_type": s.link_type.value,
        "count": s.count,
        "avg_strength": round(s.avg_strength, 3),
        "verified_count": s.verified_count,
        "tiers": {tier.value: n for tier, n in s.tiers.items()},
    }


def graph_out(graph: NeighborhoodGraph) -> dict[str, Any]:
    nodes = []
    for node in graph.nodes:
        style = style_for(node)
        nodes.append({**node.model_dump(mode="json"), "icon": style.icon, "color": style.color})
    return {
        "focal": graph.focal,
        "depth": graph.depth,
        "nodes": nodes,
        "edges": [e.model_dump(mode="json") for e in graph.edges],
        "stats": graph.stats(),
    }


def build_router(engine: LinkQueryEngine, assembler: GraphAssembler) -> APIRouter:
    r = APIRouter(prefix="/v1")

    @r.get("/links", tags=["links"])
    def list_links(
        page: int = 1,
        limit: int = settings.default_page_size,
        link_type: str | None = None,
        min_strength: str | None = None,
        province: str | None = None,
    ):
        result = engine.list_links(
            LinkFilter.from_params(link_type, min_strength, province), page=page, page_size=limit
        )
        return {
            "data": [link_out(link) for link in result.items],
            "pagination": {
                "page": result.page,
                "limit": result.page_size,
                "total": result.total_count,
                "totalPages": result.total_pages,
            },
        }

    @r.get("/links/types", tags=["links"])
    def link_types():
        return {"data": [summary_out(s) for s in engine.summarize_by_type()]}

    @r.get("/links/top", tags=["links"])
    def top_links(limit: int = 10):
        if limit > TOP_LINKS_MAX:
            raise InvalidArgument(f"limit must be <= {TOP_LINKS_MAX}, got {limit}")
        return {"data": [link_out(link) for link in engine.top_links(limit)]}

    @r.get("/links/{link_id}", tags=["links"])
    def get_link(link_id: str):
        return {"data": link_out(engine.get_link(link_id))}

    @r.get("/graph/case/{case_id}", tags=["graph"])
    def case_graph(case_id: str, depth: int = 1):
        return {"data": graph_out(assembler.build_neighborhood("case", case_id, depth))}

    @r.get("/graph/person/{person_id}", tags=["graph"])
    def person_graph(person_id: str, depth: int = 1):
        return {"data": graph_out(assembler.build_neighborhood("person", person_id, depth))}

    @r.get("/graph/network", tags=["graph"])
    def network_graph(limit: int = settings.network_limit, min_strength: float = settings.network_min_strength):
        return {"data": graph_out(assembler.build_network(min_strength=min_strength, limit=limit))}

    return r


def create_app(provider: LinkDataProvider) -> FastAPI:
    app = FastAPI(title="Forensic Link", version=__version__)

    engine = LinkQueryEngine(provider)
    assembler = GraphAssembler(provider, query_engine=engine)

    @app.exception_handler(ForensicLinkError)
    async def forensic_error(_request: Request, exc: ForensicLinkError):
        if exc.status_code >= 500:
            logger.warning("request failed: %s", exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"message": str(exc), "status": exc.status_code}},
        )

    @app.get("/health")
    async def health():
        return {"ok": True, "host": os.uname().nodename}

    app.include_router(build_router(engine, assembler))
    return app
