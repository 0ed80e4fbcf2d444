from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from queuedesk.metrics import PrometheusExporter, metrics_registry

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=PlainTextResponse, summary="Prometheus scrape endpoint")
async def metrics(request: Request) -> PlainTextResponse:
    service = getattr(request.app.state, "queue_service", None)
    registry = service.metrics if service is not None else metrics_registry
    exporter = PrometheusExporter(registry)
    return PlainTextResponse(exporter.export(), media_type=exporter.content_type)
