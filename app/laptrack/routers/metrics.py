from fastapi import APIRouter, Response

from app.laptrack.core.metrics import metrics

router = APIRouter(tags=["ops"])


@router.get("/laptrack/ops/metrics", include_in_schema=False)
def get_metrics():
    """Prometheus scrape endpoint; mounted only when METRICS_ENABLED is set."""
    snapshot = metrics.render()
    return Response(
        content=snapshot.content,
        media_type=snapshot.content_type,
        headers={"Cache-Control": "no-store"},
    )
