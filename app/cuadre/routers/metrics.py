from fastapi import APIRouter, Response

from app.cuadre.core.metrics import metrics

router = APIRouter()


@router.get("/cuadre/ops/metrics", include_in_schema=False)
def get_metrics() -> Response:
    snapshot = metrics.render()
    return Response(content=snapshot.content, media_type=snapshot.content_type)
