import time

from fastapi import APIRouter, Response
from prometheus_client import Gauge, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

system_uptime_seconds = Gauge(
    'cbt_system_uptime_seconds',
    'System uptime in seconds'
)

start_time = time.time()


@router.get("/metrics", include_in_schema=False)
def get_metrics():
    """
    Prometheus scrape endpoint. Exam counters live in cbt.core.metrics.
    """
    system_uptime_seconds.set(time.time() - start_time)

    return Response(
        generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
