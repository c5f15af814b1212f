"""FastAPI application factory for the loan schedule and repayment allocation API"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from repayment_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from repayment_gateway.api.v1 import loans, repayments
from repayment_gateway.infrastructure.observability.logging import setup_logging
from repayment_gateway.config import settings

# JSON logs on stdout before any router module logs
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Build the loan and repayment API behind request tracing middleware"""
    app = FastAPI(
        title="Repayment Gateway",
        description="Loan schedule and repayment allocation service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Request ID is assigned first so the latency middleware runs inside it
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Liveness for the load balancer
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Loan, repayment and HTTP latency series
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Loan origination under /v1/loans, repayments nested beneath each loan
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(repayments.router, prefix="/v1", tags=["repayments"])

    return app


app = create_app()
