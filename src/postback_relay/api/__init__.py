"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /postback - Inbound conversion postbacks (also served at /)
- /metrics - Prometheus metrics
- /healthz - Liveness check
"""
from .healthz import router as healthz_router
from .metrics import router as metrics_router
from .postback import router as postback_router

__all__ = ["healthz_router", "metrics_router", "postback_router"]
