from gpu_lifetimes.models.request import ReconcileRequest
from gpu_lifetimes.models.response import ReconcileResponse

__all__ = ["ReconcileRequest", "ReconcileResponse"]
