"""Flow deployment service."""

from src.service.dispatch_service import DeploymentResult, DispatchService, tenant_headers

__all__ = ["DispatchService", "DeploymentResult", "tenant_headers"]
