"""Flow routes: translate and deploy flows exported by the editor."""

import logging
from collections.abc import Iterator

from fastapi import APIRouter, Depends, Header, HTTPException

from src.config import Settings
from src.models.flow_api import DeploymentResponse, FlowRequest, TranslationResponse
from src.service.dispatch_service import DispatchService, tenant_headers
from src.translator import FlowTranslator, TranslationError, TranslationResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/flow", tags=["flow"])


def get_settings() -> Settings:
    return Settings.from_env()


def get_dispatch_service(settings: Settings = Depends(get_settings)) -> Iterator[DispatchService]:
    """One dispatch service (and HTTP client) per request."""
    with DispatchService(settings) as service:
        yield service


def _translate(request: FlowRequest, settings: Settings, service: str | None) -> TranslationResult:
    try:
        return FlowTranslator(settings).translate(request.flow, request.id, service)
    except TranslationError as e:
        logger.warning(f"Flow {request.id}: translation failed - {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/translate", response_model=TranslationResponse)
def translate_flow(
    request: FlowRequest,
    settings: Settings = Depends(get_settings),
    fiware_service: str | None = Header(default=None),
) -> TranslationResponse:
    """Translate a flow without contacting any external service."""
    result = _translate(request, settings, fiware_service)
    return TranslationResponse.from_result(result)


@router.post("", response_model=DeploymentResponse)
def deploy_flow(
    request: FlowRequest,
    settings: Settings = Depends(get_settings),
    dispatch: DispatchService = Depends(get_dispatch_service),
    fiware_service: str | None = Header(default=None),
    fiware_servicepath: str | None = Header(default=None),
) -> DeploymentResponse:
    """Translate a flow, then create its subscriptions and rules.

    Failures of individual broker or rule engine calls are reported in the
    response rather than raised.
    """
    result = _translate(request, settings, fiware_service)
    deployment = dispatch.deploy(result, tenant_headers(fiware_service, fiware_servicepath))
    if not deployment.ok:
        logger.warning(f"Flow {request.id}: deployed with {len(deployment.errors)} errors")
    return DeploymentResponse.from_result(deployment)
