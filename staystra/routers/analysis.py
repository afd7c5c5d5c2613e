from fastapi import APIRouter, Depends, Request
from ..schemas import AnalyzeRequest, AnalysisResponse, AnalysisData
from ..services.analysis_service import AnalysisService
from ..core.security import require_api_key, rate_limit

router = APIRouter()

def service_dep(request: Request) -> AnalysisService:
    # Built once at startup (see dependencies.py); shared across requests.
    return request.app.state.deps.analysis

# v1 and v2 clients hit the same handler; the response always uses v2 field names.
@router.post("/v1/property/analyze", response_model=AnalysisResponse, response_model_exclude_unset=True)
@router.post("/v2/property/analyze", response_model=AnalysisResponse, response_model_exclude_unset=True)
async def post_analyze(
    body: AnalyzeRequest,
    _auth = Depends(require_api_key),     # API key guard
    _lim  = Depends(rate_limit),          # Rate limiting
    svc: AnalysisService = Depends(service_dep),
):
    # Always 200: the caller (WordPress proxy) branches on success, not status.
    result = await svc.analyze(
        body.address,
        body.bedrooms,
        body.bathrooms,
        body.occupancy,
        referrer=body.referrer,
        utm_source=body.utm_source,
        agent_id=str(body.agent_id) if body.agent_id is not None else None,
    )
    if not result.success:
        return AnalysisResponse(success=False, message=result.message)
    return AnalysisResponse(success=True, message=result.message, data=AnalysisData(**result.data))
