"""
Attraction verification routes.

Domain errors (VerificationError subclasses) are not caught here; the
application-level handler turns them into {"error": {"code", "message"}}
responses with the status each error declares.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from wandr.auth.verify import auth_dependency
from wandr.features.verification.api.schemas import (
    ConfirmRequest,
    ConfirmResponse,
    ErrorResponse,
    ScanStatusResponse,
    VerifyRequest,
    VerifyResponse,
)
from wandr.features.verification.services.workflow import VerificationWorkflow

router = APIRouter(prefix="/api/v1/verification", tags=["verification"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid image or search radius"},
    429: {"model": ErrorResponse, "description": "Daily scan limit reached"},
    502: {"model": ErrorResponse, "description": "AI service unavailable"},
    503: {"model": ErrorResponse, "description": "AI service busy or catalog unavailable"},
    504: {"model": ErrorResponse, "description": "AI service timed out"},
}


def get_verification_workflow(request: Request) -> VerificationWorkflow:
    workflow = getattr(request.app.state, "verification_workflow", None)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Verification service not initialized",
        )
    return workflow


def _user_id(claims: dict) -> str:
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id


@router.post(
    "/verify",
    response_model=VerifyResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def verify_attraction(
    body: VerifyRequest,
    response: Response,
    claims: dict = Depends(auth_dependency),
    workflow: VerificationWorkflow = Depends(get_verification_workflow),
):
    """Verify a visit from a photo. 201 when a visit was recorded."""
    user_id = _user_id(claims)

    outcome = await workflow.verify(
        user_id,
        body.image,
        latitude=body.latitude,
        longitude=body.longitude,
        radius_meters=body.radius_meters,
    )

    if outcome.visit_created:
        response.status_code = status.HTTP_201_CREATED
    return VerifyResponse.from_outcome(outcome)


@router.post(
    "/confirm",
    response_model=ConfirmResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse, "description": "Attraction not found"}},
)
async def confirm_suggestion(
    body: ConfirmRequest,
    response: Response,
    claims: dict = Depends(auth_dependency),
    workflow: VerificationWorkflow = Depends(get_verification_workflow),
):
    """Record a visit for a suggestion the user accepted."""
    user_id = _user_id(claims)

    outcome = await workflow.confirm_suggestion(user_id, body.attraction_id)

    if outcome.visit is not None:
        response.status_code = status.HTTP_201_CREATED
    return ConfirmResponse.from_outcome(outcome)


@router.get("/status", response_model=ScanStatusResponse)
async def get_scan_status(
    claims: dict = Depends(auth_dependency),
    workflow: VerificationWorkflow = Depends(get_verification_workflow),
):
    """Today's scan quota for the authenticated user."""
    user_id = _user_id(claims)
    scan_status = await workflow.get_status(user_id)
    return ScanStatusResponse.from_status(scan_status)
