"""
Certificate Routes

Endpoints for listing, claiming, downloading and verifying certificates.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from lms.api.deps import get_current_user
from lms.core.database import get_db
from lms.models.user import User
from lms.schemas.certificate import CertificateResponse, CertificateVerification
from lms.services import certificate_service


router = APIRouter(prefix="", tags=["Certificates"])


@router.get(
    "/certificates",
    response_model=List[CertificateResponse],
    summary="List my certificates",
)
async def list_certificates(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await certificate_service.list_user_certificates(current_user, db)


@router.get(
    "/certificates/course/{course_id}",
    response_model=CertificateResponse,
    summary="Certificate for a course",
)
async def get_course_certificate(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Get the current user's certificate for a course, with the course,
    for display or printing.
    """
    return await certificate_service.get_course_certificate(current_user, course_id, db)


@router.get(
    "/certificates/verify/{code}",
    response_model=CertificateVerification,
    summary="Verify certificate",
)
async def verify_certificate(
    code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CertificateVerification:
    """
    Verify a certificate by its code.

    Public endpoint for verification links/QR codes.
    """
    certificate = await certificate_service.verify_certificate(code, db)

    return CertificateVerification(
        valid=True,
        code=certificate.code,
        student_name=certificate.user.full_name,
        course_title=certificate.course.title,
        issued_at=certificate.issued_at,
    )


@router.get(
    "/certificates/{certificate_id}/pdf",
    summary="Download certificate PDF",
)
async def download_certificate(
    certificate_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> FileResponse:
    """
    Render (once) and download a certificate as PDF.

    Only the certificate holder and admins can download it.
    """
    certificate = await certificate_service.get_certificate_by_id(
        current_user, certificate_id, db
    )

    path = await run_in_threadpool(
        certificate_service.render_certificate_pdf,
        certificate,
        certificate.user.full_name,
        certificate.course.title,
    )

    return FileResponse(
        path=path,
        media_type="application/pdf",
        filename=f"Certificate-{certificate.code}.pdf",
    )


@router.post(
    "/courses/{course_id}/certificate",
    response_model=CertificateResponse,
    summary="Claim course certificate",
)
async def claim_certificate(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Ask for the certificate of a course explicitly.

    **Requirements:**
    - User must be enrolled
    - The course must have lessons
    - Completed lessons must exceed the certificate threshold

    Returns the existing certificate if one was already issued.
    """
    return await certificate_service.claim_certificate(current_user, course_id, db)
