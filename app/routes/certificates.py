"""
Certificate Routes
Public verification and download by certificate code
"""

from fastapi import APIRouter
from fastapi.responses import RedirectResponse
from app.services.certificate_service import certificate_service
from app.schemas.certificate import CertificateResponse

router = APIRouter()


@router.get("/{code}", response_model=CertificateResponse)
async def verify_certificate(code: str):
    """Look up a certificate by the code printed on it"""
    return await certificate_service.get_certificate_by_code(code)


@router.get("/{code}/download")
async def download_certificate(code: str):
    """
    Redirect to the certificate PDF

    The PDF is rendered and stored the first time it is requested.
    """
    url = await certificate_service.get_certificate_pdf_url(code)
    return RedirectResponse(url=url, status_code=302)
