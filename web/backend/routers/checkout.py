from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from music_storefront.core.config import Config
from music_storefront.domain.errors import UpstreamError
from music_storefront.domain.payments import (
    COMPLETED_STATUS,
    PENDING_STATUSES,
    CommerceClient,
    DownloadSigner,
)

from ..deps import get_commerce_client, get_config, get_download_signer
from ..schemas import (
    ChargeRequest,
    ChargeResponse,
    DownloadLink,
    ErrorResponse,
    PendingStatus,
    VerifyRequest,
)

router = APIRouter()


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def get_redirect_url(request: Request, config: Config) -> str:
    """Where the hosted checkout returns the buyer: configured, else <origin>/success."""
    if config.coinbase.success_url:
        return config.coinbase.success_url
    origin = request.headers.get("origin") or str(request.base_url).rstrip("/")
    return f"{origin.rstrip('/')}/success"


def missing_verification_settings(config: Config) -> List[str]:
    missing = [] if config.coinbase.api_key else ["COINBASE_COMMERCE_API_KEY"]
    return missing + config.storage.missing_settings()


@router.post("/create-coinbase-charge", response_model=ChargeResponse)
def create_coinbase_charge(
    body: ChargeRequest,
    request: Request,
    config: Config = Depends(get_config),
    client: Optional[CommerceClient] = Depends(get_commerce_client),
):
    if client is None:
        message = "Server configuration error: Missing COINBASE_COMMERCE_API_KEY environment variable."
        logger.error(message)
        return error_response(500, message)

    missing = body.missing_fields()
    if missing:
        logger.warning(f"Charge request missing fields: {', '.join(missing)}")
        return error_response(400, "Missing required parameters.")

    try:
        charge = client.create_charge(
            track_id=body.track_id,
            track_name=body.track_name,
            price=body.price,
            file_key=body.file_key,
            redirect_url=get_redirect_url(request, config),
            currency=config.coinbase.currency,
        )
    except UpstreamError as e:
        return error_response(500, str(e))

    if not charge.hosted_url or not charge.code:
        logger.error(f"Charge {charge.code!r} came back without a hosted URL")
        return error_response(500, "Failed to create Coinbase Commerce charge.")
    return ChargeResponse(hosted_url=charge.hosted_url, code=charge.code)


@router.post("/get-download-link")
def get_download_link(
    body: VerifyRequest,
    config: Config = Depends(get_config),
    client: Optional[CommerceClient] = Depends(get_commerce_client),
    signer: Optional[DownloadSigner] = Depends(get_download_signer),
):
    missing = missing_verification_settings(config)
    if missing or client is None or signer is None:
        message = f"Server configuration error. Missing environment variables: {', '.join(missing)}"
        logger.error(message)
        return error_response(500, message)

    if not body.charge_code:
        return error_response(400, "Charge Code is required.")

    try:
        charge = client.get_charge(body.charge_code)
    except UpstreamError as e:
        return error_response(500, str(e))

    status = charge.last_status
    logger.info(f"Charge {body.charge_code} status: {status}")

    if status == COMPLETED_STATUS:
        # Charge metadata is the only trusted record of what was bought
        file_key = charge.metadata.get("fileKey")
        if not file_key:
            return error_response(
                500, "Purchase verified, but could not determine which file to download."
            )
        try:
            url = signer.sign(file_key)
        except UpstreamError as e:
            return error_response(500, str(e))
        link = DownloadLink(url=url, track_name=charge.metadata.get("trackName"))
        return JSONResponse(status_code=200, content=link.model_dump(by_alias=True))

    if status in PENDING_STATUSES:
        return JSONResponse(status_code=202, content=PendingStatus().model_dump())

    return error_response(
        402, f"Payment status is {status}. Please complete payment or try again."
    )
