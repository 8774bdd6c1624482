"""Account mapping router.

Runs executive discovery for a target company and returns the account map
(company snapshot, org tree, stakeholder roles, gaps and citations).
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.models import AccountMap, AccountMapRequest, PlannedQueryResponse
from app.services.account_mapping_service import (
    AccountMappingService,
    get_account_mapping_service,
)
from app.services.openrouter_service import get_openrouter_service
from app.services.web_search_service import get_web_search_service

logger = logging.getLogger(__name__)


def _sanitize_for_log(value: str, max_length: int = 100) -> str:
    """Sanitize a string for safe logging to prevent log injection."""
    # Remove newlines, carriage returns, and other control characters
    sanitized = "".join(c if c.isprintable() and c not in "\n\r\t" else " " for c in value)
    # Truncate to max length
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."
    return sanitized


router = APIRouter()


@router.post(
    "/account-map",
    response_model=AccountMap,
    status_code=status.HTTP_200_OK,
    summary="Map an account",
    description="Discover executives of a company and build its account map.",
)
async def create_account_map(
    request: AccountMapRequest,
    service: Annotated[AccountMappingService, Depends(get_account_mapping_service)],
) -> AccountMap:
    """Build the account map for a company.

    Discovery failures never fail the request; they are listed in ``gaps``.

    Args:
        request: Company name, optional domain and verification flag.
        service: Account mapping service.

    Returns:
        The assembled AccountMap.

    Raises:
        HTTPException: If the company name is blank.
    """
    company_name = request.company_name.strip()

    if not company_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Company name cannot be empty",
        )

    logger.info("Account map requested for: %s", _sanitize_for_log(company_name))
    account_map = await service.map_account(
        company_name,
        company_domain=request.company_domain,
        verify=request.verify,
    )
    logger.info(
        f"Returning account map with {len(account_map.org_tree)} people "
        f"and {len(account_map.gaps)} gaps"
    )
    return account_map


@router.get(
    "/account-map/plan",
    response_model=list[PlannedQueryResponse],
    status_code=status.HTTP_200_OK,
    summary="Preview the query plan",
    description="List the searches and fetches an account-mapping run would perform.",
)
async def get_account_map_plan(
    service: Annotated[AccountMappingService, Depends(get_account_mapping_service)],
    company_name: Annotated[str, Query(min_length=1, max_length=200)],
    company_domain: Annotated[str | None, Query(max_length=253)] = None,
) -> list[PlannedQueryResponse]:
    """Return the planned query battery for a company."""
    if not company_name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Company name cannot be empty",
        )

    return [
        PlannedQueryResponse(
            query=planned.query,
            target_sources=list(planned.target_sources),
            kind=planned.kind,
            channel=planned.channel,
        )
        for planned in service.plan(company_name.strip(), company_domain)
    ]


@router.get(
    "/account-map/status",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Get discovery adapter status",
    description="Check which search and extraction providers are configured.",
)
async def get_account_map_status() -> dict:
    """Get the current status of the discovery adapters."""
    search_service = get_web_search_service()

    return {
        "search_configured": search_service.is_configured,
        "search_provider": search_service.provider,
        "llm_extraction": get_openrouter_service().is_configured,
    }
