"""Account administration. ADMIN accounts only."""

from __future__ import annotations

from fastapi import APIRouter

from wpp_gateway.api.deps import AdminDep, PipelineDep
from wpp_gateway.api.responses import unwrap
from wpp_gateway.api.schemas import (
    AccountCreatedResponse,
    AccountCreateRequest,
    AccountResponse,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/accounts", status_code=201)
async def create_account(
    body: AccountCreateRequest, admin: AdminDep, pipeline: PipelineDep
) -> AccountCreatedResponse:
    """Create an account and return its API key.

    The raw key is returned only in this response; only its digest is stored.
    """
    issued = unwrap(
        await pipeline.create_account(
            admin,
            name=body.name,
            daily_limit=body.daily_limit,
            source_kind=body.source_kind,
        )
    )
    return AccountCreatedResponse.from_domain(issued.account, issued.api_key)


@router.get("/accounts")
async def list_accounts(
    admin: AdminDep, pipeline: PipelineDep
) -> list[AccountResponse]:
    accounts = unwrap(await pipeline.list_accounts(admin))
    return [AccountResponse.from_usage(item) for item in accounts]
