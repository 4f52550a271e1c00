"""
api/routes/allowlist.py
-----------------------
Admin allowlist management (admin only).

GET    /settings/admin-allowed-emails        - List entries
POST   /settings/admin-allowed-emails        - Allow an email
DELETE /settings/admin-allowed-emails/{id}   - Remove an entry

The first entry of an organisation is created out of band with
bootstrap_admin.py.
"""

from fastapi import APIRouter, status

from offerdesk.dependencies import AdminPrincipal, DbSession
from offerdesk.schemas.allowlist import AllowedEmailCreate, AllowedEmailList, AllowedEmailRead
from offerdesk.services.allowlist_service import AllowlistService

router = APIRouter(prefix="/settings/admin-allowed-emails", tags=["Admin allowlist"])


@router.get("", response_model=AllowedEmailList, summary="Admin: list allowed emails")
async def list_allowed_emails(db: DbSession, principal: AdminPrincipal) -> AllowedEmailList:
    entries = await AllowlistService.list_entries(db, principal.org_id)
    return AllowedEmailList(items=[AllowedEmailRead.model_validate(e) for e in entries])


@router.post(
    "",
    response_model=AllowedEmailRead,
    status_code=status.HTTP_201_CREATED,
    summary="Admin: allow an email to register as admin",
)
async def add_allowed_email(
    body: AllowedEmailCreate,
    db: DbSession,
    principal: AdminPrincipal,
) -> AllowedEmailRead:
    entry = await AllowlistService.add_entry(
        db, principal.org_id, body.email, created_by=principal.email or principal.user_id
    )
    return AllowedEmailRead.model_validate(entry)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Admin: remove an allowed email",
)
async def delete_allowed_email(
    entry_id: str,
    db: DbSession,
    principal: AdminPrincipal,
) -> None:
    await AllowlistService.delete_entry(db, principal.org_id, entry_id)
