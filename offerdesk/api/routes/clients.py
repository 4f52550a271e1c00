"""
api/routes/clients.py
---------------------
Client endpoints.

GET    /clients          - List clients of the organisation
POST   /clients          - Create a client (admin)
POST   /clients/import   - Bulk create from parsed CSV rows (admin)
GET    /clients/{id}     - Fetch one client
PATCH  /clients/{id}     - Update a client (admin)
DELETE /clients/{id}     - Delete a client without offers (admin)
"""

from fastapi import APIRouter, Query, status

from offerdesk.core.config import settings
from offerdesk.dependencies import AdminPrincipal, DbSession, SessionPrincipal
from offerdesk.schemas.client import (
    ClientCreate,
    ClientImportRequest,
    ClientImportResult,
    ClientRead,
    ClientUpdate,
)
from offerdesk.services.client_service import ClientService

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.get("", response_model=list[ClientRead], summary="List clients")
async def list_clients(
    db: DbSession,
    principal: SessionPrincipal,
    skip: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=100, ge=1, le=500, description="Results per page"),
) -> list[ClientRead]:
    clients = await ClientService.list_for_org(db, principal.org_id, skip=skip, limit=limit)
    return [ClientRead.model_validate(c) for c in clients]


@router.post(
    "",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
    summary="Admin: create a client",
)
async def create_client(
    body: ClientCreate,
    db: DbSession,
    principal: AdminPrincipal,
) -> ClientRead:
    client = await ClientService.create(db, principal.org_id, body.model_dump())
    return ClientRead.model_validate(client)


@router.post(
    "/import",
    response_model=ClientImportResult,
    summary="Admin: import clients from parsed CSV rows",
)
async def import_clients(
    body: ClientImportRequest,
    db: DbSession,
    principal: AdminPrincipal,
) -> ClientImportResult:
    """
    Each row is validated and created on its own; invalid rows are listed
    in `errors` with their zero-based index. Rows carrying an organisation
    key are rejected like any other invalid row.
    """
    return await ClientService.import_rows(
        db, principal.org_id, body.rows, chunk_size=settings.IMPORT_CHUNK_SIZE
    )


@router.get("/{client_id}", response_model=ClientRead, summary="Get a client")
async def get_client(
    client_id: str,
    db: DbSession,
    principal: SessionPrincipal,
) -> ClientRead:
    client = await ClientService.get_by_id(db, client_id, principal.org_id)
    return ClientRead.model_validate(client)


@router.patch("/{client_id}", response_model=ClientRead, summary="Admin: update a client")
async def update_client(
    client_id: str,
    body: ClientUpdate,
    db: DbSession,
    principal: AdminPrincipal,
) -> ClientRead:
    client = await ClientService.update(
        db, client_id, principal.org_id, body.model_dump(exclude_none=True)
    )
    return ClientRead.model_validate(client)


@router.delete(
    "/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Admin: delete a client",
)
async def delete_client(
    client_id: str,
    db: DbSession,
    principal: AdminPrincipal,
) -> None:
    await ClientService.delete(db, client_id, principal.org_id)
