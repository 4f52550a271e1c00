"""
api/routes/templates.py
-----------------------
Offer template endpoints. Slugs are unique per organisation (409 on conflict).

GET    /templates                  - List templates
POST   /templates                  - Create (admin)
GET    /templates/slug/{slug}      - Fetch by slug
GET    /templates/{id}             - Fetch by id
PATCH  /templates/{id}             - Update (admin)
POST   /templates/{id}/duplicate   - Copy with a fresh unique slug (admin)
DELETE /templates/{id}             - Delete; offers keep their content (admin)
"""

from fastapi import APIRouter, status

from offerdesk.core.errors import NotFound
from offerdesk.dependencies import AdminPrincipal, DbSession, SessionPrincipal
from offerdesk.schemas.template import TemplateCreate, TemplateRead, TemplateUpdate
from offerdesk.services.template_service import TemplateService

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", response_model=list[TemplateRead], summary="List templates")
async def list_templates(db: DbSession, principal: SessionPrincipal) -> list[TemplateRead]:
    templates = await TemplateService.list_for_org(db, principal.org_id)
    return [TemplateRead.model_validate(t) for t in templates]


@router.post(
    "",
    response_model=TemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Admin: create a template",
)
async def create_template(
    body: TemplateCreate,
    db: DbSession,
    principal: AdminPrincipal,
) -> TemplateRead:
    template = await TemplateService.create(db, principal.org_id, body.model_dump())
    return TemplateRead.model_validate(template)


@router.get("/slug/{slug}", response_model=TemplateRead, summary="Get a template by slug")
async def get_template_by_slug(
    slug: str,
    db: DbSession,
    principal: SessionPrincipal,
) -> TemplateRead:
    template = await TemplateService.get_by_slug(db, slug, principal.org_id)
    if template is None:
        raise NotFound.for_entity("Template")
    return TemplateRead.model_validate(template)


@router.get("/{template_id}", response_model=TemplateRead, summary="Get a template")
async def get_template(
    template_id: str,
    db: DbSession,
    principal: SessionPrincipal,
) -> TemplateRead:
    template = await TemplateService.get_by_id(db, template_id, principal.org_id)
    return TemplateRead.model_validate(template)


@router.patch("/{template_id}", response_model=TemplateRead, summary="Admin: update a template")
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    db: DbSession,
    principal: AdminPrincipal,
) -> TemplateRead:
    template = await TemplateService.update(
        db, template_id, principal.org_id, body.model_dump(exclude_none=True)
    )
    return TemplateRead.model_validate(template)


@router.post(
    "/{template_id}/duplicate",
    response_model=TemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Admin: duplicate a template",
)
async def duplicate_template(
    template_id: str,
    db: DbSession,
    principal: AdminPrincipal,
) -> TemplateRead:
    template = await TemplateService.duplicate(db, template_id, principal.org_id)
    return TemplateRead.model_validate(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Admin: delete a template",
)
async def delete_template(
    template_id: str,
    db: DbSession,
    principal: AdminPrincipal,
) -> None:
    await TemplateService.delete(db, template_id, principal.org_id)
