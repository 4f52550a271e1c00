"""
services/template_service.py
----------------------------
Tenant-scoped template repository.

Slugs are unique per organisation. Conflicts are checked before the write
and caught again from the database constraint (two concurrent creates),
and both surface as SlugConflict, never as a generic validation error.
"""

import json
import re
import uuid
from typing import Any, Mapping, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.core.errors import SlugConflict, ValidationError
from offerdesk.core.logging import get_logger
from offerdesk.db.repository import TenantScopedRepository
from offerdesk.models.offer import Offer
from offerdesk.models.template import Template
from offerdesk.schemas.template import TemplateContent

logger = get_logger(__name__)

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    slug = _NON_SLUG.sub("-", (text or "").lower()).strip("-")
    return slug or "template"


def validate_template_content(content: Optional[str]) -> str:
    """
    Parse and normalise template content.

    Blank content becomes an empty version-1 document. Anything that is not
    a JSON object matching TemplateContent raises ValidationError.
    """
    if content is None or not content.strip():
        return json.dumps(TemplateContent().model_dump(exclude_none=True))
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        raise ValidationError("Template content must be valid JSON")
    if not isinstance(parsed, dict):
        raise ValidationError("Template content must be a JSON object with a 'fields' list")
    try:
        document = TemplateContent.model_validate(parsed)
    except SchemaValidationError as exc:
        first = exc.errors()[0]
        raise ValidationError(f"Invalid template content structure: {first['msg']}")
    return json.dumps(document.model_dump(exclude_none=True))


class TemplateService(TenantScopedRepository):
    model = Template
    entity_name = "Template"
    writable_fields = frozenset({"title", "slug", "content", "category", "tags"})

    @classmethod
    async def get_by_slug(
        cls, db: AsyncSession, slug: str, org_id: str
    ) -> Optional[Template]:
        result = await db.execute(cls.scoped(org_id).where(Template.slug == slug))
        return result.scalar_one_or_none()

    @classmethod
    async def _ensure_slug_free(
        cls,
        db: AsyncSession,
        slug: str,
        org_id: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        existing = await cls.get_by_slug(db, slug, org_id)
        if existing is not None and existing.id != exclude_id:
            raise SlugConflict()

    @classmethod
    def _prepare(cls, fields: Mapping[str, Any]) -> dict:
        cls.check_fields(fields)
        prepared = dict(fields)
        if "content" in prepared:
            prepared["content"] = validate_template_content(prepared["content"])
        return prepared

    @classmethod
    async def create(
        cls, db: AsyncSession, org_id: str, fields: Mapping[str, Any]
    ) -> Template:
        prepared = cls._prepare(fields)
        prepared.setdefault("content", validate_template_content(None))
        if not prepared.get("slug"):
            raise ValidationError("slug is required")
        await cls._ensure_slug_free(db, prepared["slug"], org_id)
        try:
            return await super().create(db, org_id, prepared)
        except IntegrityError:
            logger.warning("Template slug conflict on insert", org_id=org_id, slug=prepared["slug"])
            raise SlugConflict()

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        entity_id: str,
        org_id: str,
        fields: Mapping[str, Any],
    ) -> Template:
        prepared = cls._prepare(fields)
        template = await cls.get_by_id(db, entity_id, org_id, for_update=True)
        if "slug" in prepared and prepared["slug"] != template.slug:
            if not prepared["slug"]:
                raise ValidationError("slug cannot be empty")
            await cls._ensure_slug_free(db, prepared["slug"], org_id, exclude_id=template.id)
        try:
            return await cls.apply(db, template, prepared)
        except IntegrityError:
            logger.warning("Template slug conflict on update", org_id=org_id, id=entity_id)
            raise SlugConflict()

    @classmethod
    async def delete(cls, db: AsyncSession, entity_id: str, org_id: str) -> None:
        """Offers built from the template keep their content; the link is cleared."""
        template = await cls.get_by_id(db, entity_id, org_id, for_update=True)
        await db.execute(
            update(Offer)
            .where(Offer.org_id == org_id, Offer.template_id == template.id)
            .values(template_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(template)
        await db.flush()
        logger.info("Template deleted", id=entity_id, org_id=org_id)

    @classmethod
    async def ensure_unique_slug(
        cls, db: AsyncSession, base_slug: str, org_id: str, attempts: int = 50
    ) -> str:
        """base_slug if free, else base_slug-2, base_slug-3, ... then a random suffix."""
        if await cls.get_by_slug(db, base_slug, org_id) is None:
            return base_slug
        for n in range(2, attempts + 2):
            candidate = f"{base_slug}-{n}"
            if await cls.get_by_slug(db, candidate, org_id) is None:
                return candidate
        return f"{base_slug}-{uuid.uuid4().hex[:6]}"

    @classmethod
    async def duplicate(
        cls, db: AsyncSession, entity_id: str, org_id: str
    ) -> Template:
        source = await cls.get_by_id(db, entity_id, org_id)
        slug = await cls.ensure_unique_slug(db, f"{slugify(source.title)}-copy", org_id)
        copy = await cls.create(
            db,
            org_id,
            {
                "title": f"{source.title} (copy)",
                "slug": slug,
                "content": source.content,
                "category": source.category,
                "tags": list(source.tags or []),
            },
        )
        logger.info("Template duplicated", source_id=source.id, id=copy.id, org_id=org_id)
        return copy
