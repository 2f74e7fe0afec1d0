"""
Template service — recurring obligations copied into new billing cycles.

Only items of templates that are active and not archived are loaded by
billing_cycle_service.create_billing_cycle.
"""

import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import NotFoundError, ValidationError
from finledger.models.template import Template, TemplateItem
from finledger.models.transaction import INCOME, EXPENSE
from finledger.services.access import require_project_access
from finledger.services.account_service import get_account
from finledger.services.category_service import get_category
from finledger.services.ledger import money


async def create_template(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    description: str | None = None,
) -> Template:
    await require_project_access(db, project_id, user_id)

    template = Template(
        project_id=project_id,
        user_id=user_id,
        name=name,
        description=description,
    )
    db.add(template)
    await db.flush()
    return template


async def _get_template(
    db: AsyncSession,
    project_id: uuid.UUID,
    template_id: uuid.UUID,
) -> Template:
    result = await db.execute(
        select(Template).where(
            Template.id == template_id,
            Template.project_id == project_id,
        )
    )
    template = result.scalar_one_or_none()
    if template is None:
        raise NotFoundError("Template", template_id)
    return template


async def add_item(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    template_id: uuid.UUID,
    item_type: str,
    description: str,
    amount: Decimal,
    category_id: uuid.UUID | None = None,
    account_id: uuid.UUID | None = None,
    entity_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> TemplateItem:
    """
    Add a line to a template.

    Raises:
        ValidationError: Unknown type or non-positive amount.
        NotFoundError: Template, category or account missing.
    """
    await require_project_access(db, project_id, user_id)

    if item_type not in (INCOME, EXPENSE):
        raise ValidationError("Item type must be 'income' or 'expense'")
    if money(amount) <= 0:
        raise ValidationError("Amount must be greater than 0")

    template = await _get_template(db, project_id, template_id)
    if category_id is not None:
        await get_category(db, project_id, category_id)
    if account_id is not None:
        await get_account(db, account_id, user_id)

    item = TemplateItem(
        template_id=template.id,
        project_id=project_id,
        user_id=user_id,
        category_id=category_id,
        account_id=account_id,
        entity_id=entity_id,
        type=item_type,
        description=description,
        amount=money(amount),
        notes=notes,
    )
    db.add(item)
    await db.flush()
    return item


async def set_template_active(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    template_id: uuid.UUID,
    is_active: bool,
) -> Template:
    await require_project_access(db, project_id, user_id)
    template = await _get_template(db, project_id, template_id)
    template.is_active = is_active
    await db.flush()
    return template


async def archive_template(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    template_id: uuid.UUID,
) -> Template:
    await require_project_access(db, project_id, user_id)
    template = await _get_template(db, project_id, template_id)
    template.is_archived = True
    await db.flush()
    return template


async def get_templates(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    include_archived: bool = False,
) -> list[dict]:
    """Templates with their items."""
    await require_project_access(db, project_id, user_id)

    query = (
        select(Template)
        .where(Template.project_id == project_id)
        .order_by(Template.created_at.asc())
    )
    if not include_archived:
        query = query.where(Template.is_archived.is_(False))
    templates = list((await db.execute(query)).scalars().all())

    items_by_template: dict[uuid.UUID, list[TemplateItem]] = {t.id: [] for t in templates}
    if templates:
        result = await db.execute(
            select(TemplateItem)
            .where(TemplateItem.template_id.in_(list(items_by_template)))
            .order_by(TemplateItem.created_at.asc())
        )
        for item in result.scalars().all():
            items_by_template[item.template_id].append(item)

    return [
        {
            **{column.key: getattr(t, column.key) for column in Template.__table__.columns},
            "items": items_by_template[t.id],
        }
        for t in templates
    ]


async def get_loadable_items(db: AsyncSession, project_id: uuid.UUID) -> list[TemplateItem]:
    """Items of the project's active, non-archived templates."""
    result = await db.execute(
        select(TemplateItem)
        .join(Template, TemplateItem.template_id == Template.id)
        .where(
            Template.project_id == project_id,
            Template.is_active.is_(True),
            Template.is_archived.is_(False),
        )
        .order_by(TemplateItem.created_at.asc())
    )
    return list(result.scalars().all())
