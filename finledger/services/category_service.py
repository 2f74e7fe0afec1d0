"""
Category service — project-scoped income/expense labels.

The engine creates a few categories on its own (transfer legs, card
interest); get_or_create_system_category finds or creates those by name so
each project ends up with exactly one of each.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finledger.exceptions import NotFoundError
from finledger.models.category import Category
from finledger.services.access import require_project_access


TRANSFERS_CATEGORY = "Transfers"
CARD_INTEREST_CATEGORY = "Credit card interest & fees"


async def create_category(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    category_type: str,
    color: str | None = None,
) -> Category:
    """Create a user-defined category in a project."""
    await require_project_access(db, project_id, user_id)

    category = Category(
        project_id=project_id,
        name=name,
        type=category_type,
        color=color,
    )
    db.add(category)
    await db.flush()
    return category


async def get_categories(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    category_type: str | None = None,
) -> list[Category]:
    """List a project's categories, optionally filtered by type."""
    await require_project_access(db, project_id, user_id)

    query = (
        select(Category)
        .where(Category.project_id == project_id)
        .order_by(Category.name.asc())
    )
    if category_type:
        query = query.where(Category.type == category_type)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_category(
    db: AsyncSession,
    project_id: uuid.UUID,
    category_id: uuid.UUID,
) -> Category:
    """
    Load a category that belongs to the project.

    Raises:
        NotFoundError: If it doesn't exist in this project.
    """
    result = await db.execute(
        select(Category).where(
            Category.id == category_id,
            Category.project_id == project_id,
        )
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise NotFoundError("Category", category_id)
    return category


async def get_or_create_system_category(
    db: AsyncSession,
    project_id: uuid.UUID,
    name: str,
    category_type: str = "expense",
) -> Category:
    """Find the project's system category by name, creating it if needed."""
    result = await db.execute(
        select(Category)
        .where(
            Category.project_id == project_id,
            Category.name == name,
            Category.is_system.is_(True),
        )
        .limit(1)
    )
    category = result.scalar_one_or_none()
    if category is not None:
        return category

    category = Category(
        project_id=project_id,
        name=name,
        type=category_type,
        is_system=True,
    )
    db.add(category)
    await db.flush()
    return category
