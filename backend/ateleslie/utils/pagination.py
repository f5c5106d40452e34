from typing import Any, List, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ateleslie.schemas.common import Pagination


async def paginate(db: AsyncSession, stmt: Select, page: int, limit: int) -> Tuple[List[Any], Pagination]:
    """Run ``stmt`` for one page and count the full result set."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), Pagination.build(page, limit, total)
