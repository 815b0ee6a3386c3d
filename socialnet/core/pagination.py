import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Query

from socialnet.core.config import settings


def get_limit(size: Optional[int]) -> int:
    """Размер страницы в пределах [1, MAX_PAGE_SIZE]"""
    if not size:
        return settings.FRIENDS_PER_PAGE
    return max(1, min(size, settings.MAX_PAGE_SIZE))


def paginate(query: Query, page: Optional[int], size: Optional[int]) -> Tuple[List[Any], Dict[str, int]]:
    """
    Выполняет запрос постранично.

    Номер страницы прижимается к [1, total_pages], поэтому
    current_page никогда не превышает total_pages.
    """
    limit = get_limit(size)
    total_items = query.order_by(None).count()
    total_pages = max(1, math.ceil(total_items / limit))
    current_page = min(max(1, page or 1), total_pages)

    rows = query.offset((current_page - 1) * limit).limit(limit).all()
    return rows, {
        "current_page": current_page,
        "total_pages": total_pages,
        "total_items": total_items,
    }
