# storefront/utils/pagination.py
import math

# Apply offset/limit to a query and build the pagination block
def paginate(query, page: int, limit: int):
    total = query.count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
