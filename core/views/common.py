import math

DEFAULT_PER_PAGE = 20


def paginate(qs, page: int | None, per_page: int | None):
    """Slice ``qs`` (a queryset or a list) and return (items, pagination dict, headers)."""
    page = page or 1
    per_page = per_page or DEFAULT_PER_PAGE
    total = len(qs) if isinstance(qs, list) else qs.count()
    start = (page - 1) * per_page
    items = list(qs[start:start + per_page])
    last_page = max(1, math.ceil(total / per_page))
    meta = {'current_page': page, 'last_page': last_page, 'per_page': per_page, 'total': total}
    headers = {
        'X-Total-Count': str(total),
        'X-Page-Count': str(last_page),
        'X-Per-Page': str(per_page),
        'X-Current-Page': str(page),
    }
    return items, meta, headers
