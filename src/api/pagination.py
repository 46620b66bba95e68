"""
Page-number pagination helpers.

Pages are advertised in an RFC 5988 ``Link`` header with ``current``,
``next``, ``prev`` and ``first`` relations.
"""

from fastapi import Request

from lti_registry.settings import get_settings


def clamp_per_page(per_page: int | None) -> int:
    """Requested page size bounded by the configured default and maximum."""
    settings = get_settings()
    if per_page is None or per_page < 1:
        return settings.default_per_page
    return min(per_page, settings.max_per_page)


def build_link_header(request: Request, page: int, per_page: int, has_next: bool) -> str:
    def link(rel: str, number: int) -> str:
        url = request.url.include_query_params(page=number, per_page=per_page)
        return f'<{url}>; rel="{rel}"'

    links = [link("current", page)]
    if has_next:
        links.append(link("next", page + 1))
    if page > 1:
        links.append(link("prev", page - 1))
    links.append(link("first", 1))
    return ",".join(links)
