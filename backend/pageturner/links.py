from urllib.parse import urlencode


def _query(api_key: str, **params) -> str:
    return "?" + urlencode({"k": api_key, **params})


def read_link(app_url: str, doc_id: str, page: int, api_key: str, **params) -> str:
    return f"{app_url}/r/{doc_id}/{page}{_query(api_key, **params)}"


def library_link(app_url: str, api_key: str, page: int | None = None) -> str:
    if page is None:
        return f"{app_url}/documents{_query(api_key)}"
    return f"{app_url}/documents{_query(api_key, page=page)}"


def page_links(total: int, take: int, app_url: str, api_key: str) -> list[str]:
    """One library link per listing page; empty when everything fits on one page."""
    pages = -(-total // take) if take > 0 else 0
    if pages <= 1:
        return []
    return [library_link(app_url, api_key, page) for page in range(1, pages + 1)]
