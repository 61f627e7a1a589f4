DEFAULT_LANGUAGE = "en"

TEXTS: dict[str, dict[str, str]] = {
    "en": {
        "books_open_begin": "Read from the beginning",
        "books_continue": "Continue reading",
        "books_pages": "Pages",
        "page_not_found_title": "Not found",
        "page_not_found": "The page or the book was not found!",
    },
    "ru": {
        "books_open_begin": "Читать с начала",
        "books_continue": "Продолжить чтение",
        "books_pages": "Страницы",
        "page_not_found_title": "Не найдено",
        "page_not_found": "Страница или книга не найдены!",
    },
}


def get_text(language_code: str | None, key: str) -> str:
    """Look up a UI string, falling back to English for unknown languages."""
    table = TEXTS.get(language_code or DEFAULT_LANGUAGE, TEXTS[DEFAULT_LANGUAGE])
    return table.get(key, TEXTS[DEFAULT_LANGUAGE][key])
