def normalize_text(s: str) -> str:
    return " ".join(s.strip().lower().split())


def normalize_email(email: str) -> str:
    # Uniqueness is case-insensitive: every stored and queried email goes through here.
    return email.strip().lower()


def normalize_zip(zip_code: str) -> str:
    return zip_code.strip()


def canonical_url(url: str) -> str:
    url = url.strip()
    return url[:-1] if url.endswith("/") else url
