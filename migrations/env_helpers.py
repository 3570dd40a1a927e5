"""Database URL helpers for Alembic migrations.

Kept out of env.py so they can be tested without an alembic context.
The application connects with psycopg2 using DATABASE_URL as-is; Alembic
needs a SQLAlchemy URL, so libpq key=value DSNs are converted here.
"""

from __future__ import annotations

import os
import re
from urllib.parse import quote_plus, urlparse, urlunparse

# key=value or key='quoted value' (backslash escapes allowed inside quotes)
_DSN_TOKEN = re.compile(r"(\w+)\s*=\s*(?:'((?:[^'\\]|\\.)*)'|(\S*))")
_ESCAPE = re.compile(r"\\(.)")


def parse_libpq_dsn(dsn: str) -> dict[str, str]:
    tokens: dict[str, str] = {}
    for match in _DSN_TOKEN.finditer(dsn):
        key, quoted, bare = match.groups()
        tokens[key] = _ESCAPE.sub(r"\1", quoted) if quoted is not None else bare
    return tokens


def libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq DSN to a postgresql+psycopg2:// URL.

    A host starting with "/" is a unix socket directory (e.g. Cloud SQL)
    and is passed as the `host` query parameter.
    """
    tokens = parse_libpq_dsn(dsn)
    password = tokens.get("password") or os.environ.get("DB_PASSWORD", "")

    user = quote_plus(tokens.get("user", ""))
    password = quote_plus(password)
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")
    port = tokens.get("port", "5432")

    if host.startswith("/"):
        return f"postgresql+psycopg2://{user}:{password}@/{dbname}?host={quote_plus(host)}"
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}"


def _with_password(url: str, password: str) -> str:
    parsed = urlparse(url)
    if parsed.password:
        return url
    netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(password)}@{parsed.hostname or ''}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in url:
        return libpq_dsn_to_url(url)

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = "postgresql+psycopg2://" + url[len(prefix):]
            break
    db_password = os.environ.get("DB_PASSWORD", "")
    return _with_password(url, db_password) if db_password else url
