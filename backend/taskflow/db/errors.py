"""Classification of database errors that mean "not migrated yet"."""

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

# undefined_table, undefined_column, and the PostgREST schema-cache miss
MISSING_RELATION_CODES = frozenset({"42P01", "42703", "PGRST106"})
MISSING_RELATION_MARKERS = ("relation", "column")


def _error_codes(exc: BaseException) -> set[str]:
    """Collect SQLSTATE-like codes from an exception and its driver causes."""
    candidates: list[BaseException] = []
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        candidates.append(exc.orig)
        if exc.orig.__cause__ is not None:
            candidates.append(exc.orig.__cause__)
    if not isinstance(exc, SQLAlchemyError):
        # SQLAlchemy's own ``code`` attribute is a doc link id, not a SQLSTATE
        candidates.append(exc)

    codes = set()
    for candidate in candidates:
        for attr in ("sqlstate", "pgcode", "code"):
            code = getattr(candidate, attr, None)
            if isinstance(code, str) and code:
                codes.add(code)
    return codes


def is_missing_relation_error(exc: BaseException) -> bool:
    """Return True when ``exc`` says a table or column does not exist."""
    if _error_codes(exc) & MISSING_RELATION_CODES:
        return True
    message = str(exc).lower()
    return "does not exist" in message and any(
        marker in message for marker in MISSING_RELATION_MARKERS
    )
