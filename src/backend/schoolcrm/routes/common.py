from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator

from fastapi import HTTPException
from psycopg2 import errors as pg_errors


def reject_nulls(updates: Dict[str, Any], required: Iterable[str]) -> None:
    """Explicit nulls on NOT NULL columns are a client error, not a db failure."""
    nulls = sorted(field for field in required if field in updates and updates[field] is None)
    if nulls:
        raise HTTPException(status_code=400, detail=f"Fields cannot be null: {', '.join(nulls)}.")


@contextmanager
def constraint_errors(
    conflict_detail: Any = "Record already exists.",
    reference_detail: Any = "Referenced record does not exist.",
) -> Iterator[None]:
    """Translate unique and foreign key violations raised by the db layer."""
    try:
        yield
    except pg_errors.UniqueViolation:
        raise HTTPException(status_code=409, detail=conflict_detail)
    except pg_errors.ForeignKeyViolation:
        raise HTTPException(status_code=400, detail=reference_detail)
