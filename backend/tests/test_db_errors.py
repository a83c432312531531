"""Tests for classifying "not migrated yet" database errors."""

from sqlalchemy.exc import DBAPIError, IntegrityError

from taskflow.db.errors import is_missing_relation_error


class DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def wrap(orig):
    return DBAPIError("SELECT * FROM comments", {}, orig)


def test_undefined_table_code():
    assert is_missing_relation_error(wrap(DriverError("boom", sqlstate="42P01")))


def test_undefined_column_code():
    assert is_missing_relation_error(wrap(DriverError("boom", sqlstate="42703")))


def test_code_on_driver_cause():
    orig = DriverError("wrapped")
    orig.__cause__ = DriverError("inner", sqlstate="42P01")
    assert is_missing_relation_error(wrap(orig))


def test_message_fallback():
    assert is_missing_relation_error(wrap(DriverError('relation "mentions" does not exist')))
    assert is_missing_relation_error(wrap(DriverError('column comments.parent_id does not exist')))


def test_schema_cache_code_on_plain_exception():
    assert is_missing_relation_error(DriverError("schema cache miss", sqlstate="PGRST106"))


def test_other_errors_are_not_missing_relations():
    error = IntegrityError(
        "INSERT", {}, DriverError('null value in column "content" violates not-null constraint', "23502")
    )
    assert not is_missing_relation_error(error)
    assert not is_missing_relation_error(ValueError("user does not exist"))
