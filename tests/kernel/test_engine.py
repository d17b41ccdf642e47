"""Tests for engine initialization helpers."""

from sqlalchemy import inspect

from haymarket_kernel.db.engine import get_engine, get_session_factory, is_postgres


def test_engine_is_shared(db_engine):
    assert get_engine() is db_engine


def test_backend_detection(db_engine):
    assert is_postgres() == (db_engine.dialect.name == "postgresql")


def test_tables_created(db_tables, db_engine):
    tables = set(inspect(db_engine).get_table_names())
    assert {
        "listings",
        "negotiations",
        "purchase_orders",
        "po_stacks",
        "loads",
        "load_edits",
        "audit_events",
        "sequence_counters",
    } <= tables


def test_sessions_do_not_expire_on_commit(db_engine):
    assert get_session_factory().kw["expire_on_commit"] is False
