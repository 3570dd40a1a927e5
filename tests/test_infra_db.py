"""Tests for the psycopg2 access layer."""

import os
from unittest.mock import MagicMock, patch

import pytest


def _conn_with_cursor():
    conn = MagicMock()
    cur = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cur
    return conn, cur


class TestGetConn:
    """DSN handling in get_conn(); no real database needed."""

    @pytest.mark.parametrize(
        "dsn",
        ["dbname=rs user=u host=h port=5432", "postgres://u@h/rs"],
    )
    def test_db_password_passed_when_dsn_has_none(self, dsn):
        from roomsync.infra.db import get_conn

        with patch.dict(os.environ, {"DATABASE_URL": dsn, "DB_PASSWORD": "from-env"}, clear=True), \
             patch("roomsync.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
        mock_connect.assert_called_once_with(dsn, password="from-env")

    @pytest.mark.parametrize(
        "dsn",
        ["dbname=rs user=u password=from-dsn host=h", "postgres://u:p@h/rs"],
    )
    def test_dsn_password_wins(self, dsn):
        from roomsync.infra.db import get_conn

        with patch.dict(os.environ, {"DATABASE_URL": dsn, "DB_PASSWORD": "from-env"}, clear=True), \
             patch("roomsync.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
        mock_connect.assert_called_once_with(dsn)

    def test_without_db_password(self):
        from roomsync.infra.db import get_conn

        with patch.dict(os.environ, {"DATABASE_URL": "dbname=rs host=h"}, clear=True), \
             patch("roomsync.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
        mock_connect.assert_called_once_with("dbname=rs host=h")

    def test_requires_database_url(self):
        from roomsync.infra.db import get_conn

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxn:
    def test_commits_and_closes_owned_connection(self):
        from roomsync.infra.db import txn

        conn, cur = _conn_with_cursor()
        with patch("roomsync.infra.db.get_conn", return_value=conn):
            with txn() as got:
                assert got is cur
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    def test_rolls_back_on_exception(self):
        from roomsync.infra.db import txn

        conn, _ = _conn_with_cursor()
        with patch("roomsync.infra.db.get_conn", return_value=conn):
            with pytest.raises(ValueError):
                with txn():
                    raise ValueError("boom")
        conn.commit.assert_not_called()
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    def test_borrowed_connection_left_open(self):
        from roomsync.infra.db import txn

        conn, _ = _conn_with_cursor()
        with txn(conn):
            pass
        conn.commit.assert_called_once()
        conn.close.assert_not_called()


class TestHelpers:
    def test_fetchone_and_fetchall(self):
        from roomsync.infra.db import fetchall, fetchone

        cur = MagicMock()
        cur.fetchone.return_value = (1,)
        cur.fetchall.return_value = [(1,), (2,)]

        assert fetchone(cur, "SELECT %s", (1,)) == (1,)
        assert fetchall(cur, "SELECT id FROM rooms") == [(1,), (2,)]
        cur.execute.assert_called_with("SELECT id FROM rooms", None)

    @pytest.mark.parametrize(
        "nowait, suffix",
        [(False, " FOR UPDATE"), (True, " FOR UPDATE NOWAIT")],
    )
    def test_for_update(self, nowait, suffix):
        from roomsync.infra.db import for_update

        cur = MagicMock()
        for_update(cur, "SELECT id FROM rooms WHERE id = %s; ", ("room-101",), nowait=nowait)
        cur.execute.assert_called_once_with(
            "SELECT id FROM rooms WHERE id = %s" + suffix, ("room-101",)
        )


_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
class TestAgainstDatabase:
    def test_txn_round_trip(self):
        from roomsync.infra.db import fetchone, txn

        with txn() as cur:
            row = fetchone(cur, "SELECT %s::text", ("hello",))
        assert row == ("hello",)

    def test_rollback_discards_writes(self):
        from roomsync.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE rs_rollback (id serial, val text)")
            conn.commit()

            with pytest.raises(ValueError):
                with txn(conn) as cur:
                    cur.execute("INSERT INTO rs_rollback (val) VALUES (%s)", ("bad",))
                    raise ValueError("rollback")

            with conn.cursor() as cur:
                cur.execute("SELECT count(*) FROM rs_rollback")
                assert cur.fetchone()[0] == 0
        finally:
            conn.close()
