from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from importlib import resources
from typing import Iterator

import psycopg
from psycopg import Connection
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row

from .config import DbConfig


class DbError(Exception):
    pass


@dataclass(frozen=True)
class Db:
    cfg: DbConfig

    @property
    def conninfo(self) -> str:
        return make_conninfo(
            host=self.cfg.host,
            port=self.cfg.port,
            dbname=self.cfg.name,
            user=self.cfg.user,
            password=self.cfg.password,
            sslmode=self.cfg.sslmode,
        )

    def connect(self) -> Connection:
        # autocommit: every repository call outside transaction() stands alone
        try:
            return psycopg.connect(self.conninfo, autocommit=True, row_factory=dict_row)
        except psycopg.OperationalError as e:
            raise DbError(
                f"Cannot connect to PostgreSQL at {self.cfg.host}:{self.cfg.port}/{self.cfg.name}. "
                "Check config.toml [db]."
            ) from e

    @contextmanager
    def session(self) -> Iterator[Connection]:
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        with self.session() as conn:
            with conn.transaction():
                yield conn

    def init_schema(self) -> None:
        sql = resources.files("vendorpos").joinpath("schema.sql").read_text(encoding="utf-8")
        with self.transaction() as conn:
            conn.execute(sql)
