from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterator

import pytest

from viz_cli.shared.config import QuerySettings
from viz_cli.shared.database import SourceHandle


def _seed(path: Path) -> None:
    connection = sqlite3.connect(path)
    try:
        connection.executescript(
            """
            CREATE TABLE items (
                id INTEGER PRIMARY KEY,
                name TEXT,
                revenue REAL
            );
            INSERT INTO items (name, revenue) VALUES ('A', 10), ('B', 30), ('C', 20);

            CREATE TABLE customers (
                id INTEGER PRIMARY KEY,
                full_name VARCHAR(80) NOT NULL
            );
            INSERT INTO customers (full_name) VALUES ('Ada'), ('Grace');

            CREATE TABLE orders (
                id INTEGER PRIMARY KEY,
                customer_id INTEGER REFERENCES customers(id),
                region TEXT NOT NULL,
                amount DECIMAL(10, 2),
                note TEXT,
                created_at DATETIME
            );
            INSERT INTO orders (customer_id, region, amount, note, created_at) VALUES
                (1, 'East', 5, '50% off', '2024-01-01'),
                (2, 'West', 15, NULL, '2024-01-02'),
                (1, 'East', 7, 'rush_order', '2024-01-03'),
                (2, 'North', 3, 'n/a', '2024-01-04');
            CREATE INDEX idx_orders_region_date ON orders (region, created_at);
            """
        )
        connection.commit()
    finally:
        connection.close()


@pytest.fixture
def sample_db(tmp_path: Path) -> Path:
    path = tmp_path / "sample.db"
    _seed(path)
    return path


@pytest.fixture
def handle(sample_db: Path) -> Iterator[SourceHandle]:
    source = SourceHandle(sample_db, source_id="sample")
    try:
        yield source
    finally:
        source.close()


@pytest.fixture
def settings() -> QuerySettings:
    return QuerySettings(default_limit=100, max_limit=1000, timeout_seconds=0, max_rows=1000)
