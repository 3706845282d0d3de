from __future__ import annotations

import pytest

from viz_cli.shared.logging import get_logger


def test_logger_info_routes_to_stderr(capfd) -> None:
    logger = get_logger()

    logger.info("structured log to stderr")

    captured = capfd.readouterr()
    assert "structured log to stderr" in captured.err
    assert "structured log to stderr" not in captured.out


def test_debug_only_when_verbose(capfd) -> None:
    get_logger(verbose=False).debug("hidden detail")
    get_logger(verbose=True).debug("shown detail")

    captured = capfd.readouterr()
    assert "hidden detail" not in captured.err
    assert "shown detail" in captured.err


def test_markup_is_not_interpreted(capfd) -> None:
    get_logger().warning("column [bold]name[/bold]")

    captured = capfd.readouterr()
    assert "[bold]name[/bold]" in captured.err


def test_sql_reports_bound_count_when_verbose(capfd) -> None:
    get_logger().sql('SELECT * FROM "quiet"', 2)
    get_logger(verbose=True).sql('SELECT * FROM "items" WHERE "name" = ?', 3)

    err = capfd.readouterr().err
    assert '"quiet"' not in err
    assert 'SQL (3 bound): SELECT * FROM "items" WHERE "name" = ?' in err


def test_timed_reports_elapsed_at_debug(capfd) -> None:
    with get_logger(verbose=True).timed("Query on 'items'"):
        pass
    with get_logger().timed("silent block"):
        pass

    err = capfd.readouterr().err
    assert "Query on 'items' took" in err
    assert " ms" in err
    assert "silent block" not in err


def test_timed_reports_even_when_block_raises(capfd) -> None:
    logger = get_logger(verbose=True)
    with pytest.raises(RuntimeError):
        with logger.timed("failing block"):
            raise RuntimeError("boom")

    assert "failing block took" in capfd.readouterr().err
