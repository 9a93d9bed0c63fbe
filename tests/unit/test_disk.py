"""Tests for disk space utilities."""

from __future__ import annotations

import pytest

from devsnap.disk import format_bytes, parse_df_output

DF_OUTPUT = """\
Filesystem      1B-blocks        Used   Available Use% Mounted on
/dev/sda2    500000000000 400000000000 100000000000  80% /
/dev/sda3   2000000000000 200000000000 1800000000000  10% /home
"""


def test_parse_df_output() -> None:
    space = parse_df_output(DF_OUTPUT, "/home")

    assert space is not None
    assert space.use_percent == 10
    assert space.available_bytes == 1800000000000
    assert space.total_bytes == 2000000000000


def test_parse_df_output_root_is_exact_match() -> None:
    space = parse_df_output(DF_OUTPUT, "/")

    assert space is not None
    assert space.use_percent == 80


def test_parse_df_output_missing_mount() -> None:
    assert parse_df_output(DF_OUTPUT, "/srv") is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (512, "512 B"),
        (2048, "2.0 KiB"),
        (5 * 2**20, "5.0 MiB"),
        (int(45.2 * 2**30), "45.2 GiB"),
        (3 * 2**40, "3.0 TiB"),
    ],
)
def test_format_bytes(value: int, expected: str) -> None:
    assert format_bytes(value) == expected
