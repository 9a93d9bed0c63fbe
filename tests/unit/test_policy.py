"""Tests for the Policy Store and duration parsing."""

from __future__ import annotations

import pytest

from devsnap.config import Configuration
from devsnap.errors import PolicyError
from devsnap.models import RetentionPolicy, Tier
from devsnap.policy import PolicyStore, parse_duration


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0, 0),
        (900, 900),
        ("30m", 1800),
        ("1h", 3600),
        ("2 days", 172800),
        ("90s", 90),
    ],
)
def test_parse_duration(value: int | str, expected: int) -> None:
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "whenever", -5, True])
def test_parse_duration_rejects(value: object) -> None:
    with pytest.raises(ValueError):
        parse_duration(value)  # type: ignore[arg-type]


class TestPolicyStore:
    def test_lookup(self, home_policy: RetentionPolicy) -> None:
        store = PolicyStore({"home": home_policy})

        assert store.get("home") is home_policy
        assert "home" in store
        assert "root" not in store

    def test_missing_policy(self) -> None:
        store = PolicyStore({"home": RetentionPolicy()})

        with pytest.raises(PolicyError, match="configured: home"):
            store.get("root")

    def test_from_configuration(self) -> None:
        config = Configuration.from_dict(
            {
                "subvolumes": {
                    "root": {"snapper_config": "root", "mount_point": "/", "retention": {"limit": {"daily": 7}}},
                    "home": {"snapper_config": "home", "mount_point": "/home"},
                }
            }
        )

        store = PolicyStore.from_configuration(config)

        assert store.subvolumes() == ["home", "root"]
        assert store.get("root").limit(Tier.DAILY) == 7
        assert store.get("home").limit(Tier.DAILY) == 0
