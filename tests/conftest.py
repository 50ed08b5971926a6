from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from larder.domain.model import EntityKind
from tests.support.fake_mealie import FakeMealie

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

_ENV_VARS = (
    "MEALIE_URL",
    "MEALIE_TOKEN",
    "MEALIE_PAGE_SIZE",
    "MEALIE_THROTTLE_SECONDS",
    "LARDER_USAGE_GUARD_FAIL_OPEN",
    "LARDER_STRICT_INDEX",
    "LARDER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mealie_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEALIE_URL", "https://mealie.test/")
    monkeypatch.setenv("MEALIE_TOKEN", "secret-token")
    monkeypatch.setenv("MEALIE_THROTTLE_SECONDS", "0")


@pytest.fixture
def write_batch_file(tmp_path: Path) -> Callable[..., Path]:
    """Write a batch envelope below ``tmp_path`` and return its path."""

    def write(
        items: list[dict[str, object]],
        *,
        name: str = "batch.json",
        kind: EntityKind = EntityKind.FOOD,
        version: object = "1.0",
    ) -> Path:
        path = tmp_path / name
        document = {"$type": kind.envelope_type, "$version": version, "items": items}
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return write


@pytest.fixture
def fake_mealie() -> FakeMealie:
    return FakeMealie()
