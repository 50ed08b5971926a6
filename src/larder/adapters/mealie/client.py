"""Mealie HTTP adapter implementing the entity store and usage ports."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ValidationError

from larder.adapters.http_resilience import ResilienceConfig, ResilientClient
from larder.config.mealie import MealieConfig, get_mealie_config
from larder.domain.errors import RecordRejectedError, StoreError, UsageQueryError
from larder.domain.model import EntityKind
from larder.domain.reconciliation.normalize import normalize_key

from .schema import ErrorResponse, HouseholdPayload, LabelRef, PagePayload
from .translator import build_payload, parse_entity

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Iterable, Mapping
    from types import TracebackType

    from larder.domain.model import Entity, ImportRecord
    from larder.domain.ports import EntityStore, UsageCounter

log = getLogger(__name__)

ENDPOINTS: dict[EntityKind, str] = {
    EntityKind.FOOD: "/api/foods",
    EntityKind.UNIT: "/api/units",
    EntityKind.CATEGORY: "/api/organizers/categories",
    EntityKind.TAG: "/api/organizers/tags",
    EntityKind.TOOL: "/api/organizers/tools",
}
LABELS_ENDPOINT = "/api/groups/labels"
HOUSEHOLDS_ENDPOINT = "/api/groups/households"
RECIPES_ENDPOINT = "/api/recipes"

USAGE_FILTERS: dict[EntityKind, str] = {
    EntityKind.FOOD: 'recipeIngredient.food.id = "{id}"',
    EntityKind.UNIT: 'recipeIngredient.unit.id = "{id}"',
    EntityKind.CATEGORY: 'recipeCategory.id IN ["{id}"]',
    EntityKind.TAG: 'tags.id IN ["{id}"]',
    EntityKind.TOOL: 'tools.id IN ["{id}"]',
}

_RECORD_FIELDS = (
    "name",
    "plural_name",
    "description",
    "abbreviation",
    "plural_abbreviation",
    "use_abbreviation",
    "fraction",
    "aliases",
)


class MealieAPIError(StoreError):
    """Raised when the Mealie API fails or answers with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class MealieStore:
    """Synchronous facade over the async Mealie client.

    One ``asyncio.Runner`` lives as long as the store so the underlying
    connection pool and rate limiter survive between calls. Use the store as a
    context manager, or call ``close()``.
    """

    config: MealieConfig = field(default_factory=get_mealie_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _runner: asyncio.Runner | None = field(default=None, init=False, repr=False)
    _client: ResilientClient | None = field(default=None, init=False, repr=False)
    _label_ids: dict[str, str] | None = field(default=None, init=False, repr=False)
    _household_slugs: dict[str, str] | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> MealieStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._runner is None:
            return
        if self._client is not None:
            self._runner.run(self._client.aclose())
            self._client = None
        self._runner.close()
        self._runner = None

    # -- EntityStore -------------------------------------------------------

    def list_entities(self, kind: EntityKind) -> list[Entity]:
        items = self._run(self._list_items(ENDPOINTS[kind]))
        entities = [_parse(kind, item) for item in items]
        log.info("Fetched %s %s(s) from Mealie", len(entities), kind)
        return entities

    def create(self, kind: EntityKind, record: ImportRecord) -> Entity:
        fields = {attribute: getattr(record, attribute) for attribute in _RECORD_FIELDS}
        payload = build_payload(
            kind,
            fields,
            label_id=self._resolve_label(record.label) if kind.has_label else None,
            household_slugs=self._resolve_households(record.households)
            if kind.household_scoped and record.households
            else None,
        )
        data = self._run(self._send("POST", ENDPOINTS[kind], json=payload))
        return _parse(kind, _as_mapping(data))

    def update(
        self,
        kind: EntityKind,
        entity_id: str,
        changes: Mapping[str, object],
    ) -> Entity:
        label = changes.get("label")
        households = changes.get("households")
        payload = build_payload(
            kind,
            changes,
            label_id=self._resolve_label(str(label)) if kind.has_label and label else None,
            household_slugs=self._resolve_households(_string_tuple(households))
            if kind.household_scoped and households
            else None,
        )
        url = f"{ENDPOINTS[kind]}/{entity_id}"

        async def read_modify_write() -> object:
            current = _as_mapping(await self._send("GET", url))
            document = {**current, **payload}
            if "labelId" in payload:
                document.pop("label", None)
            return await self._send("PUT", url, json=document)

        data = self._run(read_modify_write())
        return _parse(kind, _as_mapping(data))

    def delete(self, kind: EntityKind, entity_id: str) -> None:
        self._run(self._send("DELETE", f"{ENDPOINTS[kind]}/{entity_id}"))

    # -- UsageCounter ------------------------------------------------------

    def count_usage(self, kind: EntityKind, entity_id: str) -> int:
        params = {
            "queryFilter": USAGE_FILTERS[kind].format(id=entity_id),
            "page": 1,
            "perPage": 1,
        }
        try:
            data = self._run(self._send("GET", RECIPES_ENDPOINT, params=params))
            return _page(data).total
        except MealieAPIError as exc:
            raise UsageQueryError(str(exc)) from exc

    # -- references --------------------------------------------------------

    def _resolve_label(self, name: str | None) -> str | None:
        key = normalize_key(name)
        if not key:
            return None
        if self._label_ids is None:
            items = self._run(self._list_items(LABELS_ENDPOINT))
            labels = _validate_all(LabelRef, items)
            self._label_ids = {normalize_key(label.name): label.id for label in labels}
        label_id = self._label_ids.get(key)
        if label_id is None:
            raise RecordRejectedError(f"Unknown label {name!r}")
        return label_id

    def _resolve_households(self, names: Iterable[str]) -> list[str]:
        if self._household_slugs is None:
            items = self._run(self._list_items(HOUSEHOLDS_ENDPOINT))
            households = _validate_all(HouseholdPayload, items)
            slugs: dict[str, str] = {}
            for household in households:
                slug = household.slug or household.name
                slugs.setdefault(normalize_key(household.name), slug)
                slugs.setdefault(normalize_key(slug), slug)
            self._household_slugs = slugs
        resolved: list[str] = []
        for name in names:
            slug = self._household_slugs.get(normalize_key(name))
            if slug is None:
                raise RecordRejectedError(f"Unknown household {name!r}")
            if slug not in resolved:
                resolved.append(slug)
        return resolved

    # -- transport ---------------------------------------------------------

    def _run[T](self, coro: Coroutine[Any, Any, T]) -> T:
        if self._runner is None:
            self._runner = asyncio.Runner()
        return self._runner.run(coro)

    def _http(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    async def _list_items(self, endpoint: str) -> list[dict[str, object]]:
        items: list[dict[str, object]] = []
        page = 1
        while True:
            params = {"page": page, "perPage": self.config.page_size}
            data = await self._send("GET", endpoint, params=params)
            payload = _page(data)
            items.extend(payload.items)
            if page >= payload.total_pages or not payload.items:
                break
            page += 1
        return items

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str | int] | None = None,
        json: object = None,
    ) -> object:
        try:
            response = await self._http().request(
                method,
                url,
                params=httpx.QueryParams(params) if params is not None else None,
                json=json,
            )
        except httpx.HTTPError as exc:
            raise MealieAPIError(f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            raise MealieAPIError(
                f"{method} {url} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MealieAPIError(f"{method} {url} returned invalid JSON") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).message
    except ValueError:
        return response.text or response.reason_phrase


def _parse(kind: EntityKind, item: Mapping[str, object]) -> Entity:
    try:
        return parse_entity(kind, item)
    except ValidationError as exc:
        raise MealieAPIError(f"Unexpected {kind} payload: {exc}") from exc


def _page(data: object) -> PagePayload:
    try:
        return PagePayload.model_validate(data)
    except ValidationError as exc:
        raise MealieAPIError(f"Unexpected page payload: {exc}") from exc


def _validate_all[M: BaseModel](model: type[M], items: Iterable[object]) -> list[M]:
    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as exc:
        raise MealieAPIError(f"Unexpected {model.__name__} payload: {exc}") from exc


def _as_mapping(data: object) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise MealieAPIError("Unexpected Mealie response payload")
    return data  # pyright: ignore[reportUnknownVariableType]


def _string_tuple(value: object) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)  # pyright: ignore[reportUnknownVariableType]
    return ()


if TYPE_CHECKING:
    _store_check: EntityStore = MealieStore()
    _usage_check: UsageCounter = MealieStore()
