from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from forensic_link.client.http import HttpClientFactory, transient_retry
from forensic_link.errors import ProviderFailure
from forensic_link.graph.links import Link
from forensic_link.graph.provider import FocalKind, Neighborhood
from forensic_link.graph.records import Case, Membership, Person, Sample
from forensic_link.settings import settings

logger = logging.getLogger(__name__)


class ForensicApiProvider:
    """Provider backed by the case-management REST API.

    Responses use the ``{"data": ...}`` envelope; list endpoints add
    ``{"pagination": {page, limit, total, totalPages}}``.

    Transient transport errors are retried here. Anything still failing is
    raised as ProviderFailure; a 404 means the entity is absent.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        api_key: str | None = None,
        retries: int | None = None,
        page_size: int = 100,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        key = api_key or settings.api_key
        if key:
            headers["X-API-Key"] = key
        self.page_size = page_size
        self._client = HttpClientFactory.client(
            base_url=base_url or settings.api_url, headers=headers, transport=transport
        )
        self._get_with_retry = transient_retry(retries)(self._get_once)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ForensicApiProvider":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _get_once(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        r = self._client.get(path, params=params)
        if r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json()

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        try:
            return self._get_with_retry(path, params)
        except httpx.HTTPError as e:
            logger.warning("GET %s failed: %s", path, e)
            raise ProviderFailure(f"GET {path} failed: {e}") from e
        except ValueError as e:
            logger.warning("GET %s returned invalid JSON: %s", path, e)
            raise ProviderFailure(f"GET {path} returned invalid JSON") from e

    def _data(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        body = self._get(path, params)
        if body is None:
            return None
        return body.get("data") if isinstance(body, dict) else body

    def fetch_links(self) -> Sequence[Link]:
        links: list[Link] = []
        page = 1
        while True:
            body = self._get("/links", {"page": page, "limit": self.page_size})
            if body is None:
                raise ProviderFailure("GET /links returned 404")
            links.extend(self._parse(Link, row) for row in body.get("data") or [])
            total_pages = int((body.get("pagination") or {}).get("totalPages") or 0)
            if page >= total_pages:
                break
            page += 1
        logger.debug("fetched %d links in %d page(s)", len(links), page)
        return links

    def fetch_case(self, ref: str) -> Case | None:
        row = self._data(f"/cases/{ref}")
        return None if row is None else self._parse(Case, row)

    def fetch_entity_neighborhood(self, kind: FocalKind, entity_id: str) -> Neighborhood | None:
        if kind == "case":
            return self._case_neighborhood(entity_id)
        return self._person_neighborhood(entity_id)

    def _case_neighborhood(self, ref: str) -> Neighborhood | None:
        case = self.fetch_case(ref)
        if case is None:
            return None
        link_rows = self._data(f"/cases/{case.case_id}/links") or []
        person_rows = self._data(f"/cases/{case.case_id}/persons") or []
        sample_rows = self._data(f"/cases/{case.case_id}/samples") or []

        links = [self._parse(Link, r) for r in link_rows]
        others: dict[str, Case] = {}
        for r in link_rows:
            for side in ("case1", "case2"):
                other_id = str(r.get(f"{side}_id"))
                if other_id == case.case_id or other_id in others:
                    continue
                others[other_id] = self._parse(
                    Case,
                    {
                        "case_id": other_id,
                        "case_number": r.get(f"{side}_number") or other_id,
                        "case_type": r.get(f"{side}_type"),
                        "province": r.get(f"{side}_province"),
                        "case_date": r.get(f"{side}_date"),
                    },
                )

        persons = [self._parse(Person, r) for r in person_rows]
        memberships = [
            self._parse(Membership, {"person_id": r.get("person_id"), "case_id": case.case_id, "role": r.get("role")})
            for r in person_rows
        ]
        return Neighborhood(
            focal=case,
            cases=tuple(others.values()),
            persons=tuple(persons),
            memberships=tuple(memberships),
            samples=tuple(self._parse(Sample, {"case_id": case.case_id, **r}) for r in sample_rows),
            links=tuple(links),
        )

    def _person_neighborhood(self, ref: str) -> Neighborhood | None:
        row = self._data(f"/persons/{ref}")
        if row is None:
            return None
        person = self._parse(Person, row)
        case_rows = self._data(f"/persons/{person.person_id}/cases") or []
        return Neighborhood(
            focal=person,
            cases=tuple(self._parse(Case, r) for r in case_rows),
            memberships=tuple(
                self._parse(Membership, {"person_id": person.person_id, "case_id": r.get("case_id"), "role": r.get("role")})
                for r in case_rows
            ),
        )

    @staticmethod
    def _parse(model: type, row: Any) -> Any:
        try:
            return model.model_validate(row)
        except ValidationError as e:
            raise ProviderFailure(f"malformed {model.__name__} record: {e.error_count()} error(s)") from e
