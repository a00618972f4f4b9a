"""Client-side persistence of discovered people (people jobs only).

Primary path is one bulk upsert per page. If that call fails the same rows
are retried one at a time so a single bad row cannot sink the whole page.
"""

import logging
from typing import Any

from src.core.errors import StoreError
from src.core.schemas import ContactRow
from src.storage.base import RecordStore

logger = logging.getLogger(__name__)

INITIAL_CONTACT_STAGE = "Prospect"
INITIAL_ENRICHMENT_STATUS = "not_started"


def _text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def to_contact_row(person: dict[str, Any], organization_id: str | None) -> ContactRow:
    """Map a raw person record from the search API to a contacts row."""
    first = person.get("first_name") or ""
    last = person.get("last_name_obfuscated") or ""
    organization = person.get("organization") or {}
    company = organization.get("name") if isinstance(organization, dict) else None

    return ContactRow(
        external_person_id=str(person["id"]),
        organization_id=organization_id,
        name=f"{first} {last}".strip(),
        job_title=_text(person.get("title")),
        company_name=_text(company),
        linkedin_url=_text(person.get("linkedin_url")),
        city=_text(person.get("city")),
        state=_text(person.get("state")),
        country=_text(person.get("country")),
        photo_url=_text(person.get("photo_url")),
        contact_stage=INITIAL_CONTACT_STAGE,
        phone_enrichment_status=INITIAL_ENRICHMENT_STATUS,
    )


def build_contact_rows(people: list[dict[str, Any]], organization_id: str | None) -> list[ContactRow]:
    """Map people, dropping records without an ``id``."""
    rows: list[ContactRow] = []
    for person in people:
        if not isinstance(person, dict) or person.get("id") in (None, ""):
            logger.debug("Skipping person record without id")
            continue
        rows.append(to_contact_row(person, organization_id))
    return rows


async def save_people(
    store: RecordStore,
    people: list[dict[str, Any]],
    organization_id: str | None,
) -> int:
    """Persist one page of people. Returns how many rows were new."""
    rows = build_contact_rows(people, organization_id)
    if not rows:
        return 0

    try:
        return await store.upsert_contacts(rows)
    except StoreError as e:
        logger.warning("Bulk upsert failed (%s); retrying %d rows one by one", e, len(rows))

    inserted = 0
    for row in rows:
        try:
            if await store.upsert_contact(row):
                inserted += 1
        except StoreError as e:
            logger.debug("Row %s failed: %s", row.external_person_id, e)
    logger.info("Row-by-row fallback inserted %d/%d rows", inserted, len(rows))
    return inserted
