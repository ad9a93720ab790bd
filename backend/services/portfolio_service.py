"""Portfolio Service - persistence and versioning of content documents.

One current document per owner. Every successful save replaces the stored
content wholesale and bumps ``version`` by one; there is no field-level
merge, no locking and no conflict detection (last writer wins). Publishing
is a flag on the same record and does not create a version.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from models import AuditAction, PortfolioRecord
from services.portfolio_schema import FieldError, validate_portfolio_content
from services.realtime import ContentBroadcaster
from utils.audit import create_audit_log

logger = logging.getLogger(__name__)

LEGACY_CONTACT_EMAIL = "contact@example.com"
LEGACY_CONTACT_NOTE = "Let's connect and discuss opportunities!"

# Insert-or-update passes before giving up on a record that keeps vanishing
SAVE_ATTEMPTS = 2


class PortfolioValidationError(ValueError):
    """Proposed document failed validation; nothing was written."""

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__("Invalid portfolio content")


class PortfolioNotFoundError(LookupError):
    pass


def portfolio_title(content: Dict[str, Any]) -> str:
    name = (content.get("meta") or {}).get("name") or "My Portfolio"
    return f"{name} Portfolio"


class PortfolioService:
    """Read/write the owner's content document."""

    def __init__(self, db, broadcaster: Optional[ContentBroadcaster] = None):
        self.db = db
        self.broadcaster = broadcaster

    async def get_record(self, owner_id: str) -> Optional[Dict[str, Any]]:
        """Latest record for an owner, or None."""
        return await self.db.portfolios.find_one(
            {"owner_id": owner_id},
            {"_id": 0},
            sort=[("updated_at", -1)],
        )

    async def save(
        self,
        owner_id: str,
        proposed: Any,
        section: Optional[str] = None,
    ) -> Tuple[Dict[str, Any], int]:
        """Validate and store a whole document.

        Creates the record at version 1 on first save, otherwise replaces
        ``content`` and increments ``version``. Identical saves still bump it.
        """
        result = validate_portfolio_content(proposed)
        if not result.success:
            raise PortfolioValidationError(result.errors)

        content = result.content
        now = datetime.now(timezone.utc)
        title = portfolio_title(content)
        description = content["meta"].get("title")

        stored = None
        created = False
        for _ in range(SAVE_ATTEMPTS):
            existing = await self.db.portfolios.find_one({"owner_id": owner_id}, {"_id": 0, "portfolio_id": 1})
            if existing is None:
                record = PortfolioRecord(
                    owner_id=owner_id,
                    title=title,
                    description=description,
                    content=content,
                    version=1,
                    is_published=True,
                    created_at=now,
                    updated_at=now,
                )
                try:
                    await self.db.portfolios.insert_one(record.model_dump())
                    stored = record.model_dump()
                    created = True
                    break
                except DuplicateKeyError:
                    # Another request created it first; fall through to the update path
                    logger.info(f"Portfolio for owner {owner_id} created concurrently, updating instead")

            stored = await self.db.portfolios.find_one_and_update(
                {"owner_id": owner_id},
                {
                    "$set": {
                        "content": content,
                        "title": title,
                        "description": description,
                        "updated_at": now,
                    },
                    "$inc": {"version": 1},
                },
                projection={"_id": 0},
                return_document=ReturnDocument.AFTER,
            )
            if stored is not None:
                break
            # Deleted between the lookup and the update; start over from the insert
            logger.info(f"Portfolio for owner {owner_id} removed during save, retrying")

        if stored is None:
            raise PortfolioNotFoundError(f"Portfolio for owner {owner_id} was removed during save")

        version = stored["version"]
        logger.info(f"Saved portfolio for owner {owner_id} at version {version}")

        await create_audit_log(
            action=AuditAction.PORTFOLIO_CREATED if created else AuditAction.PORTFOLIO_SAVED,
            actor_id=owner_id,
            resource_type="portfolio",
            resource_id=stored.get("portfolio_id"),
            metadata={"version": version, "section": section},
            db=self.db,
        )

        if self.broadcaster is not None:
            self.broadcaster.notify_portfolio_changed(owner_id, version=version, section=section)

        return stored, version

    async def set_published(self, owner_id: str, is_published: bool) -> Dict[str, Any]:
        """Toggle the publish flag. Does not bump the version."""
        updated = await self.db.portfolios.find_one_and_update(
            {"owner_id": owner_id},
            {"$set": {"is_published": is_published, "updated_at": datetime.now(timezone.utc)}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise PortfolioNotFoundError(f"No portfolio for owner {owner_id}")

        await create_audit_log(
            action=AuditAction.PORTFOLIO_PUBLISH_TOGGLED,
            actor_id=owner_id,
            resource_type="portfolio",
            resource_id=updated.get("portfolio_id"),
            metadata={"is_published": is_published},
            db=self.db,
        )
        if self.broadcaster is not None:
            self.broadcaster.notify_portfolio_changed(
                owner_id, version=updated.get("version"), change_type="publish"
            )
        return updated

    async def resolve_public_content(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Content to render for an owner, or None when they have no document.

        Records carrying a ``content`` blob are returned verbatim; older
        records are rebuilt from their relational rows.
        """
        if not user_id:
            return None

        record = await self.get_record(user_id)
        if record is None:
            return None

        if record.get("content"):
            return record["content"]

        return await self._rebuild_from_rows(record)

    async def _rows(self, collection, portfolio_id: str) -> List[Dict[str, Any]]:
        cursor = collection.find({"portfolio_id": portfolio_id}, {"_id": 0}).sort("order", 1)
        return await cursor.to_list(length=None)

    async def _rebuild_from_rows(self, record: Dict[str, Any]) -> Dict[str, Any]:
        portfolio_id = record.get("portfolio_id")
        experiences = await self._rows(self.db.portfolio_experiences, portfolio_id)
        projects = await self._rows(self.db.portfolio_projects, portfolio_id)
        skills = await self._rows(self.db.portfolio_skills, portfolio_id)

        logger.info(f"Rebuilt portfolio {portfolio_id} from legacy rows")
        return {
            "meta": {
                "name": record.get("title") or "",
                "title": record.get("description") or "",
                "email": LEGACY_CONTACT_EMAIL,
                "twitter": None,
                "location": None,
                "heroImage": None,
                "summary": None,
            },
            "about": {
                "paragraph": record.get("description") or "",
                "hobbies": [],
                "image": None,
            },
            "experienceSections": [],
            "experiences": [
                {
                    "id": row.get("id"),
                    "role": row.get("role"),
                    "org": row.get("organization"),
                    "period": row.get("period"),
                    "bullets": row.get("bullets") or [],
                    "order": row.get("order"),
                    "sectionId": None,
                }
                for row in experiences
            ],
            "projects": [
                {
                    "id": row.get("id"),
                    "title": row.get("title"),
                    "description": row.get("description"),
                    "link": row.get("link"),
                    "tags": row.get("tags") or [],
                    "order": row.get("order"),
                    "image": None,
                }
                for row in projects
            ],
            "skills": [
                {
                    "id": row.get("id"),
                    "name": row.get("name"),
                    "category": row.get("category"),
                    "level": row.get("level"),
                    "order": row.get("order"),
                }
                for row in skills
            ],
            "contact": {"note": LEGACY_CONTACT_NOTE},
        }
