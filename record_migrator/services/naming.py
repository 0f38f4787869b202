"""Resolution of entity type names to collection (entity set) names."""

import logging
from typing import Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..clients.base import BaseRecordClient

logger = logging.getLogger(__name__)

KNOWN_PLURALIZATIONS = {
    # Auto-mapped system entities
    "systemuser": "systemusers",
    "team": "teams",
    "businessunit": "businessunits",
    # Common built-in entities
    "account": "accounts",
    "contact": "contacts",
    "lead": "leads",
    "opportunity": "opportunities",
    "quote": "quotes",
    "order": "orders",
    "invoice": "invoices",
    "product": "products",
    "pricelevel": "pricelevels",
    "incident": "incidents",
    "campaign": "campaigns",
    "list": "lists",
    "annotation": "annotations",
    "appointment": "appointments",
    "email": "emails",
    "phonecall": "phonecalls",
    "task": "tasks",
    "letter": "letters",
    "fax": "faxes",
    "activitypointer": "activitypointers",
}

CONSONANTS = "bcdfghjklmnpqrstvwxz"


def pluralize_entity_name(entity_name: str) -> str:
    """
    Derive a collection name from an entity name without any I/O.

    Known names come from a fixed table; otherwise a trailing consonant+"y"
    becomes "ies" and anything else gets an "s".
    """
    if not entity_name or not entity_name.strip():
        logger.error("pluralize_entity_name called with empty entity name")
        return ""

    name = entity_name.strip().lower()

    if name in KNOWN_PLURALIZATIONS:
        return KNOWN_PLURALIZATIONS[name]

    if len(name) > 1 and name.endswith("y") and name[-2] in CONSONANTS:
        return name[:-1] + "ies"

    return name + "s"


class NamingResolver:
    """
    Resolves entity names to collection names for reference bindings.

    Metadata results are cached per resolver; failures fall back to
    pluralize_entity_name and are not cached, so a later call retries.
    """

    def __init__(self, client: Optional["BaseRecordClient"] = None):
        """
        Initialize the resolver.

        Args:
            client: Client used for metadata lookups (None to always use the fallback)
        """
        self.client = client
        self._cache: Dict[str, str] = {}

    def resolve_collection_name(self, entity_name: str) -> str:
        """Get the collection name for an entity type. Never raises."""
        if entity_name in self._cache:
            return self._cache[entity_name]

        if self.client is not None:
            try:
                metadata = self.client.get_entity_metadata(entity_name, ["EntitySetName", "LogicalCollectionName"])
                collection_name = (metadata.collection_name or "").strip() if metadata else ""
                if not collection_name:
                    raise ValueError("Empty entity set name returned from metadata")
                self._cache[entity_name] = collection_name
                return collection_name
            except Exception as e:
                logger.warning(f"Failed to get entity set name for {entity_name}: {e}")

        fallback = pluralize_entity_name(entity_name)
        logger.info(f"Using fallback pluralization for {entity_name}: {fallback}")
        return fallback
