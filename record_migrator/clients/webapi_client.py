"""OData Web API client for Dataverse-style environments."""

import re
import time
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import BaseRecordClient
from ..exceptions import ClientError, RecordNotFoundError
from ..models.schema import EntityMetadata, EntityField
from ..services.naming import pluralize_entity_name
from ..utils import escape_odata_string, strip_braces

logger = logging.getLogger(__name__)

METADATA_FIELDS = [
    "LogicalName",
    "PrimaryIdAttribute",
    "PrimaryNameAttribute",
    "EntitySetName",
    "LogicalCollectionName",
]

ATTRIBUTE_FIELDS = [
    "LogicalName",
    "DisplayName",
    "AttributeTypeName",
    "AttributeType",
    "IsPrimaryId",
    "IsPrimaryName",
    "RequiredLevel",
]

ENTITY_ID_PATTERN = re.compile(r"\(([^()]+)\)\s*$")


class WebAPIClient(BaseRecordClient):
    """
    Client for an OData Web API endpoint.

    Supports:
    - Bearer token authentication
    - Retry with backoff on throttling and server errors
    - Client-side rate limiting
    - Server-driven paging via @odata.nextLink
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        environment: str = "primary",
        api_version: str = "v9.2",
        rate_limit: float = 0.0,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Web API client.

        Args:
            base_url: Environment URL (e.g. https://org.crm.dynamics.com)
            token: OAuth bearer token
            environment: Name of the environment, used in log messages
            api_version: Web API version segment
            rate_limit: Max requests per second (0 disables limiting)
            timeout: Request timeout in seconds
            max_retries: Retries for throttled or failed requests
            backoff_factor: Backoff factor between retries
            session: Custom requests session
        """
        super().__init__(environment)
        self.api_url = f"{base_url.rstrip('/')}/api/data/{api_version}"
        self.token = token
        self.rate_limit = rate_limit
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self._last_request_time = 0.0
        self._collection_names: Dict[str, str] = {}
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication and retry logic."""
        session = requests.Session()

        retries = Retry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        if self.token:
            session.headers["Authorization"] = f"Bearer {self.token}"
        session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json; charset=utf-8",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
        })

        return session

    def _rate_limit_wait(self):
        """Wait to respect rate limits."""
        if self.rate_limit > 0:
            elapsed = time.time() - self._last_request_time
            wait_time = (1.0 / self.rate_limit) - elapsed
            if wait_time > 0:
                time.sleep(wait_time)
        self._last_request_time = time.time()

    def _request(self, method: str, path_or_url: str, **kwargs) -> requests.Response:
        """Send a request and map HTTP failures to ClientError."""
        url = path_or_url if path_or_url.startswith("http") else f"{self.api_url}/{path_or_url}"
        self._rate_limit_wait()

        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise ClientError(f"{method} {url} failed: {e}") from e

        if not response.ok:
            raise ClientError(
                self._error_message(response),
                status_code=response.status_code,
                details={"method": method, "url": url},
            )
        return response

    def _error_message(self, response: requests.Response) -> str:
        """Extract the server's error message from a failed response."""
        try:
            error_data = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

        error = error_data.get("error") if isinstance(error_data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return str(error_data)

    def get_collection_name(self, entity: str) -> str:
        """Get the collection (entity set) name used in record URLs."""
        if entity in self._collection_names:
            return self._collection_names[entity]

        try:
            metadata = self.get_entity_metadata(entity, ["EntitySetName", "LogicalCollectionName"])
            name = metadata.collection_name if metadata else None
        except ClientError as e:
            logger.warning(f"[{self.environment}] Metadata lookup for {entity} failed: {e}")
            name = None

        if not name:
            name = pluralize_entity_name(entity)
            logger.warning(f"[{self.environment}] Using fallback collection name {name} for {entity}")

        self._collection_names[entity] = name
        return name

    def get_entity_metadata(
        self,
        entity: str,
        fields: Optional[List[str]] = None
    ) -> Optional[EntityMetadata]:
        """Get metadata for an entity type."""
        select = ",".join(fields or METADATA_FIELDS)
        path = f"EntityDefinitions(LogicalName='{escape_odata_string(entity)}')"

        try:
            response = self._request("GET", path, params={"$select": select})
        except ClientError as e:
            if e.status_code == 404:
                return None
            raise

        return EntityMetadata.from_dict(entity, response.json())

    def fetch_entity_fields(self, entity: str) -> List[EntityField]:
        """Get the field definitions of an entity, with lookup targets."""
        base_path = f"EntityDefinitions(LogicalName='{escape_odata_string(entity)}')/Attributes"

        response = self._request("GET", base_path, params={"$select": ",".join(ATTRIBUTE_FIELDS)})
        fields = [EntityField.from_dict(attr) for attr in response.json().get("value", [])]

        # Targets are only exposed on the lookup attribute type
        lookup_path = f"{base_path}/Microsoft.Dynamics.CRM.LookupAttributeMetadata"
        response = self._request("GET", lookup_path, params={"$select": "LogicalName,Targets"})
        targets = {
            attr.get("LogicalName"): attr.get("Targets") or []
            for attr in response.json().get("value", [])
        }

        for entity_field in fields:
            if entity_field.logical_name in targets:
                entity_field.targets = list(targets[entity_field.logical_name])

        return fields

    def query_records(
        self,
        entity: str,
        select_fields: List[str],
        filter_query: Optional[str] = None,
        order_by: Optional[str] = None,
        top: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Query records, following server-driven paging."""
        params = {"$select": ",".join(select_fields)}
        if filter_query:
            params["$filter"] = filter_query
        if order_by:
            params["$orderby"] = order_by
        if top:
            params["$top"] = str(top)

        response = self._request("GET", self.get_collection_name(entity), params=params)
        data = response.json()
        records = list(data.get("value", []))

        next_link = data.get("@odata.nextLink")
        while next_link and (not top or len(records) < top):
            data = self._request("GET", next_link).json()
            records.extend(data.get("value", []))
            next_link = data.get("@odata.nextLink")

        if top:
            records = records[:top]

        logger.debug(f"[{self.environment}] Queried {len(records)} {entity} records")
        return records

    def create_record(self, entity: str, data: Dict[str, Any]) -> str:
        """Create a record and return its id."""
        response = self._request("POST", self.get_collection_name(entity), json=data)

        entity_id_url = response.headers.get("OData-EntityId", "")
        match = ENTITY_ID_PATTERN.search(entity_id_url)
        if match:
            return strip_braces(match.group(1))

        if response.content:
            body = response.json()
            for key, value in body.items():
                if key.endswith("id") and isinstance(value, str):
                    return value

        raise ClientError(f"Create of {entity} record did not return an id")

    def update_record(self, entity: str, record_id: str, data: Dict[str, Any]) -> None:
        """Update an existing record (never creates)."""
        path = f"{self.get_collection_name(entity)}({strip_braces(record_id)})"
        self._request("PATCH", path, json=data, headers={"If-Match": "*"})

    def delete_record(self, entity: str, record_id: str) -> None:
        """Delete a record."""
        path = f"{self.get_collection_name(entity)}({strip_braces(record_id)})"
        self._request("DELETE", path)

    def retrieve_record(
        self,
        entity: str,
        record_id: str,
        fields: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Retrieve a single record by id."""
        path = f"{self.get_collection_name(entity)}({strip_braces(record_id)})"
        params = {"$select": ",".join(fields)} if fields else None

        try:
            response = self._request("GET", path, params=params)
        except ClientError as e:
            if e.status_code == 404:
                raise RecordNotFoundError(entity, record_id) from e
            raise

        return response.json()

    def validate_connection(self) -> bool:
        """Validate the connection with a WhoAmI call."""
        try:
            self._request("GET", "WhoAmI")
            return True
        except ClientError as e:
            logger.error(f"[{self.environment}] Connection validation failed: {e}")
            return False
