"""
Org store client — handles all communication with the hosted data service.

Override records live in a PostgREST-style table (``org_metadata`` by
default) exposed at ``<ORG_STORE_URL>/rest/v1/<table>``.  Rows are keyed
by ``(type, node_id)``; writes are insert-or-replace upserts.

Configuration is read from Flask ``current_app.config``:
    - ``ORG_STORE_URL``:      Base URL of the data service.  Empty means
                              the store is not configured (offline).
    - ``ORG_STORE_API_KEY``:  Service key sent as ``apikey`` and bearer.
    - ``ORG_STORE_TABLE``:    Table holding override records.
    - ``ORG_STORE_MAX_CONCURRENT_REQUESTS``: Upsert thread pool size.
    - ``ORG_STORE_TIMEOUT``:  Per-request timeout in seconds.

Saving the tree is one upsert per entity, dispatched concurrently.  A
failed upsert is logged with its node id and never cancels the others.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import urllib3
from flask import current_app

logger = logging.getLogger(__name__)

# Conflict target for upserts; matches the table's unique constraint.
_CONFLICT_COLUMNS = "type,node_id"


class OrgStoreError(Exception):
    """Raised when the data service cannot be read from or written to."""


@dataclass
class SaveResult:
    """Outcome of one batch of upserts."""

    attempted: int = 0
    saved: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def status(self) -> str:
        """``completed``, ``partial`` or ``failed``."""
        if not self.failed:
            return "completed"
        if self.saved:
            return "partial"
        return "failed"


def row_key(row: dict[str, Any]) -> str:
    """Human-readable identity of a row for logs, e.g. ``department:dept1``."""
    return f"{row.get('type')}:{row.get('node_id')}"


class OrgStoreClient:
    """
    Client for the ``org_metadata`` table of the hosted data service.

    Usage inside a Flask app context::

        client = OrgStoreClient()
        rows = client.fetch_org_metadata()
        result = client.upsert_rows(rows)
    """

    def __init__(self) -> None:
        """
        Initialize the client by reading config from Flask app context.

        Raises:
            RuntimeError: If called outside a Flask application context.
        """
        self.base_url: str = (current_app.config.get("ORG_STORE_URL") or "").rstrip("/")
        self.api_key: str = current_app.config.get("ORG_STORE_API_KEY", "")
        self.table: str = current_app.config.get("ORG_STORE_TABLE", "org_metadata")
        self.max_concurrent_requests: int = current_app.config.get(
            "ORG_STORE_MAX_CONCURRENT_REQUESTS", 5
        )
        self.timeout = urllib3.Timeout(
            total=current_app.config.get("ORG_STORE_TIMEOUT", 10.0)
        )

        self.headers: dict[str, str] = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.debug(
            "OrgStoreClient initialized — base_url=%s, table=%s",
            self.base_url,
            self.table,
        )

    @property
    def is_configured(self) -> bool:
        """False when no store URL is set; callers treat that as offline."""
        return bool(self.base_url)

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    # =================================================================
    # Public API
    # =================================================================

    def fetch_org_metadata(self) -> list[dict[str, Any]]:
        """
        Fetch every override record.

        Returns:
            List of raw row dicts (``type``, ``node_id``, ``goal``,
            ``vfp``, ``manager``, ``description``, ``long_description``,
            ``content``).

        Raises:
            OrgStoreError: If the store is unreachable, answers with a
                           non-200 status, or returns invalid JSON.
        """
        if not self.is_configured:
            raise OrgStoreError("ORG_STORE_URL is not configured.")

        response = self._request("GET", self.table_url, fields={"select": "*"})

        if response.status != 200:
            raise OrgStoreError(
                f"GET {self.table} returned status {response.status}"
            )

        try:
            rows = json.loads(response.data)
        except json.JSONDecodeError as exc:
            raise OrgStoreError(f"Invalid JSON from {self.table}: {exc}") from exc

        if not isinstance(rows, list):
            raise OrgStoreError(f"Unexpected payload from {self.table}: not a list")

        logger.info("Fetched %d override record(s) from %s", len(rows), self.table)
        return rows

    def upsert_row(self, row: dict[str, Any]) -> None:
        """
        Insert or replace a single row keyed by ``(type, node_id)``.

        Raises:
            OrgStoreError: On transport failure or a non-2xx status.
        """
        if not self.is_configured:
            raise OrgStoreError("ORG_STORE_URL is not configured.")

        url = f"{self.table_url}?{urlencode({'on_conflict': _CONFLICT_COLUMNS})}"
        response = self._request(
            "POST",
            url,
            body=json.dumps(row).encode("utf-8"),
            extra_headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

        if not 200 <= response.status < 300:
            raise OrgStoreError(
                f"Upsert of {row_key(row)} returned status {response.status}"
            )

    def upsert_rows(self, rows: list[dict[str, Any]]) -> SaveResult:
        """
        Upsert every row concurrently and wait for all of them.

        Each upsert is independent: one failure is logged and recorded
        in the result but does not stop the others.

        Args:
            rows: Wire rows, one per company/department/sub-department.

        Returns:
            A ``SaveResult`` listing saved and failed row keys.
        """
        result = SaveResult(attempted=len(rows))
        if not rows:
            return result

        with ThreadPoolExecutor(max_workers=self.max_concurrent_requests) as executor:
            future_to_key = {
                executor.submit(self.upsert_row, row): row_key(row) for row in rows
            }

            for future in as_completed(future_to_key):
                key = future_to_key[future]
                try:
                    future.result()
                    result.saved.append(key)
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    logger.error("Failed to save %s: %s", key, exc)
                    result.failed[key] = str(exc)

        if result.failed:
            logger.warning(
                "Saved %d of %d override record(s); %d failed",
                len(result.saved),
                result.attempted,
                len(result.failed),
            )
        else:
            logger.info("Saved all %d override record(s)", result.attempted)
        return result

    # =================================================================
    # HTTP transport
    # =================================================================

    def _request(
        self,
        method: str,
        url: str,
        fields: dict[str, str] | None = None,
        body: bytes | None = None,
        extra_headers: dict[str, str] | None = None,
    ):
        """
        Send one HTTP request.  Each call uses its own ``PoolManager`` so
        the method is safe to run from the upsert thread pool.

        Raises:
            OrgStoreError: Wrapping any urllib3 transport error.
        """
        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)

        try:
            with urllib3.PoolManager(timeout=self.timeout) as http:
                return http.request(
                    method,
                    url,
                    fields=fields,
                    body=body,
                    headers=headers,
                )
        except urllib3.exceptions.HTTPError as exc:
            raise OrgStoreError(f"{method} {url} failed: {exc}") from exc
