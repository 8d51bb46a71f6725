import json
import logging
import httpx
from typing import List, Optional
from ..config import settings
from ..models import Content, Episode

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    pass


class CatalogClient:
    """Read-only access to the Baserow tables backing the catalog."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        headers = {}
        if settings.CATALOG_TOKEN:
            headers["Authorization"] = f"Token {settings.CATALOG_TOKEN}"
        self.client = client or httpx.AsyncClient(
            base_url=settings.CATALOG_BASE_URL.rstrip('/'),
            headers=headers,
            timeout=settings.REQUEST_TIMEOUT_SECONDS
        )
        self.contents_table = settings.CATALOG_CONTENTS_TABLE_ID
        self.episodes_table = settings.CATALOG_EPISODES_TABLE_ID

    async def close(self):
        await self.client.aclose()

    async def _list_rows(self, table_id: int, params: dict) -> List[dict]:
        query = {"user_field_names": "true", **params}
        try:
            resp = await self.client.get(f"/database/rows/table/{table_id}/", params=query)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise CatalogError(f"Catalog request to table {table_id} failed: {e}") from e
        return resp.json().get("results", [])

    async def get_content(self, content_id: int) -> Optional[Content]:
        try:
            resp = await self.client.get(
                f"/database/rows/table/{self.contents_table}/{content_id}/",
                params={"user_field_names": "true"}
            )
            resp.raise_for_status()
            return Content.model_validate(resp.json())
        except Exception as e:
            logger.warning(f"Failed to fetch content {content_id}: {e}")
            return None

    async def get_episodes(self, content_name: str, season: int) -> List[Episode]:
        """Episodes of one season, ordered by episode number."""
        filters = json.dumps({
            "filter_type": "AND",
            "filters": [
                {"type": "equal", "field": "Nome", "value": content_name},
                {"type": "equal", "field": "Temporada", "value": season},
            ],
            "groups": [],
        })
        rows = await self._list_rows(self.episodes_table, {"filters": filters, "order_by": "Episódio"})
        return [Episode.model_validate(row) for row in rows]
