import os
import logging
from datetime import datetime, timezone
from typing import Optional

from sitesmith.models import DesignBrief, GeneratedFile, GenerationLog, IntentManifest
from sitesmith.services.progress_log import decode_log, encode_log

logger = logging.getLogger(__name__)

RUNS_TABLE = "generation_runs"

_supabase_client = None


def get_supabase():
    """Get or create the Supabase client."""
    global _supabase_client
    if _supabase_client is not None:
        return _supabase_client

    url = os.getenv("SUPABASE_URL", "")
    key = os.getenv("SUPABASE_KEY", "")

    if not url or not key:
        logger.warning("SUPABASE_URL or SUPABASE_KEY not set, database disabled")
        return None

    from supabase import create_client

    _supabase_client = create_client(url, key)
    return _supabase_client


class RunStore:
    """Persistence collaborator for generation runs.

    Rows in ``generation_runs`` hold the manifest, brief, file set and the
    encoded progress log. Every call is a no-op returning None when Supabase
    is not configured, and failures are logged rather than raised.
    """

    def __init__(self, client=None, table: str = RUNS_TABLE):
        self._client = client
        self.table = table

    @property
    def client(self):
        return self._client if self._client is not None else get_supabase()

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def save(
        self,
        run_id: str,
        manifest: Optional[IntentManifest],
        brief: Optional[DesignBrief],
        files: list[GeneratedFile],
        log: GenerationLog,
    ) -> Optional[dict]:
        client = self.client
        if client is None:
            return None

        try:
            row = {
                "id": run_id,
                "manifest": manifest.model_dump(by_alias=True) if manifest is not None else None,
                "brief": brief.model_dump(by_alias=True, mode="json") if brief is not None else None,
                "files": [f.model_dump() for f in files],
                "log": encode_log(log),
                "is_complete": log.is_complete,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
            result = client.table(self.table).upsert(row).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"[store] Failed to save run {run_id}: {e}")
            return None

    async def load(self, run_id: str) -> Optional[dict]:
        """Stored record for ``run_id`` with ``log`` decoded, or None."""
        client = self.client
        if client is None:
            return None

        try:
            result = (
                client.table(self.table)
                .select("*")
                .eq("id", run_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"[store] Failed to load run {run_id}: {e}")
            return None

        if not result.data:
            return None

        record = result.data[0]
        return {
            "run_id": record["id"],
            "manifest": IntentManifest.model_validate(record["manifest"]) if record.get("manifest") else None,
            "brief": DesignBrief.model_validate(record["brief"]) if record.get("brief") else None,
            "files": [GeneratedFile.model_validate(f) for f in record.get("files") or []],
            "log": decode_log(record.get("log") or "") or GenerationLog(),
        }
