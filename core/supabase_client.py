# core/supabase_client.py

from supabase import AsyncClient, acreate_client

from core.config import settings
from core.logging_config import logger


# ============================================================
# Supabase Client Factory (ALWAYS service role)
# ============================================================

async def get_supabase_client() -> AsyncClient:
    """
    Creates an async Supabase client using the SERVICE ROLE KEY.
    The service role is required for full read/write on the projects table;
    authorization is decided by the caller through core.permissions.
    Raises RuntimeError when credentials are missing.
    """
    supabase_url = settings.SUPABASE_URL
    supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY  # MUST be service-role

    if not supabase_url or not supabase_key:
        logger.error("Missing Supabase credentials")
        logger.error(f"   URL: {supabase_url}")
        logger.error(f"   SERVICE ROLE KEY: {'SET' if supabase_key else 'MISSING'}")
        raise RuntimeError("Supabase client not configured")

    return await acreate_client(supabase_url, supabase_key)


# ============================================================
# Ping Supabase for health checks
# ============================================================

async def ping_supabase() -> dict:
    """Simple connectivity check against the projects table."""
    try:
        client = await get_supabase_client()
        res = await client.table(settings.PROJECTS_TABLE).select("id").limit(1).execute()
        return {
            "service": "Supabase",
            "status": "ok",
            "rows_found": len(res.data or []),
        }

    except Exception as e:
        logger.error(f"Supabase Ping Error: {e}", exc_info=True)
        return {"service": "Supabase", "status": "error", "detail": str(e)}
