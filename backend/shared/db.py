from supabase import create_client, Client
from supabase.client import ClientOptions
from dotenv import load_dotenv
import os

from config.settings import DB_TIMEOUT_SECONDS

load_dotenv()


def get_supabase_client(timeout: float = DB_TIMEOUT_SECONDS) -> Client:
    """Get initialized Supabase client with a bounded PostgREST timeout."""
    url: str | None = os.getenv("SUPABASE_URL")
    key: str | None = os.getenv("SUPABASE_SERVICE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    return create_client(url, key, options=ClientOptions(postgrest_client_timeout=timeout))
