from fastapi import Depends
from services.cache import get_cache_client
from auth.security import get_current_client
from data.database import get_db

# Shared route dependencies; tests override get_db and get_cache_client
CLIENT_AUTH = Depends(get_current_client)  # ApiClient resolved from x-api-key
DB_DEPENDENCY = Depends(get_db)
CACHE_CLIENT = Depends(get_cache_client)
