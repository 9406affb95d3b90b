# Package exports - these allow cleaner imports like:
# from storefront.services.storage_providers import StorageProvider, SupabaseStorageProvider
from storefront.services.storage_providers.base import StorageProvider
from storefront.services.storage_providers.supabase_provider import SupabaseStorageProvider
