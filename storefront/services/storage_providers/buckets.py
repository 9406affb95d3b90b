from storefront.config import Settings
from storefront.schemas.files import BucketType

PUBLIC_BUCKET_TYPES = frozenset({BucketType.PUBLIC, BucketType.LOGOS, BucketType.AVATARS})
PRIVATE_BUCKET_TYPES = frozenset({BucketType.DOWNLOADS, BucketType.TEMP})


def bucket_name(settings: Settings, bucket_type: BucketType) -> str:
    """Resolve a logical bucket category to the configured bucket name"""
    return {
        BucketType.PUBLIC: settings.bucket_public,
        BucketType.DOWNLOADS: settings.bucket_downloads,
        BucketType.LOGOS: settings.bucket_logos,
        BucketType.AVATARS: settings.bucket_avatars,
        BucketType.TEMP: settings.bucket_temp,
    }[bucket_type]


def is_public(bucket_type: BucketType) -> bool:
    return bucket_type in PUBLIC_BUCKET_TYPES
