# Package exports - these allow cleaner imports like:
# from storefront.models import Product, Purchase
# Used by alembic/env.py for migration autogenerate
from storefront.models.product import Product
from storefront.models.purchase import Purchase
from storefront.models.download_token import DownloadToken
