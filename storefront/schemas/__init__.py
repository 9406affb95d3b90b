# Package exports - these allow cleaner imports like:
# from storefront.schemas import ProductUpsert, ProductResponse
from storefront.schemas.product import ProductWrite, ProductUpsert, ProductResponse, ProductEnvelope, ProductListResponse
from storefront.schemas.files import BucketType, UploadRequest, ContentUploadRequest, DeleteContentRequest, DeleteProductRequest
from storefront.schemas.purchase import PurchaseRequest, PurchaseTokenResponse, PurchaseSignedUrlResponse
from storefront.schemas.claims import ClaimHistoryRequest, ClaimRecord, ClaimHistoryResponse
