from fastapi import Request

from storefront.config import Settings
from storefront.services.chain_client import ChainClient
from storefront.services.storage_providers.base import StorageProvider


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with"""
    return request.app.state.settings


def get_storage_provider(request: Request) -> StorageProvider:
    """Get the configured storage provider instance"""
    return request.app.state.storage


def get_chain_client(request: Request) -> ChainClient:
    """Get the configured chain RPC client"""
    return request.app.state.chain_client
