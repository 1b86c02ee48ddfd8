"""
API Clients Module
"""
from .rest import RestClient, build_http_client
from .resources import ShopJoyApi
from .graphql import GraphQLClient

__all__ = [
    "RestClient",
    "build_http_client",
    "ShopJoyApi",
    "GraphQLClient",
]
