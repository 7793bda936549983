"""Mock member API for local runs and tests."""

from .app import MockGatewayState, create_app, create_mock_app, sample_product_sets

__all__ = ["MockGatewayState", "create_app", "create_mock_app", "sample_product_sets"]
