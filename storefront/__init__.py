"""
Storefront order placement and fulfillment service.

Catalog lookup, stock ledger, order builder, placement coordinator and the
order status machine, exposed through a FastAPI application.
"""
