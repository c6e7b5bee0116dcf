"""
Variantman REST API.

Provides DRF ViewSets for:
- Product (read-only + suggest-code action)
- Variant (CRUD through the wizard + set-default and verify actions)
"""
