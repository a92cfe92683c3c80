"""
Schemas module - Request/Response schemas for API endpoints.

Difference from documents:
- Documents: what MongoDB stores (ObjectId references, counters)
- Schemas: API contract (what client sends/receives)
"""
