"""
Procurement Kernel

Configuration engine for public-procurement case files:
- Contract-type resolution from object category and amount
- Ordered, dependency-aware phase catalog with per-type overrides
- Phase progression gated on dependencies and mandatory documents
"""

__version__ = "0.1.0"
