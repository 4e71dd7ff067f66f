"""
MotoTask lifecycle & archival core

Cascading deletes, atomic task id migration, photo archive export and
period reports for vehicle verification tasks stored in a hierarchical
document store with photos in a separate blob store.
"""

__version__ = "0.1.0"
