"""Test support: an in-memory reference host with fault injection."""

from restyle.testing.memory_host import (
    FaultPlan,
    HostCall,
    InMemoryDocument,
    InMemoryHostError,
    NodeFault,
    document_from_dict,
    load_document,
)

__all__ = [
    "FaultPlan",
    "HostCall",
    "InMemoryDocument",
    "InMemoryHostError",
    "NodeFault",
    "document_from_dict",
    "load_document",
]
