"""Host document boundary: the DocumentHost protocol and its typed adapter."""

from restyle.host.adapter import HostAdapter
from restyle.host.protocol import STYLE_PROPERTY, DocumentHost, HostPayload

__all__ = ["STYLE_PROPERTY", "DocumentHost", "HostAdapter", "HostPayload"]
