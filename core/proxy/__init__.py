# core/proxy/__init__.py
"""
Proxy modules package.

Upstream APIs that need a server-held key are relayed from here so the
mobile client never sees the key.
"""

from core.proxy.nookipedia_proxy import NookipediaProxy

__all__ = ['NookipediaProxy']
