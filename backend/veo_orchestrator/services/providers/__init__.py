"""Video generation provider implementations.

Each provider implements the long-running operation pattern:
  POST start operation → GET operation status → read result URI
"""
from __future__ import annotations
