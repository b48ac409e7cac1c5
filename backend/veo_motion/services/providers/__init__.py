"""Video provider implementations.

Each provider implements the async generation pattern:
  submit job → re-query operation → expose generated video URIs
"""
