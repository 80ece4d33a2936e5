"""FastAPI routers for the worker.

Routers are grouped by domain (transcripts, upload).
"""
