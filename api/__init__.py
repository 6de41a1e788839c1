"""
Liveness probe for the stock monitor.

This module provides a minimal FastAPI application that:
- Answers keep-alive pings on the root path
- Reports scheduler and last-cycle status on /health
"""
