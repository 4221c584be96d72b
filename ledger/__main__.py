"""
Server entry point.

Usage:
    python -m ledger

Host, port and the in-flight request cap come from settings (HOST, PORT,
MAX_CONCURRENT_REQUESTS). Requests beyond the cap are answered 503 by
uvicorn rather than queued.
"""

import uvicorn

from ledger.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "ledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        limit_concurrency=settings.MAX_CONCURRENT_REQUESTS,
        reload=False,
    )
