"""
asgi.py -- ASGI entry point for the product catalog API.

Run with:  uvicorn asgi:app --reload
           python asgi.py            (binds HOST:PORT from settings)
"""

import uvicorn

from api.main import app, settings

__all__ = ["app"]

if __name__ == "__main__":
    uvicorn.run("asgi:app", host=settings.host, port=settings.port)
