"""
asgi.py -- Application assembly for Products CMS.

This is the ONLY file that imports from both api/ and web/. api/main.py
serves the JSON API and knows nothing about web/; web/routes.py renders the
HTML pages and knows nothing about api/. Both share the stores on app.state.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app
from web.routes import router as web_router

app.include_router(web_router, tags=["Web UI"])
