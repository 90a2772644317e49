"""
The FastAPI application lives in backoffice.server.app.setup.
Import it directly: from backoffice.server.app import app
"""
